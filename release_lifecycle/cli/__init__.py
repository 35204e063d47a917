"""
Command Line Interface for Release Lifecycle.
"""

import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import get_settings
from ..db.base import drop_database, init_database, session_scope
from ..lifecycle import (
    ActionHistoryService,
    ActionStatus,
    ArtifactKind,
    ArtifactService,
    ArtifactStatusService,
    ComponentService,
    LifecycleError,
    ReleaseScope,
    ReleaseService,
    SuccessorService,
)
from ..log import configure_logging

app = typer.Typer(help="Release Lifecycle - deployment state for release artifacts")
console = Console()


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings())


def _fail(error: LifecycleError) -> None:
    console.print(f"[red]{error.code}[/red] {error.message}")
    if error.details:
        console.print(json.dumps(error.details, default=str))
    raise typer.Exit(code=1)


@app.command("init-db")
def init_db():
    """Create all tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command("drop-db")
def drop_db(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
):
    """Drop all tables."""
    if not yes:
        typer.confirm("Drop every release lifecycle table?", abort=True)
    drop_database()
    console.print("🗑️  Database dropped")


@app.command("create-release")
def create_release(
    name: str = typer.Argument(..., help="Release name, e.g. 177"),
    user: str = typer.Option(..., "--user", help="Acting user id"),
    kind: ArtifactKind = typer.Option(
        ArtifactKind.BUILT_VERSION, help="Kind of the initial artifact"
    ),
):
    """Create a release and its initial artifact."""
    with session_scope() as db:
        try:
            release = ReleaseService(db).create_release(user, name, kind=kind)
        except LifecycleError as e:
            _fail(e)
        artifacts = ArtifactService(db, kind).list_by_release(release.id)
        console.print(f"Release [bold]{release.name}[/bold] ({release.id})")
        for artifact in artifacts:
            console.print(f"  {artifact.name} ({artifact.id})")


@app.command("add-component")
def add_component(
    name: str = typer.Argument(..., help="Component name"),
    pattern: Optional[str] = typer.Option(None, help="Naming pattern"),
    scope: ReleaseScope = typer.Option(ReleaseScope.VERSION_BOUND, help="Release scope"),
):
    """Define a release component."""
    with session_scope() as db:
        try:
            component = ComponentService(db).create(name, pattern, scope)
        except LifecycleError as e:
            _fail(e)
        console.print(f"Component [bold]{component.name}[/bold] ({component.id})")


@app.command("create-artifact")
def create_artifact(
    release_id: str = typer.Argument(..., help="Owning release id"),
    name: str = typer.Argument(..., help="Artifact name"),
    user: str = typer.Option(..., "--user", help="Acting user id"),
    kind: ArtifactKind = typer.Option(ArtifactKind.BUILT_VERSION, help="Artifact kind"),
):
    """Create an artifact in an existing release."""
    with session_scope() as db:
        try:
            artifact = ArtifactService(db, kind).create(user, release_id, name)
        except LifecycleError as e:
            _fail(e)
        console.print(f"{artifact.name} ({artifact.id})")


def _start_audit(db, audit: bool, action_type: str, message: str, user: str):
    if not audit:
        return None
    return ActionHistoryService(db).start_action(action_type, message, user)


def _finish_audit(db, action_logger, status: ActionStatus, message: Optional[str] = None):
    if action_logger is not None:
        ActionHistoryService(db).finalize_action(action_logger.id, status, message=message)


@app.command()
def transition(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    action: str = typer.Argument(..., help="Transition action, e.g. startDeployment"),
    user: str = typer.Option(..., "--user", help="Acting user id"),
    kind: ArtifactKind = typer.Option(ArtifactKind.BUILT_VERSION, help="Artifact kind"),
    audit: bool = typer.Option(True, help="Record the action in action history"),
):
    """Apply a transition action to an artifact."""
    with session_scope() as db:
        action_logger = _start_audit(
            db, audit, f"{kind.value}.transition", f"{action} {artifact_id}", user
        )
        try:
            result = ArtifactStatusService(db, kind).transition(
                artifact_id, action, user, action_logger=action_logger
            )
        except LifecycleError as e:
            _finish_audit(db, action_logger, ActionStatus.FAILED, e.message)
            _fail(e)
        _finish_audit(db, action_logger, ActionStatus.SUCCESS)
        console.print(f"{result.artifact.name}: [bold]{result.status.value}[/bold]")
        if result.successor is not None:
            console.print(f"Created successor {result.successor.name} ({result.successor.id})")


@app.command()
def arrange(
    artifact_id: str = typer.Argument(..., help="Artifact id in deployment"),
    components: List[str] = typer.Option(..., "--component", "-c", help="Selected component id"),
    user: str = typer.Option(..., "--user", help="Acting user id"),
    kind: ArtifactKind = typer.Option(ArtifactKind.BUILT_VERSION, help="Artifact kind"),
    audit: bool = typer.Option(True, help="Record the action in action history"),
):
    """Rebalance component versions between an artifact and its successor."""
    with session_scope() as db:
        action_logger = _start_audit(
            db, audit, f"{kind.value}.arrange", f"Arrange successor of {artifact_id}", user
        )
        try:
            summary = SuccessorService(db, kind).create_successor(
                artifact_id, components, user, action_logger=action_logger
            )
        except LifecycleError as e:
            _finish_audit(db, action_logger, ActionStatus.FAILED, e.message)
            _fail(e)
        _finish_audit(db, action_logger, ActionStatus.SUCCESS)
        console.print(
            f"moved={summary.moved} created={summary.created} "
            f"updated={summary.updated} successor={summary.successor_artifact_id}"
        )


@app.command()
def status(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    kind: ArtifactKind = typer.Option(ArtifactKind.BUILT_VERSION, help="Artifact kind"),
):
    """Show the current status of an artifact."""
    with session_scope() as db:
        current = ArtifactStatusService(db, kind).get_current_status(artifact_id)
        console.print(current.value)


@app.command()
def history(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    kind: ArtifactKind = typer.Option(ArtifactKind.BUILT_VERSION, help="Artifact kind"),
):
    """Show the transition history of an artifact."""
    with session_scope() as db:
        records = ArtifactStatusService(db, kind).get_history(artifact_id)

    table = Table(title=f"Transitions for {artifact_id}")
    table.add_column("When", style="cyan")
    table.add_column("Action", style="magenta")
    table.add_column("From")
    table.add_column("To", style="green")
    table.add_column("By")
    for record in records:
        table.add_row(
            record.created_at.isoformat(),
            record.action.value,
            record.from_status.value,
            record.to_status.value,
            record.created_by_id,
        )
    console.print(table)


if __name__ == "__main__":
    app()
