"""
Action History Service.

Provides the ``ActionLogger`` interface the lifecycle services write their
audit trail through, a database-backed implementation, and a no-op one used
when the caller does not want an audit trail.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import and_, desc, or_
from sqlalchemy.orm import Session

from ..config import get_settings
from ..primitives import strictly_after
from .action_log_models import ActionLogModel, ActionSubactionLogModel

logger = structlog.get_logger(__name__)


class ActionStatus(str, Enum):
    """Outcome recorded on action history entries."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SubactionInput(BaseModel):
    """One audit step emitted during a lifecycle operation."""

    model_config = ConfigDict(extra="forbid")

    subaction_type: str = Field(..., min_length=1)
    message: str
    status: ActionStatus = ActionStatus.SUCCESS
    metadata: Optional[Dict[str, Any]] = None


class ActionHistoryPage(BaseModel):
    """Keyset-paginated slice of the action history, newest first."""

    items: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class ActionLogger(Protocol):
    """Sink for the audit trail of one action."""

    @property
    def id(self) -> Optional[str]: ...

    def subaction(self, entry: SubactionInput) -> None: ...

    def complete(
        self,
        status: ActionStatus,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None: ...


class NoopActionLogger:
    """Logger that records nothing."""

    id: Optional[str] = None

    def subaction(self, entry: SubactionInput) -> None:
        return None

    def complete(
        self,
        status: ActionStatus,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        return None


class DbActionLogger:
    """Logger that appends subactions to an ``action_log`` row."""

    def __init__(self, db: Session, action_id: str):
        self.db = db
        self._action_id = action_id
        self._last_ts = None

    @property
    def id(self) -> str:
        return self._action_id

    def subaction(self, entry: SubactionInput) -> None:
        self._last_ts = strictly_after(self._last_ts)
        row = ActionSubactionLogModel(
            action_id=self._action_id,
            subaction_type=entry.subaction_type,
            message=entry.message.strip(),
            status=ActionStatus(entry.status).value,
            meta=entry.metadata,
            created_at=self._last_ts,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def complete(
        self,
        status: ActionStatus,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        action = self.db.get(ActionLogModel, self._action_id)
        if action is None:
            return
        action.status = ActionStatus(status).value
        if message:
            action.message = message.strip()
        if metadata is not None:
            action.meta = metadata
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def deliver_subactions(
    action_logger: Optional[ActionLogger], entries: Iterable[SubactionInput]
) -> None:
    """Hand buffered audit entries to ``action_logger``.

    Failures are logged and dropped: the operation being audited has already
    committed and must not be reported as failed because of its audit trail.
    """
    if action_logger is None:
        return
    for entry in entries:
        try:
            action_logger.subaction(entry)
        except Exception as e:
            logger.warning(
                "subaction_log_failed",
                subaction_type=entry.subaction_type,
                action_id=getattr(action_logger, "id", None),
                error=str(e),
            )


class ActionHistoryService:
    """Service for managing action history entries.

    Usage:
        history = ActionHistoryService(db_session)
        action_logger = history.start_action("patch.transition", "Start deployment", user_id)
        PatchStatusService(db_session).start_deployment(patch_id, user_id, action_logger=action_logger)
        action_logger.complete(ActionStatus.SUCCESS)
    """

    def __init__(self, db: Session):
        self.db = db

    def start_action(
        self,
        action_type: str,
        message: str,
        user_id: str,
        session_token: Optional[str] = None,
        workflow_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DbActionLogger:
        """Open an action and return a logger bound to it."""
        row = ActionLogModel(
            action_type=action_type,
            message=message.strip(),
            status=ActionStatus.SUCCESS.value,
            session_token=session_token,
            workflow_id=workflow_id,
            meta=metadata,
            created_by_id=user_id,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return DbActionLogger(self.db, row.id)

    def finalize_action(
        self,
        action_id: str,
        status: ActionStatus,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        DbActionLogger(self.db, action_id).complete(status, message, metadata)

    def record_subaction(self, action_id: str, entry: SubactionInput) -> None:
        DbActionLogger(self.db, action_id).subaction(entry)

    def get(self, action_id: str) -> Optional[ActionLogModel]:
        return self.db.get(ActionLogModel, action_id)

    def list_by_session(
        self,
        session_token: Optional[str],
        user_id: Optional[str],
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ActionHistoryPage:
        """Actions for a session (or, without one, a user), newest first.

        Args:
            session_token: Browser session to filter by; takes precedence
            user_id: Creator to filter by when no session token is given
            limit: Page size; defaults to ``action_history_page_size``
            cursor: Id of the last item of the previous page

        Returns:
            ActionHistoryPage with ``next_cursor`` set when more items exist
        """
        if not session_token and not user_id:
            return ActionHistoryPage()
        limit = limit or get_settings().action_history_page_size

        query = self.db.query(ActionLogModel)
        if session_token:
            query = query.filter(ActionLogModel.session_token == session_token)
        else:
            query = query.filter(ActionLogModel.created_by_id == user_id)

        if cursor:
            anchor = self.db.get(ActionLogModel, cursor)
            if anchor is not None:
                query = query.filter(
                    or_(
                        ActionLogModel.created_at < anchor.created_at,
                        and_(
                            ActionLogModel.created_at == anchor.created_at,
                            ActionLogModel.id < anchor.id,
                        ),
                    )
                )

        rows = (
            query.order_by(desc(ActionLogModel.created_at), desc(ActionLogModel.id))
            .limit(limit + 1)
            .all()
        )

        has_more = len(rows) > limit
        page = rows[:limit]
        return ActionHistoryPage(
            items=[row.to_dict() for row in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )
