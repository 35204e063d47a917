"""
Action History Database Models.

An action is one user-initiated operation (e.g. "start deployment of 177.0").
Each action records the ordered subactions performed while serving it, so the
audit trail shows exactly which rows a lifecycle operation touched.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..primitives import generate_id, utc_now
from .base import Base


action_status_enum = Enum(
    "success",
    "failed",
    "cancelled",
    name="action_status",
)


class ActionLogModel(Base):
    """Top-level action history entry."""

    __tablename__ = "action_log"

    id = Column(String(36), primary_key=True, default=generate_id)
    action_type = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=False)
    status = Column(action_status_enum, nullable=False, default="success")

    # Correlation: browser session and optional workflow run
    session_token = Column(String(128), nullable=True, index=True)
    workflow_id = Column(String(128), nullable=True)

    # ``metadata`` is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )
    created_by_id = Column(String(128), nullable=False, index=True)

    subactions = relationship(
        "ActionSubactionLogModel",
        back_populates="action",
        order_by="ActionSubactionLogModel.created_at",
    )

    __table_args__ = (
        Index("ix_action_log_created_id", "created_at", "id"),
    )

    def to_dict(self, include_subactions: bool = True) -> Dict[str, Any]:
        """Convert model to dictionary."""
        data = {
            "id": self.id,
            "action_type": self.action_type,
            "message": self.message,
            "status": self.status,
            "session_token": self.session_token,
            "workflow_id": self.workflow_id,
            "metadata": self.meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "created_by_id": self.created_by_id,
        }
        if include_subactions:
            data["subactions"] = [s.to_dict() for s in self.subactions]
        return data


class ActionSubactionLogModel(Base):
    """One step recorded under an action."""

    __tablename__ = "action_subaction_log"

    id = Column(String(36), primary_key=True, default=generate_id)
    action_id = Column(
        String(36), ForeignKey("action_log.id"), nullable=False, index=True
    )
    subaction_type = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(action_status_enum, nullable=False, default="success")
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    action = relationship("ActionLogModel", back_populates="subactions")

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "action_id": self.action_id,
            "subaction_type": self.subaction_type,
            "message": self.message,
            "status": self.status,
            "metadata": self.meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
