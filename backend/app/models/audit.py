from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Index, Integer, String, JSON, DateTime, func, select

from .authz import Base


class AuditLog(Base):
    """Who changed which catalog row or permission set, and how."""
    __tablename__ = 'audit_logs'
    __table_args__ = (Index('ix_audit_logs_entity_ref', 'entity', 'entity_id'),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @classmethod
    def history(cls, session, entity: str, entity_id: Any, action: Optional[str] = None) -> List['AuditLog']:
        """Entries for one record, newest first."""
        stmt = select(cls).where(cls.entity==entity, cls.entity_id==str(entity_id))
        if action:
            stmt = stmt.where(cls.action==action)
        return list(session.execute(stmt.order_by(cls.id.desc())).scalars())

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity}#{self.entity_id} by {self.actor_user_id}>'
