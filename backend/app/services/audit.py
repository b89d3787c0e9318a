from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from app import get_db
from app.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit entry on the current DB session.

    action: short code such as BRAND.CREATE or PERMISSIONS.SAVE
    entity / entity_id: what was touched (entity_id stored as string)
    meta: JSON-safe detail dict (shallow copied)
    The caller's commit decides durability.
    """
    session = get_db()
    try:
        ident = get_jwt_identity()
        actor = int(ident) if ident is not None else 0
        role = (get_jwt() or {}).get('role')
    except Exception:
        actor, role = 0, None  # outside a verified request (scripts, tests)
    log = AuditLog(
        actor_user_id=actor,
        actor_role=role,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    return log
