from __future__ import annotations
from typing import Dict, Optional
from flask import current_app
from flask_jwt_extended import get_jwt
from sqlalchemy import select
from app.models.authz import CustomPermission, Role
from app.services.permission_resolver import PermissionResolver
from app import get_db

RESOLVER_EXTENSION = 'permission_resolver'


def load_custom_permissions() -> Dict[str, Dict[str, bool]]:
    """Read every saved override row into {role_name: {description: bool}}."""
    session = get_db()
    rows = session.execute(select(CustomPermission)).scalars().all()
    return {row.role_name: dict(row.permissions or {}) for row in rows}


def get_resolver() -> PermissionResolver:
    return current_app.extensions[RESOLVER_EXTENSION]


def current_role() -> Optional[str]:
    claims = get_jwt()
    return claims.get('role')


def can(action_key: str, role_name: Optional[str] = None) -> bool:
    resolver = get_resolver()
    resolver.load_overrides()
    return resolver.resolve(action_key, role_name if role_name is not None else current_role())


def role_exists(role_name: str) -> bool:
    session = get_db()
    return session.execute(select(Role).where(Role.name==role_name)).scalar_one_or_none() is not None


def save_custom_permissions(role_name: str, permissions: Dict[str, bool]) -> CustomPermission:
    """Create or replace the override row for role_name and refresh the resolver cache."""
    session = get_db()
    row = session.execute(select(CustomPermission).where(CustomPermission.role_name==role_name)).scalar_one_or_none()
    if row is None:
        row = CustomPermission(role_name=role_name, permissions=dict(permissions))
        session.add(row)
    else:
        row.permissions = dict(permissions)
    session.commit()
    get_resolver().set_overrides(load_custom_permissions())
    current_app.logger.info('Custom permissions saved for role %s (%d keys)', role_name, len(permissions))
    return row


def delete_custom_permissions(role_name: str) -> bool:
    session = get_db()
    row = session.execute(select(CustomPermission).where(CustomPermission.role_name==role_name)).scalar_one_or_none()
    if row is None:
        return False
    session.delete(row)
    session.commit()
    get_resolver().set_overrides(load_custom_permissions())
    current_app.logger.info('Custom permissions reset to defaults for role %s', role_name)
    return True
