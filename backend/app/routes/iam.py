from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token, get_jwt_identity
from sqlalchemy import select
from app.models.authz import User, Role, CustomPermission
from app import get_db
from app.constants.permissions import ROLE_ADMIN, ALL_PERMISSION_KEYS, ROOT_ACTION
from app.services.policy import (
    get_resolver, current_role, role_exists, save_custom_permissions, delete_custom_permissions,
)
from app.utils.listing import paginate, list_response
from app.utils.validation import require_str, coerce_bool
from app.decorators.audit import audit_log
from app.decorators.auth import require_action

iam_bp = Blueprint('iam', __name__)


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role_name,
        'is_active': bool(u.is_active),
    }


# --- Auth ---

@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if not user.is_active:
        abort(403, description='user inactive')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role_name})
    current_app.logger.info('User %s logged in as %s', user.id, user.role_name)
    return {'access_token': token, 'role': user.role_name}


@iam_bp.get('/auth/me')
@require_action(ROOT_ACTION)
def me():
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id==user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    resolver = get_resolver()
    resolver.load_overrides()
    payload = _user_json(user)
    payload['accessible_actions'] = resolver.list_accessible_actions(current_role())
    return payload


# --- Roles & users ---

@iam_bp.get('/roles')
@require_action('/admin/permissions')
def list_roles():
    session = get_db()
    rows = session.execute(select(Role).order_by(Role.id.asc())).scalars().all()
    return {'data': [{'id': r.id, 'name': r.name, 'description': r.description} for r in rows]}


@iam_bp.get('/users')
@require_action('/admin/users')
def list_users():
    session = get_db()
    q = session.query(User).order_by(User.id.asc())
    if role := request.args.get('role'):
        q = q.join(Role).filter(Role.name==role)
    rows, total, limit, offset = paginate(q, request.args)
    latest_ts = max((r.updated_at for r in rows if r.updated_at), default=None)
    return list_response([_user_json(u) for u in rows], total, limit, offset, latest_ts)


@iam_bp.put('/users/<int:user_id>/role')
@require_action('/admin/users')
@audit_log('USER.ROLE.SET', entity='User', entity_id_key='id', meta_keys=['role'])
def set_user_role(user_id: int):
    session = get_db()
    user = session.execute(select(User).where(User.id==user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    name = require_str(request.json or {}, 'role')
    role = session.execute(select(Role).where(Role.name==name)).scalar_one_or_none()
    if not role:
        abort(404, description='role not found')
    user.role = role
    session.commit()
    return _user_json(user)


# --- Permission overrides ---

@iam_bp.get('/permissions')
@require_action('/admin/permissions')
def list_custom_permissions():
    resolver = get_resolver()
    return {'data': resolver.load_overrides(), 'keys': list(ALL_PERMISSION_KEYS)}


@iam_bp.get('/permissions/<role_name>')
@require_action('/admin/permissions')
def get_custom_permissions(role_name: str):
    session = get_db()
    row = session.execute(select(CustomPermission).where(CustomPermission.role_name==role_name)).scalar_one_or_none()
    if not row:
        abort(404, description='no custom permissions for role')
    return {'role': row.role_name, 'permissions': dict(row.permissions or {})}


def _validated_permissions(raw) -> dict:
    if not isinstance(raw, dict):
        abort(400, description='permissions must be object')
    unknown = sorted(k for k in raw if k not in ALL_PERMISSION_KEYS)
    if unknown:
        abort(400, description=f'Unknown permission keys: {unknown}')
    return {k: coerce_bool(v, k) for k, v in raw.items()}


@iam_bp.post('/permissions')
@require_action('/admin/permission-settings')
@audit_log(
    'PERMISSIONS.SAVE',
    entity='Role',
    entity_id_key='role',
    meta_builder=lambda data, rv, a, kw: {'keys': sorted((data.get('permissions') or {}).keys())},
)
def save_permissions():
    data = request.json or {}
    role_name = data.get('role')
    if not isinstance(role_name, str) or not role_name:
        abort(400, description='role and permissions required')
    if 'permissions' not in data:
        abort(400, description='role and permissions required')
    perms = _validated_permissions(data.get('permissions'))
    if role_name == ROLE_ADMIN:
        abort(403, description='Administrator permissions cannot be changed')
    if not role_exists(role_name):
        abort(404, description='role not found')
    row = save_custom_permissions(role_name, perms)
    return {'role': row.role_name, 'permissions': dict(row.permissions)}


@iam_bp.delete('/permissions/<role_name>')
@require_action('/admin/permission-settings')
@audit_log('PERMISSIONS.RESET', entity='Role', entity_id_key='role', meta_keys=['reset'])
def reset_permissions(role_name: str):
    if role_name == ROLE_ADMIN:
        abort(403, description='Administrator permissions cannot be changed')
    if not role_exists(role_name):
        abort(404, description='role not found')
    removed = delete_custom_permissions(role_name)
    return {'role': role_name, 'reset': removed}


@iam_bp.get('/permissions/check')
@require_action(ROOT_ACTION)
def check_permission():
    path = request.args.get('path')
    if not path:
        abort(400, description='path required')
    role = current_role()
    resolver = get_resolver()
    resolver.load_overrides()
    return {'path': path, 'role': role, 'allowed': resolver.resolve(path, role)}


@iam_bp.get('/permissions/accessible')
@require_action(ROOT_ACTION)
def accessible_actions():
    role = current_role()
    resolver = get_resolver()
    resolver.load_overrides()
    return {'role': role, 'data': resolver.list_accessible_actions(role)}


@iam_bp.get('/permissions/matrix')
@require_action('/admin/permissions')
def permission_matrix():
    resolver = get_resolver()
    resolver.load_overrides()
    return {'roles': list(resolver.roles), 'data': resolver.permission_matrix()}
