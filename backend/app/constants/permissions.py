"""Central definitions for roles and the default route permission table.
Extend cautiously: the rule description doubles as the override key stored in
custom_permissions, so renaming a description silently orphans saved overrides.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

ROLE_ADMIN = 'Administrator'
ROLE_REGISTRAR = 'Registrar'
ROLE_USER = 'User'
ALL_ROLES = (ROLE_ADMIN, ROLE_REGISTRAR, ROLE_USER)

ROLE_DESCRIPTIONS = {
    ROLE_ADMIN: 'Full access to every screen and setting',
    ROLE_REGISTRAR: 'Maintains the vehicle catalog',
    ROLE_USER: 'Prices vehicles in the configurator',
}

ROOT_ACTION = '/'
CONFIGURATOR_ACTIONS = ('/configurator', '/configurator2')
# Configurator data feeds, matched by prefix
CONFIGURATOR_DATA_PREFIXES = ('/api/version-colors', '/api/version-optionals')
CONFIGURE_PERMISSIONS_ACTION = '/admin/permission-settings'
CONFIGURE_PERMISSIONS_KEY = 'Configure system permissions'

PARAM_MARKER = ':'


@dataclass(frozen=True)
class RoutePermission:
    path: str
    allowed_roles: Tuple[str, ...]
    description: str

    @property
    def parameterized(self) -> bool:
        return PARAM_MARKER in self.path


_EVERYONE = (ROLE_ADMIN, ROLE_REGISTRAR, ROLE_USER)
_STAFF = (ROLE_ADMIN, ROLE_REGISTRAR)
_ADMIN_ONLY = (ROLE_ADMIN,)

ROUTE_PERMISSIONS: Tuple[RoutePermission, ...] = (
    # Every authenticated user
    RoutePermission('/', _EVERYONE, 'Dashboard'),
    RoutePermission('/configurator', _EVERYONE, 'Vehicle configurator'),
    RoutePermission('/configurator2', _EVERYONE, 'New configurator'),
    RoutePermission('/user/profile', _EVERYONE, 'User profile'),
    # Read-only catalog screens
    RoutePermission('/brands', _EVERYONE, 'View brands'),
    RoutePermission('/models', _EVERYONE, 'View models'),
    RoutePermission('/versions', _EVERYONE, 'View versions'),
    RoutePermission('/colors', _EVERYONE, 'View colors/paints'),
    RoutePermission('/paint-types', _EVERYONE, 'View paint types'),
    RoutePermission('/optionals', _EVERYONE, 'View optionals'),
    RoutePermission('/vehicles', _EVERYONE, 'View vehicles'),
    RoutePermission('/direct-sales', _EVERYONE, 'View direct sales'),
    # Catalog maintenance
    RoutePermission('/brands/new', _STAFF, 'Register new brands'),
    RoutePermission('/brands/:id/edit', _STAFF, 'Edit existing brands'),
    RoutePermission('/models/new', _STAFF, 'Register new models'),
    RoutePermission('/models/:id/edit', _STAFF, 'Edit existing models'),
    RoutePermission('/versions/new', _STAFF, 'Register new versions'),
    RoutePermission('/versions/:id/edit', _STAFF, 'Edit existing versions'),
    RoutePermission('/colors/new', _STAFF, 'Register new colors'),
    RoutePermission('/colors/:id/edit', _STAFF, 'Edit existing colors'),
    RoutePermission('/paint-types/new', _STAFF, 'Register new paint types'),
    RoutePermission('/paint-types/:id/edit', _STAFF, 'Edit existing paint types'),
    RoutePermission('/optionals/new', _STAFF, 'Register new optionals'),
    RoutePermission('/optionals/:id/edit', _STAFF, 'Edit existing optionals'),
    RoutePermission('/vehicles/new', _STAFF, 'Register new vehicles'),
    RoutePermission('/vehicles/:id/edit', _STAFF, 'Edit existing vehicles'),
    RoutePermission('/direct-sales/new', _STAFF, 'Register new direct sales'),
    RoutePermission('/direct-sales/edit/:id', _STAFF, 'Edit existing direct sales'),
    # Administration
    RoutePermission('/settings', _ADMIN_ONLY, 'System settings'),
    RoutePermission('/admin/users', _ADMIN_ONLY, 'User management'),
    RoutePermission('/admin/permissions', _EVERYONE, 'View system permissions'),
    RoutePermission(CONFIGURE_PERMISSIONS_ACTION, _ADMIN_ONLY, CONFIGURE_PERMISSIONS_KEY),
)

ALL_PERMISSION_KEYS = tuple(r.description for r in ROUTE_PERMISSIONS)
