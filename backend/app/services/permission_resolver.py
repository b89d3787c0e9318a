"""Route/action permission resolution.

A PermissionResolver merges the static default table (app.constants.permissions)
with per-role overrides loaded once from configuration. One instance lives on the
Flask app (``app.extensions['permission_resolver']``) and is handed to whatever
needs a decision; nothing here touches Flask so it can be exercised directly.

Usage:
    resolver = PermissionResolver(fetch_overrides=load_custom_permissions)
    resolver.load_overrides()
    resolver.resolve('/brands/3/edit', 'Registrar')
"""
from __future__ import annotations
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from app.constants.permissions import (
    ALL_ROLES,
    CONFIGURATOR_ACTIONS,
    CONFIGURATOR_DATA_PREFIXES,
    CONFIGURE_PERMISSIONS_ACTION,
    CONFIGURE_PERMISSIONS_KEY,
    PARAM_MARKER,
    ROLE_ADMIN,
    ROOT_ACTION,
    ROUTE_PERMISSIONS,
    RoutePermission,
)

log = logging.getLogger(__name__)

Overrides = Dict[str, Dict[str, bool]]


def _segments(path: str) -> List[str]:
    return path.strip('/').split('/') if path.strip('/') else []


def _template_matches(template: str, path: str) -> bool:
    tpl, actual = _segments(template), _segments(path)
    if len(tpl) != len(actual):
        return False
    for t, a in zip(tpl, actual):
        if t.startswith(PARAM_MARKER):
            if not a:
                return False
        elif t != a:
            return False
    return True


def _prefix_matches(prefix: str, path: str) -> bool:
    if prefix == ROOT_ACTION:
        return False  # root only ever matches exactly
    return path.startswith(prefix.rstrip('/') + '/')


def match_rule(path: str, rules: Sequence[RoutePermission] = ROUTE_PERMISSIONS) -> Optional[RoutePermission]:
    """Return the rule governing ``path`` or None.

    Priority: exact literal match, then the first parameterized template whose
    ``:param`` segments line up, then the longest non-parameterized prefix
    (segment-aligned, so ``/brands`` covers ``/brands/new-stuff`` but not
    ``/brandsX``).
    """
    for rule in rules:
        if rule.path == path:
            return rule
    for rule in rules:
        if rule.parameterized and _template_matches(rule.path, path):
            return rule
    best = None
    for rule in rules:
        if rule.parameterized or not _prefix_matches(rule.path, path):
            continue
        if best is None or len(rule.path) > len(best.path):
            best = rule
    return best


def is_configurator_action(path: str) -> bool:
    return path in CONFIGURATOR_ACTIONS or any(path.startswith(p) for p in CONFIGURATOR_DATA_PREFIXES)


class PermissionResolver:
    """Decide access for (action key, role) against defaults plus overrides."""

    def __init__(
        self,
        rules: Iterable[RoutePermission] = ROUTE_PERMISSIONS,
        fetch_overrides: Optional[Callable[[], Overrides]] = None,
        roles: Iterable[str] = ALL_ROLES,
    ):
        self.rules = tuple(rules)
        self.roles = tuple(roles)
        self._fetch = fetch_overrides
        self._overrides: Overrides = {}
        self._loaded = False
        self._lock = threading.Lock()

    # --- override cache ---

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def overrides(self) -> Overrides:
        return self._overrides

    def load_overrides(self) -> Overrides:
        """Fetch overrides once; later calls return the cached map.

        A failed fetch caches an empty map and still counts as loaded, so the
        resolver falls back to the default table instead of retrying forever.
        """
        if self._loaded:
            return self._overrides
        with self._lock:
            if self._loaded:
                return self._overrides
            fetched: Overrides = {}
            if self._fetch is not None:
                try:
                    fetched = _normalize_overrides(self._fetch())
                except Exception:
                    log.warning('Could not load custom permissions; using defaults', exc_info=True)
                    fetched = {}
            self._overrides = fetched
            self._loaded = True
        return self._overrides

    def set_overrides(self, overrides: Overrides) -> None:
        """Replace the cache with an already-known map (e.g. right after saving it)."""
        with self._lock:
            self._overrides = _normalize_overrides(overrides)
            self._loaded = True

    # --- decisions ---

    def resolve(self, action_key: str, role_name: Optional[str]) -> bool:
        if not role_name:
            return False
        if action_key == ROOT_ACTION:
            return True
        if role_name == ROLE_ADMIN:
            return True
        if is_configurator_action(action_key):
            return True
        if role_name not in self.roles:
            return False
        role_overrides = self._overrides.get(role_name, {})
        if action_key == CONFIGURE_PERMISSIONS_ACTION:
            return role_overrides.get(CONFIGURE_PERMISSIONS_KEY) is True
        rule = match_rule(action_key, self.rules)
        if rule is None:
            return False
        return self._rule_allows(rule, role_name, role_overrides)

    def _rule_allows(self, rule: RoutePermission, role_name: str, role_overrides: Dict[str, bool]) -> bool:
        if rule.description in role_overrides:
            return bool(role_overrides[rule.description])
        return role_name in rule.allowed_roles

    def list_accessible_actions(self, role_name: Optional[str]) -> List[Dict[str, str]]:
        if not role_name:
            return []
        if role_name == ROLE_ADMIN:
            return [{'path': r.path, 'description': r.description} for r in self.rules]
        if role_name not in self.roles:
            return [{'path': r.path, 'description': r.description} for r in self.rules if r.path == ROOT_ACTION or r.path in CONFIGURATOR_ACTIONS]
        role_overrides = self._overrides.get(role_name, {})
        out = []
        for rule in self.rules:
            if rule.path in CONFIGURATOR_ACTIONS:
                allowed = True
            elif rule.path == CONFIGURE_PERMISSIONS_ACTION:
                allowed = role_overrides.get(CONFIGURE_PERMISSIONS_KEY) is True
            else:
                allowed = self._rule_allows(rule, role_name, role_overrides)
            if allowed:
                out.append({'path': rule.path, 'description': rule.description})
        return out

    def permission_matrix(self) -> List[Dict[str, object]]:
        """Effective decision of every rule for every role, in table order."""
        accessible = {role: {a['path'] for a in self.list_accessible_actions(role)} for role in self.roles}
        return [
            {
                'path': rule.path,
                'description': rule.description,
                'roles': {role: rule.path in accessible[role] for role in self.roles},
            }
            for rule in self.rules
        ]


def _normalize_overrides(raw) -> Overrides:
    """Keep only {role: {key: bool}} entries; anything else is dropped."""
    out: Overrides = {}
    if not isinstance(raw, dict):
        return out
    for role, perms in raw.items():
        if not isinstance(role, str) or not isinstance(perms, dict):
            continue
        out[role] = {k: v for k, v in perms.items() if isinstance(k, str) and isinstance(v, bool)}
    return out


__all__ = ['PermissionResolver', 'match_rule', 'is_configurator_action', 'Overrides']
