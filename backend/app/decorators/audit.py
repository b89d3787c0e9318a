"""Audit decorator for write endpoints.

@audit_log('BRAND.CREATE', entity='Brand', entity_id_key='id', meta_keys=['name'])
def create_brand(): ... return {'id': 1, 'name': 'Fiat'}, 201

@audit_log('PERMISSIONS.SAVE', entity='Role', entity_id_key='role',
           meta_builder=lambda data, rv, args, kwargs: {'keys': len(data.get('permissions', {}))})

The JSON payload is the first element when the view returns a tuple. With
diff_keys + pre_fetch, values that changed are recorded under meta['changes'].
Auditing never alters or blocks the view's response.
"""
from __future__ import annotations
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import current_app

from app.services.audit import add_audit
from app import get_db


def _payload(rv: Any):
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before[k] != after[k]:
            changes[k] = {'before': before[k], 'after': after[k]}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = None
            if diff_keys and pre_fetch:
                try:
                    before = pre_fetch(args, kwargs)
                except Exception:
                    before = None
            rv = fn(*args, **kwargs)
            try:
                data = _payload(rv)
                if not isinstance(data, dict):
                    data = {}
                entity_id = data.get(entity_id_key) if entity_id_key else None
                if entity_id is None and entity_id_arg:
                    entity_id = kwargs.get(entity_id_arg)
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                else:
                    meta = {k: data[k] for k in (meta_keys or ()) if k in data}
                if diff_keys and isinstance(before, dict):
                    changes = _diff(before, data, diff_keys)
                    if changes:
                        meta['changes'] = changes
                log = add_audit(action, entity, entity_id, meta)
                get_db().commit()
                current_app.logger.debug('recorded %r', log)
            except Exception:
                # audit failures must not turn a successful write into an error
                get_db().rollback()
                current_app.logger.warning('audit write failed for %s', action, exc_info=True)
            return rv
        return wrapper
    return outer
