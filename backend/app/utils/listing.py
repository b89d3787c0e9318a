"""List endpoint helpers: query-string filters, multi-field sort, pagination
and conditional (ETag / Last-Modified) responses.

A list view runs filter -> sort -> paginate and hands the page to
``list_response``, which answers revalidation requests with 304.
"""
from __future__ import annotations
import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Collection, Iterable, List, Mapping, Optional, Tuple

from flask import request, abort, make_response

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_BOOLS = {'true': True, '1': True, 'false': False, '0': False}


def parse_bool(raw: str) -> bool:
    return _BOOLS[raw.strip().lower()]


@dataclass(frozen=True)
class QueryFilter:
    """One ``?param=value`` filter. ``parse`` may raise ValueError/KeyError for bad input."""
    param: str
    apply: Callable[[Any, Any], Any]
    parse: Callable[[str], Any] = str
    allowed: Optional[Collection[str]] = None


def apply_filters(query, filters: Iterable[QueryFilter], args: Mapping[str, str]):
    for f in filters:
        raw = args.get(f.param)
        if raw is None or raw == '':
            continue
        try:
            value = f.parse(raw)
        except (ValueError, KeyError):
            abort(400, description=f'{f.param} invalid')
        if f.allowed is not None and value not in f.allowed:
            abort(400, description=f"{f.param} must be one of: {', '.join(sorted(f.allowed))}")
        query = f.apply(query, value)
    return query


def parse_sort(expr: Optional[str], allowed: Collection[str]) -> List[Tuple[str, bool]]:
    """``'-price,name'`` -> ``[('price', True), ('name', False)]``; unknown keys abort 400."""
    keys = []
    for token in (expr or '').split(','):
        token = token.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token.lstrip('-')
        if key not in allowed:
            abort(400, description=f"Invalid sort field {key} (allowed: {', '.join(sorted(allowed))})")
        keys.append((key, desc))
    return keys


def apply_sort(query, expr: Optional[str], columns: Mapping[str, Any], tie_breaker):
    clauses = [columns[k].desc() if desc else columns[k].asc() for k, desc in parse_sort(expr, columns)]
    return query.order_by(*clauses, tie_breaker.asc())


def page_bounds(args: Mapping[str, str]) -> Tuple[int, int]:
    try:
        limit = int(args.get('limit', DEFAULT_LIMIT))
        offset = int(args.get('offset', 0))
    except ValueError:
        abort(400, description='limit/offset must be int')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)


def paginate(query, args: Mapping[str, str]):
    """Return ``(rows, total, limit, offset)`` for the requested page."""
    limit, offset = page_bounds(args)
    total = query.count()
    return query.offset(offset).limit(limit).all(), total, limit, offset


def _whole_seconds(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.replace(microsecond=0)


def list_etag(ids: Iterable[Any], total: int, limit: int, offset: int, stamp: str = '') -> str:
    seed = f'{list(ids)}|{total}|{limit}|{offset}|{stamp}'
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def _not_modified(etag: str, last_modified: Optional[datetime]) -> bool:
    # If-None-Match wins over If-Modified-Since when both are sent
    if request.if_none_match:
        return request.if_none_match.contains(etag)
    since = request.if_modified_since
    return bool(last_modified and since and last_modified <= since)


def list_response(rows: List[dict], total: int, limit: int, offset: int, last_modified: Optional[datetime] = None):
    """Paginated ``{'data', 'pagination'}`` body with validators, or an empty 304."""
    stamp = ''
    if last_modified is not None:
        last_modified = _whole_seconds(last_modified)
        stamp = last_modified.isoformat().replace('+00:00', 'Z')
    etag = list_etag((r.get('id') for r in rows), total, limit, offset, stamp)
    if _not_modified(etag, last_modified):
        resp = make_response('', 304)
    else:
        resp = make_response({
            'data': rows,
            'pagination': {'total': total, 'limit': limit, 'offset': offset, 'returned': len(rows)},
        })
    resp.set_etag(etag)
    if last_modified is not None:
        resp.last_modified = last_modified
        resp.headers['X-Last-Modified-ISO'] = stamp
    return resp


__all__ = [
    'DEFAULT_LIMIT', 'MAX_LIMIT', 'QueryFilter', 'parse_bool', 'apply_filters',
    'parse_sort', 'apply_sort', 'page_bounds', 'paginate', 'list_etag', 'list_response',
]
