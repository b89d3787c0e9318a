"""Catalog CRUD endpoints.

Every resource exposes the same five operations, registered from the
RESOURCES table below:

  GET    /catalog/<resource>            list (filters, ?sort=, ?limit/offset, ETag)
  GET    /catalog/<resource>/<id>       single row
  POST   /catalog/<resource>            create
  PUT    /catalog/<resource>/<id>       partial update
  DELETE /catalog/<resource>/<id>       delete

Payloads use camelCase keys; money values are serialized as 2-decimal strings.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError

from app import get_db
from app.decorators.auth import require_action
from app.decorators.audit import audit_log
from app.models.catalog import (
    Brand, VehicleModel, Version, PaintType, Color, VersionColor,
    OptionalItem, VersionOptional, Vehicle, DirectSale,
)
from app.utils.listing import QueryFilter, apply_filters, apply_sort, paginate, parse_bool, list_response
from app.utils.money import money_str, ZERO
from app.utils.validation import (
    validate_choice, require_str, optional_str, coerce_int, coerce_money, coerce_bool,
)

cat_bp = Blueprint('catalog', __name__)

HEX_RE = re.compile(r'^#[0-9A-Fa-f]{6}$')


# --- field coercers: (raw, key) -> value, aborting 400 on bad input ---

def _text(max_len: int):
    return lambda raw, key: require_str({key: raw}, key, max_len)


def _opt_text(raw, key):
    return optional_str({key: raw}, key)


def _blank(raw, key):
    return optional_str({key: raw}, key) or ''


def _int(raw, key):
    return coerce_int(raw, key)


def _bool(raw, key):
    return coerce_bool(raw, key)


def _money(raw, key):
    val = coerce_money(raw, key, required=False)
    return ZERO if val is None else val


def _percent(raw, key):
    val = coerce_money(raw, key)
    if val > 100:
        abort(400, description=f'{key} cannot exceed 100')
    return val


def _hex(raw, key):
    val = require_str({key: raw}, key, 16)
    if not HEX_RE.match(val):
        abort(400, description=f'{key} must look like #RRGGBB')
    return val.upper()


def _choice(options):
    return lambda raw, key: validate_choice(raw, options, key)


def _ref(model):
    def coerce(raw, key):
        ref_id = coerce_int(raw, key, required=False)
        if ref_id is not None and get_db().get(model, ref_id) is None:
            abort(400, description=f'{key} not found')
        return ref_id
    return coerce


@dataclass(frozen=True)
class Field:
    key: str
    attr: str
    coerce: Callable[[Any, str], Any]
    required: bool = False


@dataclass
class Resource:
    name: str
    model: Any
    entity: str
    fields: Tuple[Field, ...]
    read_key: str
    create_key: str
    edit_key: str
    filters: Callable[[], List[QueryFilter]] = list
    sort_keys: Tuple[str, ...] = ('id',)
    extra_json: Optional[Callable[[Any], Dict[str, Any]]] = None
    meta_keys: Tuple[str, ...] = ('name',)
    endpoint: str = field(init=False)

    def __post_init__(self):
        self.endpoint = self.name.replace('-', '_')

    @property
    def audit_prefix(self) -> str:
        return self.endpoint.upper()

    def sort_columns(self) -> Dict[str, Any]:
        cols = {'id': self.model.id, 'updatedAt': self.model.updated_at}
        for f in self.fields:
            if f.key in self.sort_keys:
                cols[f.key] = getattr(self.model, f.attr)
        return cols


def _dump(value):
    if isinstance(value, Decimal):
        return money_str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def to_json(res: Resource, row) -> Dict[str, Any]:
    out = {'id': row.id}
    for f in res.fields:
        out[f.key] = _dump(getattr(row, f.attr))
    if res.extra_json:
        out.update(res.extra_json(row))
    out['updatedAt'] = _dump(row.updated_at)
    return out


def parse_payload(res: Resource, data: dict, partial: bool) -> Dict[str, Any]:
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    values = {}
    for f in res.fields:
        if f.key not in data:
            if f.required and not partial:
                abort(400, description=f'{f.key} required')
            continue
        if f.required and data[f.key] in (None, ''):
            abort(400, description=f'{f.key} required')
        values[f.attr] = f.coerce(data[f.key], f.key)
    return values


def _name_filter(model):
    return [QueryFilter('name', lambda qu, v: qu.filter(model.name.ilike(f'%{v}%')))]


def _id_filter(param, column):
    return QueryFilter(param, lambda qu, v: qu.filter(column==v), parse=int)


def _brand_filters():
    return _name_filter(Brand)


def _model_filters():
    return _name_filter(VehicleModel) + [_id_filter('brandId', VehicleModel.brand_id)]


def _version_filters():
    return _name_filter(Version) + [
        _id_filter('modelId', Version.model_id),
        QueryFilter(
            'brandId',
            lambda qu, v: qu.join(VehicleModel, Version.model_id==VehicleModel.id).filter(VehicleModel.brand_id==v),
            parse=int,
        ),
    ]


def _color_filters():
    return _name_filter(Color) + [_id_filter('paintTypeId', Color.paint_type_id)]


def _vehicle_filters():
    return [
        _id_filter('versionId', Vehicle.version_id),
        _id_filter('year', Vehicle.year),
        QueryFilter('situation', lambda qu, v: qu.filter(Vehicle.situation==v), allowed=Vehicle.ALL_SITUATIONS),
        QueryFilter('isActive', lambda qu, v: qu.filter(Vehicle.is_active==v), parse=parse_bool),
    ]


def _version_color_filters():
    return [_id_filter('versionId', VersionColor.version_id)]


def _version_optional_filters():
    return [_id_filter('versionId', VersionOptional.version_id)]


def _direct_sale_filters():
    # a brand's view includes the global (brandless) direct sales
    return [QueryFilter(
        'brandId',
        lambda qu, v: qu.filter(or_(DirectSale.brand_id==v, DirectSale.brand_id.is_(None))),
        parse=int,
    )]


RESOURCES: List[Resource] = [
    Resource(
        'brands', Brand, 'Brand',
        (Field('name', 'name', _text(120), True),),
        '/brands', '/brands/new', '/brands/{item_id}/edit',
        filters=_brand_filters, sort_keys=('name',),
    ),
    Resource(
        'models', VehicleModel, 'VehicleModel',
        (Field('name', 'name', _text(120), True), Field('brandId', 'brand_id', _ref(Brand), True)),
        '/models', '/models/new', '/models/{item_id}/edit',
        filters=_model_filters, sort_keys=('name', 'brandId'),
        extra_json=lambda r: {'brandName': r.brand.name if r.brand else None},
    ),
    Resource(
        'versions', Version, 'Version',
        (Field('name', 'name', _text(120), True), Field('modelId', 'model_id', _ref(VehicleModel), True)),
        '/versions', '/versions/new', '/versions/{item_id}/edit',
        filters=_version_filters, sort_keys=('name', 'modelId'),
        extra_json=lambda r: {
            'modelName': r.model.name if r.model else None,
            'brandId': r.model.brand_id if r.model else None,
        },
    ),
    Resource(
        'paint-types', PaintType, 'PaintType',
        (Field('name', 'name', _text(80), True),),
        '/paint-types', '/paint-types/new', '/paint-types/{item_id}/edit',
        filters=lambda: _name_filter(PaintType), sort_keys=('name',),
    ),
    Resource(
        'colors', Color, 'Color',
        (
            Field('name', 'name', _text(80), True),
            Field('hexCode', 'hex_code', _hex, True),
            Field('paintTypeId', 'paint_type_id', _ref(PaintType)),
            Field('additionalPrice', 'additional_price', _money),
            Field('imageUrl', 'image_url', _opt_text),
        ),
        '/colors', '/colors/new', '/colors/{item_id}/edit',
        filters=_color_filters, sort_keys=('name', 'additionalPrice'),
    ),
    Resource(
        'optionals', OptionalItem, 'Optional',
        (
            Field('name', 'name', _text(120), True),
            Field('description', 'description', _opt_text),
            Field('price', 'price', _money),
        ),
        '/optionals', '/optionals/new', '/optionals/{item_id}/edit',
        filters=lambda: _name_filter(OptionalItem), sort_keys=('name', 'price'),
    ),
    Resource(
        'vehicles', Vehicle, 'Vehicle',
        (
            Field('versionId', 'version_id', _ref(Version), True),
            Field('colorId', 'color_id', _ref(Color)),
            Field('year', 'year', _int, True),
            Field('publicPrice', 'public_price', _money, True),
            Field('pcdIpi', 'pcd_ipi', _money),
            Field('pcdIpiIcms', 'pcd_ipi_icms', _money),
            Field('taxiIpi', 'taxi_ipi', _money),
            Field('taxiIpiIcms', 'taxi_ipi_icms', _money),
            Field('situation', 'situation', _choice(Vehicle.ALL_SITUATIONS)),
            Field('description', 'description', _blank),
            Field('engine', 'engine', _blank),
            Field('fuelType', 'fuel_type', _choice(Vehicle.FUEL_TYPES)),
            Field('transmission', 'transmission', _choice(Vehicle.TRANSMISSIONS)),
            Field('isActive', 'is_active', _bool),
        ),
        '/vehicles', '/vehicles/new', '/vehicles/{item_id}/edit',
        filters=_vehicle_filters, sort_keys=('year', 'publicPrice', 'versionId'),
        meta_keys=('versionId', 'year', 'publicPrice'),
    ),
    Resource(
        'version-colors', VersionColor, 'VersionColor',
        (
            Field('versionId', 'version_id', _ref(Version), True),
            Field('colorId', 'color_id', _ref(Color), True),
            Field('price', 'price', _money),
            Field('imageUrl', 'image_url', _opt_text),
        ),
        '/api/version-colors', '/colors/new', '/colors/{item_id}/edit',
        filters=_version_color_filters, sort_keys=('price',),
        meta_keys=('versionId', 'colorId', 'price'),
    ),
    Resource(
        'version-optionals', VersionOptional, 'VersionOptional',
        (
            Field('versionId', 'version_id', _ref(Version), True),
            Field('optionalId', 'optional_id', _ref(OptionalItem), True),
            Field('price', 'price', _money),
        ),
        '/api/version-optionals', '/optionals/new', '/optionals/{item_id}/edit',
        filters=_version_optional_filters, sort_keys=('price',),
        extra_json=lambda r: {'optionalName': r.optional.name if r.optional else None},
        meta_keys=('versionId', 'optionalId', 'price'),
    ),
    Resource(
        'direct-sales', DirectSale, 'DirectSale',
        (
            Field('name', 'name', _text(120), True),
            Field('discountPercentage', 'discount_percentage', _percent, True),
            Field('brandId', 'brand_id', _ref(Brand)),
            Field('modelId', 'model_id', _ref(VehicleModel)),
            Field('versionId', 'version_id', _ref(Version)),
        ),
        '/direct-sales', '/direct-sales/new', '/direct-sales/edit/{item_id}',
        filters=_direct_sale_filters, sort_keys=('name', 'discountPercentage'),
        meta_keys=('name', 'discountPercentage', 'brandId'),
    ),
]

RESOURCE_BY_NAME = {r.name: r for r in RESOURCES}


def _get_or_404(res: Resource, item_id: int):
    row = get_db().execute(select(res.model).where(res.model.id==item_id)).scalar_one_or_none()
    if not row:
        abort(404)
    return row


def _commit_or_conflict(res: Resource):
    session = get_db()
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        current_app.logger.info('Integrity conflict writing %s', res.entity)
        abort(409, description=f'{res.entity} conflicts with an existing record')


def _make_views(res: Resource):
    def list_view():
        session = get_db()
        q = session.query(res.model)
        q = apply_filters(q, res.filters(), request.args)
        q = apply_sort(q, request.args.get('sort'), res.sort_columns(), res.model.id)
        rows, total, limit, offset = paginate(q, request.args)
        latest_ts = max((r.updated_at for r in rows if r.updated_at), default=None)
        return list_response([to_json(res, r) for r in rows], total, limit, offset, latest_ts)

    def get_view(item_id: int):
        return to_json(res, _get_or_404(res, item_id))

    def create_view():
        values = parse_payload(res, request.json or {}, partial=False)
        row = res.model(**values)
        get_db().add(row)
        _commit_or_conflict(res)
        return to_json(res, row), 201

    def update_view(item_id: int):
        row = _get_or_404(res, item_id)
        values = parse_payload(res, request.json or {}, partial=True)
        for attr, val in values.items():
            setattr(row, attr, val)
        _commit_or_conflict(res)
        return to_json(res, row)

    def delete_view(item_id: int):
        session = get_db()
        row = _get_or_404(res, item_id)
        session.delete(row)
        _commit_or_conflict(res)
        return {'status': 'deleted', 'id': item_id}

    def prefetch(a, kw):
        row = get_db().get(res.model, kw.get('item_id'))
        return to_json(res, row) if row else {}

    field_keys = [f.key for f in res.fields]
    prefix = res.audit_prefix
    return {
        'list': require_action(res.read_key)(list_view),
        'get': require_action(res.read_key)(get_view),
        'create': require_action(res.create_key)(
            audit_log(f'{prefix}.CREATE', entity=res.entity, entity_id_key='id', meta_keys=res.meta_keys)(create_view)
        ),
        'update': require_action(res.edit_key)(
            audit_log(
                f'{prefix}.UPDATE', entity=res.entity, entity_id_key='id', meta_keys=res.meta_keys,
                diff_keys=field_keys, pre_fetch=prefetch,
            )(update_view)
        ),
        'delete': require_action(res.edit_key)(
            audit_log(f'{prefix}.DELETE', entity=res.entity, entity_id_arg='item_id')(delete_view)
        ),
    }


def _register(res: Resource):
    views = _make_views(res)
    base = f'/{res.name}'
    cat_bp.add_url_rule(base, f'{res.endpoint}_list', views['list'], methods=['GET'])
    cat_bp.add_url_rule(base, f'{res.endpoint}_create', views['create'], methods=['POST'])
    cat_bp.add_url_rule(f'{base}/<int:item_id>', f'{res.endpoint}_get', views['get'], methods=['GET'])
    cat_bp.add_url_rule(f'{base}/<int:item_id>', f'{res.endpoint}_update', views['update'], methods=['PUT'])
    cat_bp.add_url_rule(f'{base}/<int:item_id>', f'{res.endpoint}_delete', views['delete'], methods=['DELETE'])


for _res in RESOURCES:
    _register(_res)
