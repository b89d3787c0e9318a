from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select

from app import get_db
from app.decorators.auth import require_action
from app.models.catalog import Brand, VehicleModel, Version, Color, VersionColor, VersionOptional
from app.services.catalog_source import DatabaseCatalog
from app.services.pricing import PricingEngine
from app.utils.money import money_str
from app.utils.validation import coerce_int

cfg_bp = Blueprint('configurator', __name__)


def _id_arg(name: str):
    return coerce_int(request.args.get(name), name, required=False)


@cfg_bp.get('/options')
@require_action('/configurator')
def options():
    """Choices for the next configurator step given ?brandId=&modelId=&versionId=."""
    session = get_db()
    brand_id = _id_arg('brandId'); model_id = _id_arg('modelId'); version_id = _id_arg('versionId')
    payload = {
        'brands': [{'id': b.id, 'name': b.name} for b in session.execute(select(Brand).order_by(Brand.name)).scalars()],
        'models': [],
        'versions': [],
        'colors': [],
        'optionals': [],
    }
    if brand_id is not None:
        rows = session.execute(
            select(VehicleModel).where(VehicleModel.brand_id==brand_id).order_by(VehicleModel.name)
        ).scalars()
        payload['models'] = [{'id': m.id, 'name': m.name} for m in rows]
    if model_id is not None:
        rows = session.execute(select(Version).where(Version.model_id==model_id).order_by(Version.name)).scalars()
        payload['versions'] = [{'id': v.id, 'name': v.name} for v in rows]
    if version_id is not None:
        colors = session.execute(
            select(VersionColor, Color).join(Color, VersionColor.color_id==Color.id)
            .where(VersionColor.version_id==version_id).order_by(Color.name)
        ).all()
        payload['colors'] = [
            {'id': c.id, 'name': c.name, 'hexCode': c.hex_code, 'price': money_str(vc.price), 'imageUrl': vc.image_url or c.image_url}
            for vc, c in colors
        ]
        opts = session.execute(
            select(VersionOptional).where(VersionOptional.version_id==version_id).order_by(VersionOptional.id)
        ).scalars()
        payload['optionals'] = [
            {'id': o.optional_id, 'name': o.optional.name if o.optional else None, 'price': money_str(o.price)}
            for o in opts
        ]
    engine = PricingEngine(DatabaseCatalog(session))
    engine.select_brand(brand_id)
    payload['directSales'] = [
        {'id': ds.id, 'name': ds.name, 'discountPercentage': money_str(ds.discount_percentage), 'brandId': ds.brand_id}
        for ds in engine.available_direct_sales()
    ]
    return payload


def _optional_entries(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        abort(400, description='optionals must be a list')
    out = []
    for item in raw:
        if isinstance(item, dict):
            out.append((item.get('id'), item.get('price')))
        else:
            out.append((item, None))
    return out


@cfg_bp.post('/quote')
@require_action('/configurator')
def quote():
    """Replay a configuration through the pricing engine and return its snapshot.

    Body keys (all optional): brandId, modelId, versionId, colorId,
    optionals ([id] or [{id, price}]), priceTier, directSaleId,
    discountPercent | discountAmount, markup, quantity.
    A directSaleId takes precedence over a manual discount.
    """
    data = request.json or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    engine = PricingEngine(DatabaseCatalog(get_db()))
    engine.select_brand(data.get('brandId'))
    if data.get('modelId') is not None:
        engine.select_model(data.get('modelId'))
    if data.get('versionId') is not None:
        engine.select_version(data.get('versionId'))
    if data.get('colorId') is not None:
        engine.select_color(data.get('colorId'))
    for optional_id, price in _optional_entries(data.get('optionals')):
        engine.toggle_optional(optional_id, price)
    if data.get('priceTier') is not None:
        try:
            engine.select_price_tier(data.get('priceTier'))
        except ValueError as e:
            abort(400, description=str(e))
    if 'directSaleId' in data:
        engine.apply_direct_sale_discount(data.get('directSaleId'))
    elif 'discountPercent' in data:
        engine.set_discount_percent(data.get('discountPercent'))
    elif 'discountAmount' in data:
        engine.set_discount_amount(data.get('discountAmount'))
    if 'markup' in data:
        engine.set_markup(data.get('markup'))
    if 'quantity' in data:
        engine.set_quantity(data.get('quantity'))
    return engine.snapshot()
