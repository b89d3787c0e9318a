from decimal import Decimal
import pytest
from app.services.catalog_source import InMemoryCatalog
from app.services.pricing import PricingEngine, PriceTier, Stage, toggle_tier

FIAT = {'id': 1, 'name': 'Fiat'}


def _version(vid, name, model_id=5, brand=FIAT):
    return {'id': vid, 'name': name, 'modelId': model_id, 'model': {'name': 'Argo', 'brandId': brand['id'], 'brand': brand}}


def make_catalog():
    return InMemoryCatalog.from_records(
        versions=[_version(10, 'Drive'), _version(11, 'Trekking'), _version(99, 'Concept')],
        vehicles=[
            {'versionId': 10, 'publicPrice': '100000.00', 'pcdIpi': '90000.00', 'pcdIpiIcms': '85000.00', 'taxiIpi': '88000.00', 'taxiIpiIcms': '83000.00'},
            {'versionId': 11, 'publicPrice': '120000.00', 'pcdIpi': '110000.00'},
        ],
        version_colors=[{'versionId': 10, 'colorId': 3, 'price': '2000.00'}],
        version_optionals=[
            {'versionId': 10, 'optionalId': 7, 'price': '1000.00'},
            {'versionId': 10, 'optionalId': 8, 'price': '2000.00'},
        ],
        direct_sales=[
            {'id': 1, 'name': 'Fiat fleet', 'discountPercentage': '10', 'brandId': 1},
            {'id': 2, 'name': 'Government', 'discountPercentage': '5', 'brandId': None},
            {'id': 3, 'name': 'Other brand', 'discountPercentage': '20', 'brandId': 2},
        ],
    )


@pytest.fixture()
def engine():
    e = PricingEngine(make_catalog())
    e.select_brand(1)
    e.select_model(5)
    e.select_version(10)
    return e


def single_price_engine(base):
    cat = InMemoryCatalog.from_records(
        versions=[_version(1, 'Only')],
        vehicles=[{'versionId': 1, 'publicPrice': base}],
    )
    e = PricingEngine(cat)
    e.select_version(1)
    return e


@pytest.mark.parametrize('base', ['100.00', '1234.56', '84990.00', '250000.00'])
@pytest.mark.parametrize('pct', ['0', '0.5', '12.34', '33.33', '99.99', '100'])
def test_discount_percent_amount_round_trip(base, pct):
    e = single_price_engine(base)
    e.set_discount_percent(pct)
    amount = e.discount_amount
    e.set_discount_amount(amount)
    assert abs(e.discount_percent - Decimal(pct)) <= Decimal('0.01')


def test_discount_pair_collapses_when_base_is_zero():
    e = PricingEngine(make_catalog())
    e.select_version(99)  # no vehicle record
    e.set_discount_percent(10)
    assert (e.discount_percent, e.discount_amount) == (Decimal('0'), Decimal('0'))
    e.set_discount_amount(500)
    assert (e.discount_percent, e.discount_amount) == (Decimal('0'), Decimal('0'))


def test_optional_toggle_twice_restores_sum(engine):
    engine.toggle_optional(7)
    before = engine.optionals_sum
    assert engine.toggle_optional(8) is True
    assert engine.toggle_optional(8) is False
    assert engine.optionals_sum == before == Decimal('1000.00')


def test_optional_sum_never_drifts(engine):
    for oid in [7, 8, 7, 8, 8, 7, 7, 'x', None]:
        engine.toggle_optional(oid)
        assert engine.optionals_sum == sum(engine.selected_optionals.values(), Decimal('0'))
    assert engine.selected_optionals == {8: Decimal('2000.00')}


def test_optional_with_explicit_price_and_unknown_lookup(engine):
    engine.toggle_optional(50, '199.9')
    engine.toggle_optional(51)  # not linked to the version: priced at zero
    assert engine.selected_optionals == {50: Decimal('199.90'), 51: Decimal('0.00')}


def test_tier_toggle_returns_to_public(engine):
    assert engine.select_price_tier('pcdIpi') == PriceTier.PCD_IPI
    assert engine.base_price == Decimal('90000.00')
    assert engine.select_price_tier(PriceTier.PCD_IPI) is None
    assert engine.active_tier is None
    assert engine.base_price == Decimal('100000.00')


def test_toggle_tier_pure_transition():
    assert toggle_tier(None, PriceTier.TAXI_IPI) == PriceTier.TAXI_IPI
    assert toggle_tier(PriceTier.TAXI_IPI, PriceTier.TAXI_IPI) is None
    assert toggle_tier(PriceTier.TAXI_IPI, PriceTier.PUBLIC) == PriceTier.PUBLIC
    assert toggle_tier(PriceTier.PUBLIC, None) is None


def test_invalid_tier_raises(engine):
    with pytest.raises(ValueError):
        engine.select_price_tier('vip')
    with pytest.raises(ValueError):
        PriceTier.parse('PCD')


def test_tier_change_rederives_discount_amount(engine):
    engine.set_discount_percent(10)
    assert engine.discount_amount == Decimal('10000.00')
    engine.select_price_tier('pcdIpi')
    assert engine.discount_percent == Decimal('10.00')
    assert engine.discount_amount == Decimal('9000.00')


def test_version_change_cascades_reset(engine):
    engine.select_color(3)
    engine.toggle_optional(7)
    engine.set_discount_percent(5)
    engine.set_markup(700)
    engine.apply_direct_sale_discount(1)
    engine.select_price_tier('taxiIpi')
    engine.select_version(11)
    assert engine.color_id is None and engine.color_price == 0
    assert engine.selected_optionals == {} and engine.optionals_sum == 0
    assert engine.discount_percent == 0 and engine.discount_amount == 0
    assert engine.markup_amount == 0
    assert engine.direct_sale_id is None
    assert engine.active_tier is None
    assert engine.base_price == Decimal('120000.00')


def test_brand_change_clears_model_and_version(engine):
    engine.select_brand(2)
    assert engine.model_id is None and engine.version_id is None
    assert engine.stage == Stage.BRAND
    assert engine.base_price == 0


def test_total_example():
    e = single_price_engine('100000')
    e.toggle_optional(1, '1000')
    e.toggle_optional(2, '2000')
    e.color_price = Decimal('2000')
    e.set_discount_amount('5000')
    e.set_markup('1000')
    e.set_quantity(2)
    totals = e.compute_total()
    assert totals.subtotal == Decimal('105000.00')
    assert totals.final == Decimal('202000.00')
    assert totals.as_dict() == {'subtotal': 105000.0, 'final': 202000.0}


def test_color_price_from_pairing(engine):
    engine.select_color(3)
    assert engine.color_price == Decimal('2000.00')
    engine.select_color(4)
    assert engine.color_price == 0


def test_missing_vehicle_uses_placeholder(engine):
    engine.select_version(99)
    assert engine.placeholder is True
    assert engine.vehicle.name == 'Concept'
    engine.toggle_optional(7, '300')
    totals = engine.compute_total()
    assert totals.final == Decimal('300.00')
    assert engine.snapshot()['vehicle']['placeholder'] is True


def test_unknown_version_synthesizes_identity():
    e = PricingEngine(make_catalog())
    e.select_version(12345)
    assert e.vehicle.id == 12345
    assert e.compute_total().final == Decimal('0.00')


def test_version_implies_model_and_brand():
    e = PricingEngine(make_catalog())
    e.select_version(10)
    assert (e.brand_id, e.model_id) == (1, 5)
    assert e.stage == Stage.VERSION


def test_direct_sales_scoped_to_brand(engine):
    assert {ds.id for ds in engine.available_direct_sales()} == {1, 2}
    engine.apply_direct_sale_discount(3)  # other brand: ignored
    assert engine.direct_sale_id is None
    engine.apply_direct_sale_discount('1')
    assert engine.direct_sale_id == 1
    assert engine.discount_percent == Decimal('10.00')
    assert engine.discount_amount == Decimal('10000.00')


def test_only_global_direct_sales_without_brand():
    e = PricingEngine(make_catalog())
    assert {ds.id for ds in e.available_direct_sales()} == {2}
    e.apply_direct_sale_discount(1)  # brand-scoped: needs its brand selected first
    assert e.direct_sale_id is None


def test_direct_sale_last_write_wins(engine):
    engine.apply_direct_sale_discount(1)
    engine.set_discount_percent(3)
    assert engine.discount_amount == Decimal('3000.00')
    engine.apply_direct_sale_discount(2)
    assert engine.discount_percent == Decimal('5.00')


@pytest.mark.parametrize('sentinel', [None, '', '0', 'none'])
def test_direct_sale_sentinel_resets_discount(engine, sentinel):
    engine.apply_direct_sale_discount(1)
    engine.apply_direct_sale_discount(sentinel)
    assert engine.direct_sale_id is None
    assert engine.discount_percent == 0 and engine.discount_amount == 0


def test_negative_final_is_not_clamped(engine):
    engine.set_discount_amount(150000)
    assert engine.compute_total().final == Decimal('-50000.00')


@pytest.mark.parametrize('raw,expected', [(2, 2), ('3', 3), ('2.7', 2), (0, 1), (-4, 1), ('abc', 1), (None, 1)])
def test_quantity_coercion(engine, raw, expected):
    engine.set_quantity(raw)
    assert engine.quantity == expected


def test_malformed_money_inputs_fall_back_to_zero(engine):
    engine.set_markup('abc')
    engine.set_discount_percent('n/a')
    assert engine.markup_amount == 0
    assert engine.discount_amount == 0
    assert engine.compute_total().final == Decimal('100000.00')


def test_totals_by_tier(engine):
    engine.set_markup(1000)
    totals = engine.totals_by_tier()
    assert totals['public'] == Decimal('101000.00')
    assert totals['pcdIpi'] == Decimal('91000.00')
    assert totals['taxiIpiIcms'] == Decimal('84000.00')


def test_snapshot_serializes_money_as_strings(engine):
    engine.select_color(3)
    snap = engine.snapshot()
    assert snap['stage'] == 'version'
    assert snap['color_price'] == '2000.00'
    assert snap['tier_prices']['pcdIpi'] == '90000.00'
    assert snap['totals'] == {'subtotal': 102000.0, 'final': 102000.0}


def test_oversized_inputs_are_normalized(engine):
    engine.set_markup('1e30')
    engine.set_discount_percent('1e30')
    engine.set_quantity('1e30')
    assert engine.markup_amount == 0
    assert engine.discount_percent == 0
    assert engine.quantity == 1
    assert engine.compute_total().final == Decimal('100000.00')


def test_large_but_bounded_quantity_still_totals(engine):
    engine.set_quantity('99999999999999')
    totals = engine.compute_total()
    assert totals.final == Decimal('100000.00') * 99999999999999
