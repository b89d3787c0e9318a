from datetime import timedelta
from decimal import Decimal
import pytest
from app.config.settings import Settings
from app.utils.money import to_decimal, to_money, to_quantity, round2, money_str


@pytest.mark.parametrize('raw,expected', [
    ('12.5', Decimal('12.5')),
    (7, Decimal('7')),
    (' 3.25 ', Decimal('3.25')),
    ('abc', Decimal('0')),
    (None, Decimal('0')),
    (True, Decimal('0')),
    ('NaN', Decimal('0')),
    ('Infinity', Decimal('0')),
])
def test_to_decimal_never_raises(raw, expected):
    assert to_decimal(raw) == expected


def test_round2_is_half_up():
    assert round2(Decimal('0.125')) == Decimal('0.13')
    assert round2(Decimal('2.675')) == Decimal('2.68')
    assert to_money('10') == Decimal('10.00')
    assert money_str(Decimal('5')) == '5.00'


def test_to_quantity():
    assert to_quantity('4') == 4
    assert to_quantity('0.9') == 1
    assert to_quantity('x') == 1


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('JWT_SECRET_KEY', 's3cret')
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    monkeypatch.setenv('JWT_EXPIRES_MINUTES', '15')
    s = Settings.from_env()
    assert s.jwt_secret_key == 's3cret'
    assert s.log_level == 'DEBUG'
    cfg = s.as_flask_config()
    assert cfg['JWT_ACCESS_TOKEN_EXPIRES'] == timedelta(minutes=15)
    assert cfg['LOG_LEVEL'] == 'DEBUG'


def test_settings_bad_expiry_falls_back(monkeypatch):
    monkeypatch.setenv('JWT_EXPIRES_MINUTES', 'soon')
    assert Settings.from_env().jwt_expires_minutes == 720


@pytest.mark.parametrize('raw', ['1e30', '1E+400', '-1e20', 10 ** 40, Decimal('1e15')])
def test_oversized_values_fall_back_to_default(raw):
    assert to_decimal(raw) == Decimal('0')
    assert to_money(raw) == Decimal('0.00')
    assert to_quantity(raw) == 1


def test_round2_handles_wide_results():
    big = Decimal('123456789012345') * Decimal('987654321098765')
    assert round2(big) == big
    assert round2(Decimal('10.005')) == Decimal('10.01')


@pytest.mark.parametrize('module', [
    'app.config.settings',
    'app.services.pricing',
    'app.services.permission_resolver',
    'app.services.catalog_source',
    'app.utils.money',
    'app.utils.validation',
    'app.utils.listing',
    'app.routes.catalog',
])
def test_module_docstrings_are_exposed(module):
    import importlib
    assert importlib.import_module(module).__doc__
