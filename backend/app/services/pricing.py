"""Vehicle pricing engine for the configurator.

One PricingEngine holds the state of a single configuration session. Every
mutator keeps the derived values consistent immediately, so compute_total()
never sees stale inputs. Lookups go through a CatalogSource; missing catalog
data degrades to zero prices instead of raising.

Cascade: choosing a brand, model or version clears everything priced against the
previous choice (color, optionals, discount, markup, direct sale, active tier).
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from app.services.catalog_source import CatalogSource, DirectSaleDiscount, TierPrices, VersionIdentity
from app.utils.money import ZERO, money_str, round2, to_decimal, to_money, to_quantity

log = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class PriceTier(str, enum.Enum):
    PUBLIC = 'public'
    PCD_IPI = 'pcdIpi'
    PCD_IPI_ICMS = 'pcdIpiIcms'
    TAXI_IPI = 'taxiIpi'
    TAXI_IPI_ICMS = 'taxiIpiIcms'

    @classmethod
    def parse(cls, raw: Union['PriceTier', str, None]) -> Optional['PriceTier']:
        if raw is None or isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(f'Unknown price tier {raw!r}') from None


_TIER_FIELDS = {
    PriceTier.PUBLIC: 'public',
    PriceTier.PCD_IPI: 'pcd_ipi',
    PriceTier.PCD_IPI_ICMS: 'pcd_ipi_icms',
    PriceTier.TAXI_IPI: 'taxi_ipi',
    PriceTier.TAXI_IPI_ICMS: 'taxi_ipi_icms',
}


def toggle_tier(active: Optional[PriceTier], requested: Optional[PriceTier]) -> Optional[PriceTier]:
    """Selecting the active tier again clears it (back to public price)."""
    if requested is None or requested == active:
        return None
    return requested


def tier_price(prices: TierPrices, tier: Optional[PriceTier]) -> Decimal:
    return getattr(prices, _TIER_FIELDS[tier or PriceTier.PUBLIC])


class Stage(str, enum.Enum):
    EMPTY = 'empty'
    BRAND = 'brand'
    MODEL = 'model'
    VERSION = 'version'


@dataclass(frozen=True)
class PriceTotals:
    subtotal: Decimal
    final: Decimal

    def as_dict(self) -> Dict[str, float]:
        return {'subtotal': float(self.subtotal), 'final': float(self.final)}


def _opt_id(raw) -> Optional[int]:
    if raw in (None, ''):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class PricingEngine:
    def __init__(self, catalog: CatalogSource):
        self.catalog = catalog
        self.brand_id: Optional[int] = None
        self.model_id: Optional[int] = None
        self.version_id: Optional[int] = None
        self.vehicle: Optional[VersionIdentity] = None
        self.placeholder = False
        self.prices = TierPrices()
        self.quantity = 1
        self._reset_priced_fields()

    def _reset_priced_fields(self):
        self.color_id: Optional[int] = None
        self.color_price = ZERO
        self.selected_optionals: Dict[int, Decimal] = {}
        self.optionals_sum = ZERO
        self.discount_percent = ZERO
        self.discount_amount = ZERO
        self.markup_amount = ZERO
        self.direct_sale_id: Optional[int] = None
        self.active_tier: Optional[PriceTier] = None

    def _clear_version(self):
        self.version_id = None
        self.vehicle = None
        self.placeholder = False
        self.prices = TierPrices()

    @property
    def stage(self) -> Stage:
        if self.version_id is not None:
            return Stage.VERSION
        if self.model_id is not None:
            return Stage.MODEL
        if self.brand_id is not None:
            return Stage.BRAND
        return Stage.EMPTY

    # --- cascading selections ---

    def select_brand(self, brand_id) -> None:
        self.brand_id = _opt_id(brand_id)
        self.model_id = None
        self._clear_version()
        self._reset_priced_fields()

    def select_model(self, model_id) -> None:
        self.model_id = _opt_id(model_id)
        self._clear_version()
        self._reset_priced_fields()

    def select_version(self, version_id) -> None:
        self._clear_version()
        self._reset_priced_fields()
        vid = _opt_id(version_id)
        if vid is None:
            return
        self.version_id = vid
        identity = self.catalog.version(vid)
        prices = self.catalog.vehicle_prices(vid)
        if prices is None:
            log.info('No vehicle record for version %s; using zero-priced placeholder', vid)
            self.placeholder = True
            prices = TierPrices()
        self.prices = prices
        self.vehicle = identity or VersionIdentity(
            id=vid,
            name='Version',
            model_id=self.model_id,
            model_name='Model',
            brand_id=self.brand_id,
            brand_name='Brand',
        )
        # a version implies its model and brand when the caller skipped them
        if identity is not None:
            if self.model_id is None:
                self.model_id = identity.model_id
            if self.brand_id is None:
                self.brand_id = identity.brand_id

    def select_color(self, color_id) -> None:
        self.color_id = _opt_id(color_id)
        price = None
        if self.color_id is not None and self.version_id is not None:
            price = self.catalog.color_price(self.version_id, self.color_id)
        self.color_price = price if price is not None else ZERO

    def toggle_optional(self, optional_id, unit_price: Any = None) -> bool:
        """Add or remove an optional; returns True when it ends up selected."""
        oid = _opt_id(optional_id)
        if oid is None:
            return False
        if oid in self.selected_optionals:
            del self.selected_optionals[oid]
            selected = False
        else:
            if unit_price is None:
                looked_up = None
                if self.version_id is not None:
                    looked_up = self.catalog.optional_price(self.version_id, oid)
                price = looked_up if looked_up is not None else ZERO
            else:
                price = to_money(unit_price)
            self.selected_optionals[oid] = price
            selected = True
        self.optionals_sum = sum(self.selected_optionals.values(), ZERO)
        return selected

    # --- discount / markup / quantity ---

    @property
    def base_price(self) -> Decimal:
        return tier_price(self.prices, self.active_tier)

    def set_discount_percent(self, pct: Any) -> None:
        base = self.base_price
        if base <= 0:
            self.discount_percent = ZERO
            self.discount_amount = ZERO
            return
        self.discount_percent = round2(to_decimal(pct))
        self.discount_amount = round2(base * self.discount_percent / HUNDRED)

    def set_discount_amount(self, amount: Any) -> None:
        base = self.base_price
        if base <= 0:
            self.discount_percent = ZERO
            self.discount_amount = ZERO
            return
        self.discount_amount = round2(to_decimal(amount))
        self.discount_percent = round2(self.discount_amount / base * HUNDRED)

    def available_direct_sales(self) -> List[DirectSaleDiscount]:
        return [ds for ds in self.catalog.direct_sales() if ds.applies_to(self.brand_id)]

    def apply_direct_sale_discount(self, direct_sale_id: Any) -> None:
        if direct_sale_id is None or str(direct_sale_id).strip().lower() in ('', '0', 'none'):
            self.direct_sale_id = None
            self.set_discount_percent(ZERO)
            return
        dsid = _opt_id(direct_sale_id)
        match = next((ds for ds in self.available_direct_sales() if ds.id == dsid), None)
        if match is None:
            log.debug('Direct sale %r not available for brand %s', direct_sale_id, self.brand_id)
            return
        self.direct_sale_id = match.id
        self.set_discount_percent(match.discount_percentage)

    def set_markup(self, amount: Any) -> None:
        self.markup_amount = to_money(amount)

    def set_quantity(self, qty: Any) -> None:
        self.quantity = to_quantity(qty)

    # --- tiers ---

    def select_price_tier(self, tier: Union[PriceTier, str, None]) -> Optional[PriceTier]:
        self.active_tier = toggle_tier(self.active_tier, PriceTier.parse(tier))
        # percent is the anchor; re-derive the amount against the new base
        self.set_discount_percent(self.discount_percent)
        return self.active_tier

    # --- totals ---

    def _final_for(self, base: Decimal) -> PriceTotals:
        subtotal = base + self.color_price + self.optionals_sum
        final = (subtotal - self.discount_amount + self.markup_amount) * self.quantity
        return PriceTotals(subtotal=round2(subtotal), final=round2(final))

    def compute_total(self) -> PriceTotals:
        return self._final_for(self.base_price)

    def totals_by_tier(self) -> Dict[str, Decimal]:
        return {tier.value: self._final_for(tier_price(self.prices, tier)).final for tier in PriceTier}

    def snapshot(self) -> Dict[str, Any]:
        totals = self.compute_total()
        vehicle = None
        if self.vehicle is not None:
            vehicle = {
                'version_id': self.vehicle.id,
                'version_name': self.vehicle.name,
                'model_name': self.vehicle.model_name,
                'brand_name': self.vehicle.brand_name,
                'placeholder': self.placeholder,
            }
        return {
            'stage': self.stage.value,
            'brand_id': self.brand_id,
            'model_id': self.model_id,
            'version_id': self.version_id,
            'vehicle': vehicle,
            'color_id': self.color_id,
            'color_price': money_str(self.color_price),
            'optionals': [{'id': oid, 'price': money_str(p)} for oid, p in self.selected_optionals.items()],
            'optionals_sum': money_str(self.optionals_sum),
            'active_tier': self.active_tier.value if self.active_tier else None,
            'tier_prices': {tier.value: money_str(tier_price(self.prices, tier)) for tier in PriceTier},
            'discount_percent': money_str(self.discount_percent),
            'discount_amount': money_str(self.discount_amount),
            'markup_amount': money_str(self.markup_amount),
            'direct_sale_id': self.direct_sale_id,
            'quantity': self.quantity,
            'totals': totals.as_dict(),
            'totals_by_tier': {k: float(v) for k, v in self.totals_by_tier().items()},
        }


__all__ = ['PriceTier', 'PriceTotals', 'PricingEngine', 'Stage', 'toggle_tier', 'tier_price']
