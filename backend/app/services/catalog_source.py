"""Read-only catalog lookups consumed by the pricing engine.

The engine only needs a handful of point lookups, so any object offering the
CatalogSource methods works. InMemoryCatalog is built from API-shaped JSON
records; DatabaseCatalog answers from the SQLAlchemy session.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from sqlalchemy import select

from app.utils.money import ZERO, to_money


@dataclass(frozen=True)
class TierPrices:
    public: Decimal = ZERO
    pcd_ipi: Decimal = ZERO
    pcd_ipi_icms: Decimal = ZERO
    taxi_ipi: Decimal = ZERO
    taxi_ipi_icms: Decimal = ZERO


@dataclass(frozen=True)
class VersionIdentity:
    id: int
    name: str
    model_id: Optional[int] = None
    model_name: Optional[str] = None
    brand_id: Optional[int] = None
    brand_name: Optional[str] = None


@dataclass(frozen=True)
class DirectSaleDiscount:
    id: int
    name: str
    discount_percentage: Decimal
    brand_id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return not self.brand_id  # null and 0 both mean every brand

    def applies_to(self, brand_id: Optional[int]) -> bool:
        return self.is_global or self.brand_id == brand_id


class CatalogSource(Protocol):
    def version(self, version_id: int) -> Optional[VersionIdentity]: ...

    def vehicle_prices(self, version_id: int) -> Optional[TierPrices]: ...

    def color_price(self, version_id: int, color_id: int) -> Optional[Decimal]: ...

    def optional_price(self, version_id: int, optional_id: int) -> Optional[Decimal]: ...

    def direct_sales(self) -> List[DirectSaleDiscount]: ...


def tier_prices_from_record(rec: Dict[str, Any]) -> TierPrices:
    return TierPrices(
        public=to_money(rec.get('publicPrice')),
        pcd_ipi=to_money(rec.get('pcdIpi')),
        pcd_ipi_icms=to_money(rec.get('pcdIpiIcms')),
        taxi_ipi=to_money(rec.get('taxiIpi')),
        taxi_ipi_icms=to_money(rec.get('taxiIpiIcms')),
    )


def _opt_int(raw) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class InMemoryCatalog:
    """Catalog snapshot assembled from JSON records (camelCase keys, as served by the API)."""

    def __init__(self):
        self._versions: Dict[int, VersionIdentity] = {}
        self._prices: Dict[int, TierPrices] = {}
        self._colors: Dict[Tuple[int, int], Decimal] = {}
        self._optionals: Dict[Tuple[int, int], Decimal] = {}
        self._direct_sales: List[DirectSaleDiscount] = []

    @classmethod
    def from_records(
        cls,
        versions: Iterable[Dict[str, Any]] = (),
        vehicles: Iterable[Dict[str, Any]] = (),
        version_colors: Iterable[Dict[str, Any]] = (),
        version_optionals: Iterable[Dict[str, Any]] = (),
        direct_sales: Iterable[Dict[str, Any]] = (),
    ) -> 'InMemoryCatalog':
        cat = cls()
        for rec in versions:
            model = rec.get('model') or {}
            brand = model.get('brand') or {}
            cat._versions[int(rec['id'])] = VersionIdentity(
                id=int(rec['id']),
                name=rec.get('name') or '',
                model_id=_opt_int(rec.get('modelId')),
                model_name=model.get('name'),
                brand_id=_opt_int(model.get('brandId', brand.get('id'))),
                brand_name=brand.get('name'),
            )
        for rec in vehicles:
            # first vehicle per version wins
            cat._prices.setdefault(int(rec['versionId']), tier_prices_from_record(rec))
        for rec in version_colors:
            cat._colors[(int(rec['versionId']), int(rec['colorId']))] = to_money(rec.get('price'))
        for rec in version_optionals:
            cat._optionals[(int(rec['versionId']), int(rec['optionalId']))] = to_money(rec.get('price'))
        for rec in direct_sales:
            cat._direct_sales.append(DirectSaleDiscount(
                id=int(rec['id']),
                name=rec.get('name') or '',
                discount_percentage=to_money(rec.get('discountPercentage')),
                brand_id=_opt_int(rec.get('brandId')),
            ))
        return cat

    def version(self, version_id):
        return self._versions.get(version_id)

    def vehicle_prices(self, version_id):
        return self._prices.get(version_id)

    def color_price(self, version_id, color_id):
        return self._colors.get((version_id, color_id))

    def optional_price(self, version_id, optional_id):
        return self._optionals.get((version_id, optional_id))

    def direct_sales(self):
        return list(self._direct_sales)


class DatabaseCatalog:
    """CatalogSource backed by the ORM session."""

    def __init__(self, session):
        self.session = session

    def version(self, version_id):
        from app.models.catalog import Version
        v = self.session.get(Version, version_id)
        if not v:
            return None
        model = v.model
        brand = model.brand if model else None
        return VersionIdentity(
            id=v.id,
            name=v.name,
            model_id=v.model_id,
            model_name=model.name if model else None,
            brand_id=brand.id if brand else None,
            brand_name=brand.name if brand else None,
        )

    def vehicle_prices(self, version_id):
        from app.models.catalog import Vehicle
        row = self.session.execute(
            select(Vehicle).where(Vehicle.version_id == version_id).order_by(Vehicle.is_active.desc(), Vehicle.id.asc())
        ).scalars().first()
        if not row:
            return None
        return TierPrices(
            public=to_money(row.public_price),
            pcd_ipi=to_money(row.pcd_ipi),
            pcd_ipi_icms=to_money(row.pcd_ipi_icms),
            taxi_ipi=to_money(row.taxi_ipi),
            taxi_ipi_icms=to_money(row.taxi_ipi_icms),
        )

    def color_price(self, version_id, color_id):
        from app.models.catalog import VersionColor
        row = self.session.execute(
            select(VersionColor).where(VersionColor.version_id == version_id, VersionColor.color_id == color_id)
        ).scalars().first()
        return to_money(row.price) if row else None

    def optional_price(self, version_id, optional_id):
        from app.models.catalog import VersionOptional
        row = self.session.execute(
            select(VersionOptional).where(VersionOptional.version_id == version_id, VersionOptional.optional_id == optional_id)
        ).scalars().first()
        return to_money(row.price) if row else None

    def direct_sales(self):
        from app.models.catalog import DirectSale
        rows = self.session.execute(select(DirectSale).order_by(DirectSale.id.asc())).scalars().all()
        return [
            DirectSaleDiscount(id=r.id, name=r.name, discount_percentage=to_money(r.discount_percentage), brand_id=r.brand_id)
            for r in rows
        ]


__all__ = [
    'TierPrices', 'VersionIdentity', 'DirectSaleDiscount', 'CatalogSource',
    'InMemoryCatalog', 'DatabaseCatalog', 'tier_prices_from_record',
]
