from __future__ import annotations
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .authz import Base

MONEY = Numeric(10, 2)
PERCENT = Numeric(5, 2)


class Brand(Base):
    __tablename__ = 'brands'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    models = relationship('VehicleModel', back_populates='brand')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VehicleModel(Base):
    __tablename__ = 'models'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey('brands.id'), nullable=False, index=True)
    brand = relationship('Brand', back_populates='models')
    versions = relationship('Version', back_populates='model')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Version(Base):
    __tablename__ = 'versions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    model_id: Mapped[int] = mapped_column(ForeignKey('models.id'), nullable=False, index=True)
    model = relationship('VehicleModel', back_populates='versions')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PaintType(Base):
    __tablename__ = 'paint_types'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Color(Base):
    __tablename__ = 'colors'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    hex_code: Mapped[str] = mapped_column(String(16), nullable=False)
    paint_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey('paint_types.id'), nullable=True)
    additional_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    image_url: Mapped[Optional[str]] = mapped_column(String(512))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VersionColor(Base):
    __tablename__ = 'version_colors'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version_id: Mapped[int] = mapped_column(ForeignKey('versions.id', ondelete='CASCADE'), nullable=False, index=True)
    color_id: Mapped[int] = mapped_column(ForeignKey('colors.id', ondelete='CASCADE'), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    image_url: Mapped[Optional[str]] = mapped_column(String(512))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('version_id', 'color_id', name='uq_version_color'),)


class OptionalItem(Base):
    __tablename__ = 'optionals'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VersionOptional(Base):
    __tablename__ = 'version_optionals'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version_id: Mapped[int] = mapped_column(ForeignKey('versions.id', ondelete='CASCADE'), nullable=False, index=True)
    optional_id: Mapped[int] = mapped_column(ForeignKey('optionals.id', ondelete='CASCADE'), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    optional = relationship('OptionalItem')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('version_id', 'optional_id', name='uq_version_optional'),)


class Vehicle(Base):
    __tablename__ = 'vehicles'
    SITUATION_AVAILABLE = 'available'
    SITUATION_UNAVAILABLE = 'unavailable'
    SITUATION_COMING_SOON = 'coming-soon'
    ALL_SITUATIONS = (SITUATION_AVAILABLE, SITUATION_UNAVAILABLE, SITUATION_COMING_SOON)
    FUEL_TYPES = ('flex', 'gasoline', 'diesel', 'electric', 'hybrid')
    TRANSMISSIONS = ('manual', 'automatic', 'cvt', 'dct')

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version_id: Mapped[int] = mapped_column(ForeignKey('versions.id'), nullable=False, index=True)
    color_id: Mapped[Optional[int]] = mapped_column(ForeignKey('colors.id'), nullable=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    public_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    pcd_ipi: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    pcd_ipi_icms: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    taxi_ipi: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    taxi_ipi_icms: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal('0'))
    situation: Mapped[str] = mapped_column(String(20), nullable=False, default=SITUATION_AVAILABLE)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    engine: Mapped[str] = mapped_column(String(40), nullable=False, default='')
    fuel_type: Mapped[str] = mapped_column(String(20), nullable=False, default='flex')
    transmission: Mapped[str] = mapped_column(String(20), nullable=False, default='manual')
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class DirectSale(Base):
    __tablename__ = 'direct_sales'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    # null brand: applies to every brand
    brand_id: Mapped[Optional[int]] = mapped_column(ForeignKey('brands.id'), nullable=True, index=True)
    model_id: Mapped[Optional[int]] = mapped_column(ForeignKey('models.id'), nullable=True)
    version_id: Mapped[Optional[int]] = mapped_column(ForeignKey('versions.id'), nullable=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


__all__ = [
    'Brand', 'VehicleModel', 'Version', 'PaintType', 'Color', 'VersionColor',
    'OptionalItem', 'VersionOptional', 'Vehicle', 'DirectSale',
]
