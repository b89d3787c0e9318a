"""initial schema: users/roles, permission overrides, vehicle catalog, audit

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(10, 2)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
        _updated_at(),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='SET NULL'), nullable=True),
        _updated_at(),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('custom_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('permissions', sa.JSON(), nullable=False),
        _updated_at(),
    )
    op.create_index('ix_custom_permissions_role_name', 'custom_permissions', ['role_name'])

    op.create_table('brands',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False, unique=True),
        _updated_at(),
    )

    op.create_table('models',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('brand_id', sa.Integer(), sa.ForeignKey('brands.id'), nullable=False),
        _updated_at(),
    )
    op.create_index('ix_models_name', 'models', ['name'])
    op.create_index('ix_models_brand_id', 'models', ['brand_id'])

    op.create_table('versions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('model_id', sa.Integer(), sa.ForeignKey('models.id'), nullable=False),
        _updated_at(),
    )
    op.create_index('ix_versions_name', 'versions', ['name'])
    op.create_index('ix_versions_model_id', 'versions', ['model_id'])

    op.create_table('paint_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=80), nullable=False, unique=True),
        _updated_at(),
    )

    op.create_table('colors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('hex_code', sa.String(length=16), nullable=False),
        sa.Column('paint_type_id', sa.Integer(), sa.ForeignKey('paint_types.id'), nullable=True),
        sa.Column('additional_price', MONEY, nullable=False, server_default='0'),
        sa.Column('image_url', sa.String(length=512)),
        _updated_at(),
    )

    op.create_table('version_colors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version_id', sa.Integer(), sa.ForeignKey('versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('color_id', sa.Integer(), sa.ForeignKey('colors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price', MONEY, nullable=False, server_default='0'),
        sa.Column('image_url', sa.String(length=512)),
        _updated_at(),
        sa.UniqueConstraint('version_id', 'color_id', name='uq_version_color'),
    )
    op.create_index('ix_version_colors_version_id', 'version_colors', ['version_id'])

    op.create_table('optionals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('price', MONEY, nullable=False, server_default='0'),
        _updated_at(),
    )
    op.create_index('ix_optionals_name', 'optionals', ['name'])

    op.create_table('version_optionals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version_id', sa.Integer(), sa.ForeignKey('versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('optional_id', sa.Integer(), sa.ForeignKey('optionals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price', MONEY, nullable=False, server_default='0'),
        _updated_at(),
        sa.UniqueConstraint('version_id', 'optional_id', name='uq_version_optional'),
    )
    op.create_index('ix_version_optionals_version_id', 'version_optionals', ['version_id'])

    op.create_table('vehicles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version_id', sa.Integer(), sa.ForeignKey('versions.id'), nullable=False),
        sa.Column('color_id', sa.Integer(), sa.ForeignKey('colors.id'), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('public_price', MONEY, nullable=False),
        sa.Column('pcd_ipi', MONEY, nullable=False, server_default='0'),
        sa.Column('pcd_ipi_icms', MONEY, nullable=False, server_default='0'),
        sa.Column('taxi_ipi', MONEY, nullable=False, server_default='0'),
        sa.Column('taxi_ipi_icms', MONEY, nullable=False, server_default='0'),
        sa.Column('situation', sa.String(length=20), nullable=False, server_default='available'),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('engine', sa.String(length=40), nullable=False, server_default=''),
        sa.Column('fuel_type', sa.String(length=20), nullable=False, server_default='flex'),
        sa.Column('transmission', sa.String(length=20), nullable=False, server_default='manual'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        _updated_at(),
    )
    op.create_index('ix_vehicles_version_id', 'vehicles', ['version_id'])

    op.create_table('direct_sales',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('brand_id', sa.Integer(), sa.ForeignKey('brands.id'), nullable=True),
        sa.Column('model_id', sa.Integer(), sa.ForeignKey('models.id'), nullable=True),
        sa.Column('version_id', sa.Integer(), sa.ForeignKey('versions.id'), nullable=True),
        _updated_at(),
    )
    op.create_index('ix_direct_sales_brand_id', 'direct_sales', ['brand_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_role', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_ref', 'audit_logs', ['entity', 'entity_id'])


def downgrade():
    for table in (
        'audit_logs', 'direct_sales', 'vehicles', 'version_optionals', 'optionals',
        'version_colors', 'colors', 'paint_types', 'versions', 'models', 'brands',
        'custom_permissions', 'users', 'roles',
    ):
        op.drop_table(table)
