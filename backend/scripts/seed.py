#!/usr/bin/env python
"""Idempotent seed script for roles, the initial administrator and a demo catalog.

Usage:
    python backend/scripts/seed.py                     # roles + admin user
    python backend/scripts/seed.py --demo-catalog      # also a small brand/model/version catalog
    python backend/scripts/seed.py --dry-run           # run logic then rollback (no DB changes)
    python backend/scripts/seed.py --show-matrix       # print the effective permission matrix
    python backend/scripts/seed.py --export-matrix FILE
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json
from decimal import Decimal
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from app import create_app, get_db  # type: ignore
from app.models.authz import Base, Role, User
from app.models.catalog import (
    Brand, VehicleModel, Version, PaintType, Color, VersionColor, OptionalItem, VersionOptional, Vehicle, DirectSale,
)
from app.models.audit import AuditLog  # noqa: F401  registers audit_logs for create_all
from app.constants.permissions import ALL_ROLES, ROLE_ADMIN, ROLE_DESCRIPTIONS
from app.services.policy import get_resolver, load_custom_permissions


def ensure_roles(session):
    existing = {r.name for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for name in ALL_ROLES:
        if name not in existing:
            session.add(Role(name=name, description=ROLE_DESCRIPTIONS.get(name)))
            created += 1
    session.flush()
    return created


def ensure_initial_admin(session):
    admin_role = session.execute(select(Role).where(Role.name==ROLE_ADMIN)).scalar_one_or_none()
    if not admin_role:
        print('[WARN] Administrator role missing; skipping admin user creation')
        return False
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    if session.execute(select(User).where(User.email==admin_email)).scalar_one_or_none():
        return False
    user = User(name='Administrator', email=admin_email, role=admin_role)
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    session.flush()
    print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
    return True


def _get_or_add(session, model, defaults=None, **lookup):
    row = session.execute(select(model).filter_by(**lookup)).scalars().first()
    if row:
        return row, False
    row = model(**lookup, **(defaults or {}))
    session.add(row)
    session.flush()
    return row, True


DEMO_CATALOG = {
    'Fiat': {
        'Argo': {
            'Drive 1.0': {'public': '84990.00', 'pcd_ipi': '79990.00', 'pcd_ipi_icms': '72990.00', 'taxi_ipi': '78990.00', 'taxi_ipi_icms': '71990.00'},
            'Trekking 1.3': {'public': '98990.00', 'pcd_ipi': '92990.00', 'pcd_ipi_icms': '85990.00', 'taxi_ipi': '91990.00', 'taxi_ipi_icms': '84990.00'},
        },
    },
    'Volkswagen': {
        'Polo': {
            'Track 1.0': {'public': '87990.00', 'pcd_ipi': '82990.00', 'pcd_ipi_icms': '75990.00', 'taxi_ipi': '81990.00', 'taxi_ipi_icms': '74990.00'},
        },
    },
}


def ensure_demo_catalog(session):
    created = 0
    solid, c = _get_or_add(session, PaintType, name='Solid'); created += c
    metallic, c = _get_or_add(session, PaintType, name='Metallic'); created += c
    white, c = _get_or_add(session, Color, name='Banchisa White', defaults={'hex_code': '#F5F5F5', 'paint_type_id': solid.id}); created += c
    grey, c = _get_or_add(
        session, Color, name='Strato Grey',
        defaults={'hex_code': '#6B6E70', 'paint_type_id': metallic.id, 'additional_price': Decimal('1990.00')},
    ); created += c
    mats, c = _get_or_add(session, OptionalItem, name='Floor mats', defaults={'price': Decimal('350.00')}); created += c
    sensor, c = _get_or_add(session, OptionalItem, name='Parking sensor', defaults={'price': Decimal('1200.00')}); created += c
    for brand_name, models in DEMO_CATALOG.items():
        brand, c = _get_or_add(session, Brand, name=brand_name); created += c
        for model_name, versions in models.items():
            model, c = _get_or_add(session, VehicleModel, name=model_name, brand_id=brand.id); created += c
            for version_name, prices in versions.items():
                version, c = _get_or_add(session, Version, name=version_name, model_id=model.id); created += c
                _, c = _get_or_add(session, Vehicle, version_id=version.id, defaults={
                    'year': 2025,
                    'public_price': Decimal(prices['public']),
                    'pcd_ipi': Decimal(prices['pcd_ipi']),
                    'pcd_ipi_icms': Decimal(prices['pcd_ipi_icms']),
                    'taxi_ipi': Decimal(prices['taxi_ipi']),
                    'taxi_ipi_icms': Decimal(prices['taxi_ipi_icms']),
                }); created += c
                _, c = _get_or_add(session, VersionColor, version_id=version.id, color_id=white.id, defaults={'price': Decimal('0')}); created += c
                _, c = _get_or_add(session, VersionColor, version_id=version.id, color_id=grey.id, defaults={'price': grey.additional_price}); created += c
                _, c = _get_or_add(session, VersionOptional, version_id=version.id, optional_id=mats.id, defaults={'price': mats.price}); created += c
                _, c = _get_or_add(session, VersionOptional, version_id=version.id, optional_id=sensor.id, defaults={'price': sensor.price}); created += c
        _, c = _get_or_add(session, DirectSale, name=f'{brand_name} fleet', brand_id=brand.id, defaults={'discount_percentage': Decimal('8.00')}); created += c
    _, c = _get_or_add(session, DirectSale, name='Government', defaults={'discount_percentage': Decimal('5.00')}); created += c
    return created


def print_matrix(matrix, roles):
    width = max(len(row['description']) for row in matrix)
    print(f"{'Permission'.ljust(width)} | " + ' | '.join(roles))
    print('-' * (width + 3 + sum(len(r) + 3 for r in roles)))
    for row in matrix:
        marks = ' | '.join(('yes' if row['roles'][r] else '-').ljust(len(r)) for r in roles)
        print(f"{row['description'].ljust(width)} | {marks}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed roles, initial administrator and demo catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed.py\n  dry run: seed.py --dry-run\n  demo data: seed.py --demo-catalog\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--demo-catalog', action='store_true', help='Also create a small demo vehicle catalog')
    p.add_argument('--show-matrix', action='store_true', help='Print the effective permission matrix after seeding')
    p.add_argument('--export-matrix', metavar='FILE', help="Write the permission matrix as JSON to FILE ('-' for stdout)")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM roles LIMIT 1'))
        except Exception:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        try:
            created_roles = ensure_roles(session)
            admin_created = ensure_initial_admin(session)
            created_catalog = ensure_demo_catalog(session) if args.demo_catalog else 0
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Roles would create: {created_roles}, admin: {admin_created}, catalog rows: {created_catalog}")
            else:
                session.commit()
                print(f"[DONE] Roles created: {created_roles}, admin: {admin_created}, catalog rows: {created_catalog}")
            if args.show_matrix or args.export_matrix:
                resolver = get_resolver()
                resolver.set_overrides(load_custom_permissions())
                matrix = resolver.permission_matrix()
                if args.show_matrix:
                    print_matrix(matrix, list(resolver.roles))
                if args.export_matrix:
                    payload = json.dumps({'roles': list(resolver.roles), 'data': matrix}, indent=2, sort_keys=True)
                    if args.export_matrix == '-':
                        print(payload)
                    else:
                        with open(args.export_matrix, 'w', encoding='utf-8') as f:
                            f.write(payload)
                        print(f"[INFO] Exported matrix to {args.export_matrix}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
