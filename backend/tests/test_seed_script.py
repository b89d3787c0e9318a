from app import get_db
from app.models.authz import Role
from app.models.catalog import Brand, Vehicle, DirectSale
from scripts import seed


def test_seed_functions_are_idempotent():
    session = get_db()
    seed.ensure_roles(session)
    assert seed.ensure_roles(session) == 0
    assert {r.name for r in session.query(Role)} >= {'Administrator', 'Registrar', 'User'}
    created = seed.ensure_demo_catalog(session)
    session.commit()
    assert created > 0
    assert seed.ensure_demo_catalog(session) == 0
    session.commit()
    fiat = session.query(Brand).filter_by(name='Fiat').one()
    assert session.query(DirectSale).filter_by(name='Government').count() == 1
    assert session.query(DirectSale).filter_by(brand_id=fiat.id).count() == 1
    assert session.query(Vehicle).count() >= 3


def test_parse_args():
    args = seed.parse_args(['--dry-run', '--demo-catalog'])
    assert args.dry_run and args.demo_catalog and not args.show_matrix
