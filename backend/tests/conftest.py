import os, sys, pytest
# Ensure project root and backend directory are on path so 'app' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from app import create_app, get_db
from app.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import app.models.catalog  # noqa: F401
import app.models.audit  # noqa: F401
from app.constants.permissions import ALL_ROLES


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'DATABASE_URL': 'sqlite+pysqlite:///:memory:', 'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-32'})
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        session = get_db()
        Base.metadata.create_all(session.get_bind())
        from tests.test_utils_seed import ensure_role
        for name in ALL_ROLES:
            ensure_role(name)
    yield app

@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
