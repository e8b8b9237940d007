import pytest
from decimal import Decimal
import os
import tempfile
import uuid

# Point the app at a throwaway SQLite file before config is imported
_TEST_DB_DIR = tempfile.mkdtemp(prefix='pos-tests-')
os.environ['DATABASE_URL'] = os.environ.get(
    'TEST_DATABASE_URL', f"sqlite:///{os.path.join(_TEST_DB_DIR, 'pos.db')}"
)
os.environ['NOTIFICATIONS_ENABLED'] = 'false'

from app import create_app
from app import database
from app.database import get_session, create_tables, Base
from app.models import StaffUser, StaffRole, Product
from app.services.auth_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    create_tables()
    return app


@pytest.fixture(autouse=True)
def _clean_tables(app):
    """Every test starts from empty tables."""
    yield
    database.db_session.remove()
    with database.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


def _staff(session, role):
    suffix = str(uuid.uuid4())[:8]
    user = StaffUser(
        email=f'{role.lower()}-{suffix}@test.com',
        name=f'{role.title()} {suffix}',
        role=role,
        active=True
    )
    session.add(user)
    session.commit()
    return Actor.from_user(user)


@pytest.fixture(scope='function')
def cashier(session):
    """Actor for a CASHIER staff user."""
    return _staff(session, StaffRole.CASHIER.value)


@pytest.fixture(scope='function')
def manager(session):
    """Actor for a MANAGER staff user."""
    return _staff(session, StaffRole.MANAGER.value)


def _product(session, product_id, name, price, cost, stock, **kwargs):
    product = Product(
        id=product_id,
        name=name,
        price=Decimal(price),
        cost_price=Decimal(cost),
        stock=stock,
        active=True,
        **kwargs
    )
    session.add(product)
    session.commit()
    return product.id


@pytest.fixture(scope='function')
def burger(session):
    """Tracked product P1: stock 10, cost 12.00, price 15.00. Returns the id."""
    return _product(session, 'P1', 'Burger', '15.00', '12.00', 10,
                    show_on_menu=True, menu_category='Mains', menu_order=1)


@pytest.fixture(scope='function')
def fries(session):
    """Tracked product P2: stock 3, cost 1.50, price 4.00. Returns the id."""
    return _product(session, 'P2', 'Fries', '4.00', '1.50', 3,
                    show_on_menu=True, menu_category='Sides', menu_order=1)


@pytest.fixture(scope='function')
def soup(session):
    """Kitchen-made product P3 without inventory tracking. Returns the id."""
    return _product(session, 'P3', 'Soup of the day', '6.00', '2.00', 0,
                    track_inventory=False, show_on_menu=True)


@pytest.fixture(scope='function')
def authenticated_client(client, cashier):
    """Create authenticated client for a cashier."""
    with client.session_transaction() as sess:
        sess['user_id'] = cashier.user_id
    return client


@pytest.fixture(scope='function')
def manager_client(client, manager):
    """Create authenticated client for a manager."""
    with client.session_transaction() as sess:
        sess['user_id'] = manager.user_id
    return client


