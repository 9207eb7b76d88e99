"""
Pytest fixtures for stockroom backend tests.

Provides an in-memory database, users of each role, a category, an item
factory, and signed-in test clients.
"""

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Category, ROLE_ADMIN, ROLE_STAFF
from stockroom.services import stock_service
from stockroom.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    db.session.remove()
    # Core deletes bypass the activity log's ORM append-only guard
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin@test.local", PASSWORD, "Test Admin", ROLE_ADMIN, rounds=4)


@pytest.fixture(scope='function')
def staff_user(db_session):
    return create_user("staff@test.local", PASSWORD, "Test Staff", ROLE_STAFF, rounds=4)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Goods", description="General goods", is_active=True)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_item(db_session, admin_user, category):
    """Factory: create a stock item through the ledger (so it is audited like real data)."""
    def _make(name="Widget", quantity=10, price_cents=250, **extra):
        patch = {
            "name": name,
            "category_id": extra.pop("category_id", category.id),
            "quantity": quantity,
            "price_cents": price_cents,
            "supplier": extra.pop("supplier", "Acme Supply"),
        }
        patch.update(extra)
        return stock_service.create_item(patch=patch, actor_id=admin_user.id)

    return _make


def login(client, email: str, password: str = PASSWORD):
    """Helper to sign a test client in."""
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    login(client, admin_user.email)
    return client


@pytest.fixture(scope='function')
def staff_client(client, staff_user):
    login(client, staff_user.email)
    return client
