"""
Pytest fixtures for Cofitearia backend tests.

Provides an in-memory database, the test client, users for every role and a
small menu with stock.
"""

import pytest

from cofitearia import create_app
from cofitearia.extensions import db
from cofitearia.permissions import Role
from cofitearia.services import auth_service, catalog_service, inventory_service

TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
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
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(username: str, role: str, **kwargs):
    return auth_service.create_user(
        username=username,
        password=kwargs.pop("password", TEST_PASSWORD),
        first_name=kwargs.pop("first_name", username.capitalize()),
        last_name=kwargs.pop("last_name", "Tester"),
        role=role,
        **kwargs,
    )


@pytest.fixture(scope='function')
def owner(db_session):
    return _make_user("owner", Role.OWNER)


@pytest.fixture(scope='function')
def manager(db_session):
    return _make_user("manager", Role.MANAGER)


@pytest.fixture(scope='function')
def staff(db_session):
    return _make_user("staffuser", Role.STAFF)


@pytest.fixture(scope='function')
def pwd_staff(db_session):
    return _make_user("pwdstaff", Role.PWD_STAFF)


@pytest.fixture(scope='function')
def milk_tea(db_session):
    return catalog_service.create_product({
        "name": "Classic Milk Tea",
        "description": "Black tea with milk",
        "price": "45.00",
        "category": "Beverages",
        "barcode": "MT-001",
    })


@pytest.fixture(scope='function')
def matcha(db_session):
    return catalog_service.create_product({
        "name": "Matcha Latte",
        "description": "Premium matcha green tea latte",
        "price": "55.00",
        "category": "Beverages",
    })


@pytest.fixture(scope='function')
def pearls(db_session):
    return catalog_service.create_product({
        "name": "Tapioca Pearls",
        "description": "Extra chewy tapioca pearls",
        "price": "15.00",
        "category": "Add-ons",
    })


@pytest.fixture(scope='function')
def milk_tea_stock(milk_tea):
    """Milk tea with 100 on hand, low at 10, critical at 5."""
    return inventory_service.create_inventory_item(milk_tea.id, {
        "current_stock": 100,
        "minimum_stock": 20,
        "maximum_stock": 500,
    })


@pytest.fixture(scope='function')
def matcha_stock(matcha):
    return inventory_service.create_inventory_item(matcha.id, {
        "current_stock": 3,
        "minimum_stock": 5,
        "maximum_stock": 50,
    })


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.username))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.username))


@pytest.fixture(scope='function')
def staff_headers(client, staff):
    return auth_headers(get_auth_token(client, staff.username))
