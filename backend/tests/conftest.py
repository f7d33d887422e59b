"""
Pytest fixtures for Thumma POS backend tests.

Provides the test application (in-memory SQLite), a clean database per
test, staff accounts for each role, and a small hardware catalog.
"""

import pytest

from thumma import create_app
from thumma.extensions import db
from thumma.models import Customer, User
from thumma.models.customers import CUSTOMER_TYPE_CONTRACTOR
from thumma.permissions import (
    ROLE_ACCOUNT_MANAGER,
    ROLE_ADMIN,
    ROLE_CEO,
    ROLE_POS_OPERATOR,
    ROLE_STORE_MANAGER,
)
from thumma.services import cache, catalog_service, session_service
from thumma.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
        'ASSISTANT_API_URL': '',
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
        cache.invalidate_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


def make_user(username: str, name: str, roles: list, password_hash: str, **extra) -> User:
    user = User(
        username=username,
        name=name,
        roles=roles,
        password_hash=password_hash,
        **{"must_change_password": False, "is_active": True, **extra},
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session, password_hash):
    """CEO + Admin: every permission."""
    return make_user("admin", "Admin", [ROLE_CEO, ROLE_ADMIN], password_hash)


@pytest.fixture(scope='function')
def manager(db_session, password_hash):
    return make_user("manager", "Store Manager", [ROLE_STORE_MANAGER], password_hash)


@pytest.fixture(scope='function')
def accountant(db_session, password_hash):
    return make_user("accountant", "Account Manager", [ROLE_ACCOUNT_MANAGER], password_hash)


@pytest.fixture(scope='function')
def cashier(db_session, password_hash):
    return make_user("cashier", "Cashier", [ROLE_POS_OPERATOR], password_hash)


def get_auth_token(client, username: str, password: str) -> str:
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


def _headers_for(user: User) -> dict:
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return _headers_for(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return _headers_for(manager)


@pytest.fixture(scope='function')
def accountant_headers(accountant):
    return _headers_for(accountant)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return _headers_for(cashier)


# =============================================================================
# CATALOG
# =============================================================================


@pytest.fixture(scope='function')
def categories(admin):
    main = catalog_service.create_category(
        {"name": {"en": "Building Materials", "th": "วัสดุก่อสร้าง"}, "slug": "building-materials"},
        admin,
    )
    cement = catalog_service.create_category(
        {"name": {"en": "Cement", "th": "ปูนซีเมนต์"}, "slug": "building-materials-cement", "parent_id": main.id},
        admin,
    )
    plumbing = catalog_service.create_category(
        {"name": {"en": "Pipes", "th": "ท่อ"}, "slug": "building-materials-pipes", "parent_id": main.id},
        admin,
    )
    return {"main": main, "cement": cement, "pipes": plumbing}


@pytest.fixture(scope='function')
def cement(admin, categories):
    """One variant, 20 bags in stock. Walk-in 150.00, contractor 140.00, government 160.50, cost 120.00."""
    return catalog_service.create_product(
        {
            "name": {"en": "Portland Cement", "th": "ปูนปอร์ตแลนด์"},
            "category": "building-materials-cement",
            "variants": [{
                "sku": "CEM-50",
                "size": "50kg",
                "stock": 20,
                "barcode": "8850000000011",
                "price": {"walk_in": 15000, "contractor": 14000, "government": 16050, "cost": 12000},
            }],
        },
        admin,
    )


@pytest.fixture(scope='function')
def pipe(admin, categories):
    """Two sizes: the 1/2 inch is sold out, the 1 inch has 5 in stock."""
    return catalog_service.create_product(
        {
            "name": {"en": "PVC Pipe", "th": "ท่อพีวีซี"},
            "category": "building-materials-pipes",
            "variants": [
                {
                    "sku": "PVC-050",
                    "size": "1/2 inch",
                    "stock": 0,
                    "price": {"walk_in": 8000, "contractor": 7500, "government": 8560, "cost": 6000},
                },
                {
                    "sku": "PVC-100",
                    "size": "1 inch",
                    "stock": 5,
                    "price": {"walk_in": 12000, "contractor": 11000, "government": 12840, "cost": 9000},
                },
            ],
        },
        admin,
    )


@pytest.fixture(scope='function')
def contractor(db_session):
    customer = Customer(
        name="Somchai Construction",
        type=CUSTOMER_TYPE_CONTRACTOR,
        phone="081-234-5678",
        address="99 Sukhumvit Rd, Bangkok",
    )
    db_session.add(customer)
    db_session.commit()
    return customer
