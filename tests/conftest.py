"""
Test Configuration and Fixtures
Shared testing infrastructure for the stock ledger
"""

import os

# Must be set before the application modules build their engine and loggers
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"

import pytest
from decimal import Decimal
from typing import Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from stockledger.main import app
from stockledger.core.database import get_db, Base
from stockledger.core.security import create_access_token
from stockledger.models import Category, Brand, StockItem
from stockledger.services.stock import StockItemService

OWNER_ID = "owner-alpha"
OTHER_OWNER_ID = "owner-beta"

# In-memory SQLite shared across threads for the TestClient
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def other_owner_id() -> str:
    return OTHER_OWNER_ID


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    token = create_access_token({"sub": OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> Dict[str, str]:
    token = create_access_token({"sub": OTHER_OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def category(db_session: Session) -> Category:
    category = Category(owner_id=OWNER_ID, name="Filament")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def preset_category(db_session: Session) -> Category:
    category = Category(owner_id=None, name="Nozzles", is_preset=True)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def foreign_category(db_session: Session) -> Category:
    category = Category(owner_id=OTHER_OWNER_ID, name="Filament")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def brand(db_session: Session) -> Brand:
    brand = Brand(owner_id=OWNER_ID, name="Bambu Lab")
    db_session.add(brand)
    db_session.commit()
    return brand


@pytest.fixture
def sample_batch_data(category: Category, brand: Brand) -> Dict:
    """One spool of PLA, 1000 g"""
    return {
        "category_id": category.id,
        "brand_id": brand.id,
        "kind": "consumable",
        "name": "PLA Basic",
        "color": "Jade White",
        "color_hex": "#F5F5F0",
        "total_quantity": Decimal("1000"),
        "price": Decimal("19.99"),
        "quantity": 1,
    }


@pytest.fixture
def make_item(db_session: Session, sample_batch_data: Dict) -> Callable[..., StockItem]:
    """Factory creating a single item for OWNER_ID, overriding batch attributes"""
    def _make(**overrides) -> StockItem:
        data = dict(sample_batch_data)
        data.update(overrides)
        data["quantity"] = 1
        return StockItemService(db_session).batch_create(OWNER_ID, data)[0]
    return _make


@pytest.fixture
def consumable_item(make_item) -> StockItem:
    return make_item()


@pytest.fixture
def durable_item(make_item) -> StockItem:
    return make_item(kind="durable", name="Hardened nozzle 0.4", total_quantity=Decimal("5"), brand_id=None)


# Database test helpers
class DatabaseTestHelper:
    """Helper class for database operations in tests"""

    @staticmethod
    def count_items(db_session: Session, owner: str = OWNER_ID) -> int:
        return db_session.query(StockItem).filter(StockItem.owner_id == owner).count()


# API test helpers
class APITestHelper:
    """Helper class for API testing"""

    @staticmethod
    def assert_error_response(response, expected_status: int, expected_error: str = None):
        assert response.status_code == expected_status
        data = response.json()
        assert "detail" in data
        if expected_error:
            assert data["error"] == expected_error
