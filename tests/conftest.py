"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from api.market_data import get_market_data_service
from database import Base, get_db
from main import app
from services.market_data_service import MarketDataService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    account,
    cached_prices,
    position,
    second_account,
)
from tests.fixtures.mocks import (
    SAMPLE_CRYPTO_PRICES,
    SAMPLE_EQUITY_PRICES,
    MockPriceProvider,
)
from integrations.market_data_protocol import AssetClass


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="equity_provider")
def equity_provider_fixture():
    return MockPriceProvider(
        prices=SAMPLE_EQUITY_PRICES, name="mock_equity", asset_class=AssetClass.EQUITY
    )


@pytest.fixture(name="crypto_provider")
def crypto_provider_fixture():
    return MockPriceProvider(
        prices=SAMPLE_CRYPTO_PRICES, name="mock_crypto", asset_class=AssetClass.CRYPTO
    )


@pytest.fixture(name="market_data_service")
def market_data_service_fixture(equity_provider, crypto_provider):
    return MarketDataService(provider=equity_provider, crypto_provider=crypto_provider)


@pytest.fixture(name="client")
def client_fixture(db, market_data_service):
    """Create a test client with the test database and mock price providers."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data_service] = lambda: market_data_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_failing_providers")
def client_with_failing_providers_fixture(db):
    """Create a test client whose price providers always fail."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    service = MarketDataService(
        provider=MockPriceProvider(should_fail=True, name="mock_equity"),
        crypto_provider=MockPriceProvider(
            should_fail=True, name="mock_crypto", asset_class=AssetClass.CRYPTO
        ),
    )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data_service] = lambda: service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
