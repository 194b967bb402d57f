"""Unit tests for PriceCacheService."""

from decimal import Decimal

from integrations.market_data_protocol import AssetClass
from models import CachedPrice
from services.market_data_service import MarketDataService
from services.price_cache_service import PriceCacheService
from tests.fixtures.mocks import MockPriceProvider


def _failing_service():
    return MarketDataService(
        provider=MockPriceProvider(should_fail=True, name="mock_equity"),
        crypto_provider=MockPriceProvider(
            should_fail=True, name="mock_crypto", asset_class=AssetClass.CRYPTO
        ),
    )


class TestPriceTableStorage:
    def test_load_empty(self, db):
        assert PriceCacheService.load_price_table(db) == {}
        assert PriceCacheService.last_fetched_at(db) is None

    def test_load_seeded(self, db, cached_prices):
        assert PriceCacheService.load_price_table(db) == {
            "AAPL": Decimal("140.00"),
            "BTC": Decimal("40000.00"),
        }
        assert PriceCacheService.last_fetched_at(db) is not None

    def test_save_inserts_and_updates(self, db, cached_prices):
        written = PriceCacheService.save_price_table(
            db,
            {"AAPL": Decimal("150.25"), "MSFT": Decimal("380.50")},
            sources={"AAPL": "stooq", "MSFT": "stooq"},
        )
        db.commit()

        assert written == 2
        assert PriceCacheService.load_price_table(db) == {
            "AAPL": Decimal("150.25"),
            "BTC": Decimal("40000.00"),
            "MSFT": Decimal("380.50"),
        }
        assert db.get(CachedPrice, "MSFT").source == "stooq"

    def test_save_empty_is_noop(self, db):
        assert PriceCacheService.save_price_table(db, {}) == 0
        assert db.query(CachedPrice).count() == 0


class TestRefresh:
    def test_success_caches_prices(self, db, market_data_service):
        snapshot = PriceCacheService.refresh(db, market_data_service, ["AAPL", "BTC"])
        db.commit()

        assert snapshot.stale is False
        assert snapshot.prices == {
            "AAPL": Decimal("150.25"),
            "BTC": Decimal("42000.00"),
        }
        assert snapshot.fetched_at is not None
        assert db.get(CachedPrice, "AAPL").source == "mock_equity"
        assert db.get(CachedPrice, "BTC").source == "mock_crypto"

    def test_total_failure_falls_back_to_cache(self, db, cached_prices):
        snapshot = PriceCacheService.refresh(db, _failing_service(), ["AAPL", "BTC", "MSFT"])

        assert snapshot.stale is True
        assert snapshot.prices == {
            "AAPL": Decimal("140.00"),
            "BTC": Decimal("40000.00"),
        }
        assert snapshot.missing_symbols == {"MSFT"}
        assert {s.provider_name for s in snapshot.statuses} == {"mock_equity", "mock_crypto"}
        assert all(not s.ok for s in snapshot.statuses)

    def test_total_failure_with_empty_cache(self, db):
        snapshot = PriceCacheService.refresh(db, _failing_service(), ["AAPL"])

        assert snapshot.stale is True
        assert snapshot.prices == {}
        assert snapshot.missing_symbols == {"AAPL"}

    def test_partial_failure_not_patched_from_cache(self, db, cached_prices, equity_provider):
        service = MarketDataService(
            provider=equity_provider,
            crypto_provider=MockPriceProvider(
                should_fail=True, name="mock_crypto", asset_class=AssetClass.CRYPTO
            ),
        )

        snapshot = PriceCacheService.refresh(db, service, ["AAPL", "BTC"])

        assert snapshot.stale is False
        assert snapshot.prices == {"AAPL": Decimal("150.25")}
        assert snapshot.missing_symbols == {"BTC"}
        # The failed symbol keeps its last-known cached value
        assert db.get(CachedPrice, "BTC").price == Decimal("40000.00")

    def test_unrecognized_reported(self, db, market_data_service):
        snapshot = PriceCacheService.refresh(db, market_data_service, ["AAPL", "BRK.B"])

        assert snapshot.unrecognized == {"BRK.B"}
        assert "BRK.B" not in snapshot.prices

    def test_nothing_to_fetch(self, db, equity_provider, market_data_service):
        snapshot = PriceCacheService.refresh(db, market_data_service, [])

        assert snapshot.stale is False
        assert snapshot.prices == {}
        assert equity_provider.calls == []
