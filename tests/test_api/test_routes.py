"""Tests for the read-only rankings API."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from movers.api.app import create_api_app
from movers.market_data.timeframes import ALL_TIMEFRAMES
from movers.models import (
    FundingEntry,
    FundingSection,
    GainerEntry,
    GainersSection,
    MoverTable,
    VolumeEntry,
    VolumeSection,
    VolumeTable,
    frozen_mapping,
)
from movers.store import MarketDataStore


@pytest.fixture
def store() -> MarketDataStore:
    return MarketDataStore()


@pytest.fixture
def client(store: MarketDataStore) -> TestClient:
    return TestClient(create_api_app(store))


def _commit_all(store: MarketDataStore) -> None:
    gainer = GainerEntry("PEPEUSDT", Decimal("0.0000123"), Decimal("12.5"))
    loser = GainerEntry("WIFUSDT", Decimal("2.1"), Decimal("-8.25"))
    store.commit_gainers(GainersSection(
        tables=frozen_mapping({
            tf.value: MoverTable(top_gainers=(gainer,), top_losers=(loser,)) for tf in ALL_TIMEFRAMES
        }),
        updated_at=1_704_888_000.0,
    ))

    up = VolumeEntry("SOLUSDT", Decimal("101.5"), Decimal("2500000"), Decimal("90000000"), Decimal("1.2"))
    store.commit_volume(VolumeSection(
        tables=frozen_mapping({
            tf.value: VolumeTable(top_gaining=(up,), top_losing=(), excluded_count=2)
            for tf in ALL_TIMEFRAMES
        }),
        excluded=frozenset({"ETH", "BTC"}),
    ))

    funding = FundingEntry("ORDIUSDT", Decimal("0.00075"), Decimal("0.075"), Decimal("41.2"))
    store.commit_funding(FundingSection(top_positive=(funding,), top_negative=()))


class TestLoading:
    """Endpoints before the first commit."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/gainers/5m",
            "/api/losers/1d",
            "/api/volume/gaining/1h",
            "/api/funding/negative",
            "/api/exclusions",
        ],
    )
    def test_loading_before_first_commit(self, client: TestClient, path: str) -> None:
        response = client.get(path)
        assert response.status_code == 503
        assert response.json()["status"] == "loading"

    def test_status_not_ready(self, client: TestClient) -> None:
        response = client.get("/api/status")
        assert response.status_code == 200
        assert response.json()["gainers"]["ready"] is False


class TestRankings:
    """Endpoints after every section has committed."""

    def test_gainers(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        body = client.get("/api/gainers/15m").json()

        assert body["status"] == "ok"
        assert body["timeframe"] == "15m"
        assert body["updated_at"] == 1_704_888_000.0
        assert body["entries"] == [
            {"symbol": "PEPEUSDT", "current_price": "0.0000123", "change_percent": "12.5"}
        ]

    def test_losers(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        body = client.get("/api/losers/4h").json()
        assert body["entries"][0]["change_percent"] == "-8.25"

    def test_volume(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        body = client.get("/api/volume/gaining/1d").json()

        assert body["direction"] == "gaining"
        assert body["entries"][0]["timeframe_volume"] == "2500000"
        assert client.get("/api/volume/losing/1d").json()["entries"] == []

    def test_funding(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        body = client.get("/api/funding/positive").json()
        assert body["side"] == "positive"
        assert body["entries"][0]["funding_rate_pct"] == "0.075"

    def test_exclusions_sorted(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        assert client.get("/api/exclusions").json()["excluded"] == ["BTC", "ETH"]

    def test_status_ready(self, client: TestClient, store: MarketDataStore) -> None:
        _commit_all(store)
        body = client.get("/api/status").json()
        assert all(body[name]["ready"] for name in ("gainers", "volume", "funding"))


class TestNotFound:
    """Unknown path parameters."""

    @pytest.mark.parametrize(
        "path",
        ["/api/gainers/2h", "/api/volume/sideways/1h", "/api/volume/gaining/3d", "/api/funding/flat"],
    )
    def test_unknown_parameter(self, client: TestClient, store: MarketDataStore, path: str) -> None:
        _commit_all(store)
        assert client.get(path).status_code == 404
