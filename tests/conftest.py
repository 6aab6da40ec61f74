"""
Pytest configuration and fixtures for Crypto Risk Guard.

Record factories build scorer inputs with neutral defaults so each test only
states the fields it cares about. Fake providers stand in for the HTTP layer.
"""

import sys
import threading
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from api_client import APIClient
from models import (Category, ChainRecord, DexRecord, MarketRecord, RiskSignal,
                    SentimentRecord)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

@pytest.fixture
def make_chain_record():
    """Verified, named, mature contract with no holders or findings (score 0)."""
    def _make(**overrides):
        fields = {
            "address": "0x" + "a" * 40,
            "is_verified": True,
            "name": "Test Token",
            "symbol": "TST",
            "is_proxy": False,
            "age_days": 400,
            "holder_percentages": (),
            "findings": (),
            "transactions": None,
        }
        fields.update(overrides)
        return ChainRecord(**fields)
    return _make


@pytest.fixture
def make_market_record():
    """Mid-cap coin sitting on every neutral tier (score 50)."""
    def _make(**overrides):
        fields = {
            "coin_id": "test-coin",
            "name": "Test Coin",
            "symbol": "TST",
            "current_price": 1.0,
            "market_cap": 500_000_000,
            "market_cap_rank": 200,
            "volume_24h": 35_000_000,     # ratio 0.07
            "price_change_24h": 0.0,
            "volatility": 0.03,
            "ath_change_percentage": -50.0,
        }
        fields.update(overrides)
        return MarketRecord(**fields)
    return _make


@pytest.fixture
def make_dex_record():
    """$750K liquidity, balanced flow, flat price, two venues (score 80)."""
    def _make(**overrides):
        fields = {
            "total_liquidity_usd": 750_000,
            "total_volume_24h": 200_000,
            "buys_24h": 100,
            "sells_24h": 100,
            "price_change_24h": 0.0,
            "venue_count": 2,
            "pair_count": 2,
        }
        fields.update(overrides)
        return DexRecord(**fields)
    return _make


@pytest.fixture
def make_sentiment_record():
    def _make(**overrides):
        fields = {
            "item_count": 30,
            "sentiment": 0.0,
            "breakdown": {"positive": 30, "neutral": 40, "negative": 30},
            "engagement_rate": 5.0,
            "official_account": None,
        }
        fields.update(overrides)
        return SentimentRecord(**fields)
    return _make


@pytest.fixture
def make_signal():
    def _make(category="chain", score=50, negatives=(), positives=(), metrics=None):
        return RiskSignal(
            category=Category(category),
            score=score,
            negative_factors=negatives,
            positive_factors=positives,
            metrics=metrics or {},
        )
    return _make


# =============================================================================
# PROVIDER FIXTURES
# =============================================================================

class FakeProvider:
    """Returns a fixed record, raises a fixed error, or blocks until released."""

    def __init__(self, record=None, error=None, supports=True, block: threading.Event = None):
        self.record = record
        self.error = error
        self._supports = supports
        self.block = block
        self.calls = []

    def supports(self, identifier):
        return self._supports

    def fetch(self, identifier):
        self.calls.append(identifier)
        if self.block is not None:
            self.block.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.record


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def provider_config():
    return config.ProviderConfig(
        etherscan_api_key="test-etherscan",
        chainbase_api_key="test-chainbase",
        twitter_bearer_token="test-twitter",
    )


@pytest.fixture(autouse=True)
def fast_throttle(monkeypatch):
    """No real sleeping or shared throttle state between tests."""
    monkeypatch.setattr(APIClient, "_host_registry", {})
    monkeypatch.setattr("api_client.time.sleep", lambda s: None)
    yield


# =============================================================================
# RAW PAYLOAD FIXTURES
# =============================================================================

@pytest.fixture
def dexscreener_pairs():
    """Three pairs of one token across two DEXes, deepest pair listed second."""
    return [
        {
            "dexId": "sushiswap",
            "pairAddress": "0xpair1",
            "priceUsd": "1.01",
            "baseToken": {"name": "Test Token", "symbol": "TST"},
            "liquidity": {"usd": 200_000},
            "volume": {"h24": 50_000},
            "txns": {"h24": {"buys": 5, "sells": 5}},
            "priceChange": {"h24": 3.0},
        },
        {
            "dexId": "uniswap",
            "pairAddress": "0xpair2",
            "priceUsd": "1.00",
            "baseToken": {"name": "Test Token", "symbol": "TST"},
            "liquidity": {"usd": 900_000},
            "volume": {"h24": 400_000},
            "txns": {"h24": {"buys": 120, "sells": 80}},
            "priceChange": {"h24": 12.5},
        },
        {
            "dexId": "uniswap",
            "pairAddress": "0xpair3",
            "priceUsd": "1.02",
            "baseToken": {"name": "Test Token", "symbol": "TST"},
            "liquidity": {"usd": 100_000},
            "volume": {"h24": 50_000},
            "txns": {"h24": {"buys": 1, "sells": 1}},
            "priceChange": {"h24": -1.0},
        },
    ]


@pytest.fixture
def coingecko_market():
    return {
        "id": "uniswap",
        "symbol": "uni",
        "name": "Uniswap",
        "current_price": 7.5,
        "market_cap": 4_500_000_000,
        "market_cap_rank": 22,
        "total_volume": 180_000_000,
        "price_change_percentage_24h": -2.4,
        "price_change_percentage_7d_in_currency": 5.1,
        "ath_change_percentage": -83.0,
    }
