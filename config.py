"""
Crypto Risk Guard - Central Configuration
"""
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# ─── API Endpoints & Rate Limits ─────────────────────────────────────────────

ETHERSCAN_BASE = "https://api.etherscan.io"
ETHERSCAN_RATE_LIMIT = 300  # req/min (5 req/sec free tier)
ETHERSCAN_DELAY = 60 / ETHERSCAN_RATE_LIMIT

CHAINBASE_BASE = "https://api.chainbase.online/v1"
CHAINBASE_DELAY = 0.5
CHAINBASE_NETWORK_ID = 1  # ethereum mainnet

COINGECKO_BASE = "https://api.coingecko.com/api/v3"
COINGECKO_RATE_LIMIT = 30  # req/min
COINGECKO_DELAY = 60 / COINGECKO_RATE_LIMIT  # 2s

DEXSCREENER_BASE = "https://api.dexscreener.com"
DEXSCREENER_RATE_LIMIT = 300  # req/min
DEXSCREENER_DELAY = 60 / DEXSCREENER_RATE_LIMIT  # ~0.2s

TWITTER_BASE = "https://api.twitter.com"
TWITTER_DELAY = 1.0

REQUEST_TIMEOUT = 10  # seconds
MAX_RETRIES = 3
BACKOFF_BASE = 2  # exponential backoff base
MAX_429_RETRIES = 3
CACHE_TTL = 300  # cache provider responses for 5 minutes

# Per-host rate limits (req/min), shared across all APIClient instances
HOST_RATE_LIMITS = {
    "api.etherscan.io": 300,
    "api.chainbase.online": 120,
    "api.coingecko.com": 30,
    "api.dexscreener.com": 300,
    "api.twitter.com": 60,
    "_default": 60,
}

# ─── Aggregation ─────────────────────────────────────────────────────────────

CATEGORY_WEIGHTS = {
    "chain":     0.35,
    "sentiment": 0.20,
    "market":    0.25,
    "dex":       0.20,
}

# (negative cap, positive cap) per category in the overall factor lists
FACTOR_CAPS = {
    "chain":     (3, 2),
    "sentiment": (2, 2),
    "market":    (2, 2),
    "dex":       (2, 2),
}
DETAIL_FACTOR_CAP = 3

NEUTRAL_SCORE = 50
LOW_RISK_BELOW = 40    # score < 40 -> Low
HIGH_RISK_ABOVE = 70   # score > 70 -> High
INSUFFICIENT_DATA_FACTOR = "insufficient data"

# ─── Chain (on-chain contract & holders) ─────────────────────────────────────

CHAIN_UNVERIFIED_PENALTY = 50
CHAIN_PROXY_PENALTY = 20
CHAIN_MISSING_METADATA_PENALTY = 10
CHAIN_UNKNOWN_AGE_PENALTY = 5
# (max age in days, penalty), checked in order
CHAIN_AGE_TIERS = [(7, 20), (30, 10), (90, 5)]
CHAIN_MATURE_AGE_DAYS = 365
# (threshold %, penalty), checked in order, strictly greater than
CHAIN_TOP_HOLDER_TIERS = [(50, 30), (20, 15), (10, 5)]
CHAIN_TOP10_TIERS = [(90, 20), (80, 10), (70, 5)]
CHAIN_TOP10_DISTRIBUTED_PCT = 50
CHAIN_SEVERITY_PENALTIES = {"High": 20, "Medium": 10, "Low": 5}
CHAIN_LARGE_TX_ETH = 100
CHAIN_LARGE_TX_ALERT_COUNT = 5
CHAIN_RECENT_TX_DAYS = 7
CHAIN_TX_HISTORY_LIMIT = 100
CHAIN_TOP_HOLDER_LIMIT = 10

# ─── Sentiment (social) ──────────────────────────────────────────────────────

SENTIMENT_POSITIVE_LABEL_ABOVE = 0.1
SENTIMENT_NEGATIVE_LABEL_BELOW = -0.1
SENTIMENT_NEGATIVE_SHARE_FLAG = 50     # % negative items
SENTIMENT_POSITIVE_SHARE_FLAG = 60     # % positive items
SENTIMENT_LOW_VOLUME = 10              # items
SENTIMENT_HIGH_VOLUME = 50
SENTIMENT_LOW_ENGAGEMENT = 1
SENTIMENT_HIGH_ENGAGEMENT = 10
SENTIMENT_FEW_FOLLOWERS = 1_000
SENTIMENT_MANY_FOLLOWERS = 100_000
SENTIMENT_MAX_TWEETS = 100

# ─── Market ──────────────────────────────────────────────────────────────────

MARKET_BASE_SCORE = 50
MARKET_HISTORY_DAYS = 30
MARKET_TINY_CAP_FLAG = 5_000_000
# Volatility/liquidity badges
MARKET_VOLATILITY_LOW = 0.03
MARKET_VOLATILITY_HIGH = 0.08
MARKET_LIQUIDITY_LOW_PCT = 3
MARKET_LIQUIDITY_HIGH_PCT = 15

# ─── DEX ─────────────────────────────────────────────────────────────────────

DEX_BASE_SCORE = 50
# (upper bound USD, sub-score, liquidity level), first match wins
DEX_LIQUIDITY_TIERS = [
    (10_000, 90, "Low"),
    (50_000, 70, "Low"),
    (100_000, 60, "Low"),
    (500_000, 50, "Medium"),
    (1_000_000, 30, "Medium"),
    (float("inf"), 10, "High"),
]
DEX_SUSPICIOUS_RATIO_HIGH = 10
DEX_SUSPICIOUS_RATIO_LOW = 0.1
DEX_VENUE_DIVERSITY = 3

# ─── Orchestration ───────────────────────────────────────────────────────────

ASSESS_PARALLEL_WORKERS = 4
ASSESS_BRANCH_TIMEOUT = 30  # seconds per category branch

# ─── File Paths ──────────────────────────────────────────────────────────────

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
REPORTS_DIR = os.path.join(DATA_DIR, "reports")
ENV_FILE = os.path.join(BASE_DIR, ".env")


@dataclass(frozen=True)
class ProviderConfig:
    """API keys and base URLs handed to the provider clients at construction."""
    etherscan_api_key: str = ""
    chainbase_api_key: str = ""
    coingecko_api_key: str = ""
    twitter_bearer_token: str = ""
    etherscan_base: str = ETHERSCAN_BASE
    chainbase_base: str = CHAINBASE_BASE
    coingecko_base: str = COINGECKO_BASE
    dexscreener_base: str = DEXSCREENER_BASE
    twitter_base: str = TWITTER_BASE

    @classmethod
    def from_env(cls, env_file: str | None = ENV_FILE) -> "ProviderConfig":
        """Read keys once from the environment (and a .env file if present)."""
        if env_file:
            load_dotenv(env_file)
        return cls(
            etherscan_api_key=os.environ.get("ETHERSCAN_API_KEY", ""),
            chainbase_api_key=os.environ.get("CHAINBASE_API_KEY", ""),
            coingecko_api_key=os.environ.get("COINGECKO_API_KEY", ""),
            twitter_bearer_token=os.environ.get("TWITTER_BEARER_TOKEN", ""),
            etherscan_base=os.environ.get("ETHERSCAN_BASE", ETHERSCAN_BASE),
            coingecko_base=os.environ.get("COINGECKO_BASE", COINGECKO_BASE),
            dexscreener_base=os.environ.get("DEXSCREENER_BASE", DEXSCREENER_BASE),
        )


@dataclass(frozen=True)
class AssessorConfig:
    """Orchestration settings for one RiskAssessor."""
    weights: dict = field(default_factory=lambda: dict(CATEGORY_WEIGHTS))
    categories: tuple = ("chain", "sentiment", "market", "dex")
    max_workers: int = ASSESS_PARALLEL_WORKERS
    branch_timeout: float = ASSESS_BRANCH_TIMEOUT

    def __post_init__(self):
        for category in self.categories:
            if self.weights.get(category, 0) <= 0:
                raise ValueError(f"weight for '{category}' must be positive")
