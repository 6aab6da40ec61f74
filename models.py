"""
Crypto Risk Guard - Domain Model

Scorer input records, the per-category RiskSignal and the ComprehensiveAssessment
produced by the aggregator. Every object here is immutable once built.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

import config


class Category(str, Enum):
    CHAIN = "chain"
    SENTIMENT = "sentiment"
    MARKET = "market"
    DEX = "dex"

    @classmethod
    def ordered(cls) -> list["Category"]:
        """Fixed compilation order for factors and reports."""
        return [cls.CHAIN, cls.SENTIMENT, cls.MARKET, cls.DEX]


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def risk_level(score: float) -> RiskLevel:
    """Bucket a 0-100 score: <40 Low, 40..70 Medium, >70 High."""
    if score < config.LOW_RISK_BELOW:
        return RiskLevel.LOW
    if score > config.HIGH_RISK_ABOVE:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


# ─── Scorer Input Records ────────────────────────────────────────────────────

@dataclass(frozen=True)
class SecurityFinding:
    name: str
    description: str
    severity: Severity


@dataclass(frozen=True)
class TransactionMetrics:
    total_tx_count: int = 0
    recent_tx_count: int = 0
    unique_address_count: int = 0
    average_transfer_amount: float = 0.0
    large_tx_count_24h: int = 0


@dataclass(frozen=True)
class ChainRecord:
    """On-chain contract and holder data for an EVM token."""
    address: str
    is_verified: bool
    name: str | None = None
    symbol: str | None = None
    is_proxy: bool = False
    age_days: float | None = None
    holder_percentages: tuple = ()
    findings: tuple = ()
    transactions: TransactionMetrics | None = None


@dataclass(frozen=True)
class OfficialAccount:
    handle: str
    verified: bool = False
    followers: int = 0


@dataclass(frozen=True)
class SentimentRecord:
    """Social sentiment already reduced to a scalar and/or label shares.

    `sentiment` is in [-1, 1]; `breakdown` maps positive/neutral/negative to
    whole percentages.
    """
    item_count: int = 0
    sentiment: float | None = None
    breakdown: dict | None = None
    engagement_rate: float | None = None
    official_account: OfficialAccount | None = None


@dataclass(frozen=True)
class MarketRecord:
    coin_id: str
    name: str | None = None
    symbol: str | None = None
    current_price: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    volume_24h: float | None = None
    price_change_24h: float | None = None
    price_change_7d: float | None = None
    price_change_30d: float | None = None
    volatility: float = 0.0
    ath_change_percentage: float | None = None


@dataclass(frozen=True)
class DexRecord:
    """DEX activity aggregated across every trading pair of a token."""
    total_liquidity_usd: float = 0.0
    total_volume_24h: float = 0.0
    buys_24h: int = 0
    sells_24h: int = 0
    price_change_24h: float = 0.0
    venue_count: int = 0
    pair_count: int = 0
    primary_dex: str | None = None
    primary_pair_address: str | None = None
    price_usd: float | None = None
    name: str | None = None
    symbol: str | None = None


# ─── Scorer Output ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RiskSignal:
    """One category's normalized risk output."""
    category: Category
    score: int
    negative_factors: tuple = ()
    positive_factors: tuple = ()
    metrics: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"score {self.score} outside [0, 100]")
        object.__setattr__(self, "category", Category(self.category))
        object.__setattr__(self, "negative_factors", tuple(self.negative_factors))
        object.__setattr__(self, "positive_factors", tuple(self.positive_factors))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def level(self) -> RiskLevel:
        return risk_level(self.score)

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "score": self.score,
            "level": self.level.value,
            "negativeFactors": list(self.negative_factors),
            "positiveFactors": list(self.positive_factors),
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class CategoryDetail:
    score: int
    level: RiskLevel
    key_issues: tuple = ()
    positive_factors: tuple = ()

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "level": self.level.value,
            "keyIssues": list(self.key_issues),
            "positiveFactors": list(self.positive_factors),
        }


@dataclass(frozen=True)
class ComprehensiveAssessment:
    project_identifier: str
    timestamp: str
    overall_score: int
    overall_level: RiskLevel
    breakdown: MappingProxyType
    risk_factors: tuple
    positive_factors: tuple
    project_name: str = ""
    token_symbol: str = ""
    details: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    recommendations: tuple = ()
    risk_breakdown: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict:
        return {
            "projectIdentifier": self.project_identifier,
            "timestamp": self.timestamp,
            "overallScore": self.overall_score,
            "overallLevel": self.overall_level.value,
            "breakdown": dict(self.breakdown),
            "riskFactors": list(self.risk_factors),
            "positiveFactors": list(self.positive_factors),
            "projectName": self.project_name,
            "tokenSymbol": self.token_symbol,
            "details": {k: v.to_dict() for k, v in self.details.items()},
            "recommendations": list(self.recommendations),
            "riskBreakdown": dict(self.risk_breakdown),
        }
