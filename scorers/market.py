"""
MARKET - Price, Liquidity & Volatility Risk

Deviation from a neutral prior of 50: capitalization, rank, turnover,
volatility and distance from the all-time high each nudge the score up or down.
"""
import config
from models import Category, MarketRecord, RiskSignal
from stats import safe_ratio
from utils import clamp, safe_float, safe_int

# (predicate, adjustment) tables, first match wins
MARKET_CAP_TIERS = [
    (lambda v: v > 10_000_000_000, -15),
    (lambda v: v > 1_000_000_000, -10),
    (lambda v: v < 10_000_000, 15),
    (lambda v: v < 100_000_000, 5),
]

# >1000 is checked before >500 so the outermost tier is reachable
RANK_TIERS = [
    (lambda r: r <= 10, -15),
    (lambda r: r <= 50, -10),
    (lambda r: r <= 100, -5),
    (lambda r: r > 1000, 15),
    (lambda r: r > 500, 10),
]

LIQUIDITY_RATIO_TIERS = [
    (lambda x: x > 0.2, -10),
    (lambda x: x > 0.1, -5),
    (lambda x: x < 0.02, 15),
    (lambda x: x < 0.05, 5),
]

VOLATILITY_TIERS = [
    (lambda v: v > 0.10, 15),
    (lambda v: v > 0.05, 5),
    (lambda v: v < 0.02, -5),
]

ATH_TIERS = [
    (lambda a: a > -20, -5),
    (lambda a: a < -80, 5),
]


def _tier_adjustment(value, tiers) -> int:
    if value is None:
        return 0
    for predicate, adjustment in tiers:
        if predicate(value):
            return adjustment
    return 0


def volatility_level(volatility: float) -> str:
    if volatility < config.MARKET_VOLATILITY_LOW:
        return "Low"
    if volatility > config.MARKET_VOLATILITY_HIGH:
        return "High"
    return "Medium"


def liquidity_level(liquidity_ratio: float | None) -> str:
    if liquidity_ratio is None:
        return "Unknown"
    pct = liquidity_ratio * 100
    if pct < config.MARKET_LIQUIDITY_LOW_PCT:
        return "Low"
    if pct > config.MARKET_LIQUIDITY_HIGH_PCT:
        return "High"
    return "Medium"


class MarketRiskScorer:
    category = Category.MARKET

    def compute_risk(self, record: MarketRecord) -> RiskSignal:
        market_cap = safe_float(record.market_cap, default=None)
        rank = safe_int(record.market_cap_rank, default=None) or None
        volume = safe_float(record.volume_24h, default=None)
        volatility = max(safe_float(record.volatility), 0.0)
        ath_change = safe_float(record.ath_change_percentage, default=None)
        liquidity_ratio = safe_ratio(volume, market_cap)

        score = config.MARKET_BASE_SCORE
        score += _tier_adjustment(market_cap, MARKET_CAP_TIERS)
        score += _tier_adjustment(rank, RANK_TIERS)
        score += _tier_adjustment(liquidity_ratio, LIQUIDITY_RATIO_TIERS)
        score += _tier_adjustment(volatility, VOLATILITY_TIERS)
        score += _tier_adjustment(ath_change, ATH_TIERS)

        negatives = []
        positives = []

        if market_cap is not None and market_cap < config.MARKET_TINY_CAP_FLAG:
            negatives.append("Very low market capitalization (<$5M) indicates higher risk")
        if liquidity_ratio is not None and liquidity_ratio < 0.02:
            negatives.append("Low trading volume relative to market cap may cause price slippage")
        if volatility > 0.1:
            negatives.append("Extremely high price volatility")
        if rank is not None and rank > 1000:
            negatives.append("Very low market cap ranking")
        if ath_change is not None and ath_change < -90:
            negatives.append("Price is down over 90% from all-time high")

        if market_cap is not None and market_cap > 1_000_000_000:
            positives.append("Large market capitalization (>$1B) suggests established project")
        if rank is not None and rank <= 50:
            positives.append("Top 50 cryptocurrency by market cap")
        if liquidity_ratio is not None and liquidity_ratio > 0.15:
            positives.append("High trading volume indicates strong market interest")
        if volatility < 0.02:
            positives.append("Low price volatility suggests price stability")

        change_24h = safe_float(record.price_change_24h)
        if change_24h > 0:
            trend = "uptrend"
        elif change_24h < 0:
            trend = "downtrend"
        else:
            trend = "sideways"

        return RiskSignal(
            category=self.category,
            score=int(clamp(score, 0, 100)),
            negative_factors=negatives,
            positive_factors=positives,
            metrics={
                "volatility": round(volatility, 4),
                "volatilityLevel": volatility_level(volatility),
                "liquidityRatio": None if liquidity_ratio is None else round(liquidity_ratio, 4),
                "liquidityLevel": liquidity_level(liquidity_ratio),
                "priceTrend": trend,
                "priceChange7d": record.price_change_7d,
                "priceChange30d": record.price_change_30d,
            },
        )
