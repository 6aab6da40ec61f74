"""
DEX - Decentralized Exchange Liquidity & Trading Risk

Base 50 plus a liquidity sub-score (10..90) picked from six tiers, then adjusted
for volume, buy/sell balance, 24h price moves and venue diversity.
"""
import config
from models import Category, DexRecord, RiskSignal
from stats import buy_sell_ratio, safe_ratio
from utils import clamp, format_usd, safe_float, safe_int

LIQUIDITY_FACTORS = {
    10_000: "Extremely low liquidity (<$10K) creates high vulnerability to price manipulation",
    50_000: "Very low liquidity (<$50K) suggests high risk of price manipulation",
    100_000: "Low liquidity (<$100K) may lead to high price impact on trades",
    500_000: "Moderate liquidity (<$500K) means larger trades will have notable price impact",
}


def trading_pattern(volume: float, buys: int, sells: int) -> dict:
    """Buy/sell balance of a token's 24h activity.

    `suspicious` marks one-sided flow (ratio >= 10 or <= 0.1) with any activity.
    """
    ratio = buy_sell_ratio(buys, sells)
    tx_count = buys + sells
    volume_per_tx = round(volume / tx_count, 2) if tx_count > 0 else 0.0
    suspicious = tx_count > 0 and (
        ratio >= config.DEX_SUSPICIOUS_RATIO_HIGH or ratio <= config.DEX_SUSPICIOUS_RATIO_LOW
    )
    return {
        "buySellRatio": round(ratio, 2),
        "volumePerTx": volume_per_tx,
        "suspicious": suspicious,
    }


def liquidity_tier(liquidity: float) -> tuple[float, int, str]:
    """(tier upper bound, sub-score, liquidity level) for a USD liquidity figure."""
    for upper, sub_score, level in config.DEX_LIQUIDITY_TIERS:
        if liquidity < upper:
            return upper, sub_score, level
    return config.DEX_LIQUIDITY_TIERS[-1]


class DexRiskScorer:
    category = Category.DEX

    def compute_risk(self, record: DexRecord) -> RiskSignal:
        liquidity = max(safe_float(record.total_liquidity_usd), 0.0)
        volume = max(safe_float(record.total_volume_24h), 0.0)
        buys = max(safe_int(record.buys_24h), 0)
        sells = max(safe_int(record.sells_24h), 0)
        price_change = safe_float(record.price_change_24h)
        venues = safe_int(record.venue_count)

        negatives = []
        positives = []

        # ─── Liquidity Tier ──────────────────────────────────────────────
        upper, liquidity_score, level = liquidity_tier(liquidity)
        score = config.DEX_BASE_SCORE + liquidity_score
        if upper in LIQUIDITY_FACTORS:
            negatives.append(LIQUIDITY_FACTORS[upper])
        elif level == "High":
            positives.append(f"Strong liquidity of {format_usd(liquidity)} reduces price impact risk")

        # ─── Volume ──────────────────────────────────────────────────────
        if volume < 1_000:
            score += 20
            negatives.append("Extremely low trading volume (<$1K) indicates limited market interest")
        elif volume < 10_000:
            score += 10
            negatives.append("Very low trading volume (<$10K) suggests limited market activity")
        elif volume > 1_000_000:
            score -= 10
            positives.append(f"High trading volume of {format_usd(volume)} indicates strong market interest")

        volume_liquidity = safe_ratio(volume, liquidity, default=0.0)
        if volume_liquidity < 0.05:
            negatives.append("Very low volume-to-liquidity ratio indicates stagnant trading")
        elif volume_liquidity > 1:
            positives.append("Healthy volume-to-liquidity ratio indicates active trading")

        # ─── Buy/Sell Balance ────────────────────────────────────────────
        pattern = trading_pattern(volume, buys, sells)
        ratio = buy_sell_ratio(buys, sells)
        if ratio < 0.5:
            score += 15
            negatives.append("Significantly more sells than buys in the last 24 hours")
        elif ratio > 2:
            score -= 10
            positives.append("More buys than sells in the last 24 hours")

        if pattern["suspicious"]:
            negatives.append(f"Highly imbalanced buy/sell activity (ratio {ratio:.2f}) "
                             f"suggests manipulated trading")

        # ─── Price Action ────────────────────────────────────────────────
        if price_change < -20:
            score += 10
            negatives.append(f"Sharp price decrease of {price_change:.2f}% in the last 24 hours")
        elif price_change > 50:
            score += 15
            negatives.append(f"Suspicious price increase of +{price_change:.2f}% in the last 24 hours")
        elif 10 < price_change < 50:
            positives.append(f"Positive price movement of +{price_change:.2f}% in the last 24 hours")

        # ─── Venue Diversity ─────────────────────────────────────────────
        if venues > config.DEX_VENUE_DIVERSITY:
            score -= 10
            positives.append(f"Listed on {venues} different DEXes, suggesting wider adoption")

        metrics = dict(pattern)
        metrics.update({
            "liquidityLevel": level,
            "liquidityUsd": round(liquidity, 2),
            "volume24h": round(volume, 2),
            "pairCount": safe_int(record.pair_count),
            "venueCount": venues,
        })

        return RiskSignal(
            category=self.category,
            score=int(clamp(score, 0, 100)),
            negative_factors=negatives,
            positive_factors=positives,
            metrics=metrics,
        )
