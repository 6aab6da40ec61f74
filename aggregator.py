"""
Crypto Risk Guard - Aggregation Engine

Combines whichever category signals are present into one ComprehensiveAssessment.
Absent categories drop out of both the numerator and the denominator of the
weighted mean; they are never scored as 0.
"""
from types import MappingProxyType

import config
from models import (Category, CategoryDetail, ComprehensiveAssessment, RiskLevel,
                    RiskSignal, risk_level)
from utils import get_logger, now_utc, round_half_up

log = get_logger("aggregator")

CATEGORY_CONCERNS = {
    Category.CHAIN: "Blockchain concerns: the on-chain analysis reveals significant technical "
                    "risks that could impact token security and stability.",
    Category.SENTIMENT: "Social media concerns: negative sentiment and concerning discussions "
                        "suggest community or public perception issues.",
    Category.MARKET: "Market concerns: price action and market metrics indicate potentially "
                     "unstable trading conditions.",
    Category.DEX: "DEX concerns: low liquidity or concerning trading patterns detected on "
                  "decentralized exchanges.",
}


def present_signals(signals: dict) -> dict[Category, RiskSignal]:
    """Normalize keys to Category and drop absent (None) entries, in fixed order."""
    normalized = {Category(k): v for k, v in (signals or {}).items()}
    return {c: normalized[c] for c in Category.ordered() if normalized.get(c) is not None}


def weighted_score(present: dict[Category, RiskSignal], weights: dict) -> int:
    """Renormalized weighted mean over the present categories."""
    total_weight = 0.0
    weighted = 0.0
    for category, signal in present.items():
        weight = weights.get(category.value, weights.get(category))
        if weight is None or weight <= 0:
            raise ValueError(f"weight for '{category.value}' must be positive, got {weight!r}")
        weighted += weight * signal.score
        total_weight += weight
    return round_half_up(weighted / total_weight)


def compile_factors(present: dict[Category, RiskSignal], caps: dict = None) -> tuple[list, list]:
    """Category-tagged factor lists, each category capped independently."""
    caps = caps or config.FACTOR_CAPS
    risk_factors = []
    positive_factors = []
    for category, signal in present.items():
        neg_cap, pos_cap = caps.get(category.value, (2, 2))
        tag = f"[{category.value}]"
        risk_factors.extend(f"{tag} {f}" for f in signal.negative_factors[:neg_cap])
        positive_factors.extend(f"{tag} {f}" for f in signal.positive_factors[:pos_cap])
    return risk_factors, positive_factors


def risk_breakdown(signals: dict) -> dict:
    """Every factor of every present category, uncapped."""
    return {
        category.value: {
            "score": signal.score,
            "level": signal.level.value,
            "riskFactors": list(signal.negative_factors),
            "positiveFactors": list(signal.positive_factors),
        }
        for category, signal in present_signals(signals).items()
    }


def generate_recommendations(level: RiskLevel, signals: dict) -> list[str]:
    recommendations = []
    if level == RiskLevel.HIGH:
        recommendations.append("HIGH RISK DETECTED - this project exhibits multiple significant "
                               "risk factors that suggest caution is warranted.")
        recommendations.append("If considering investment, allocate only a small portion of your "
                               "portfolio that you can afford to lose completely.")
    elif level == RiskLevel.MEDIUM:
        recommendations.append("MODERATE RISK DETECTED - this project has some concerning factors "
                               "balanced by positive indicators.")
        recommendations.append("Consider limiting exposure and implementing strict risk "
                               "management if investing.")
    else:
        recommendations.append("FAVORABLE RISK PROFILE - this project shows lower risk factors "
                               "than typical cryptocurrency projects.")
        recommendations.append("Lower risk is not no risk: every cryptocurrency investment "
                               "carries inherent volatility and uncertainty.")

    for category, signal in present_signals(signals).items():
        if signal.level == RiskLevel.HIGH:
            recommendations.append(CATEGORY_CONCERNS[category])

    recommendations.append("Diversify cryptocurrency holdings across multiple projects "
                           "to reduce risk exposure.")
    recommendations.append("Set stop-loss orders or clear exit points before investing.")
    recommendations.append("Treat this assessment as one part of your research; additional "
                           "due diligence is always recommended.")
    return recommendations


def compute_comprehensive_assessment(identifier: str, signals: dict, weights: dict = None, *,
                                     project_name: str = None, token_symbol: str = None,
                                     timestamp: str = None) -> ComprehensiveAssessment:
    """Combine per-category signals into one assessment.

    `signals` maps a category (Category or its value) to a RiskSignal, or to None
    when that category could not be assessed. `weights` defaults to
    config.CATEGORY_WEIGHTS; every present category needs a positive weight.
    """
    weights = weights if weights is not None else config.CATEGORY_WEIGHTS
    timestamp = timestamp or now_utc().isoformat()
    present = present_signals(signals)
    project_name = project_name or identifier
    token_symbol = token_symbol or "UNKNOWN"

    if not present:
        log.info(f"No signals available for {identifier}; reporting neutral default")
        level = risk_level(config.NEUTRAL_SCORE)
        return ComprehensiveAssessment(
            project_identifier=identifier,
            timestamp=timestamp,
            overall_score=config.NEUTRAL_SCORE,
            overall_level=level,
            breakdown=MappingProxyType({}),
            risk_factors=(config.INSUFFICIENT_DATA_FACTOR,),
            positive_factors=(),
            project_name=project_name,
            token_symbol=token_symbol,
            recommendations=tuple(generate_recommendations(level, {})),
        )

    overall = weighted_score(present, weights)
    level = risk_level(overall)
    risk_factors, positive_factors = compile_factors(present)

    details = {
        category.value: CategoryDetail(
            score=signal.score,
            level=signal.level,
            key_issues=signal.negative_factors[:config.DETAIL_FACTOR_CAP],
            positive_factors=signal.positive_factors[:config.DETAIL_FACTOR_CAP],
        )
        for category, signal in present.items()
    }

    log.info(f"Assessment for {identifier}: {overall}/100 ({level.value}) "
             f"from {', '.join(c.value for c in present)}")

    return ComprehensiveAssessment(
        project_identifier=identifier,
        timestamp=timestamp,
        overall_score=overall,
        overall_level=level,
        breakdown=MappingProxyType({c.value: s.score for c, s in present.items()}),
        risk_factors=tuple(risk_factors),
        positive_factors=tuple(positive_factors),
        project_name=project_name,
        token_symbol=token_symbol,
        details=MappingProxyType(details),
        recommendations=tuple(generate_recommendations(level, present)),
        risk_breakdown=MappingProxyType(risk_breakdown(present)),
    )
