"""
Scorer registry: one stateless scorer per risk category.

Hosts dispatch records through `score()` instead of importing each scorer.
"""
from models import Category, RiskSignal
from scorers.chain import ChainRiskScorer
from scorers.dex import DexRiskScorer
from scorers.market import MarketRiskScorer
from scorers.sentiment import SentimentRiskScorer

SCORERS = {
    Category.CHAIN: ChainRiskScorer(),
    Category.SENTIMENT: SentimentRiskScorer(),
    Category.MARKET: MarketRiskScorer(),
    Category.DEX: DexRiskScorer(),
}


def get_scorer(category):
    return SCORERS[Category(category)]


def score(category, record) -> RiskSignal:
    """Score `record` with the scorer registered for `category`."""
    return get_scorer(category).compute_risk(record)


__all__ = [
    "SCORERS",
    "ChainRiskScorer",
    "DexRiskScorer",
    "MarketRiskScorer",
    "SentimentRiskScorer",
    "get_scorer",
    "score",
]
