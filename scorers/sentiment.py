"""
SENTIMENT - Social Sentiment Risk

Linear inversion of an averaged sentiment value: -1 (all negative) maps to 100,
+1 (all positive) maps to 0. No discussion at all is itself informative, so
this is the one scorer that reports a neutral default instead of being absent.
"""
import config
from models import Category, RiskSignal, SentimentRecord
from utils import clamp, round_half_up, safe_float, safe_int

NO_ACTIVITY_FACTOR = "No recent Twitter activity found"


def sentiment_label(sentiment: float) -> str:
    if sentiment > config.SENTIMENT_POSITIVE_LABEL_ABOVE:
        return "positive"
    if sentiment < config.SENTIMENT_NEGATIVE_LABEL_BELOW:
        return "negative"
    return "neutral"


def _account_factors(account, negatives: list, positives: list):
    if account is None:
        return
    if account.verified:
        positives.append("Project has a verified official Twitter account")
    else:
        negatives.append("Official Twitter account is not verified")
    followers = safe_int(account.followers)
    if followers < config.SENTIMENT_FEW_FOLLOWERS:
        negatives.append("Official account has very few followers")
    elif followers > config.SENTIMENT_MANY_FOLLOWERS:
        positives.append("Official account has a large follower base")


class SentimentRiskScorer:
    category = Category.SENTIMENT

    def compute_risk(self, record: SentimentRecord) -> RiskSignal:
        item_count = safe_int(record.item_count)
        breakdown = dict(record.breakdown or {})

        if record.sentiment is None and not breakdown and item_count == 0:
            negatives = [NO_ACTIVITY_FACTOR]
            positives = []
            _account_factors(record.official_account, negatives, positives)
            return RiskSignal(
                category=self.category,
                score=config.NEUTRAL_SCORE,
                negative_factors=negatives,
                positive_factors=positives,
                metrics={
                    "sentiment": 0.0,
                    "overallSentiment": "neutral",
                    "breakdown": {"positive": 0, "neutral": 100, "negative": 0},
                    "itemCount": 0,
                },
            )

        if record.sentiment is not None:
            sentiment = safe_float(record.sentiment)
        else:
            # Derive a scalar from label shares when only those are known
            sentiment = (safe_float(breakdown.get("positive"))
                         - safe_float(breakdown.get("negative"))) / 100
        sentiment = clamp(sentiment, -1.0, 1.0)

        score = round_half_up(((1 - sentiment) / 2) * 100)

        negatives = []
        positives = []
        negative_share = safe_float(breakdown.get("negative"))
        positive_share = safe_float(breakdown.get("positive"))

        if negative_share > config.SENTIMENT_NEGATIVE_SHARE_FLAG:
            negatives.append("Majority negative sentiment on Twitter")
        if positive_share > config.SENTIMENT_POSITIVE_SHARE_FLAG:
            positives.append("Strong positive sentiment on Twitter")

        if item_count < config.SENTIMENT_LOW_VOLUME:
            negatives.append("Very low Twitter discussion volume")
        elif item_count > config.SENTIMENT_HIGH_VOLUME:
            positives.append("High volume of Twitter discussion")

        if record.engagement_rate is not None:
            engagement = safe_float(record.engagement_rate)
            if engagement < config.SENTIMENT_LOW_ENGAGEMENT:
                negatives.append("Low engagement with tweets about this project")
            elif engagement > config.SENTIMENT_HIGH_ENGAGEMENT:
                positives.append("High engagement with tweets about this project")

        _account_factors(record.official_account, negatives, positives)

        return RiskSignal(
            category=self.category,
            score=int(clamp(score, 0, 100)),
            negative_factors=negatives,
            positive_factors=positives,
            metrics={
                "sentiment": round(sentiment, 3),
                "overallSentiment": sentiment_label(sentiment),
                "breakdown": breakdown,
                "itemCount": item_count,
            },
        )
