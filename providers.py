"""
Crypto Risk Guard - Data Providers

Turns raw provider payloads into the records the scorers consume. The pure
builders (security patterns, transaction metrics, holder shares, tweet
classification, pair aggregation) are separate from the fetching classes so
they can be tested without the network.
"""
import re
from datetime import datetime

import config
from api_client import (ChainbaseClient, CoinGeckoClient, DexScreenerClient,
                        EtherscanClient, TwitterClient)
from errors import MalformedProviderResponse, ProviderError
from models import (Category, ChainRecord, DexRecord, MarketRecord, OfficialAccount,
                    SecurityFinding, SentimentRecord, Severity, TransactionMetrics)
from stats import pct_change, percentage, percentage_breakdown, volatility
from utils import days_between, from_timestamp, get_logger, now_utc, safe_float, safe_int

log = get_logger("providers")

EVM_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")
WEI_PER_ETH = 10 ** 18

# Common symbols resolved without a CoinGecko search
KNOWN_COINS = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "usdt": "tether",
    "usdc": "usd-coin",
    "bnb": "binancecoin",
    "xrp": "ripple",
    "sol": "solana",
    "ada": "cardano",
    "doge": "dogecoin",
    "avax": "avalanche-2",
    "dot": "polkadot",
    "link": "chainlink",
    "matic": "matic-network",
    "shib": "shiba-inu",
    "ltc": "litecoin",
    "uni": "uniswap",
    "atom": "cosmos",
    "near": "near",
    "etc": "ethereum-classic",
    "xlm": "stellar",
}

# Official Twitter handles of well-known projects
KNOWN_TWITTER_HANDLES = {
    "bitcoin": "Bitcoin",
    "btc": "Bitcoin",
    "ethereum": "ethereum",
    "eth": "ethereum",
    "bnb": "binance",
    "binance": "binance",
    "solana": "solana",
    "sol": "solana",
    "cardano": "Cardano",
    "ada": "Cardano",
    "ripple": "Ripple",
    "xrp": "Ripple",
    "dogecoin": "dogecoin",
    "doge": "dogecoin",
    "polkadot": "Polkadot",
    "dot": "Polkadot",
    "avalanche": "avalancheavax",
    "avax": "avalancheavax",
    "shiba": "ShibaInuCoin",
    "shib": "ShibaInuCoin",
    "litecoin": "litecoin",
    "ltc": "litecoin",
    "polygon": "OfficialPolygon",
    "matic": "OfficialPolygon",
    "chainlink": "chainlink",
    "link": "chainlink",
    "uniswap": "Uniswap",
    "uni": "Uniswap",
}

POSITIVE_TERMS = {
    "bullish", "moon", "mooning", "buy", "buying", "gain", "gains", "growth", "partnership",
    "launch", "launched", "adoption", "strong", "great", "love", "profit", "breakout",
    "rally", "undervalued", "gem", "win", "winning", "upgrade", "listing", "listed",
    "support", "hodl", "ath", "amazing", "solid", "legit",
}
NEGATIVE_TERMS = {
    "bearish", "scam", "rug", "rugpull", "rugged", "hack", "hacked", "exploit", "dump",
    "dumping", "sell", "selling", "crash", "crashed", "fraud", "ponzi", "fake", "loss",
    "losses", "dead", "avoid", "warning", "honeypot", "fud", "drain", "drained",
    "scammer", "stolen", "lawsuit", "bankrupt", "panic",
}


def extract_identifier(text: str) -> str:
    """First EVM address in `text`, otherwise the stripped text itself."""
    match = EVM_ADDRESS_RE.search(text or "")
    if match:
        return match.group(0)
    return (text or "").strip()


def is_evm_address(identifier: str) -> bool:
    return bool(identifier) and len(identifier) == 42 and EVM_ADDRESS_RE.fullmatch(identifier) is not None


# ─── Chain Builders ──────────────────────────────────────────────────────────

def _has_owner_privileges(src: str) -> bool:
    return ("onlyOwner" in src or "require(msg.sender == owner" in src
            or "require(owner == msg.sender" in src)


def _has_hidden_minting(src: str) -> bool:
    return (("mint" in src and "totalSupply" not in src)
            or ("_mint(" in src and "onlyOwner" in src))


SECURITY_PATTERNS = [
    {
        "name": "Owner privileges",
        "description": "Contract has functions that only the owner can call, "
                       "potentially allowing centralized control",
        "severity": Severity.MEDIUM,
        "detect": _has_owner_privileges,
    },
    {
        "name": "Hidden minting",
        "description": "Contract allows the creation of new tokens without clear limits",
        "severity": Severity.HIGH,
        "detect": _has_hidden_minting,
    },
    {
        "name": "Fee manipulation",
        "description": "Contract fees can be changed by admin/owner after deployment",
        "severity": Severity.MEDIUM,
        "detect": lambda src: any(k in src for k in ("setFee", "changeFee", "updateFee")),
    },
    {
        "name": "Proxy pattern",
        "description": "Contract uses upgradable proxy pattern allowing logic to be changed",
        "severity": Severity.MEDIUM,
        "detect": lambda src: any(k in src for k in ("delegatecall", "upgradeability", "Proxy")),
    },
    {
        "name": "Transfer restrictions",
        "description": "Contract contains functions that can freeze or restrict token transfers",
        "severity": Severity.MEDIUM,
        "detect": lambda src: any(k in src for k in ("pausable", "blacklist", "freeze")),
    },
]


def detect_security_patterns(source_code: str) -> list[SecurityFinding]:
    """Risky patterns found in verified contract source, in table order."""
    if not source_code:
        return []
    return [
        SecurityFinding(p["name"], p["description"], p["severity"])
        for p in SECURITY_PATTERNS
        if p["detect"](source_code)
    ]


def transaction_metrics(transactions: list[dict], now: datetime = None) -> TransactionMetrics:
    """Activity summary of an Etherscan txlist (values in wei)."""
    if not transactions:
        return TransactionMetrics()
    now_ts = (now or now_utc()).timestamp()
    week_ago = now_ts - config.CHAIN_RECENT_TX_DAYS * 86400
    day_ago = now_ts - 86400

    addresses = set()
    recent = 0
    large_recent = 0
    total_eth = 0.0
    value_transfers = 0
    for tx in transactions:
        ts = safe_int(tx.get("timeStamp"))
        eth = safe_float(tx.get("value")) / WEI_PER_ETH
        if ts > week_ago:
            recent += 1
        if ts > day_ago and eth > config.CHAIN_LARGE_TX_ETH:
            large_recent += 1
        for key in ("from", "to"):
            if tx.get(key):
                addresses.add(tx[key].lower())
        if eth > 0:
            total_eth += eth
            value_transfers += 1

    return TransactionMetrics(
        total_tx_count=len(transactions),
        recent_tx_count=recent,
        unique_address_count=len(addresses),
        average_transfer_amount=round(total_eth / value_transfers, 2) if value_transfers else 0.0,
        large_tx_count_24h=large_recent,
    )


def holder_percentages(holders: list[dict], total_supply: float = 0.0) -> list[float]:
    """Percent of supply held by each listed holder.

    Uses the token's total supply when known; otherwise, or when the two are
    in different units, falls back to shares of the retrieved holdings.
    """
    amounts = [safe_float(h.get("amount")) for h in holders or []]
    if not amounts:
        return []
    if total_supply > 0:
        shares = [round(percentage(a, total_supply), 2) for a in amounts]
        if sum(shares) <= 100.5:
            return shares
    retrieved = sum(amounts)
    return [round(percentage(a, retrieved), 2) for a in amounts]


def build_chain_record(address: str, source: dict, token_info: dict = None,
                       created_ts: int = None, transactions: list = None,
                       holders: list = None, now: datetime = None) -> ChainRecord:
    token_info = token_info or {}
    source_code = source.get("SourceCode") or ""
    is_verified = bool(source_code)

    total_supply = 0.0
    if token_info.get("totalSupply"):
        decimals = safe_int(token_info.get("divisor"), default=18)
        total_supply = safe_float(token_info["totalSupply"]) / (10 ** decimals)

    age_days = None
    created = from_timestamp(created_ts) if created_ts else None
    if created:
        age_days = max(days_between(created, now), 0.0)

    return ChainRecord(
        address=address,
        is_verified=is_verified,
        name=token_info.get("tokenName") or token_info.get("name") or None,
        symbol=token_info.get("symbol") or None,
        is_proxy=bool(source.get("Implementation")),
        age_days=age_days,
        holder_percentages=tuple(holder_percentages(holders or [], total_supply)),
        findings=tuple(detect_security_patterns(source_code)) if is_verified else (),
        transactions=transaction_metrics(transactions or [], now) if transactions else None,
    )


# ─── Sentiment Builders ──────────────────────────────────────────────────────

def classify_text(text: str) -> tuple[str, float]:
    """(label, score in [-1, 1]) from positive/negative term hits."""
    words = re.findall(r"[a-z]+", (text or "").lower())
    pos = sum(1 for w in words if w in POSITIVE_TERMS)
    neg = sum(1 for w in words if w in NEGATIVE_TERMS)
    score = (pos - neg) / max(1, pos + neg)
    if score > config.SENTIMENT_POSITIVE_LABEL_ABOVE:
        return "positive", score
    if score < config.SENTIMENT_NEGATIVE_LABEL_BELOW:
        return "negative", score
    return "neutral", score


def build_sentiment_record(tweets: list[dict], user: dict = None) -> SentimentRecord:
    account = None
    if user:
        metrics = user.get("public_metrics") or {}
        account = OfficialAccount(
            handle=user.get("username", ""),
            verified=bool(user.get("verified")),
            followers=safe_int(metrics.get("followers_count")),
        )

    if not tweets:
        return SentimentRecord(item_count=0, official_account=account)

    labels = []
    scores = []
    engagement = 0
    for tweet in tweets:
        label, score = classify_text(tweet.get("text", ""))
        labels.append(label)
        scores.append(score)
        m = tweet.get("public_metrics") or {}
        engagement += (safe_int(m.get("like_count")) + safe_int(m.get("retweet_count"))
                       + safe_int(m.get("reply_count")))

    return SentimentRecord(
        item_count=len(tweets),
        sentiment=sum(scores) / len(scores),
        breakdown=percentage_breakdown(labels),
        engagement_rate=engagement / len(tweets),
        official_account=account,
    )


# ─── Market Builders ─────────────────────────────────────────────────────────

def build_market_record(market: dict, prices: list[float] = None) -> MarketRecord:
    if not isinstance(market, dict) or not market.get("id"):
        raise MalformedProviderResponse("coingecko", "market entry has no coin id")
    prices = [safe_float(p) for p in prices or []]

    change_7d = safe_float(market.get("price_change_percentage_7d_in_currency"), default=None)
    change_30d = safe_float(market.get("price_change_percentage_30d_in_currency"), default=None)
    if change_7d is None and len(prices) >= 8:
        change_7d = pct_change(prices[-8], prices[-1])
    if change_30d is None and len(prices) >= 2:
        change_30d = pct_change(prices[0], prices[-1])

    return MarketRecord(
        coin_id=market["id"],
        name=market.get("name"),
        symbol=(market.get("symbol") or "").upper() or None,
        current_price=safe_float(market.get("current_price"), default=None),
        market_cap=safe_float(market.get("market_cap"), default=None),
        market_cap_rank=safe_int(market.get("market_cap_rank"), default=None),
        volume_24h=safe_float(market.get("total_volume"), default=None),
        price_change_24h=safe_float(market.get("price_change_percentage_24h"), default=None),
        price_change_7d=change_7d,
        price_change_30d=change_30d,
        volatility=volatility(prices),
        ath_change_percentage=safe_float(market.get("ath_change_percentage"), default=None),
    )


# ─── DEX Builders ────────────────────────────────────────────────────────────

def aggregate_pairs(pairs: list[dict]) -> DexRecord:
    """Sum liquidity and volume over every pair; txns and price from the deepest pair."""
    if not pairs:
        raise MalformedProviderResponse("dexscreener", "no trading pairs found")

    ordered = sorted(pairs, key=lambda p: safe_float((p.get("liquidity") or {}).get("usd")),
                     reverse=True)
    primary = ordered[0]
    txns = ((primary.get("txns") or {}).get("h24")) or {}
    base = primary.get("baseToken") or {}

    return DexRecord(
        total_liquidity_usd=sum(safe_float((p.get("liquidity") or {}).get("usd")) for p in pairs),
        total_volume_24h=sum(safe_float((p.get("volume") or {}).get("h24")) for p in pairs),
        buys_24h=safe_int(txns.get("buys")),
        sells_24h=safe_int(txns.get("sells")),
        price_change_24h=safe_float((primary.get("priceChange") or {}).get("h24")),
        venue_count=len({p.get("dexId") for p in pairs if p.get("dexId")}),
        pair_count=len(pairs),
        primary_dex=primary.get("dexId"),
        primary_pair_address=primary.get("pairAddress"),
        price_usd=safe_float(primary.get("priceUsd"), default=None),
        name=base.get("name"),
        symbol=base.get("symbol"),
    )


# ─── Fetching Providers ──────────────────────────────────────────────────────

class ChainDataProvider:
    """Etherscan + Chainbase. Only EVM addresses can be assessed on-chain."""

    category = Category.CHAIN

    def __init__(self, provider_config: config.ProviderConfig):
        self.etherscan = EtherscanClient(provider_config)
        self.chainbase = ChainbaseClient(provider_config)

    def supports(self, identifier: str) -> bool:
        return is_evm_address(identifier)

    def fetch(self, identifier: str) -> ChainRecord:
        address = identifier
        source = self.etherscan.get_source_code(address)
        token_info = self.etherscan.get_token_info(address)

        # Optional enrichments degrade to "unknown" instead of failing the branch
        created_ts = None
        transactions = []
        holders = []
        try:
            created_ts = self.etherscan.get_creation_timestamp(address)
            transactions = self.etherscan.get_transactions(address)
        except ProviderError as e:
            log.warning(f"[chain] transaction history unavailable for {address}: {e}")

        if self.chainbase.enabled:
            try:
                holders = self.chainbase.get_top_holders(address).get("holders") or []
            except ProviderError as e:
                log.warning(f"[chain] holder list unavailable for {address}: {e}")

        return build_chain_record(address, source, token_info, created_ts, transactions, holders)


class SentimentDataProvider:
    category = Category.SENTIMENT

    def __init__(self, provider_config: config.ProviderConfig):
        self.twitter = TwitterClient(provider_config)

    def supports(self, identifier: str) -> bool:
        return True

    def fetch(self, identifier: str) -> SentimentRecord:
        tweets = self.twitter.search_recent(identifier)
        user = None
        handle = KNOWN_TWITTER_HANDLES.get(identifier.lower())
        if handle:
            try:
                user = self.twitter.get_user(handle)
            except ProviderError as e:
                log.warning(f"[sentiment] could not load @{handle}: {e}")
        return build_sentiment_record(tweets, user)


class MarketDataProvider:
    category = Category.MARKET

    def __init__(self, provider_config: config.ProviderConfig):
        self.coingecko = CoinGeckoClient(provider_config)

    def supports(self, identifier: str) -> bool:
        return True

    def resolve_coin_id(self, identifier: str) -> str:
        known = KNOWN_COINS.get(identifier.lower())
        if known:
            return known
        coins = self.coingecko.search(identifier)
        if not coins or not coins[0].get("id"):
            raise MalformedProviderResponse("coingecko", f"no coin found for '{identifier}'")
        return coins[0]["id"]

    def fetch(self, identifier: str) -> MarketRecord:
        coin_id = self.resolve_coin_id(identifier)
        market = self.coingecko.get_market(coin_id)
        if not market:
            raise MalformedProviderResponse("coingecko", f"no market data for '{coin_id}'")
        try:
            prices = self.coingecko.get_price_history(coin_id)
        except ProviderError as e:
            log.warning(f"[market] price history unavailable for {coin_id}: {e}")
            prices = []
        return build_market_record(market, prices)


class DexDataProvider:
    category = Category.DEX

    def __init__(self, provider_config: config.ProviderConfig):
        self.dexscreener = DexScreenerClient(provider_config)

    def supports(self, identifier: str) -> bool:
        return True

    def fetch(self, identifier: str) -> DexRecord:
        if is_evm_address(identifier):
            pairs = self.dexscreener.get_token_pairs(identifier)
        else:
            pairs = self.dexscreener.search_pairs(identifier)
        return aggregate_pairs(pairs)


def default_providers(provider_config: config.ProviderConfig) -> dict:
    return {
        Category.CHAIN: ChainDataProvider(provider_config),
        Category.SENTIMENT: SentimentDataProvider(provider_config),
        Category.MARKET: MarketDataProvider(provider_config),
        Category.DEX: DexDataProvider(provider_config),
    }
