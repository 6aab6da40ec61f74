"""
Crypto Risk Guard - API Clients with Rate Limiting & Caching

Exponential backoff with jitter, thread-safe per-host rate limiting, response
caching. Failures surface as ProviderUnavailable / MalformedProviderResponse so
the orchestrator can mark the category absent.
"""
import random
import threading
import time
import urllib.parse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

import config
from errors import MalformedProviderResponse, ProviderUnavailable
from utils import get_logger

log = get_logger("api_client")


class APIClient:
    """Base API client with rate limiting, retry logic, and response caching.

    Per-host rate limiting via a class-level registry: every APIClient sharing a
    host shares ONE throttle state, so concurrent assessments cannot
    collectively exceed a provider's limit.
    """

    # host -> {"lock", "last_request", "delay", "base_delay", "consecutive_429s"}
    _host_registry = {}
    _registry_lock = threading.Lock()

    @classmethod
    def _get_host_throttle(cls, host: str) -> dict:
        """Get or create the shared throttle state for a host."""
        with cls._registry_lock:
            if host not in cls._host_registry:
                rate = config.HOST_RATE_LIMITS.get(host, config.HOST_RATE_LIMITS["_default"])
                base_delay = 60.0 / rate
                cls._host_registry[host] = {
                    "lock": threading.Lock(),
                    "last_request": 0.0,
                    "delay": base_delay,
                    "base_delay": base_delay,
                    "consecutive_429s": 0,
                }
            return cls._host_registry[host]

    def __init__(self, base_url: str, delay: float, name: str = "api",
                 headers: dict = None, cache_ttl: float = config.CACHE_TTL):
        self.base_url = base_url.rstrip("/")
        self.name = name
        self._cache = {}  # url -> (timestamp, data)
        self._cache_ttl = cache_ttl
        self._cache_lock = threading.Lock()

        self._host = urllib.parse.urlparse(self.base_url).hostname or "unknown"
        throttle = self._get_host_throttle(self._host)
        # A caller-provided delay more conservative than the host default wins
        if delay > throttle["base_delay"]:
            with throttle["lock"]:
                throttle["delay"] = delay
                throttle["base_delay"] = delay

        self.session = self._build_session(headers or {})

    def _build_session(self, headers: dict) -> requests.Session:
        session = requests.Session()
        # urllib3 retries 5xx only; 429s get our own backoff below
        retry = Retry(
            total=config.MAX_RETRIES,
            backoff_factor=config.BACKOFF_BASE,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=10)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({
            "Accept": "application/json",
            "User-Agent": "CryptoRiskGuard/1.0",
        })
        session.headers.update(headers)
        return session

    def _rate_limit(self):
        throttle = self._host_registry[self._host]
        with throttle["lock"]:
            elapsed = time.time() - throttle["last_request"]
            if elapsed < throttle["delay"]:
                time.sleep(throttle["delay"] - elapsed)
            throttle["last_request"] = time.time()

    def _backoff_429(self, attempt: int):
        """Exponential backoff with jitter for 429 rate limit errors."""
        throttle = self._host_registry[self._host]
        base_wait = throttle["delay"] * (2 ** attempt)
        jitter = random.uniform(0, base_wait * 0.3)
        wait = min(base_wait + jitter, 60)
        log.warning(f"[{self.name}] 429 rate limited (attempt {attempt+1}), "
                    f"backing off {wait:.1f}s...")
        time.sleep(wait)
        # Repeated 429s slow down every client of this host
        with throttle["lock"]:
            throttle["consecutive_429s"] += 1
            if throttle["consecutive_429s"] >= 3:
                throttle["delay"] = min(throttle["delay"] * 1.5, throttle["base_delay"] * 4)
                log.warning(f"[{self.name}] Adaptive: {self._host} delay increased "
                            f"to {throttle['delay']:.1f}s")

    def _reset_backoff(self):
        throttle = self._host_registry[self._host]
        with throttle["lock"]:
            if throttle["consecutive_429s"] > 0:
                throttle["consecutive_429s"] = 0
                throttle["delay"] = throttle["base_delay"]

    def _get_cache_key(self, url: str, params: dict = None) -> str:
        param_str = "&".join(f"{k}={v}" for k, v in sorted((params or {}).items()))
        return f"{url}?{param_str}"

    def _get_cached(self, cache_key: str):
        with self._cache_lock:
            if cache_key in self._cache:
                ts, data = self._cache[cache_key]
                if time.time() - ts < self._cache_ttl:
                    return data
                del self._cache[cache_key]
        return None

    def _set_cached(self, cache_key: str, data):
        with self._cache_lock:
            self._cache[cache_key] = (time.time(), data)

    def get(self, endpoint: str, params: dict = None, use_cache: bool = True) -> dict | list:
        """GET a JSON document.

        Raises ProviderUnavailable on transport/HTTP failure or exhausted 429
        retries, MalformedProviderResponse when the body is not JSON.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        cache_key = self._get_cache_key(url, params)

        if use_cache:
            cached = self._get_cached(cache_key)
            if cached is not None:
                return cached

        for attempt in range(config.MAX_429_RETRIES + 1):
            self._rate_limit()
            try:
                resp = self.session.get(url, params=params, timeout=config.REQUEST_TIMEOUT)
                if resp.status_code == 429:
                    if attempt < config.MAX_429_RETRIES:
                        self._backoff_429(attempt)
                        continue
                    log.error(f"[{self.name}] 429 after {config.MAX_429_RETRIES} retries: {url}")
                    raise ProviderUnavailable(self.name, f"rate limited: {url}")
                resp.raise_for_status()
            except requests.exceptions.RequestException as e:
                log.warning(f"[{self.name}] Request failed: {url} - {e}")
                raise ProviderUnavailable(self.name, str(e)) from e

            try:
                data = resp.json()
            except ValueError as e:
                raise MalformedProviderResponse(self.name, f"non-JSON body from {url}") from e
            self._reset_backoff()
            if use_cache:
                self._set_cached(cache_key, data)
            return data

        raise ProviderUnavailable(self.name, f"no response: {url}")


class EtherscanClient(APIClient):
    """Etherscan API - contract source, token info and account transactions."""

    def __init__(self, provider_config: config.ProviderConfig):
        super().__init__(provider_config.etherscan_base, config.ETHERSCAN_DELAY, "etherscan")
        self.api_key = provider_config.etherscan_api_key

    def _call(self, **params) -> list | dict | str:
        """Run one Etherscan action and return its `result` field.

        status "0" with "No transactions found" is an empty result, not an error.
        """
        if not self.api_key:
            raise ProviderUnavailable(self.name, "ETHERSCAN_API_KEY is not configured")
        data = self.get("/api", params={**params, "apikey": self.api_key})
        if not isinstance(data, dict) or "result" not in data:
            raise MalformedProviderResponse(self.name, f"unexpected payload for {params.get('action')}")
        if str(data.get("status")) != "1":
            message = str(data.get("message", ""))
            if "No transactions found" in message or "No records found" in message:
                return []
            raise MalformedProviderResponse(self.name, f"{params.get('action')}: {message or data['result']}")
        return data["result"]

    def get_source_code(self, address: str) -> dict:
        result = self._call(module="contract", action="getsourcecode", address=address)
        if not isinstance(result, list) or not result:
            raise MalformedProviderResponse(self.name, "getsourcecode returned no contract")
        return result[0]

    def get_token_info(self, address: str) -> dict:
        """Token name/symbol/supply. Empty dict when the plan or token lacks it."""
        try:
            result = self._call(module="token", action="tokeninfo", contractaddress=address)
        except MalformedProviderResponse as e:
            log.info(f"[{self.name}] tokeninfo unavailable for {address}: {e.message}")
            return {}
        if isinstance(result, list) and result:
            return result[0]
        return {}

    def get_transactions(self, address: str, limit: int = config.CHAIN_TX_HISTORY_LIMIT,
                         sort: str = "desc") -> list:
        result = self._call(module="account", action="txlist", address=address,
                            startblock=0, endblock=99999999, page=1, offset=limit, sort=sort)
        return result if isinstance(result, list) else []

    def get_creation_timestamp(self, address: str) -> int | None:
        """Timestamp of the first transaction touching the contract."""
        txs = self.get_transactions(address, limit=1, sort="asc")
        if txs:
            return int(txs[0].get("timeStamp", 0)) or None
        return None


class ChainbaseClient(APIClient):
    """Chainbase API - top token holders."""

    def __init__(self, provider_config: config.ProviderConfig):
        super().__init__(provider_config.chainbase_base, config.CHAINBASE_DELAY, "chainbase",
                         headers={"x-api-key": provider_config.chainbase_api_key})
        self.enabled = bool(provider_config.chainbase_api_key)

    def get_top_holders(self, address: str, limit: int = config.CHAIN_TOP_HOLDER_LIMIT) -> dict:
        """{"count": int, "holders": [{"wallet_address", "amount"}, ...]}."""
        if not self.enabled:
            raise ProviderUnavailable(self.name, "CHAINBASE_API_KEY is not configured")
        data = self.get("/token/top-holders", params={
            "chain_id": config.CHAINBASE_NETWORK_ID,
            "contract_address": address,
            "page": 1,
            "limit": limit,
        })
        if not isinstance(data, dict) or not isinstance(data.get("data"), (dict, list)):
            raise MalformedProviderResponse(self.name, "top-holders payload has no data")
        payload = data["data"]
        if isinstance(payload, list):
            return {"count": data.get("count", len(payload)), "holders": payload}
        return payload


class CoinGeckoClient(APIClient):
    """CoinGecko API - 30 req/min. Coin search, market snapshot and price history."""

    def __init__(self, provider_config: config.ProviderConfig):
        headers = {}
        if provider_config.coingecko_api_key:
            headers["x-cg-api-key"] = provider_config.coingecko_api_key
        super().__init__(provider_config.coingecko_base, config.COINGECKO_DELAY, "coingecko",
                         headers=headers)

    def search(self, query: str) -> list:
        data = self.get("/search", params={"query": query})
        if isinstance(data, dict):
            return data.get("coins") or []
        return []

    def get_market(self, coin_id: str) -> dict | None:
        data = self.get("/coins/markets", params={
            "vs_currency": "usd",
            "ids": coin_id,
            "order": "market_cap_desc",
            "per_page": 1,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h,7d,30d",
        })
        if isinstance(data, list) and data:
            return data[0]
        return None

    def get_price_history(self, coin_id: str, days: int = config.MARKET_HISTORY_DAYS) -> list:
        """Daily closing prices, oldest first."""
        data = self.get(f"/coins/{coin_id}/market_chart", params={
            "vs_currency": "usd",
            "days": days,
            "interval": "daily",
        })
        if not isinstance(data, dict):
            return []
        return [point[1] for point in data.get("prices") or []
                if isinstance(point, (list, tuple)) and len(point) >= 2]


class DexScreenerClient(APIClient):
    """DexScreener API - 300 req/min. Pair lookups by token address or free-text search."""

    def __init__(self, provider_config: config.ProviderConfig):
        super().__init__(provider_config.dexscreener_base, config.DEXSCREENER_DELAY, "dexscreener")

    def search_pairs(self, query: str) -> list:
        """Search for pairs matching a query string."""
        data = self.get("/latest/dex/search", params={"q": query})
        if isinstance(data, dict):
            return data.get("pairs") or []
        return []

    def get_token_pairs(self, token_address: str) -> list:
        """Every pair trading a token, across chains."""
        data = self.get(f"/latest/dex/tokens/{token_address}")
        if isinstance(data, dict):
            return data.get("pairs") or []
        return []


class TwitterClient(APIClient):
    """Twitter v2 API - recent search and user lookup (bearer token)."""

    def __init__(self, provider_config: config.ProviderConfig):
        super().__init__(provider_config.twitter_base, config.TWITTER_DELAY, "twitter",
                         headers={"Authorization": f"Bearer {provider_config.twitter_bearer_token}"})
        self.enabled = bool(provider_config.twitter_bearer_token)

    def search_recent(self, query: str, max_results: int = config.SENTIMENT_MAX_TWEETS) -> list:
        if not self.enabled:
            raise ProviderUnavailable(self.name, "TWITTER_BEARER_TOKEN is not configured")
        data = self.get("/2/tweets/search/recent", params={
            "query": f"{query} crypto -is:retweet",
            "max_results": max_results,
            "tweet.fields": "created_at,public_metrics,author_id",
        })
        if isinstance(data, dict):
            return data.get("data") or []
        return []

    def get_user(self, username: str) -> dict | None:
        if not self.enabled:
            raise ProviderUnavailable(self.name, "TWITTER_BEARER_TOKEN is not configured")
        data = self.get(f"/2/users/by/username/{username}", params={
            "user.fields": "public_metrics,verified",
        })
        if isinstance(data, dict):
            return data.get("data")
        return None
