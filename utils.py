"""
Crypto Risk Guard - Shared Utilities
"""
import json
import logging
import math
import os
from datetime import datetime, timezone


def setup_logging(level=logging.INFO):
    """Configure logging for the risk guard."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def save_json(filepath: str, data: dict | list):
    """Save data to JSON file, creating directories if needed."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)


def format_usd(amount: float) -> str:
    if amount >= 1_000_000_000:
        return f"${amount / 1_000_000_000:.2f}B"
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.2f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.1f}K"
    return f"${amount:.2f}"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def from_timestamp(ts) -> datetime | None:
    """Unix seconds (int or numeric string) to an aware datetime."""
    seconds = safe_float(ts, default=None)
    if seconds is None:
        return None
    # DexScreener reports milliseconds
    if seconds > 1e12:
        seconds /= 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def days_between(earlier: datetime, later: datetime | None = None) -> float:
    """Days elapsed from `earlier` to `later` (default: now)."""
    later = later or now_utc()
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=timezone.utc)
    return (later - earlier).total_seconds() / 86400


def safe_float(value, default=0.0) -> float:
    """Safely convert to float. NaN and infinities count as missing."""
    if value is None:
        return default
    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value, default=0) -> int:
    if value is None:
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return default


def clamp(value: float, min_val: float, max_val: float) -> float:
    return max(min_val, min(value, max_val))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, like Math.round on scores."""
    return int(math.floor(value + 0.5))
