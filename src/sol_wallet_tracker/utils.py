"""
Utility functions for data processing and display.
"""

from typing import List, Any, Optional, Iterable
from datetime import datetime, timezone
import re
import logging

logger = logging.getLogger(__name__)

# Base58 alphabet, 32-44 characters for a 32-byte public key
_SOLANA_ADDRESS_RE = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')

# Epoch values above this are taken to be milliseconds
_MS_THRESHOLD = 1e11


def is_valid_solana_address(address: str) -> bool:
    """Check if a string looks like a base58 Solana address."""
    if not address:
        return False
    return bool(_SOLANA_ADDRESS_RE.match(address.strip()))


def normalize_address(address: Any) -> Optional[str]:
    """Trim an address; base58 is case sensitive so nothing else changes."""
    if not isinstance(address, str):
        return None
    address = address.strip()
    return address or None


def clean_token_list(tokens: Iterable[str]) -> List[str]:
    """Strip blanks and drop duplicates while keeping input order."""
    seen = set()
    cleaned = []
    for token in tokens:
        token = normalize_address(token)
        if token and token not in seen:
            seen.add(token)
            cleaned.append(token)
    return cleaned


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce API numbers (which may arrive as strings or null) to float."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an API timestamp into an aware UTC datetime.

    Accepts epoch seconds, epoch milliseconds and ISO-8601 strings
    (a trailing 'Z' included). Anything else yields None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                logger.debug(f"Unparseable timestamp: {text}")
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed

    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    if seconds > _MS_THRESHOLD:
        seconds /= 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def round_percent(part: float, whole: float) -> int:
    """Percentage rounded half up, 0 when there is nothing to divide."""
    if whole <= 0:
        return 0
    return int(part * 100.0 / whole + 0.5)


def holding_percentage(amount: float, decimals: int, total_supply: float) -> float:
    """Share of supply held, given a raw (undivided) token amount."""
    if total_supply <= 0:
        return 0.0
    try:
        balance = amount / 10.0 ** decimals
    except (OverflowError, ZeroDivisionError):
        return 0.0
    return balance / total_supply * 100.0


def format_number(number: float, decimals: int = 2) -> str:
    """Format a number with K/M/B suffixes."""
    try:
        if number == 0:
            return "0"

        num = float(number)
        sign = "-" if num < 0 else ""
        num = abs(num)

        if num >= 1_000_000_000:
            return f"{sign}{num / 1_000_000_000:.{decimals}f}B"
        elif num >= 1_000_000:
            return f"{sign}{num / 1_000_000:.{decimals}f}M"
        elif num >= 1_000:
            return f"{sign}{num / 1_000:.{decimals}f}K"
        else:
            return f"{sign}{num:.{decimals}f}"
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(f"Error formatting number {number}: {e}")
        return str(number)


def format_usd(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"${value:,.0f}"


def shorten_address(address: str) -> str:
    """Truncate an address for display."""
    if len(address) <= 10:
        return address
    return f"{address[:4]}...{address[-4:]}"
