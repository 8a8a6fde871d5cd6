"""
Helper Utility Module

This module provides various helper functions used throughout the marketplace client.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Any, Union
from datetime import datetime, timezone
from urllib.parse import urlparse, urlencode


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp coming from the backend.

    Accepts ISO-8601 strings (with or without a trailing 'Z') and datetime
    objects. Naive values are taken to be UTC.

    Args:
        value: The raw timestamp value.

    Returns:
        Optional[datetime]: An aware datetime, or None if the value is empty or unparseable.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize a datetime for the backend.

    Args:
        value: The datetime to serialize.

    Returns:
        Optional[str]: ISO-8601 string in UTC, or None.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Convert a raw numeric value to Decimal.

    Args:
        value: The value to convert (int, float, str or Decimal).
        default: Value returned when conversion fails.

    Returns:
        Optional[Decimal]: The converted value or the default.
    """
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value).strip().replace(',', '.'))
    except (InvalidOperation, ValueError):
        return default


def format_price(price: Union[Decimal, float, int, None]) -> str:
    """
    Format a price in Brazilian reais, e.g. 'R$ 4.000,00'.

    Args:
        price: The price to format.

    Returns:
        str: The formatted price.
    """
    amount = Decimal(str(price or 0))
    text = f"{amount:,.2f}"
    # swap US separators for pt-BR ones
    text = text.replace(',', '_').replace('.', ',').replace('_', '.')
    return f"R$ {text}"


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def create_page_url(base_url: str, page: str, **params: Any) -> str:
    """
    Build the URL of an application page, e.g. 'AdDetails?id=42'.

    Args:
        base_url: The application base URL.
        page: The page name.
        **params: Query parameters; None values are dropped.

    Returns:
        str: The page URL.
    """
    url = f"{base_url.rstrip('/')}/{page}"
    query = {k: v for k, v in params.items() if v is not None}
    if query:
        url += "?" + urlencode(query)
    return url


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated
