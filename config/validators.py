"""
Configuration Validation for the Marketplace Client

This module contains configuration validation logic.
Kept apart from settings.py so settings stays a plain list of values.
"""

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Required environment variables
    required_vars = [
        ("BAAS_BASE_URL", settings.BAAS_BASE_URL),
        ("BAAS_APP_ID", settings.BAAS_APP_ID),
    ]

    for var_name, var_value in required_vars:
        if not var_value:
            errors.append(f"Missing required environment variable: {var_name}")

    if not settings.BAAS_ACCESS_TOKEN and not settings.BAAS_API_KEY:
        import logging
        logger = logging.getLogger(__name__)
        logger.warning("Neither BAAS_ACCESS_TOKEN nor BAAS_API_KEY is set. "
                       "Only public pages will be available.")

    if not settings.REPORT_EMAIL:
        errors.append("Missing required environment variable: REPORT_EMAIL")

    # Validate URL formats
    for name, value in (("BAAS_BASE_URL", settings.BAAS_BASE_URL), ("APP_BASE_URL", settings.APP_BASE_URL)):
        if value and not is_valid_url(value):
            errors.append(f"{name} is not a valid URL: {value}")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("HOME_PAGE_SIZE", settings.HOME_PAGE_SIZE, 1, 100),
        ("SEARCH_PAGE_SIZE", settings.SEARCH_PAGE_SIZE, 1, 100),
        ("MAX_AD_IMAGES", settings.MAX_AD_IMAGES, 1, 20),
        ("BOOST_DURATION_HOURS", settings.BOOST_DURATION_HOURS, 1, 24 * 30),
        ("TOPUP_RESET_HOURS", settings.TOPUP_RESET_HOURS, 1, 24 * 30),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate the price slider bounds
    price_min, price_max = settings.DEFAULT_PRICE_RANGE
    if price_min < 0 or price_min > price_max:
        errors.append(f"DEFAULT_PRICE_RANGE must satisfy 0 <= min <= max, got {settings.DEFAULT_PRICE_RANGE}")

    # Validate timeout and interval values are positive
    positive_settings = [
        ("REQUEST_TIMEOUT", settings.REQUEST_TIMEOUT),
        ("UNREAD_POLL_SECONDS", settings.UNREAD_POLL_SECONDS),
        ("MESSAGES_POLL_SECONDS", settings.MESSAGES_POLL_SECONDS),
        ("CONVERSATIONS_POLL_SECONDS", settings.CONVERSATIONS_POLL_SECONDS),
        ("BOOSTED_POLL_SECONDS", settings.BOOSTED_POLL_SECONDS),
        ("FEED_POLL_SECONDS", settings.FEED_POLL_SECONDS),
        ("COUNTDOWN_TICK_SECONDS", settings.COUNTDOWN_TICK_SECONDS),
    ]

    for name, value in positive_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "backend": {
            "base_url": settings.BAAS_BASE_URL,
            "app_id": settings.BAAS_APP_ID,
            "authenticated": bool(settings.BAAS_ACCESS_TOKEN),
            "api_key": bool(settings.BAAS_API_KEY),
        },
        "feed_settings": {
            "home_page_size": settings.HOME_PAGE_SIZE,
            "search_page_size": settings.SEARCH_PAGE_SIZE,
            "price_range": list(settings.DEFAULT_PRICE_RANGE),
        },
        "topup_settings": {
            "boost_hours": settings.BOOST_DURATION_HOURS,
            "reset_hours": settings.TOPUP_RESET_HOURS,
        },
        "polling": {
            "unread": settings.UNREAD_POLL_SECONDS,
            "messages": settings.MESSAGES_POLL_SECONDS,
            "conversations": settings.CONVERSATIONS_POLL_SECONDS,
            "boosted": settings.BOOSTED_POLL_SECONDS,
        },
    }
