"""
Configuration Settings for the Marketplace Client

This module centralizes all configuration settings for the marketplace client,
including environment variables, backend credentials, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# Backend Service Settings
# =============================================================================

BAAS_BASE_URL = os.getenv("BAAS_BASE_URL", "")
BAAS_APP_ID = os.getenv("BAAS_APP_ID", "")
BAAS_ACCESS_TOKEN = os.getenv("BAAS_ACCESS_TOKEN")
BAAS_API_KEY = os.getenv("BAAS_API_KEY")
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "15"))     # Seconds per HTTP call

# Public URL of the web app, used for page links and the login redirect
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5173")

# Mailbox that receives abuse reports and community requests
REPORT_EMAIL = os.getenv("REPORT_EMAIL", "")

# =============================================================================
# Feed Settings
# =============================================================================

DEFAULT_PRICE_RANGE = (0, 50000)     # Inclusive price bounds of the search slider
HOME_PAGE_SIZE = 20                  # Ads per page on the home feed
SEARCH_PAGE_SIZE = 20                # Ads per page on the search results

# =============================================================================
# Ad Settings
# =============================================================================

MAX_AD_IMAGES = 10                   # Maximum number of photos per ad

# =============================================================================
# Top Up (Boost) Settings
# =============================================================================

BOOST_DURATION_HOURS = 24            # How long a boost keeps an ad featured
BOOST_PACKAGE = "24h"                # Package label stored on the ad
TOPUP_RESET_HOURS = 24               # Rolling window for the free daily credit

# =============================================================================
# Polling Settings
# =============================================================================

UNREAD_POLL_SECONDS = 10             # Unread conversations badge
MESSAGES_POLL_SECONDS = 3            # Open chat thread
CONVERSATIONS_POLL_SECONDS = 15      # Conversation list
BOOSTED_POLL_SECONDS = 30            # Boosted carousel
FEED_POLL_SECONDS = 30               # Home feed
COUNTDOWN_TICK_SECONDS = 1           # Top Up countdown display


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    from config.validators import validate_settings as _validate
    return _validate()


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    from config.validators import get_config_summary as _summary
    return _summary()
