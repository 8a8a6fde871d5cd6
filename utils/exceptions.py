"""
Custom Exception Classes for the Marketplace Client

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base exception for all marketplace client errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MarketplaceError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Backend Errors
# =============================================================================

class BackendError(MarketplaceError):
    """Base exception for errors talking to the backend service."""
    pass


class RemoteCallError(BackendError):
    """Raised when a remote call fails at the transport or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(BackendError):
    """Raised when there is no valid session for a protected operation."""
    pass


class NotFoundError(BackendError):
    """Raised when a requested record does not exist."""
    pass


# =============================================================================
# Validation Errors
# =============================================================================

class AdValidationError(MarketplaceError):
    """Raised when an ad form is incomplete or malformed.

    The message is meant to be shown to the user as-is.
    """
    pass


# =============================================================================
# Boost Errors
# =============================================================================

class BoostError(MarketplaceError):
    """Base exception for Top Up (boost) errors."""
    pass


class BoostUnavailableError(BoostError):
    """Raised when the user has no Top Up credit left in the current window."""
    pass


class AlreadyBoostedError(BoostError):
    """Raised when the target ad already carries an unexpired boost."""
    pass


class RollbackError(BoostError):
    """Raised when a compensating write could not restore the previous state."""
    pass
