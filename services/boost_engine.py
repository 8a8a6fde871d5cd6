"""
Boost Entitlement Engine

This module decides whether a user may activate a 24-hour Top Up (boost) on
one of their ads, and how long they must wait otherwise.

Each user holds at most one free credit per rolling window:

    UNINITIALIZED --first look--> READY --activate--> COOLING
                                    ^                    |
                                    +---window elapsed---+

Transitions are evaluated lazily whenever the user record is read; nothing
runs in the background. The functions here are pure: they return the patches
to persist and leave the remote writes to the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple

from config import settings
from config.catalog import STATUS_ACTIVE
from data.models import Ad, User
from utils.exceptions import AlreadyBoostedError, BoostUnavailableError
from utils.helpers import to_iso, utc_now

UNINITIALIZED = "uninitialized"
READY = "ready"
COOLING = "cooling"

AVAILABLE_NOW = "Disponível agora"
ALREADY_BOOSTED_MESSAGE = "Este anúncio já está em destaque!"
NO_TOPUPS_MESSAGE = "Você não tem top ups disponíveis. Aguarde 24 horas!"


@dataclass
class Entitlement:
    """A user's Top Up counters."""
    available_topups: Optional[int]
    last_topup_reset: Optional[datetime]

    @classmethod
    def of(cls, user: User) -> "Entitlement":
        return cls(available_topups=user.available_topups,
                   last_topup_reset=user.last_topup_reset)

    @property
    def state(self) -> str:
        if self.available_topups is None:
            return UNINITIALIZED
        return READY if self.available_topups > 0 else COOLING

    def window(self) -> timedelta:
        return timedelta(hours=settings.TOPUP_RESET_HOURS)


def refresh(entitlement: Entitlement, now: Optional[datetime] = None) -> Tuple[Entitlement, Optional[Dict[str, Any]]]:
    """
    Apply the lazy transitions for one observation of the user record.

    An uninitialized user is granted a credit. A cooling user whose window has
    elapsed (or who has no reset timestamp at all) is granted a new one.

    Args:
        entitlement: The counters as read from the user record.
        now: Reference time (defaults to the current time).

    Returns:
        Tuple: (updated entitlement, user patch to persist or None if unchanged)
    """
    now = now or utc_now()
    state = entitlement.state

    if state == UNINITIALIZED:
        granted = Entitlement(available_topups=1, last_topup_reset=now)
        return granted, {"available_topups": 1, "last_topup_reset": to_iso(now)}

    if state == COOLING:
        last = entitlement.last_topup_reset
        if last is None or now - last >= entitlement.window():
            granted = Entitlement(available_topups=1, last_topup_reset=now)
            return granted, {"available_topups": 1, "last_topup_reset": to_iso(now)}

    return entitlement, None


def check_activation(entitlement: Entitlement, ad: Ad, now: Optional[datetime] = None) -> None:
    """
    Verify that a boost may be activated on the ad right now.

    The ad check comes first: an ad with an unexpired boost is rejected
    whatever the user's credit.

    Raises:
        AlreadyBoostedError: The ad is boosted and its boost has not expired.
        BoostUnavailableError: The user has no credit in the current window.
    """
    now = now or utc_now()
    if ad.boost_active(now):
        raise AlreadyBoostedError(ALREADY_BOOSTED_MESSAGE)
    if entitlement.state != READY:
        raise BoostUnavailableError(NO_TOPUPS_MESSAGE)


def can_activate(entitlement: Entitlement, ad: Ad, now: Optional[datetime] = None) -> bool:
    """True when check_activation would pass."""
    try:
        check_activation(entitlement, ad, now)
    except (AlreadyBoostedError, BoostUnavailableError):
        return False
    return True


def time_remaining(entitlement: Entitlement, now: Optional[datetime] = None) -> Optional[timedelta]:
    """
    Time left until the next credit, or None when there is no reset timestamp.

    May be zero or negative once the window has elapsed.
    """
    if entitlement.last_topup_reset is None:
        return None
    now = now or utc_now()
    return entitlement.last_topup_reset + entitlement.window() - now


def format_time_remaining(remaining: Optional[timedelta]) -> str:
    """
    Render a countdown as '{hours}h {minutes}m {seconds}s'.

    Non-positive or unknown durations read 'Disponível agora'.
    """
    if remaining is None:
        return AVAILABLE_NOW
    total = int(remaining.total_seconds())
    if total <= 0:
        return AVAILABLE_NOW
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h {minutes}m {seconds}s"


def activation_patches(now: Optional[datetime] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Build the two writes of a boost activation.

    Returns:
        Tuple: (ad patch, user patch)
    """
    now = now or utc_now()
    expires = now + timedelta(hours=settings.BOOST_DURATION_HOURS)
    ad_patch = {
        "is_boosted": True,
        "boost_expires_at": to_iso(expires),
        "boost_package": settings.BOOST_PACKAGE,
        "status": STATUS_ACTIVE,
    }
    user_patch = {
        "available_topups": 0,
        "last_topup_reset": to_iso(now),
    }
    return ad_patch, user_patch


def consume(now: Optional[datetime] = None) -> Entitlement:
    """The entitlement right after a successful activation."""
    return Entitlement(available_topups=0, last_topup_reset=now or utc_now())
