"""
Boost Service Module

This module backs the Top Up page. It applies the entitlement transitions to
the stored user record and activates a boost as a two-step saga: the ad is
boosted first, then the user's credit is consumed. If the second write fails
the ad is restored to what it was before.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import settings
from data.models import Ad, User
from data.protocols import EntityAccessFacade
from services import boost_engine
from services.boost_engine import Entitlement
from services.results import ActionResult
from services.session import Session
from utils.exceptions import (
    AlreadyBoostedError,
    BackendError,
    BoostUnavailableError,
    NotFoundError,
    RollbackError,
)
from utils.helpers import create_page_url, to_iso, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

RENEWED_MESSAGE = "Seu Top Up foi renovado!"
ACTIVATED_MESSAGE = "Top Up ativado! Seu anúncio está visível e em destaque por 24h"
ACTIVATION_FAILED_MESSAGE = "Erro ao ativar Top Up"
ACCESS_DENIED_MESSAGE = "Acesso negado"
COMING_SOON_MESSAGE = "Em breve"


@dataclass
class TopUpView:
    """What the Top Up page shows."""
    user: User
    ad: Ad
    entitlement: Entitlement
    can_activate: bool
    time_remaining: str
    renewed: bool = False


class BoostService:
    """Top Up page operations."""

    def __init__(self, facade: EntityAccessFacade, session: Session,
                 clock: Callable[[], datetime] = utc_now):
        self.facade = facade
        self.session = session
        self.clock = clock

    def _login(self, ad_id: str) -> ActionResult:
        return ActionResult.login_required(
            self.session.login_url(create_page_url(settings.APP_BASE_URL, "TopUp", id=ad_id)))

    def _refresh_entitlement(self, user: User, now: datetime) -> Optional[str]:
        """
        Apply the lazy transitions and persist them.

        Returns:
            Optional[str]: The state the user left when a credit was granted
            and stored, or None when nothing changed.

        Raises:
            BackendError: If the user record could not be updated.
        """
        before = Entitlement.of(user)
        entitlement, patch = boost_engine.refresh(before, now)
        if patch is None:
            return None

        record = self.facade.auth.update_me(patch)
        if record:
            self.session.set_user(record)
        else:
            user.available_topups = entitlement.available_topups
            user.last_topup_reset = entitlement.last_topup_reset
        logger.info(f"Top Up credit granted to {user.id} ({before.state} -> {entitlement.state})")
        return before.state

    def _owned_ad(self, user: User, ad_id: str) -> ActionResult:
        try:
            ad = Ad.from_record(self.facade.entities.Ad.get(ad_id))
        except NotFoundError:
            return ActionResult.missing("Anúncio não encontrado")
        if ad.seller_id != user.id:
            logger.warning(f"User {user.id} tried to boost ad {ad_id} of {ad.seller_id}")
            return ActionResult.failure(ACCESS_DENIED_MESSAGE)
        return ActionResult.success(data=ad)

    def load(self, ad_id: str) -> ActionResult:
        """
        Load the Top Up page for one of the user's ads.

        Returns:
            ActionResult: data is a TopUpView. The message announces a renewed
            credit when one was granted on this visit.
        """
        user = self.session.refresh()
        if user is None:
            return self._login(ad_id)

        now = self.clock()
        try:
            left = self._refresh_entitlement(user, now)
            owned = self._owned_ad(self.session.user, ad_id)
        except BackendError as e:
            logger.error(f"Failed to load Top Up page for ad {ad_id}: {e}")
            return ActionResult.failure("Erro ao carregar Top Up")
        if not owned.ok:
            return owned

        user = self.session.user
        entitlement = Entitlement.of(user)
        # A first visit also grants a credit, but only a renewal is announced.
        renewed = left == boost_engine.COOLING
        view = TopUpView(
            user=user,
            ad=owned.data,
            entitlement=entitlement,
            can_activate=boost_engine.can_activate(entitlement, owned.data, now),
            time_remaining=self.countdown(user),
            renewed=renewed,
        )
        return ActionResult.success(RENEWED_MESSAGE if renewed else "", data=view)

    def activate(self, ad_id: str) -> ActionResult:
        """
        Boost one of the user's ads for 24 hours using the daily credit.

        Returns:
            ActionResult: data is the boosted Ad; redirect points at its page.
        """
        user = self.session.user
        if user is None:
            return self._login(ad_id)

        now = self.clock()
        try:
            owned = self._owned_ad(user, ad_id)
        except BackendError as e:
            logger.error(f"Failed to prepare Top Up of ad {ad_id}: {e}")
            return ActionResult.failure(ACTIVATION_FAILED_MESSAGE)
        if not owned.ok:
            return owned

        ad = owned.data
        # Renewal is applied in memory only; the credit write below persists it.
        entitlement, _ = boost_engine.refresh(Entitlement.of(user), now)
        try:
            boost_engine.check_activation(entitlement, ad, now)
        except (AlreadyBoostedError, BoostUnavailableError) as e:
            logger.warning(f"Top Up of ad {ad_id} rejected: {e}")
            return ActionResult.failure(str(e))

        ad_patch, user_patch = boost_engine.activation_patches(now)
        previous = {
            "is_boosted": ad.is_boosted,
            "boost_expires_at": to_iso(ad.boost_expires_at),
            "boost_package": ad.boost_package,
            "status": ad.status,
        }

        try:
            self.facade.entities.Ad.update(ad.id, ad_patch)
        except BackendError as e:
            logger.error(f"Failed to boost ad {ad.id}: {e}")
            return ActionResult.failure(ACTIVATION_FAILED_MESSAGE)

        try:
            record = self.facade.auth.update_me(user_patch)
        except BackendError as e:
            logger.error(f"Failed to consume Top Up credit of {user.id}: {e}")
            try:
                self._compensate(ad.id, previous)
            except RollbackError as rollback_error:
                logger.error(str(rollback_error), exc_info=rollback_error)
            return ActionResult.failure(ACTIVATION_FAILED_MESSAGE)

        if record:
            self.session.set_user(record)
        else:
            consumed = boost_engine.consume(now)
            user.available_topups = consumed.available_topups
            user.last_topup_reset = consumed.last_topup_reset

        boosted = Ad.from_record({**ad.to_record(), **ad_patch, "id": ad.id,
                                  "created_date": to_iso(ad.created_date)})
        logger.info(f"Ad {ad.id} boosted until {ad_patch['boost_expires_at']}")
        return ActionResult.success(
            ACTIVATED_MESSAGE,
            data=boosted,
            redirect=create_page_url(settings.APP_BASE_URL, "AdDetails", id=ad.id),
        )

    def _compensate(self, ad_id: str, previous: dict) -> None:
        """
        Restore the ad's boost fields and status after a failed credit write.

        Raises:
            RollbackError: If the ad could not be restored.
        """
        try:
            self.facade.entities.Ad.update(ad_id, previous)
        except BackendError as e:
            raise RollbackError(f"Could not restore ad {ad_id} after a failed Top Up: {e}") from e
        logger.warning(f"Top Up of ad {ad_id} rolled back")

    def countdown(self, user: Optional[User] = None) -> str:
        """Time until the user's next credit, formatted for display."""
        user = user or self.session.user
        if user is None:
            return boost_engine.AVAILABLE_NOW
        entitlement = Entitlement.of(user)
        if entitlement.state == boost_engine.READY:
            return boost_engine.AVAILABLE_NOW
        return boost_engine.format_time_remaining(boost_engine.time_remaining(entitlement, self.clock()))

    def buy_more(self) -> ActionResult:
        """Paid Top Ups are not available yet."""
        return ActionResult.failure(COMING_SOON_MESSAGE)
