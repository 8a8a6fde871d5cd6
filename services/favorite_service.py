"""
Favorite Service Module

This module handles saved ads. A favorite is a denormalized snapshot of the ad
(title, cover image, price) kept once per (user, ad) pair; uniqueness is
enforced here since the backend does not.
"""

from typing import List, Optional

from config import settings
from config.catalog import STATUS_ACTIVE
from data.models import Ad, Favorite
from data.protocols import EntityAccessFacade
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError
from utils.helpers import create_page_url
from utils.logger import get_logger

logger = get_logger(__name__)

ADDED_MESSAGE = "Adicionado aos favoritos"
REMOVED_MESSAGE = "Removido dos favoritos"


class FavoriteService:
    """Save and unsave ads for the signed-in user."""

    def __init__(self, facade: EntityAccessFacade, session: Session):
        self.facade = facade
        self.session = session

    def favorites(self) -> List[Favorite]:
        """
        The user's favorites, or an empty list for anonymous visitors.

        Raises:
            BackendError: If the backend call fails.
        """
        user = self.session.user
        if user is None:
            return []
        records = self.facade.entities.Favorite.filter({"user_id": user.id})
        return [Favorite.from_record(r) for r in records]

    def _find(self, ad_id: str) -> Optional[Favorite]:
        return next((f for f in self.favorites() if f.ad_id == ad_id), None)

    def is_favorited(self, ad_id: str) -> bool:
        try:
            return self._find(ad_id) is not None
        except BackendError as e:
            logger.error(f"Failed to load favorites: {e}")
            return False

    def toggle(self, ad: Ad, track_saves: bool = False) -> ActionResult:
        """
        Save the ad, or remove it if it is already saved.

        Args:
            ad: The ad to toggle.
            track_saves: Also keep the ad's saves_count in step (ad page only).

        Returns:
            ActionResult: data is True when the ad is now a favorite.
        """
        user = self.session.user
        if user is None:
            return ActionResult.login_required(self.session.login_url(
                create_page_url(settings.APP_BASE_URL, "AdDetails", id=ad.id)))

        try:
            existing = self._find(ad.id)
            if existing is not None:
                self.facade.entities.Favorite.delete(existing.id)
                if track_saves:
                    ad.saves_count = max(0, ad.saves_count - 1)
                    self.facade.entities.Ad.update(ad.id, {"saves_count": ad.saves_count})
                logger.info(f"User {user.id} removed ad {ad.id} from favorites")
                return ActionResult.success(REMOVED_MESSAGE, data=False)

            self.facade.entities.Favorite.create(Favorite.snapshot(user.id, ad))
            if track_saves:
                ad.saves_count += 1
                self.facade.entities.Ad.update(ad.id, {"saves_count": ad.saves_count})
            logger.info(f"User {user.id} saved ad {ad.id}")
            return ActionResult.success(ADDED_MESSAGE, data=True)
        except BackendError as e:
            logger.error(f"Failed to toggle favorite of ad {ad.id}: {e}")
            return ActionResult.failure("Erro ao atualizar favoritos")

    def list_favorite_ads(self) -> ActionResult:
        """
        Resolve the user's favorites against the active ads.

        Favorites whose ad is gone or no longer active are dropped; the rest
        keep the order of the favorites.

        Returns:
            ActionResult: data is the list of Ads.
        """
        if self.session.user is None:
            return ActionResult.login_required(self.session.login_url(
                create_page_url(settings.APP_BASE_URL, "Favorites")))

        try:
            favorites = self.favorites()
            if not favorites:
                return ActionResult.success(data=[])
            active = {
                ad.id: ad for ad in
                (Ad.from_record(r) for r in self.facade.entities.Ad.filter({"status": STATUS_ACTIVE}))
            }
        except BackendError as e:
            logger.error(f"Failed to load favorite ads: {e}")
            return ActionResult.failure("Erro ao carregar favoritos", data=[])

        return ActionResult.success(data=[active[f.ad_id] for f in favorites if f.ad_id in active])
