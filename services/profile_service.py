"""
Profile Service Module

This module backs the user's own profile page (details, photo, dashboard
counts, logout) and the public profile of a seller.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from config import settings
from config.catalog import STATUS_ACTIVE, STATUS_SOLD
from data.models import Ad, Review, User
from data.protocols import EntityAccessFacade, FileLike
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError, NotFoundError
from utils.helpers import create_page_url
from utils.logger import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = ("full_name", "bio", "city", "neighborhood", "phone")


def average_rating(reviews: List[Review]) -> Decimal:
    """Mean rating rounded to one decimal place; 0.0 without reviews."""
    if not reviews:
        return Decimal("0.0")
    mean = Decimal(sum(r.rating for r in reviews)) / Decimal(len(reviews))
    return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


@dataclass
class ProfileSummary:
    """Counts shown on a profile page."""
    user: User
    ads: List[Ad] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)

    @property
    def active_count(self) -> int:
        return sum(1 for ad in self.ads if ad.status == STATUS_ACTIVE)

    @property
    def sold_count(self) -> int:
        return sum(1 for ad in self.ads if ad.status == STATUS_SOLD)

    @property
    def rating(self) -> Decimal:
        return average_rating(self.reviews)


class ProfileService:
    """The user's profile and public seller profiles."""

    def __init__(self, facade: EntityAccessFacade, session: Session):
        self.facade = facade
        self.session = session

    def _login(self) -> ActionResult:
        return ActionResult.login_required(
            self.session.login_url(create_page_url(settings.APP_BASE_URL, "Profile")))

    def update_profile(self, fields: Dict[str, Any]) -> ActionResult:
        """
        Save the editable profile fields.

        Unknown keys are ignored.
        """
        if self.session.user is None:
            return self._login()

        patch = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        try:
            record = self.facade.auth.update_me(patch)
        except BackendError as e:
            logger.error(f"Failed to save profile: {e}")
            return ActionResult.failure("Erro ao salvar perfil")

        if record:
            self.session.set_user(record)
        else:
            for key, value in patch.items():
                setattr(self.session.user, key, value)
        return ActionResult.success("Perfil atualizado!", data=self.session.user)

    def update_photo(self, file: FileLike) -> ActionResult:
        """Upload a new profile photo."""
        if self.session.user is None:
            return self._login()

        try:
            url = self.facade.integrations.upload_file(file)
            self.facade.auth.update_me({"profile_photo": url})
        except BackendError as e:
            logger.error(f"Failed to update profile photo: {e}")
            return ActionResult.failure("Erro ao atualizar foto")

        self.session.user.profile_photo = url
        return ActionResult.success("Foto atualizada!", data=url)

    def logout(self) -> ActionResult:
        self.session.clear()
        return ActionResult.success(redirect=create_page_url(settings.APP_BASE_URL, "Home"))

    def dashboard(self) -> ActionResult:
        """
        The signed-in user's own ads and reviews.

        Returns:
            ActionResult: data is a ProfileSummary.
        """
        user = self.session.user
        if user is None:
            return self._login()

        try:
            ads = self.facade.entities.Ad.filter({"seller_id": user.id})
            reviews = self.facade.entities.Review.filter({"seller_id": user.id})
        except BackendError as e:
            logger.error(f"Failed to load dashboard of {user.id}: {e}")
            return ActionResult.failure("Erro ao carregar perfil")

        return ActionResult.success(data=ProfileSummary(
            user=user,
            ads=[Ad.from_record(r) for r in ads],
            reviews=[Review.from_record(r) for r in reviews],
        ))

    def seller_profile(self, seller_id: str) -> ActionResult:
        """
        Public profile of a seller. Anyone may view it.

        Only active ads are listed, so the sold count reflects what that
        listing contains.

        Returns:
            ActionResult: data is a ProfileSummary; not_found when the seller does not exist.
        """
        try:
            seller = User.from_record(self.facade.entities.User.get(seller_id))
            ads = self.facade.entities.Ad.filter(
                {"seller_id": seller_id, "status": STATUS_ACTIVE}, "-created_date")
            reviews = self.facade.entities.Review.filter({"seller_id": seller_id}, "-created_date")
        except NotFoundError:
            return ActionResult.missing("Vendedor não encontrado")
        except BackendError as e:
            logger.error(f"Failed to load seller {seller_id}: {e}")
            return ActionResult.failure("Erro ao carregar perfil")

        return ActionResult.success(data=ProfileSummary(
            user=seller,
            ads=[Ad.from_record(r) for r in ads],
            reviews=[Review.from_record(r) for r in reviews],
        ))
