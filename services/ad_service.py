"""
Ad Service Module

This module handles the seller side of ads: publishing and editing through
validated forms, photo upload, the status toggles of "My Ads", deletion, and
the view counter bumped when someone opens an ad.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Iterable

from config import settings
from config.catalog import CATEGORIES, AD_STATUSES, STATUS_ACTIVE, STATUS_PAUSED, STATUS_SOLD
from data.models import Ad, User
from data.protocols import EntityAccessFacade, FileLike
from services.results import ActionResult
from services.session import Session
from utils.exceptions import AdValidationError, BackendError, NotFoundError
from utils.helpers import create_page_url, to_decimal
from utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Preencha todos os campos obrigatórios"
INVALID_PRICE_MESSAGE = "Informe um preço válido"
INVALID_CATEGORY_MESSAGE = "Selecione uma categoria válida"
NO_IMAGES_MESSAGE = "Adicione pelo menos uma imagem"
NOT_FOUND_MESSAGE = "Anúncio não encontrado"
ACCESS_DENIED_MESSAGE = "Acesso negado"


def too_many_images_message() -> str:
    return f"Máximo de {settings.MAX_AD_IMAGES} imagens permitidas"


@dataclass
class AdForm:
    """Values typed into the create/edit ad form."""
    title: str = ""
    description: str = ""
    price: Any = ""
    category: str = ""
    location_city: str = ""
    location_neighborhood: str = ""
    images: List[str] = field(default_factory=list)

    @classmethod
    def from_ad(cls, ad: Ad) -> "AdForm":
        """Pre-fill the edit form from a stored ad."""
        return cls(
            title=ad.title,
            description=ad.description,
            price=str(ad.price),
            category=ad.category or "",
            location_city=ad.location_city or "",
            location_neighborhood=ad.location_neighborhood or "",
            images=list(ad.images),
        )


def validate_form(form: AdForm, require_neighborhood: bool = False) -> Dict[str, Any]:
    """
    Check an ad form before anything is sent to the backend.

    The edit form requires the neighborhood while the create form does not.

    Args:
        form: The submitted form.
        require_neighborhood: Whether location_neighborhood is mandatory.

    Returns:
        Dict: The normalized field values.

    Raises:
        AdValidationError: With the message to show the user.
    """
    required = [form.title, form.description, form.price, form.category, form.location_city]
    if require_neighborhood:
        required.append(form.location_neighborhood)
    if any(value is None or str(value).strip() == "" for value in required):
        raise AdValidationError(REQUIRED_FIELDS_MESSAGE)

    price = to_decimal(form.price)
    if price is None or not price.is_finite() or price < 0:
        raise AdValidationError(INVALID_PRICE_MESSAGE)

    if form.category not in CATEGORIES:
        raise AdValidationError(INVALID_CATEGORY_MESSAGE)

    if not form.images:
        raise AdValidationError(NO_IMAGES_MESSAGE)
    if len(form.images) > settings.MAX_AD_IMAGES:
        raise AdValidationError(too_many_images_message())

    return {
        "title": form.title.strip(),
        "description": form.description.strip(),
        "price": price,
        "category": form.category,
        "location_city": form.location_city.strip(),
        "location_neighborhood": (form.location_neighborhood or "").strip(),
        "images": list(form.images),
    }


class AdService:
    """Seller-side ad operations."""

    def __init__(self, facade: EntityAccessFacade, session: Session):
        self.facade = facade
        self.session = session

    def _login(self, page: str, **params) -> ActionResult:
        return ActionResult.login_required(
            self.session.login_url(create_page_url(settings.APP_BASE_URL, page, **params)))

    def get_ad(self, ad_id: str) -> ActionResult:
        """
        Load one ad.

        Returns:
            ActionResult: data is the Ad; not_found is set when it does not exist.
        """
        try:
            return ActionResult.success(data=Ad.from_record(self.facade.entities.Ad.get(ad_id)))
        except NotFoundError:
            return ActionResult.missing(NOT_FOUND_MESSAGE)
        except BackendError as e:
            logger.error(f"Failed to load ad {ad_id}: {e}")
            return ActionResult.failure("Erro ao carregar anúncio")

    def record_view(self, ad: Ad, viewer: Optional[User] = None) -> bool:
        """
        Count a view of the ad, unless the viewer is its seller.

        Args:
            ad: The ad being opened.
            viewer: Who opens it; defaults to the session user.

        Returns:
            bool: True if the counter was incremented.
        """
        viewer = viewer or self.session.user
        if viewer is not None and viewer.id == ad.seller_id:
            return False
        try:
            self.facade.entities.Ad.update(ad.id, {"views_count": ad.views_count + 1})
            ad.views_count += 1
            return True
        except BackendError as e:
            logger.warning(f"Could not record view of ad {ad.id}: {e}")
            return False

    def upload_images(self, existing: List[str], files: Iterable[FileLike]) -> ActionResult:
        """
        Upload new photos for an ad form.

        Args:
            existing: URLs already attached to the form.
            files: The files to upload.

        Returns:
            ActionResult: data is the full list of image URLs.
        """
        files = list(files)
        if len(existing) + len(files) > settings.MAX_AD_IMAGES:
            return ActionResult.failure(too_many_images_message(), data=list(existing))

        try:
            uploaded = [self.facade.integrations.upload_file(f) for f in files]
        except BackendError as e:
            logger.error(f"Image upload failed: {e}")
            return ActionResult.failure("Erro ao enviar imagens", data=list(existing))

        return ActionResult.success(f"{len(uploaded)} imagem(s) enviada(s)", data=list(existing) + uploaded)

    def create_ad(self, form: AdForm) -> ActionResult:
        """
        Publish a new ad for the signed-in user.

        Returns:
            ActionResult: data is the created Ad; redirect points at its page.
        """
        user = self.session.user
        if user is None:
            return self._login("CreateAd")

        try:
            values = validate_form(form)
        except AdValidationError as e:
            logger.warning(f"Ad form rejected: {e}")
            return ActionResult.failure(str(e))

        ad = Ad(
            id="",
            seller_id=user.id,
            seller_name=user.full_name,
            seller_photo=user.profile_photo,
            status=STATUS_ACTIVE,
            community_id=user.current_community_id,
            **values,
        )
        try:
            record = self.facade.entities.Ad.create(ad.to_record())
        except BackendError as e:
            logger.error(f"Failed to publish ad: {e}")
            return ActionResult.failure("Erro ao publicar anúncio")

        created = Ad.from_record(record)
        logger.info(f"Ad {created.id} published by {user.id}")
        return ActionResult.success(
            "Anúncio publicado com sucesso!",
            data=created,
            redirect=create_page_url(settings.APP_BASE_URL, "AdDetails", id=created.id),
        )

    def _owned_ad(self, user: User, ad_id: str) -> ActionResult:
        result = self.get_ad(ad_id)
        if result.ok and result.data.seller_id != user.id:
            return ActionResult.failure(ACCESS_DENIED_MESSAGE)
        return result

    def edit_ad(self, ad_id: str, form: AdForm) -> ActionResult:
        """
        Save changes to one of the user's ads.

        The neighborhood is mandatory here, unlike when publishing.
        """
        user = self.session.user
        if user is None:
            return self._login("EditAd", id=ad_id)

        owned = self._owned_ad(user, ad_id)
        if not owned.ok:
            return owned

        try:
            values = validate_form(form, require_neighborhood=True)
        except AdValidationError as e:
            logger.warning(f"Ad form rejected: {e}")
            return ActionResult.failure(str(e))

        values["price"] = float(values["price"])
        try:
            record = self.facade.entities.Ad.update(ad_id, values)
        except BackendError as e:
            logger.error(f"Failed to update ad {ad_id}: {e}")
            return ActionResult.failure("Erro ao atualizar anúncio")

        return ActionResult.success(
            "Anúncio atualizado com sucesso!",
            data=Ad.from_record(record) if record else None,
            redirect=create_page_url(settings.APP_BASE_URL, "AdDetails", id=ad_id),
        )

    def set_status(self, ad_id: str, status: str) -> ActionResult:
        """Change the status of one of the user's ads."""
        if status not in AD_STATUSES:
            return ActionResult.failure(f"Status inválido: {status}")

        user = self.session.user
        if user is None:
            return self._login("MyAds")

        owned = self._owned_ad(user, ad_id)
        if not owned.ok:
            return owned

        try:
            self.facade.entities.Ad.update(ad_id, {"status": status})
        except BackendError as e:
            logger.error(f"Failed to set status of ad {ad_id} to {status}: {e}")
            return ActionResult.failure("Erro ao atualizar anúncio")

        logger.info(f"Ad {ad_id} is now {status}")
        return ActionResult.success("Anúncio atualizado")

    def pause(self, ad_id: str) -> ActionResult:
        return self.set_status(ad_id, STATUS_PAUSED)

    def activate(self, ad_id: str) -> ActionResult:
        return self.set_status(ad_id, STATUS_ACTIVE)

    def mark_sold(self, ad_id: str) -> ActionResult:
        return self.set_status(ad_id, STATUS_SOLD)

    def delete_ad(self, ad_id: str) -> ActionResult:
        """Delete one of the user's ads."""
        user = self.session.user
        if user is None:
            return self._login("MyAds")

        owned = self._owned_ad(user, ad_id)
        if not owned.ok:
            return owned

        try:
            self.facade.entities.Ad.delete(ad_id)
        except BackendError as e:
            logger.error(f"Failed to delete ad {ad_id}: {e}")
            return ActionResult.failure("Erro ao excluir anúncio")

        logger.info(f"Ad {ad_id} deleted by {user.id}")
        return ActionResult.success("Anúncio excluído")

    def my_ads(self) -> ActionResult:
        """
        List the user's ads grouped by status.

        Returns:
            ActionResult: data maps every status to its ads, newest first.
        """
        user = self.session.user
        if user is None:
            return self._login("MyAds")

        try:
            records = self.facade.entities.Ad.filter({"seller_id": user.id}, "-created_date")
        except BackendError as e:
            logger.error(f"Failed to load ads of {user.id}: {e}")
            return ActionResult.failure("Erro ao carregar anúncios")

        grouped: Dict[str, List[Ad]] = {status: [] for status in AD_STATUSES}
        for record in records:
            ad = Ad.from_record(record)
            grouped.setdefault(ad.status, []).append(ad)
        return ActionResult.success(data=grouped)
