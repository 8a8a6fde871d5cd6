"""
Community Service Module

This module handles the communities (universities, condos, neighborhoods) that
partition ads and users: the first choice after sign-up, switching between
communities, and requests for new ones.
"""

from typing import Optional

from config import settings
from data.models import Community
from data.protocols import EntityAccessFacade
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError, NotFoundError
from utils.helpers import create_page_url
from utils.logger import get_logger

logger = get_logger(__name__)

REQUEST_TEMPLATE = """Nova solicitação de comunidade

Nome da Instituição: {name}
Cidade: {city}

Detalhes adicionais:
{details}

Solicitado por: {requester_name} ({requester_email})
"""


class CommunityService:
    """Community membership of the signed-in user."""

    def __init__(self, facade: EntityAccessFacade, session: Session, report_email: Optional[str] = None):
        self.facade = facade
        self.session = session
        self.report_email = report_email or settings.REPORT_EMAIL

    def _login(self) -> ActionResult:
        return ActionResult.login_required(
            self.session.login_url(create_page_url(settings.APP_BASE_URL, "SelectCommunity")))

    def active_communities(self, query: str = "") -> ActionResult:
        """
        List active communities, optionally filtered by name.

        Args:
            query: Case-insensitive substring of the community name.

        Returns:
            ActionResult: data is the list of Communities.
        """
        try:
            records = self.facade.entities.Community.filter({"is_active": True})
        except BackendError as e:
            logger.error(f"Failed to load communities: {e}")
            return ActionResult.failure("Erro ao carregar comunidades", data=[])

        communities = [Community.from_record(r) for r in records]
        needle = (query or "").strip().lower()
        if needle:
            communities = [c for c in communities if needle in c.name.lower()]
        return ActionResult.success(data=communities)

    def current(self) -> Optional[Community]:
        """The user's current community, or None."""
        user = self.session.user
        if user is None or not user.current_community_id:
            return None
        try:
            return Community.from_record(self.facade.entities.Community.get(user.current_community_id))
        except NotFoundError:
            logger.warning(f"Community {user.current_community_id} of user {user.id} no longer exists")
            return None
        except BackendError as e:
            logger.error(f"Failed to load community {user.current_community_id}: {e}")
            return None

    def select_initial(self, community: Optional[Community]) -> ActionResult:
        """
        First community choice after sign-up. Replaces the membership list.

        Returns:
            ActionResult: redirect points at the home page on success.
        """
        if self.session.user is None:
            return self._login()
        if community is None:
            return ActionResult.failure("Selecione uma instituição")

        try:
            record = self.facade.auth.update_me({
                "current_community_id": community.id,
                "communities": [community.id],
                "location_city": community.city,
            })
        except BackendError as e:
            logger.error(f"Failed to select community {community.id}: {e}")
            return ActionResult.failure("Erro ao selecionar comunidade")

        self._store(record, community.id, [community.id])
        logger.info(f"User {self.session.user.id} joined community {community.id}")
        return ActionResult.success("Comunidade selecionada!",
                                    redirect=create_page_url(settings.APP_BASE_URL, "Home"))

    def switch(self, community: Community) -> ActionResult:
        """Make another community current, adding it to the membership list once."""
        user = self.session.user
        if user is None:
            return self._login()

        memberships = list(user.communities)
        if community.id not in memberships:
            memberships.append(community.id)

        try:
            record = self.facade.auth.update_me({
                "current_community_id": community.id,
                "communities": memberships,
            })
        except BackendError as e:
            logger.error(f"Failed to switch to community {community.id}: {e}")
            return ActionResult.failure("Erro ao alterar comunidade")

        self._store(record, community.id, memberships)
        logger.info(f"User {user.id} switched to community {community.id}")
        return ActionResult.success(f"Comunidade alterada para {community.name}")

    def _store(self, record, community_id: str, memberships) -> None:
        if record:
            self.session.set_user(record)
        else:
            self.session.user.current_community_id = community_id
            self.session.user.communities = list(memberships)

    def request_new(self, name: str, city: str, details: str = "") -> ActionResult:
        """
        Ask the moderators to add a community.

        Args:
            name: Institution name. Required.
            city: City of the institution. Required.
            details: Free text.
        """
        user = self.session.user
        if user is None:
            return self._login()
        if not (name or "").strip() or not (city or "").strip():
            return ActionResult.failure("Por favor, preencha o nome e a cidade")

        body = REQUEST_TEMPLATE.format(
            name=name.strip(),
            city=city.strip(),
            details=(details or "").strip() or "Nenhum detalhe adicional fornecido",
            requester_name=user.full_name,
            requester_email=user.email,
        )
        try:
            self.facade.integrations.send_email(
                self.report_email, f"Solicitação de Nova Comunidade: {name.strip()}", body)
        except BackendError as e:
            logger.error(f"Failed to send community request: {e}")
            return ActionResult.failure("Erro ao enviar solicitação")

        return ActionResult.success("Solicitação enviada com sucesso!")
