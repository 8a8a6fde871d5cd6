"""
Report Service Module

This module e-mails abuse reports about ads, users or conversations to the
moderation mailbox.
"""

from typing import Optional

from config import settings
from data.protocols import EntityAccessFacade
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError
from utils.helpers import create_page_url
from utils.logger import get_logger

logger = get_logger(__name__)

DESCRIPTION_REQUIRED_MESSAGE = "Por favor, descreva o motivo da denúncia"

REPORT_TEMPLATE = """Denúncia de {kind}
ID: {item_id}
Título: {item_title}

Denunciado por: {reporter_name} ({reporter_email})

Descrição:
{description}
"""


class ReportService:
    """Send abuse reports."""

    def __init__(self, facade: EntityAccessFacade, session: Session, report_email: Optional[str] = None):
        self.facade = facade
        self.session = session
        self.report_email = report_email or settings.REPORT_EMAIL

    def report(self, kind: str, item_id: str, item_title: Optional[str], description: str) -> ActionResult:
        """
        Report an item to the moderators.

        Args:
            kind: What is being reported ('anúncio', 'usuário', ...).
            item_id: Id of the reported item.
            item_title: Display title of the item, if any.
            description: The reporter's explanation. Required.

        Returns:
            ActionResult: The outcome to show the reporter.
        """
        user = self.session.user
        if user is None:
            return ActionResult.login_required(self.session.login_url(
                create_page_url(settings.APP_BASE_URL, "AdDetails", id=item_id)))

        if not (description or "").strip():
            return ActionResult.failure(DESCRIPTION_REQUIRED_MESSAGE)

        body = REPORT_TEMPLATE.format(
            kind=kind,
            item_id=item_id,
            item_title=item_title or "N/A",
            reporter_name=user.full_name,
            reporter_email=user.email,
            description=description.strip(),
        )
        try:
            self.facade.integrations.send_email(
                self.report_email, f"Denúncia: {kind} - {item_title or item_id}", body)
        except BackendError as e:
            logger.error(f"Failed to send report on {kind} {item_id}: {e}")
            return ActionResult.failure("Erro ao enviar denúncia")

        logger.info(f"User {user.id} reported {kind} {item_id}")
        return ActionResult.success("Denúncia enviada com sucesso")
