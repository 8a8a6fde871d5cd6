"""
Chat Service Module

This module handles buyer/seller conversations about an ad: opening a thread
from the ad page, sending text and photo messages, read receipts through the
per-participant unread counters, the conversation list and the unread badge.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

from config import settings
from data.models import Ad, Conversation, Message, User
from data.protocols import EntityAccessFacade, FileLike
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError, NotFoundError
from utils.helpers import create_page_url, to_iso, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

IMAGE_MESSAGE = "📷 Imagem"
CONVERSATION_NOT_FOUND_MESSAGE = "Conversa não encontrada"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _counter_of_other_party(conversation: Conversation, user_id: str) -> str:
    return "unread_seller" if conversation.is_buyer(user_id) else "unread_buyer"


class ChatService:
    """Conversations and messages of the signed-in user."""

    def __init__(self, facade: EntityAccessFacade, session: Session,
                 clock: Callable[[], datetime] = utc_now):
        self.facade = facade
        self.session = session
        self.clock = clock

    def _login(self, page: str, **params) -> ActionResult:
        return ActionResult.login_required(
            self.session.login_url(create_page_url(settings.APP_BASE_URL, page, **params)))

    # =========================================================================
    # Conversations
    # =========================================================================

    def start_conversation(self, ad: Ad) -> ActionResult:
        """
        Open the thread between the signed-in buyer and the ad's seller.

        Counts a chat click on the ad, then reuses the buyer's existing thread
        about the ad or creates a new one.

        Returns:
            ActionResult: data is the Conversation; redirect points at the chat page.
        """
        user = self.session.user
        if user is None:
            return self._login("AdDetails", id=ad.id)
        if user.id == ad.seller_id:
            return ActionResult.failure("Você não pode conversar com você mesmo")

        try:
            self.facade.entities.Ad.update(ad.id, {"chat_clicks": ad.chat_clicks + 1})
            ad.chat_clicks += 1

            existing = self.facade.entities.Conversation.filter({"ad_id": ad.id, "buyer_id": user.id})
            if existing:
                conversation = Conversation.from_record(existing[0])
            else:
                record = self.facade.entities.Conversation.create(self._new_conversation(ad, user))
                conversation = Conversation.from_record(record)
                logger.info(f"Conversation {conversation.id} opened on ad {ad.id} by {user.id}")
        except BackendError as e:
            logger.error(f"Failed to open conversation on ad {ad.id}: {e}")
            return ActionResult.failure("Erro ao iniciar conversa")

        return ActionResult.success(
            data=conversation,
            redirect=create_page_url(settings.APP_BASE_URL, "Chat", id=conversation.id),
        )

    def _new_conversation(self, ad: Ad, buyer: User) -> dict:
        return {
            "ad_id": ad.id,
            "ad_title": ad.title,
            "ad_image": ad.cover_image,
            "ad_price": float(ad.price),
            "buyer_id": buyer.id,
            "buyer_name": buyer.full_name,
            "buyer_photo": buyer.profile_photo,
            "seller_id": ad.seller_id,
            "seller_name": ad.seller_name,
            "seller_photo": ad.seller_photo,
            "last_message": "",
            "last_message_at": to_iso(self.clock()),
            "unread_buyer": 0,
            "unread_seller": 0,
        }

    def get_conversation(self, conversation_id: str) -> ActionResult:
        """
        Load one conversation the user takes part in.

        Returns:
            ActionResult: data is the Conversation; not_found when absent.
        """
        user = self.session.user
        if user is None:
            return self._login("Chat", id=conversation_id)
        try:
            conversation = Conversation.from_record(self.facade.entities.Conversation.get(conversation_id))
        except NotFoundError:
            return ActionResult.missing(CONVERSATION_NOT_FOUND_MESSAGE)
        except BackendError as e:
            logger.error(f"Failed to load conversation {conversation_id}: {e}")
            return ActionResult.failure("Erro ao carregar conversa")

        if user.id not in (conversation.buyer_id, conversation.seller_id):
            return ActionResult.missing(CONVERSATION_NOT_FOUND_MESSAGE)
        return ActionResult.success(data=conversation)

    def list_conversations(self, query: str = "") -> ActionResult:
        """
        The user's threads as buyer and as seller, most recent first.

        Args:
            query: Case-insensitive substring of the other party's name or the ad title.

        Returns:
            ActionResult: data is the list of Conversations.
        """
        user = self.session.user
        if user is None:
            return self._login("Messages")

        try:
            as_buyer = self.facade.entities.Conversation.filter({"buyer_id": user.id})
            as_seller = self.facade.entities.Conversation.filter({"seller_id": user.id})
        except BackendError as e:
            logger.error(f"Failed to load conversations: {e}")
            return ActionResult.failure("Erro ao carregar conversas", data=[])

        merged: List[Conversation] = []
        seen = set()
        for record in as_buyer + as_seller:
            conversation = Conversation.from_record(record)
            if conversation.id not in seen:
                seen.add(conversation.id)
                merged.append(conversation)
        merged.sort(key=lambda c: c.last_message_at or _OLDEST, reverse=True)

        needle = (query or "").strip().lower()
        if needle:
            merged = [
                c for c in merged
                if needle in (c.other_party_name(user.id) or "").lower()
                or needle in (c.ad_title or "").lower()
            ]
        return ActionResult.success(data=merged)

    def unread_count(self) -> int:
        """
        Number of threads with unread messages for the user (the nav badge).

        Returns 0 for anonymous visitors and when the backend call fails.
        """
        user = self.session.user
        if user is None:
            return 0
        try:
            records = self.facade.entities.Conversation.filter(
                {"$or": [{"buyer_id": user.id}, {"seller_id": user.id}]})
        except BackendError as e:
            logger.error(f"Failed to count unread conversations: {e}")
            return 0
        return sum(1 for r in records if Conversation.from_record(r).unread_for(user.id) > 0)

    # =========================================================================
    # Messages
    # =========================================================================

    def messages(self, conversation_id: str) -> ActionResult:
        """
        The thread's messages, oldest first. Only participants may read them.

        Returns:
            ActionResult: data is the list of Messages.
        """
        access = self.get_conversation(conversation_id)
        if not access.ok:
            return access
        try:
            records = self.facade.entities.Message.filter(
                {"conversation_id": conversation_id}, "created_date")
        except BackendError as e:
            logger.error(f"Failed to load messages of {conversation_id}: {e}")
            return ActionResult.failure("Erro ao carregar mensagens", data=[])

        items = [Message.from_record(r) for r in records]
        items.sort(key=lambda m: m.created_date or _OLDEST)
        return ActionResult.success(data=items)

    def _append(self, conversation: Conversation, user: User, content: str,
                image_url: Optional[str] = None) -> Message:
        payload = {
            "conversation_id": conversation.id,
            "sender_id": user.id,
            "sender_name": user.full_name,
            "content": content,
        }
        if image_url:
            payload["image_url"] = image_url
        message = Message.from_record(self.facade.entities.Message.create(payload))

        counter = _counter_of_other_party(conversation, user.id)
        unread = getattr(conversation, counter) + 1
        now = self.clock()
        self.facade.entities.Conversation.update(conversation.id, {
            "last_message": content,
            "last_message_at": to_iso(now),
            counter: unread,
        })
        setattr(conversation, counter, unread)
        conversation.last_message = content
        conversation.last_message_at = now
        return message

    def send_message(self, conversation: Conversation, text: str) -> ActionResult:
        """
        Send a text message. Blank text is ignored.

        Returns:
            ActionResult: data is the new Message, or None when nothing was sent.
        """
        user = self.session.user
        if user is None:
            return self._login("Chat", id=conversation.id)

        content = (text or "").strip()
        if not content:
            return ActionResult.success(data=None)

        try:
            message = self._append(conversation, user, content)
        except BackendError as e:
            logger.error(f"Failed to send message in {conversation.id}: {e}")
            return ActionResult.failure("Erro ao enviar mensagem")
        return ActionResult.success(data=message)

    def send_image(self, conversation: Conversation, file: FileLike) -> ActionResult:
        """Upload a photo and send it as a message."""
        user = self.session.user
        if user is None:
            return self._login("Chat", id=conversation.id)

        try:
            image_url = self.facade.integrations.upload_file(file)
            message = self._append(conversation, user, IMAGE_MESSAGE, image_url=image_url)
        except BackendError as e:
            logger.error(f"Failed to send image in {conversation.id}: {e}")
            return ActionResult.failure("Erro ao enviar imagem")
        return ActionResult.success(data=message)

    def mark_read(self, conversation: Conversation) -> bool:
        """
        Zero the user's unread counter on the thread.

        Returns:
            bool: True if a write was made.
        """
        user = self.session.user
        if user is None:
            return False
        counter = "unread_buyer" if conversation.is_buyer(user.id) else "unread_seller"
        if getattr(conversation, counter) <= 0:
            return False
        try:
            self.facade.entities.Conversation.update(conversation.id, {counter: 0})
        except BackendError as e:
            logger.warning(f"Could not mark {conversation.id} as read: {e}")
            return False
        setattr(conversation, counter, 0)
        return True
