from __future__ import annotations

import logging
from typing import List, Optional

from ...domain.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    IllegalStateError,
    InvalidArgumentError,
    UserNotFoundError,
)
from ...domain.models import ChatMessageView, Conversation, ConversationView, Identity, Message
from ...domain.ports.notifications import Notifier
from ...domain.ports.persistence import PersistenceGateway
from .user_service import UserService

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class ChatService:
    """Two-party conversations with live delivery to the other participant.

    Live pushes are best effort. A message that does not reach the recipient
    stays unread and is picked up by the reminder sweep.
    """

    def __init__(self, persistence: PersistenceGateway, users: UserService, notifier: Notifier) -> None:
        self._persistence = persistence
        self._users = users
        self._notifier = notifier

    def start_conversation(
        self,
        initiator: Identity,
        recipient_id: int,
        initial_message: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> ConversationView:
        if recipient_id == initiator.user_id:
            raise InvalidArgumentError("You cannot start a conversation with yourself")
        if self._persistence.get_user_by_id(recipient_id) is None:
            raise UserNotFoundError(f"User not found with id: {recipient_id}")

        product = self._persistence.get_product(product_id) if product_id is not None else None
        if product is not None:
            title = f"Conversation about {product.name}"
        else:
            title = (
                f"Conversation between {self._users.display_name(initiator.user_id)}"
                f" and {self._users.display_name(recipient_id)}"
            )

        conversation, created = self._persistence.find_or_create_conversation(
            initiator_id=initiator.user_id,
            recipient_id=recipient_id,
            product_id=product.id if product else None,
            title=title,
        )
        if created:
            logger.info(
                "Conversation %s started between users %s and %s",
                conversation.id,
                initiator.user_id,
                recipient_id,
            )

        if initial_message is not None and initial_message.strip():
            self.send_message(initiator, conversation.id, initial_message)
        return self._to_view(conversation, initiator.user_id, include_messages=True)

    def send_message(self, sender: Identity, conversation_id: int, content: str) -> ChatMessageView:
        content = self._validate_content(content)
        conversation = self._require_participant(conversation_id, sender)
        if not conversation.is_active:
            raise IllegalStateError("Conversation is no longer active")

        message = self._persistence.create_message(conversation.id, sender.user_id, content)
        view = self._message_view(message)
        self._notifier.push_chat_message(conversation.other_party(sender.user_id), view)
        logger.debug("Message %s stored in conversation %s", message.id, conversation.id)
        return view

    def mark_conversation_as_read(self, reader: Identity, conversation_id: int) -> int:
        conversation = self._require_participant(conversation_id, reader)
        updated = self._persistence.mark_messages_read(conversation.id, reader.user_id)
        if updated:
            self._notifier.push_read_receipt(
                conversation.other_party(reader.user_id), conversation.id, reader.user_id
            )
        return updated

    def get_user_conversations(self, user: Identity) -> List[ConversationView]:
        conversations = self._persistence.get_active_conversations_for_user(user.user_id)
        return [self._to_view(conversation, user.user_id) for conversation in conversations]

    def get_conversation(self, user: Identity, conversation_id: int) -> ConversationView:
        conversation = self._require_participant(conversation_id, user)
        return self._to_view(conversation, user.user_id, include_messages=True)

    def deactivate_conversation(self, user: Identity, conversation_id: int) -> None:
        conversation = self._require_participant(conversation_id, user)
        self._persistence.set_conversation_active(conversation.id, False)
        logger.info("Conversation %s deactivated by user %s", conversation.id, user.user_id)

    # Helpers ------------------------------------------------------------
    def _require_participant(self, conversation_id: int, user: Identity) -> Conversation:
        conversation = self._persistence.get_conversation(conversation_id)
        if conversation is None:
            raise EntityNotFoundError(f"Conversation not found with id: {conversation_id}")
        if not conversation.has_participant(user.user_id):
            raise AccessDeniedError("You are not a participant in this conversation")
        return conversation

    @staticmethod
    def _validate_content(content: Optional[str]) -> str:
        if content is None or not content.strip():
            raise InvalidArgumentError("Message content must not be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidArgumentError(f"Message content must be at most {MAX_MESSAGE_LENGTH} characters")
        return content

    def _message_view(self, message: Message) -> ChatMessageView:
        return ChatMessageView(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            sender_name=self._users.display_name(message.sender_id),
            content=message.content,
            is_read=message.is_read,
            created_at=message.created_at,
        )

    def _to_view(self, conversation: Conversation, viewer_id: int, include_messages: bool = False) -> ConversationView:
        other_id = conversation.other_party(viewer_id)
        product = (
            self._persistence.get_product(conversation.product_id)
            if conversation.product_id is not None
            else None
        )
        messages = self._persistence.get_messages_for_conversation(conversation.id)
        last = messages[-1] if messages else None
        view = ConversationView(
            id=conversation.id,
            other_user_id=other_id,
            other_user_name=self._users.display_name(other_id),
            product_id=conversation.product_id,
            product_name=product.name if product else None,
            title=conversation.title,
            is_active=conversation.is_active,
            unread_count=self._persistence.count_unread_messages(conversation.id, viewer_id),
            last_message=last.content if last else None,
            last_message_time=last.created_at if last else None,
            created_at=conversation.created_at,
        )
        if include_messages:
            names = {}
            for message in messages:
                if message.sender_id not in names:
                    names[message.sender_id] = self._users.display_name(message.sender_id)
                view.messages.append(
                    ChatMessageView(
                        id=message.id,
                        conversation_id=message.conversation_id,
                        sender_id=message.sender_id,
                        sender_name=names[message.sender_id],
                        content=message.content,
                        is_read=message.is_read,
                        created_at=message.created_at,
                    )
                )
        return view
