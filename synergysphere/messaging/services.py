from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from django.contrib.auth import get_user_model

from synergysphere.messaging.models import MAX_MESSAGE_LENGTH
from synergysphere.realtime.exceptions import MessageValidationError

if TYPE_CHECKING:  # import for type checking only
    from synergysphere.messaging.models import DirectMessage

REQUIRED = "Recipient ID and content are required"
TOO_LONG = f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters"
TO_SELF = "Cannot send message to yourself"
RECIPIENT_NOT_FOUND = "Recipient not found"


def clean_message_input(
    sender_id: int,
    recipient_id: Any,
    content: Any,
) -> tuple[int, str]:
    """Validate a direct message before it reaches the store.

    Shared by the Socket.IO ``send_message`` handler and the REST endpoint.
    Returns the normalized ``(recipient_id, content)``.
    """

    if isinstance(recipient_id, bool) or recipient_id in (None, ""):
        raise MessageValidationError(REQUIRED)
    if isinstance(recipient_id, str):
        if not recipient_id.strip().isdigit():
            raise MessageValidationError(REQUIRED)
        recipient_id = int(recipient_id.strip())
    if not isinstance(recipient_id, int) or recipient_id <= 0:
        raise MessageValidationError(REQUIRED)

    if not isinstance(content, str) or not content.strip():
        raise MessageValidationError(REQUIRED)
    content = content.strip()
    if len(content) > MAX_MESSAGE_LENGTH:
        raise MessageValidationError(TOO_LONG)

    if recipient_id == int(sender_id):
        raise MessageValidationError(TO_SELF)
    return recipient_id, content


def get_active_recipient(recipient_id: int):
    """Load the recipient of a direct message; unknown and inactive users are rejected."""

    recipient = get_user_model().objects.filter(pk=recipient_id, is_active=True).first()
    if recipient is None:
        raise MessageValidationError(RECIPIENT_NOT_FOUND)
    return recipient


def build_message_record(message: DirectMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "content": message.content,
        "is_read": message.is_read,
        "created_at": message.created_at.isoformat(),
    }
