from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from synergysphere.messaging.services import build_message_record
from synergysphere.realtime.socketio import send_to_user

if TYPE_CHECKING:  # import for type checking only
    from synergysphere.messaging.models import DirectMessage


def build_message_payload(message: DirectMessage) -> dict[str, Any]:
    sender = message.sender
    return {
        **build_message_record(message),
        "sender_username": sender.username,
        "sender_name": sender.name,
    }


def publish_direct_message(message: DirectMessage) -> dict[str, Any]:
    """Push a message stored through the REST API to its recipient."""

    payload = build_message_payload(message)
    send_to_user(message.recipient_id, "new_message", payload)
    return payload
