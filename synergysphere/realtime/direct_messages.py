"""Direct messages and typing indicators between two users.

Each connection moves between CONNECTED and TYPING (per recipient) until it
disconnects. Typing signals are never stored or queued: they reach the
recipient only if that user is online at the moment of the signal.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from synergysphere.messaging.services import clean_message_input
from synergysphere.realtime.exceptions import MessageValidationError
from synergysphere.realtime.exceptions import PersistenceError

if TYPE_CHECKING:
    from synergysphere.realtime.dispatcher import EventDispatcher
    from synergysphere.realtime.presence import Connection
    from synergysphere.realtime.presence import PresenceRegistry
    from synergysphere.realtime.stores import MessageStore

logger = logging.getLogger(__name__)

SEND_FAILED = "Failed to send message"


def _recipient_from(data: Any) -> Any:
    if isinstance(data, dict):
        return data.get("recipientId", data.get("recipient_id"))
    return None


def _typing_recipient(data: Any) -> int | None:
    value = _recipient_from(data)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class DirectMessageChannel:
    def __init__(
        self,
        dispatcher: EventDispatcher,
        presence: PresenceRegistry,
        message_store: MessageStore,
    ) -> None:
        self._dispatcher = dispatcher
        self._presence = presence
        self._store = message_store
        # sid -> recipients this connection is currently typing to
        self._typing: dict[str, set[int]] = {}

    def is_typing(self, sid: str, recipient_id: int) -> bool:
        return recipient_id in self._typing.get(sid, ())

    async def send_message(
        self,
        connection: Connection,
        data: Any,
    ) -> dict[str, Any] | None:
        """Persist a message, then push it to the recipient and confirm to the sender.

        Validation and store failures only ever reach the sender as an
        ``error`` event; the recipient sees nothing unless the row exists.
        """

        content = data.get("content") if isinstance(data, dict) else None
        try:
            recipient_id, content = clean_message_input(
                connection.user_id,
                _recipient_from(data),
                content,
            )
        except MessageValidationError as exc:
            await self._dispatcher.emit_error(connection.sid, exc.message)
            return None

        try:
            record = await self._store.create_message(
                connection.user_id,
                recipient_id,
                content,
            )
        except MessageValidationError as exc:
            await self._dispatcher.emit_error(connection.sid, exc.message)
            return None
        except PersistenceError:
            await self._dispatcher.emit_error(connection.sid, SEND_FAILED)
            return None
        except Exception:
            logger.exception(
                "Unexpected error storing message from user %s",
                connection.user_id,
            )
            await self._dispatcher.emit_error(connection.sid, SEND_FAILED)
            return None

        message = {
            **record,
            "sender_username": connection.username,
            "sender_name": connection.full_name,
        }
        self._typing.get(connection.sid, set()).discard(recipient_id)
        await self._dispatcher.send_to_user(recipient_id, "new_message", message)
        await self._dispatcher.send_to_connection(connection.sid, "message_sent", message)
        return message

    async def typing_start(self, connection: Connection, data: Any) -> bool:
        recipient_id = _typing_recipient(data)
        if recipient_id is None or not self._presence.is_online(recipient_id):
            return False
        self._typing.setdefault(connection.sid, set()).add(recipient_id)
        await self._dispatcher.send_to_user(
            recipient_id,
            "user_typing",
            {"userId": connection.user_id, "username": connection.username},
        )
        return True

    async def typing_stop(self, connection: Connection, data: Any) -> bool:
        recipient_id = _typing_recipient(data)
        if recipient_id is None:
            return False
        self._typing.get(connection.sid, set()).discard(recipient_id)
        return await self._emit_stopped(connection, recipient_id)

    async def forget(self, connection: Connection) -> None:
        """Drop typing state of a closed connection, clearing live indicators."""

        recipients = self._typing.pop(connection.sid, set())
        for recipient_id in sorted(recipients):
            await self._emit_stopped(connection, recipient_id)

    async def _emit_stopped(self, connection: Connection, recipient_id: int) -> bool:
        if not self._presence.is_online(recipient_id):
            return False
        await self._dispatcher.send_to_user(
            recipient_id,
            "user_stopped_typing",
            {"userId": connection.user_id, "username": connection.username},
        )
        return True
