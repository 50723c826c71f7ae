"""Socket.IO event handlers wired to the presence, room and messaging components."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from synergysphere.realtime.auth import INVALID_TOKEN
from synergysphere.realtime.auth import MISSING_TOKEN
from synergysphere.realtime.auth import extract_token
from synergysphere.realtime.direct_messages import DirectMessageChannel
from synergysphere.realtime.dispatcher import EventDispatcher
from synergysphere.realtime.presence import Connection
from synergysphere.realtime.presence import PresenceRegistry
from synergysphere.realtime.rooms import RoomRouter

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from collections.abc import Callable

    from synergysphere.realtime.auth import AuthenticatedUser
    from synergysphere.realtime.stores import MembershipDirectory
    from synergysphere.realtime.stores import MessageStore
    from synergysphere.realtime.stores import NotificationStore

    TokenVerifier = Callable[[str], Awaitable[AuthenticatedUser]]

logger = logging.getLogger(__name__)


class RealtimeGateway:
    """Owns the realtime components of one server process.

    One instance exists per socket server. Components receive the shared
    presence registry by reference instead of reaching for module globals.
    """

    def __init__(
        self,
        server: Any,
        *,
        verifier: TokenVerifier,
        directory: MembershipDirectory,
        message_store: MessageStore,
        notification_store: NotificationStore,
    ) -> None:
        self.server = server
        self._verifier = verifier
        self._directory = directory
        self.presence = PresenceRegistry()
        self.dispatcher = EventDispatcher(server, notification_store)
        self.rooms = RoomRouter(server, directory, self.presence, self.dispatcher)
        self.direct_messages = DirectMessageChannel(
            self.dispatcher,
            self.presence,
            message_store,
        )

    def attach(self) -> None:
        handlers = {
            "connect": self.on_connect,
            "disconnect": self.on_disconnect,
            "join_project": self.on_join_project,
            "leave_project": self.on_leave_project,
            "send_message": self.on_send_message,
            "typing_start": self.on_typing_start,
            "typing_stop": self.on_typing_stop,
        }
        for event, handler in handlers.items():
            self.server.on(event, handler)

    async def on_connect(
        self,
        sid: str,
        environ: dict[str, Any],
        auth: Any | None = None,
    ) -> None:
        token = extract_token(environ, auth)
        if not token:
            raise ConnectionRefusedError(MISSING_TOKEN)

        try:
            user = await self._verifier(token)
        except ConnectionRefusedError:
            raise
        except Exception as exc:
            logger.exception("Socket.IO handshake error")
            raise ConnectionRefusedError(INVALID_TOKEN) from exc

        connection = Connection(
            sid=sid,
            user_id=user.user_id,
            username=user.username,
            full_name=user.full_name,
        )
        self.presence.register(connection)
        logger.info("User %s connected with socket %s", user.username, sid)

        await self.rooms.auto_join_on_connect(connection)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        # Newer python-socketio releases pass a disconnect reason.
        connection = self.presence.unregister(sid)
        if connection is None:
            return
        logger.info("User %s disconnected", connection.username)
        await self.direct_messages.forget(connection)

    async def on_join_project(self, sid: str, data: Any = None) -> None:
        connection = self.presence.get(sid)
        if connection is not None:
            await self.rooms.join_project(connection, data)

    async def on_leave_project(self, sid: str, data: Any = None) -> None:
        connection = self.presence.get(sid)
        if connection is not None:
            await self.rooms.leave_project(connection, data)

    async def on_send_message(self, sid: str, data: Any = None) -> None:
        connection = self.presence.get(sid)
        if connection is not None:
            await self.direct_messages.send_message(connection, data)

    async def on_typing_start(self, sid: str, data: Any = None) -> None:
        connection = self.presence.get(sid)
        if connection is not None:
            await self.direct_messages.typing_start(connection, data)

    async def on_typing_stop(self, sid: str, data: Any = None) -> None:
        connection = self.presence.get(sid)
        if connection is not None:
            await self.direct_messages.typing_stop(connection, data)

    def is_user_online(self, user_id: int) -> bool:
        return self.presence.is_online(user_id)

    def online_count(self) -> int:
        return self.presence.online_count()

    async def online_project_members(self, project_id: int) -> list[dict[str, Any]]:
        """Members of a project with a live connection, as ``id/username/full_name``."""

        try:
            member_ids = await self._directory.member_ids(project_id)
        except Exception:
            logger.exception("Could not load members of project %s", project_id)
            return []
        described = []
        for uid in member_ids:
            connection = self.presence.connection_for(uid)
            if connection is not None:
                described.append(
                    {
                        "id": uid,
                        "username": connection.username,
                        "full_name": connection.full_name,
                    },
                )
        return described
