"""Room naming and connection placement.

Rooms live inside python-socketio's manager, which drops a sid from every
room it joined when the connection closes. Membership is never cached here:
project rooms are re-derived from the directory on every connect, and an
explicit join re-checks the directory at call time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from synergysphere.realtime.dispatcher import EventDispatcher
    from synergysphere.realtime.presence import Connection
    from synergysphere.realtime.presence import PresenceRegistry
    from synergysphere.realtime.stores import MembershipDirectory

logger = logging.getLogger(__name__)

NOT_A_MEMBER = "Not a project member"
JOIN_FAILED = "Failed to join project"
PROJECT_ID_REQUIRED = "Project ID is required"


def room_for_user(user_id: int) -> str:
    return f"user:{int(user_id)}"


def room_for_project(project_id: int) -> str:
    return f"project:{int(project_id)}"


def coerce_project_id(data: Any) -> int | None:
    """Accept ``{"projectId": 7}``, ``{"project_id": "7"}`` or a bare id."""

    value = data
    if isinstance(data, dict):
        value = data.get("projectId", data.get("project_id"))
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) or None
    return None


class RoomRouter:
    def __init__(
        self,
        server: Any,
        directory: MembershipDirectory,
        presence: PresenceRegistry,
        dispatcher: EventDispatcher,
    ) -> None:
        self._server = server
        self._directory = directory
        self._presence = presence
        self._dispatcher = dispatcher

    async def auto_join_on_connect(self, connection: Connection) -> list[int]:
        """Join the private room, then every project room the user belongs to.

        A directory failure leaves the connection in degraded mode with only
        its private room.
        """

        await self._server.enter_room(connection.sid, room_for_user(connection.user_id))

        try:
            project_ids = await self._directory.project_ids_for(connection.user_id)
        except Exception:
            logger.exception(
                "Could not load projects for user %s; private room only",
                connection.user_id,
            )
            return []

        if not self._presence.is_connected(connection.sid):
            return []

        for project_id in project_ids:
            await self._server.enter_room(connection.sid, room_for_project(project_id))
        return list(project_ids)

    async def join_project(self, connection: Connection, data: Any) -> bool:
        project_id = coerce_project_id(data)
        if project_id is None:
            await self._dispatcher.emit_error(connection.sid, PROJECT_ID_REQUIRED)
            return False

        try:
            is_member = await self._directory.is_member(connection.user_id, project_id)
        except Exception:
            logger.exception(
                "Membership check failed for user %s on project %s",
                connection.user_id,
                project_id,
            )
            await self._dispatcher.emit_error(connection.sid, JOIN_FAILED)
            return False

        # The connection may have closed while the check was in flight.
        if not self._presence.is_connected(connection.sid):
            return False

        if not is_member:
            logger.info(
                "User %s denied join to project %s",
                connection.user_id,
                project_id,
            )
            await self._dispatcher.emit_error(connection.sid, NOT_A_MEMBER)
            return False

        await self._server.enter_room(connection.sid, room_for_project(project_id))
        await self._dispatcher.send_to_connection(
            connection.sid,
            "joined_project",
            {"projectId": project_id},
        )
        return True

    async def leave_project(self, connection: Connection, data: Any) -> bool:
        project_id = coerce_project_id(data)
        if project_id is None:
            return False
        await self._server.leave_room(connection.sid, room_for_project(project_id))
        return True
