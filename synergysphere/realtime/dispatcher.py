"""Fan-out of domain events to project rooms, user rooms and single connections.

Delivery is fire-and-forget: whoever is in the room right now receives the
event, nobody else ever will. There is no queue and no retry. The only
ordering rule is that a record is persisted before any push that carries its
id (``notify``; direct messages follow the same rule in their channel).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from synergysphere.realtime.rooms import room_for_project
from synergysphere.realtime.rooms import room_for_user

if TYPE_CHECKING:
    from synergysphere.realtime.stores import NotificationStore

logger = logging.getLogger(__name__)

TASK_UPDATE_TYPES = ("created", "updated", "deleted", "assigned")


class EventDispatcher:
    def __init__(self, server: Any, notification_store: NotificationStore) -> None:
        self._server = server
        self._notifications = notification_store

    async def broadcast_to_project(
        self,
        project_id: int,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        await self._server.emit(event, payload, to=room_for_project(project_id))

    async def send_to_user(
        self,
        user_id: int,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        # Emitting to an empty room is a no-op for offline users.
        await self._server.emit(event, payload, to=room_for_user(user_id))

    async def send_to_connection(
        self,
        sid: str,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        await self._server.emit(event, payload, to=sid)

    async def emit_error(self, sid: str, message: str) -> None:
        await self.send_to_connection(sid, "error", {"message": message})

    async def notify(self, user_id: int, notification: dict[str, Any]) -> dict[str, Any]:
        """Persist a notification, then push the stored record to its recipient.

        ``notification`` carries ``type``, ``content`` and an optional
        ``link``. A store failure propagates to the caller and nothing is
        pushed.
        """

        record = await self._notifications.create_notification(
            user_id,
            notification.get("type") or "other",
            notification.get("content") or "",
            notification.get("link") or "",
        )
        await self.send_to_user(user_id, "new_notification", record)
        return record

    async def emit_project_activity(
        self,
        project_id: int,
        activity: dict[str, Any],
    ) -> None:
        await self.broadcast_to_project(project_id, "project_activity", activity)

    async def emit_task_update(
        self,
        project_id: int,
        task: dict[str, Any],
        update_type: str = "updated",
    ) -> None:
        if update_type not in TASK_UPDATE_TYPES:
            logger.warning("Unknown task update type %r", update_type)
        await self.broadcast_to_project(
            project_id,
            "task_update",
            {"type": update_type, "task": task},
        )

    async def emit_new_comment(self, project_id: int, comment: dict[str, Any]) -> None:
        await self.broadcast_to_project(project_id, "new_comment", comment)
