"""Global Socket.IO server for the frontend.

Domain-agnostic: projects, tasks, comments, direct messages and notifications
all share this server instance.

Frontend convention:
- Socket.IO path: settings.SOCKETIO_PATH (``/ws/realtime/``)
- Auth: ``auth: { token }`` (SimpleJWT access token)

Synchronous Django code (views, services) uses the helpers at the bottom of
this module; they bridge into the async core with ``async_to_sync``.
"""

from __future__ import annotations

from typing import Any

import socketio
from asgiref.sync import async_to_sync
from django.conf import settings

from synergysphere.realtime.auth import authenticate_token_async
from synergysphere.realtime.gateway import RealtimeGateway
from synergysphere.realtime.stores import DjangoMembershipDirectory
from synergysphere.realtime.stores import DjangoMessageStore
from synergysphere.realtime.stores import DjangoNotificationStore

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=getattr(settings, "SOCKETIO_CORS_ALLOWED_ORIGINS", "*"),
    # Handle a connection's events one at a time, in arrival order.
    async_handlers=False,
    logger=False,
    engineio_logger=False,
)

gateway = RealtimeGateway(
    sio,
    verifier=authenticate_token_async,
    directory=DjangoMembershipDirectory(),
    message_store=DjangoMessageStore(),
    notification_store=DjangoNotificationStore(),
)
gateway.attach()


def broadcast_to_project(project_id: int, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to every live connection in a project room from sync code."""

    async_to_sync(gateway.dispatcher.broadcast_to_project)(project_id, event, payload)


def send_to_user(user_id: int, event: str, payload: dict[str, Any]) -> None:
    async_to_sync(gateway.dispatcher.send_to_user)(user_id, event, payload)


def notify(user_id: int, notification: dict[str, Any]) -> dict[str, Any]:
    """Persist a notification and push it; raises ``PersistenceError`` on failure.

    Call it outside of any open ``transaction.atomic()`` block so the pushed
    id is already committed.
    """

    return async_to_sync(gateway.dispatcher.notify)(user_id, notification)


def is_user_online(user_id: int) -> bool:
    return gateway.is_user_online(user_id)


def online_count() -> int:
    return gateway.online_count()


def online_project_members(project_id: int) -> list[dict[str, Any]]:
    return async_to_sync(gateway.online_project_members)(project_id)


def emit_project_activity(project_id: int, activity: dict[str, Any]) -> None:
    async_to_sync(gateway.dispatcher.emit_project_activity)(project_id, activity)


def emit_task_update(
    project_id: int,
    task: dict[str, Any],
    update_type: str = "updated",
) -> None:
    async_to_sync(gateway.dispatcher.emit_task_update)(project_id, task, update_type)


def emit_new_comment(project_id: int, comment: dict[str, Any]) -> None:
    async_to_sync(gateway.dispatcher.emit_new_comment)(project_id, comment)
