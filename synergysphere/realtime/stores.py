"""Store and directory adapters used by the realtime core.

The core only relies on the protocols below. The Django implementations run
ORM work through ``sync_to_async`` so a slow query never blocks the loop, and
translate database failures into :class:`PersistenceError`.
"""

from __future__ import annotations

import logging
from typing import Any
from typing import Protocol

from asgiref.sync import sync_to_async
from django.db import DatabaseError
from django.db import transaction

from synergysphere.messaging.models import DirectMessage
from synergysphere.messaging.services import build_message_record
from synergysphere.messaging.services import get_active_recipient
from synergysphere.notifications.models import Notification
from synergysphere.notifications.services import build_notification_payload
from synergysphere.projects.models import ProjectMember
from synergysphere.realtime.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class MembershipDirectory(Protocol):
    async def project_ids_for(self, user_id: int) -> list[int]: ...

    async def is_member(self, user_id: int, project_id: int) -> bool: ...

    async def member_ids(self, project_id: int) -> list[int]: ...


class MessageStore(Protocol):
    """Raises ``MessageValidationError`` when the recipient cannot receive messages."""

    async def create_message(
        self,
        sender_id: int,
        recipient_id: int,
        content: str,
    ) -> dict[str, Any]: ...


class NotificationStore(Protocol):
    async def create_notification(
        self,
        user_id: int,
        notification_type: str,
        content: str,
        link: str = "",
    ) -> dict[str, Any]: ...


class DjangoMembershipDirectory:
    """Membership Directory backed by ``projects.ProjectMember``.

    Never cached: every call reflects membership at call time.
    """

    @staticmethod
    def _project_ids_for(user_id: int) -> list[int]:
        return list(
            ProjectMember.objects.filter(user_id=user_id)
            .order_by("project_id")
            .values_list("project_id", flat=True)
        )

    @staticmethod
    def _is_member(user_id: int, project_id: int) -> bool:
        return ProjectMember.objects.filter(
            user_id=user_id,
            project_id=project_id,
        ).exists()

    @staticmethod
    def _member_ids(project_id: int) -> list[int]:
        return list(
            ProjectMember.objects.filter(project_id=project_id)
            .order_by("user_id")
            .values_list("user_id", flat=True)
        )

    async def project_ids_for(self, user_id: int) -> list[int]:
        return await sync_to_async(self._project_ids_for)(user_id)

    async def is_member(self, user_id: int, project_id: int) -> bool:
        return await sync_to_async(self._is_member)(user_id, project_id)

    async def member_ids(self, project_id: int) -> list[int]:
        return await sync_to_async(self._member_ids)(project_id)


class DjangoMessageStore:
    @staticmethod
    def _create_message(
        sender_id: int,
        recipient_id: int,
        content: str,
    ) -> dict[str, Any]:
        # Raises MessageValidationError for unknown or inactive recipients.
        get_active_recipient(recipient_id)
        try:
            with transaction.atomic():
                message = DirectMessage.objects.create(
                    sender_id=sender_id,
                    recipient_id=recipient_id,
                    content=content,
                )
        except DatabaseError as exc:
            logger.exception(
                "Could not store direct message %s -> %s",
                sender_id,
                recipient_id,
            )
            msg = "Failed to send message"
            raise PersistenceError(msg) from exc
        return build_message_record(message)

    async def create_message(
        self,
        sender_id: int,
        recipient_id: int,
        content: str,
    ) -> dict[str, Any]:
        return await sync_to_async(self._create_message)(
            sender_id,
            recipient_id,
            content,
        )


class DjangoNotificationStore:
    @staticmethod
    def _create_notification(
        user_id: int,
        notification_type: str,
        content: str,
        link: str = "",
    ) -> dict[str, Any]:
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient_id=user_id,
                    notification_type=notification_type,
                    content=content,
                    link=link or "",
                )
        except DatabaseError as exc:
            logger.exception("Could not store notification for user %s", user_id)
            msg = "Failed to create notification"
            raise PersistenceError(msg) from exc
        return build_notification_payload(notification)

    async def create_notification(
        self,
        user_id: int,
        notification_type: str,
        content: str,
        link: str = "",
    ) -> dict[str, Any]:
        return await sync_to_async(self._create_notification)(
            user_id,
            notification_type,
            content,
            link,
        )
