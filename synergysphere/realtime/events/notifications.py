from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from synergysphere.notifications.models import Notification
from synergysphere.realtime.socketio import notify

if TYPE_CHECKING:  # import for type checking only
    from synergysphere.projects.models import ProjectInvitation
    from synergysphere.tasks.models import Task


def notify_user(
    user_id: int,
    notification_type: str,
    content: str,
    link: str = "",
) -> dict[str, Any]:
    """Persist a notification for ``user_id`` and push it if they are online."""

    return notify(
        user_id,
        {"type": notification_type, "content": content, "link": link},
    )


def notify_project_invitation(invitation: ProjectInvitation) -> dict[str, Any]:
    inviter = invitation.inviter
    who = inviter.name or inviter.username
    return notify_user(
        invitation.invitee_id,
        Notification.Type.PROJECT_INVITATION,
        f"{who} invited you to join {invitation.project.name}",
        f"/notifications/invitations/{invitation.id}",
    )


def notify_task_assigned(task: Task, user_id: int) -> dict[str, Any]:
    return notify_user(
        user_id,
        Notification.Type.TASK_ASSIGNED,
        f"You were assigned to '{task.title}'",
        f"/projects/{task.project_id}/tasks/{task.id}",
    )
