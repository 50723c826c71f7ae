from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from synergysphere.realtime.socketio import emit_project_activity
from synergysphere.users.api.serializers import UserSummarySerializer

if TYPE_CHECKING:  # import for type checking only
    from synergysphere.projects.models import ProjectActivity


def build_activity_payload(activity: ProjectActivity) -> dict[str, Any]:
    actor = activity.actor
    return {
        "id": activity.id,
        "project_id": activity.project_id,
        "activity_type": activity.activity_type,
        "details": activity.details,
        "actor": UserSummarySerializer(actor).data if actor is not None else None,
        "created_at": activity.created_at.isoformat(),
    }


def publish_project_activity(activity: ProjectActivity) -> None:
    """Push a logged activity row to everyone currently in the project room."""

    emit_project_activity(activity.project_id, build_activity_payload(activity))
