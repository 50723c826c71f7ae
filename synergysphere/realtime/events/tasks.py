from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from synergysphere.realtime.socketio import emit_new_comment
from synergysphere.realtime.socketio import emit_task_update
from synergysphere.users.api.serializers import UserSummarySerializer

if TYPE_CHECKING:  # import for type checking only
    from synergysphere.tasks.models import Task
    from synergysphere.tasks.models import TaskComment


def build_task_payload(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "project_id": task.project_id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "created_by": task.created_by_id,
        "assignees": UserSummarySerializer(task.assignees.all(), many=True).data,
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
    }


def build_comment_payload(comment: TaskComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "task_id": comment.task_id,
        "content": comment.content,
        "author": UserSummarySerializer(comment.author).data,
        "created_at": comment.created_at.isoformat(),
    }


def publish_task_update(
    task: Task,
    update_type: str = "updated",
    payload: dict[str, Any] | None = None,
) -> None:
    # Deleted tasks no longer have a row to serialize; pass the last payload.
    emit_task_update(
        task.project_id,
        payload or build_task_payload(task),
        update_type,
    )


def publish_new_comment(comment: TaskComment) -> None:
    emit_new_comment(comment.task.project_id, build_comment_payload(comment))
