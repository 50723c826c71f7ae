from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model

from .models import ProjectActivity


def log_activity(
    project_id: int,
    activity_type: str,
    *,
    actor: object | None = None,
    details: dict[str, Any] | None = None,
) -> ProjectActivity:
    """Record a project activity row; publishing it is up to the caller."""

    user_model = get_user_model()
    actor_user = actor if isinstance(actor, user_model) else None
    return ProjectActivity.objects.create(
        project_id=project_id,
        actor=actor_user,
        activity_type=activity_type,
        details=details or {},
    )
