"""Permission classes for the Projects API."""

from typing import Any

from rest_framework.permissions import SAFE_METHODS
from rest_framework.permissions import BasePermission

from synergysphere.projects.models import ProjectMember


def _project_id_from(obj: Any) -> int | None:
    if hasattr(obj, "project_id"):
        return obj.project_id
    return getattr(obj, "pk", None)


def is_project_member(user, project_id: int | None) -> bool:
    if project_id is None or not getattr(user, "is_authenticated", False):
        return False
    return ProjectMember.objects.filter(project_id=project_id, user=user).exists()


def is_project_admin(user, project_id: int | None) -> bool:
    if project_id is None or not getattr(user, "is_authenticated", False):
        return False
    return ProjectMember.objects.filter(
        project_id=project_id,
        user=user,
        role=ProjectMember.Role.ADMIN,
    ).exists()


class IsProjectMember(BasePermission):
    """Object-level: the caller belongs to the object's project."""

    message = "Not a project member"

    def has_object_permission(self, request, view, obj) -> bool:
        return is_project_member(request.user, _project_id_from(obj))


class IsProjectAdminOrReadOnly(BasePermission):
    """Members may read; only project admins may change the project itself."""

    message = "Only project admins can do that"

    def has_object_permission(self, request, view, obj) -> bool:
        project_id = _project_id_from(obj)
        if request.method in SAFE_METHODS:
            return is_project_member(request.user, project_id)
        return is_project_admin(request.user, project_id)
