from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from synergysphere.projects.api.permissions import is_project_member
from synergysphere.projects.models import Project
from synergysphere.projects.models import ProjectMember
from synergysphere.tasks.models import Task
from synergysphere.tasks.models import TaskComment
from synergysphere.users.api.serializers import UserSummarySerializer

User = get_user_model()


def _non_members(project_id: int, users) -> list[int]:
    user_ids = {u.pk for u in users}
    if not user_ids:
        return []
    member_ids = set(
        ProjectMember.objects.filter(
            project_id=project_id,
            user_id__in=user_ids,
        ).values_list("user_id", flat=True)
    )
    return sorted(user_ids - member_ids)


class TaskSerializer(serializers.ModelSerializer):
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    created_by = UserSummarySerializer(read_only=True)
    assignees = UserSummarySerializer(many=True, read_only=True)
    assignee_ids = serializers.PrimaryKeyRelatedField(
        source="assignees",
        queryset=User.objects.filter(is_active=True),
        many=True,
        write_only=True,
        required=False,
    )
    comment_count = serializers.IntegerField(source="comments.count", read_only=True)

    class Meta:
        model = Task
        fields = (
            "id",
            "project",
            "title",
            "description",
            "status",
            "due_date",
            "created_by",
            "assignees",
            "assignee_ids",
            "comment_count",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_by", "created_at", "updated_at")

    def validate_title(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Task title is required."
            raise serializers.ValidationError(msg)
        return value

    def validate_project(self, value: Project) -> Project:
        if self.instance is not None and value.pk != self.instance.project_id:
            msg = "Tasks cannot be moved between projects."
            raise serializers.ValidationError(msg)
        request = self.context.get("request")
        if request is not None and not is_project_member(request.user, value.pk):
            msg = "Not a project member"
            raise serializers.ValidationError(msg)
        return value

    def validate(self, attrs):
        project = attrs.get("project") or getattr(self.instance, "project", None)
        if project is not None and "assignees" in attrs:
            missing = _non_members(project.pk, attrs["assignees"])
            if missing:
                msg = f"Users {missing} are not members of this project."
                raise serializers.ValidationError({"assignee_ids": msg})
        return attrs


class AssignSerializer(serializers.Serializer):
    assignee_ids = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        many=True,
    )

    def validate_assignee_ids(self, value):
        task: Task = self.context["task"]
        missing = _non_members(task.project_id, value)
        if missing:
            msg = f"Users {missing} are not members of this project."
            raise serializers.ValidationError(msg)
        return value


class TaskCommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = TaskComment
        fields = ("id", "task", "author", "content", "created_at")
        read_only_fields = ("id", "task", "author", "created_at")

    def validate_content(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Comment content is required."
            raise serializers.ValidationError(msg)
        return value
