"""Tasks API endpoints.

Task and comment mutations are pushed to the project room as ``task_update``
and ``new_comment`` once committed. Newly assigned users get a persisted
``task_assigned`` notification.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from synergysphere.projects.activity import log_activity
from synergysphere.projects.api.permissions import IsProjectMember
from synergysphere.realtime.events.notifications import notify_task_assigned
from synergysphere.realtime.events.projects import publish_project_activity
from synergysphere.realtime.events.tasks import build_task_payload
from synergysphere.realtime.events.tasks import publish_new_comment
from synergysphere.realtime.events.tasks import publish_task_update
from synergysphere.realtime.exceptions import PersistenceError
from synergysphere.tasks.models import Task

from .filters import TaskFilter
from .serializers import AssignSerializer
from .serializers import TaskCommentSerializer
from .serializers import TaskSerializer

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _notify_new_assignees(task: Task, user_ids: Iterable[int], actor_id: int) -> None:
    for user_id in sorted(set(user_ids)):
        if user_id == actor_id:
            continue
        try:
            notify_task_assigned(task, user_id)
        except PersistenceError:
            # The task change is committed; a lost notification is logged only.
            logger.warning(
                "Could not notify user %s about task %s",
                user_id,
                task.pk,
            )


@extend_schema_view(
    list=extend_schema(tags=["Tasks"]),
    retrieve=extend_schema(tags=["Tasks"]),
    create=extend_schema(tags=["Tasks"]),
    update=extend_schema(tags=["Tasks"]),
    partial_update=extend_schema(tags=["Tasks"]),
    destroy=extend_schema(tags=["Tasks"]),
)
class TaskViewSet(viewsets.ModelViewSet):
    serializer_class = TaskSerializer
    permission_classes = [IsAuthenticated, IsProjectMember]
    filter_backends = [DjangoFilterBackend]
    filterset_class = TaskFilter

    def get_queryset(self):
        return (
            Task.objects.filter(project__memberships__user=self.request.user)
            .select_related("project", "created_by")
            .prefetch_related("assignees")
            .distinct()
        )

    def perform_create(self, serializer):
        user = self.request.user
        with transaction.atomic():
            task = serializer.save(created_by=user)
            activity = log_activity(
                task.project_id,
                "task_created",
                actor=user,
                details={"task_id": task.pk, "title": task.title},
            )
        publish_task_update(task, "created")
        publish_project_activity(activity)
        _notify_new_assignees(
            task,
            task.assignees.values_list("id", flat=True),
            user.pk,
        )

    def perform_update(self, serializer):
        before = set(serializer.instance.assignees.values_list("id", flat=True))
        with transaction.atomic():
            task = serializer.save()
            activity = log_activity(
                task.project_id,
                "task_updated",
                actor=self.request.user,
                details={
                    "task_id": task.pk,
                    "fields": sorted(serializer.validated_data),
                    "status": task.status,
                },
            )
        publish_task_update(task, "updated")
        publish_project_activity(activity)
        after = set(task.assignees.values_list("id", flat=True))
        _notify_new_assignees(task, after - before, self.request.user.pk)

    def perform_destroy(self, instance):
        payload = build_task_payload(instance)
        with transaction.atomic():
            activity = log_activity(
                instance.project_id,
                "task_deleted",
                actor=self.request.user,
                details={"task_id": instance.pk, "title": instance.title},
            )
            instance.delete()
        publish_task_update(instance, "deleted", payload=payload)
        publish_project_activity(activity)

    @extend_schema(tags=["Tasks"])
    @action(detail=False, methods=["get"])
    def mine(self, request):
        qs = self.filter_queryset(self.get_queryset().filter(assignees=request.user))
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(self.get_serializer(qs, many=True).data)

    @extend_schema(tags=["Tasks"], request=AssignSerializer)
    @action(detail=True, methods=["put"])
    def assign(self, request, pk=None):
        task = self.get_object()
        serializer = AssignSerializer(data=request.data, context={"task": task})
        serializer.is_valid(raise_exception=True)
        users = serializer.validated_data["assignee_ids"]

        before = set(task.assignees.values_list("id", flat=True))
        with transaction.atomic():
            task.assignees.set(users)
            task.save(update_fields=["updated_at"])
            activity = log_activity(
                task.project_id,
                "task_assigned",
                actor=request.user,
                details={"task_id": task.pk, "assignees": sorted(u.pk for u in users)},
            )
        publish_task_update(task, "assigned")
        publish_project_activity(activity)
        _notify_new_assignees(task, {u.pk for u in users} - before, request.user.pk)
        return Response(self.get_serializer(task).data)

    @extend_schema(tags=["Tasks"], request=TaskCommentSerializer)
    @action(detail=True, methods=["get", "post"])
    def comments(self, request, pk=None):
        task = self.get_object()
        if request.method == "GET":
            qs = task.comments.select_related("author")
            return Response(TaskCommentSerializer(qs, many=True).data)

        serializer = TaskCommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            comment = serializer.save(task=task, author=request.user)
            log_activity(
                task.project_id,
                "comment_added",
                actor=request.user,
                details={"task_id": task.pk, "comment_id": comment.pk},
            )
        publish_new_comment(comment)
        return Response(
            TaskCommentSerializer(comment).data,
            status=status.HTTP_201_CREATED,
        )
