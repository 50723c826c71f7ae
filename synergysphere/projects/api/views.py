"""Projects API: projects, membership, invitations and the activity feed.

Every mutation commits first and publishes afterwards, so clients never see
a realtime event for a row that could still roll back.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from synergysphere.projects.activity import log_activity
from synergysphere.projects.models import Project
from synergysphere.projects.models import ProjectInvitation
from synergysphere.projects.models import ProjectMember
from synergysphere.realtime.events.notifications import notify_project_invitation
from synergysphere.realtime.events.projects import publish_project_activity
from synergysphere.realtime.exceptions import PersistenceError
from synergysphere.realtime.socketio import broadcast_to_project
from synergysphere.realtime.socketio import online_project_members

from .permissions import IsProjectAdminOrReadOnly
from .serializers import InviteSerializer
from .serializers import MemberRoleSerializer
from .serializers import ProjectActivitySerializer
from .serializers import ProjectInvitationSerializer
from .serializers import ProjectMemberSerializer
from .serializers import ProjectSerializer

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(tags=["Projects"]),
    retrieve=extend_schema(tags=["Projects"]),
    create=extend_schema(tags=["Projects"]),
    update=extend_schema(tags=["Projects"]),
    partial_update=extend_schema(tags=["Projects"]),
    destroy=extend_schema(tags=["Projects"]),
)
class ProjectViewSet(viewsets.ModelViewSet):
    serializer_class = ProjectSerializer
    permission_classes = [IsAuthenticated, IsProjectAdminOrReadOnly]

    def get_queryset(self):
        return (
            Project.objects.filter(memberships__user=self.request.user)
            .select_related("owner")
            .distinct()
        )

    def perform_create(self, serializer):
        user = self.request.user
        with transaction.atomic():
            project = serializer.save(owner=user)
            ProjectMember.objects.create(
                project=project,
                user=user,
                role=ProjectMember.Role.ADMIN,
            )
            log_activity(
                project.pk,
                "project_created",
                actor=user,
                details={"name": project.name},
            )
        logger.info("Project %s created by user %s", project.pk, user.pk)

    def perform_update(self, serializer):
        with transaction.atomic():
            project = serializer.save()
            activity = log_activity(
                project.pk,
                "project_updated",
                actor=self.request.user,
                details={"fields": sorted(serializer.validated_data)},
            )
        publish_project_activity(activity)

    def perform_destroy(self, instance):
        project_id = instance.pk
        name = instance.name
        instance.delete()
        broadcast_to_project(
            project_id,
            "project_activity",
            {
                "project_id": project_id,
                "activity_type": "project_deleted",
                "details": {"name": name},
            },
        )

    @extend_schema(tags=["Projects"])
    @action(detail=True, methods=["get", "post"], url_path="members")
    def members(self, request, pk=None):
        project = self.get_object()
        if request.method == "GET":
            qs = project.memberships.select_related("user")
            return Response(ProjectMemberSerializer(qs, many=True).data)

        serializer = ProjectMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_user = serializer.validated_data["user"]
        if project.memberships.filter(user=new_user).exists():
            return Response(
                {"detail": "User is already a project member."},
                status=status.HTTP_409_CONFLICT,
            )
        with transaction.atomic():
            membership = serializer.save(project=project)
            activity = log_activity(
                project.pk,
                "member_added",
                actor=request.user,
                details={"user_id": new_user.pk, "role": membership.role},
            )
        publish_project_activity(activity)
        return Response(
            ProjectMemberSerializer(membership).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Projects"], request=MemberRoleSerializer)
    @action(
        detail=True,
        methods=["patch", "delete"],
        url_path=r"members/(?P<user_id>\d+)",
    )
    def member_detail(self, request, pk=None, user_id=None):
        project = self.get_object()
        membership = get_object_or_404(project.memberships, user_id=int(user_id))
        if membership.user_id == project.owner_id:
            msg = "The project owner cannot be changed or removed."
            raise ValidationError({"detail": msg})

        if request.method == "PATCH":
            serializer = MemberRoleSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            with transaction.atomic():
                membership.role = serializer.validated_data["role"]
                membership.save(update_fields=["role"])
                activity = log_activity(
                    project.pk,
                    "member_role_changed",
                    actor=request.user,
                    details={"user_id": membership.user_id, "role": membership.role},
                )
            publish_project_activity(activity)
            return Response(ProjectMemberSerializer(membership).data)

        # Live connections of the removed user keep the room until they
        # reconnect; explicit joins are re-checked against this table.
        with transaction.atomic():
            membership.delete()
            activity = log_activity(
                project.pk,
                "member_removed",
                actor=request.user,
                details={"user_id": int(user_id)},
            )
        publish_project_activity(activity)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Projects"])
    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        project = self.get_object()
        try:
            limit = int(request.query_params.get("limit", "20"))
        except (TypeError, ValueError):
            limit = 20
        limit = max(1, min(limit, 100))
        rows = list(project.activity.select_related("actor")[:limit])
        data = ProjectActivitySerializer(rows, many=True).data
        return Response({"results": data, "limit": limit})

    @extend_schema(tags=["Projects"])
    @action(detail=True, methods=["get"], url_path="online-members")
    def online_members(self, request, pk=None):
        project = self.get_object()
        return Response({"results": online_project_members(project.pk)})

    @extend_schema(tags=["Projects"], request=InviteSerializer)
    @action(detail=True, methods=["post"])
    def invite(self, request, pk=None):
        project = self.get_object()
        serializer = InviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invitee = serializer.validated_data["user_id"]
        if project.memberships.filter(user=invitee).exists():
            return Response(
                {"detail": "User is already a project member."},
                status=status.HTTP_409_CONFLICT,
            )

        with transaction.atomic():
            # Re-inviting resets a previous answer back to pending.
            invitation, _ = ProjectInvitation.objects.update_or_create(
                project=project,
                invitee=invitee,
                defaults={
                    "inviter": request.user,
                    "role": serializer.validated_data["role"],
                    "status": ProjectInvitation.Status.PENDING,
                    "responded_at": None,
                },
            )
        try:
            notify_project_invitation(invitation)
        except PersistenceError:
            # The invitation is committed and listed under the invitee's
            # invitations; only the notification row is lost.
            logger.warning(
                "Could not notify user %s about invitation %s",
                invitation.invitee_id,
                invitation.pk,
            )
        return Response(
            ProjectInvitationSerializer(invitation).data,
            status=status.HTTP_201_CREATED,
        )


@extend_schema_view(
    list=extend_schema(tags=["Invitations"]),
    retrieve=extend_schema(tags=["Invitations"]),
)
class ProjectInvitationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Invitations addressed to the authenticated user."""

    permission_classes = [IsAuthenticated]
    serializer_class = ProjectInvitationSerializer

    def get_queryset(self):
        qs = ProjectInvitation.objects.filter(invitee=self.request.user).select_related(
            "project", "inviter", "invitee"
        )
        if self.action == "list" and self.request.query_params.get("status"):
            qs = qs.filter(status=self.request.query_params["status"])
        return qs

    def _pending_or_404(self) -> ProjectInvitation:
        invitation = self.get_object()
        if invitation.status != ProjectInvitation.Status.PENDING:
            msg = "Invitation not found or already processed"
            raise Http404(msg)
        return invitation

    @extend_schema(tags=["Invitations"], request=None)
    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        invitation = self._pending_or_404()
        with transaction.atomic():
            ProjectMember.objects.get_or_create(
                project_id=invitation.project_id,
                user=request.user,
                defaults={"role": invitation.role},
            )
            invitation.status = ProjectInvitation.Status.ACCEPTED
            invitation.responded_at = timezone.now()
            invitation.save(update_fields=["status", "responded_at"])
            activity = log_activity(
                invitation.project_id,
                "member_joined",
                actor=request.user,
                details={"invitation_id": invitation.pk, "role": invitation.role},
            )
        publish_project_activity(activity)
        return Response(ProjectInvitationSerializer(invitation).data)

    @extend_schema(tags=["Invitations"], request=None)
    @action(detail=True, methods=["post"])
    def decline(self, request, pk=None):
        invitation = self._pending_or_404()
        invitation.status = ProjectInvitation.Status.DECLINED
        invitation.responded_at = timezone.now()
        invitation.save(update_fields=["status", "responded_at"])
        return Response(ProjectInvitationSerializer(invitation).data)
