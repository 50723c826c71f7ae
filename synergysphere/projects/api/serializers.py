from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from synergysphere.projects.models import Project
from synergysphere.projects.models import ProjectActivity
from synergysphere.projects.models import ProjectInvitation
from synergysphere.projects.models import ProjectMember
from synergysphere.users.api.serializers import UserSummarySerializer

User = get_user_model()


class ProjectSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    my_role = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = (
            "id",
            "name",
            "description",
            "owner",
            "member_count",
            "my_role",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "owner", "created_at", "updated_at")

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Project name is required."
            raise serializers.ValidationError(msg)
        return value

    def get_member_count(self, obj: Project) -> int:
        return obj.memberships.count()

    def get_my_role(self, obj: Project) -> str | None:
        request = self.context.get("request")
        if request is None:
            return None
        membership = obj.memberships.filter(user_id=request.user.id).first()
        return membership.role if membership else None


class ProjectMemberSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    user_id = serializers.PrimaryKeyRelatedField(
        source="user",
        queryset=User.objects.filter(is_active=True),
        write_only=True,
    )

    class Meta:
        model = ProjectMember
        fields = ("id", "user", "user_id", "role", "joined_at")
        read_only_fields = ("id", "joined_at")


class MemberRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ProjectMember.Role.choices)


class ProjectInvitationSerializer(serializers.ModelSerializer):
    project_name = serializers.CharField(source="project.name", read_only=True)
    inviter = UserSummarySerializer(read_only=True)
    invitee = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectInvitation
        fields = (
            "id",
            "project",
            "project_name",
            "inviter",
            "invitee",
            "role",
            "status",
            "created_at",
            "responded_at",
        )
        read_only_fields = fields


class InviteSerializer(serializers.Serializer):
    user_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
    )
    role = serializers.ChoiceField(
        choices=ProjectMember.Role.choices,
        default=ProjectMember.Role.MEMBER,
    )


class ProjectActivitySerializer(serializers.ModelSerializer):
    actor = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectActivity
        fields = ("id", "project", "actor", "activity_type", "details", "created_at")
        read_only_fields = fields
