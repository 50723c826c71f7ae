import pytest
from django.db import DatabaseError
from rest_framework import status
from rest_framework.test import APIClient

from synergysphere.conftest import emitted_events
from synergysphere.conftest import make_user
from synergysphere.notifications.models import Notification
from synergysphere.projects.models import Project
from synergysphere.projects.models import ProjectActivity
from synergysphere.projects.models import ProjectInvitation
from synergysphere.projects.models import ProjectMember

pytestmark = pytest.mark.django_db

PROJECTS_URL = "/api/v1/projects/"


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def add_member(project, user, role=ProjectMember.Role.MEMBER):
    return ProjectMember.objects.create(project=project, user=user, role=role)


def test_anonymous_is_rejected():
    res = APIClient().get(PROJECTS_URL)
    assert res.status_code == status.HTTP_401_UNAUTHORIZED


def test_create_project_makes_owner_admin(api_client, user, emitted):
    res = api_client.post(PROJECTS_URL, {"name": " Apollo ", "description": "Moon"})

    assert res.status_code == status.HTTP_201_CREATED
    project = Project.objects.get(pk=res.data["id"])
    assert project.name == "Apollo"
    assert project.owner == user
    assert ProjectMember.objects.get(project=project, user=user).role == "Admin"
    assert ProjectActivity.objects.filter(
        project=project,
        activity_type="project_created",
    ).exists()
    assert res.data["my_role"] == "Admin"


def test_blank_name_rejected(api_client):
    res = api_client.post(PROJECTS_URL, {"name": "   "})
    assert res.status_code == status.HTTP_400_BAD_REQUEST


def test_list_only_member_projects(api_client, project, other_user):
    Project.objects.create(name="Hidden", owner=other_user)

    res = api_client.get(PROJECTS_URL)

    assert res.status_code == status.HTTP_200_OK
    assert [p["name"] for p in res.data["results"]] == ["Apollo"]


def test_non_member_cannot_see_project(project, other_user):
    res = client_for(other_user).get(f"{PROJECTS_URL}{project.pk}/")
    assert res.status_code == status.HTTP_404_NOT_FOUND


def test_update_broadcasts_activity(api_client, project, emitted):
    res = api_client.patch(f"{PROJECTS_URL}{project.pk}/", {"name": "Artemis"})

    assert res.status_code == status.HTTP_200_OK
    events = emitted_events(emitted)
    assert len(events) == 1
    event, payload, room = events[0]
    assert event == "project_activity"
    assert room == f"project:{project.pk}"
    assert payload["activity_type"] == "project_updated"
    assert payload["details"] == {"fields": ["name"]}
    assert payload["actor"]["username"] == "alice"


def test_member_cannot_update(project, other_user, emitted):
    add_member(project, other_user)

    res = client_for(other_user).patch(f"{PROJECTS_URL}{project.pk}/", {"name": "X"})

    assert res.status_code == status.HTTP_403_FORBIDDEN
    assert emitted.await_count == 0


def test_delete_project_broadcasts(api_client, project, emitted):
    project_id = project.pk

    res = api_client.delete(f"{PROJECTS_URL}{project_id}/")

    assert res.status_code == status.HTTP_204_NO_CONTENT
    assert not Project.objects.filter(pk=project_id).exists()
    event, payload, room = emitted_events(emitted)[0]
    assert (event, room) == ("project_activity", f"project:{project_id}")
    assert payload["activity_type"] == "project_deleted"


class TestMembers:
    def test_list_members(self, api_client, project):
        res = api_client.get(f"{PROJECTS_URL}{project.pk}/members/")
        assert res.status_code == status.HTTP_200_OK
        assert [m["user"]["username"] for m in res.data] == ["alice"]

    def test_admin_adds_member(self, api_client, project, other_user, emitted):
        res = api_client.post(
            f"{PROJECTS_URL}{project.pk}/members/",
            {"user_id": other_user.pk},
        )

        assert res.status_code == status.HTTP_201_CREATED
        assert res.data["role"] == "Member"
        assert ProjectMember.objects.filter(project=project, user=other_user).exists()
        event, payload, _ = emitted_events(emitted)[0]
        assert event == "project_activity"
        assert payload["activity_type"] == "member_added"

    def test_duplicate_member_conflict(self, api_client, project, user):
        res = api_client.post(f"{PROJECTS_URL}{project.pk}/members/", {"user_id": user.pk})
        assert res.status_code == status.HTTP_409_CONFLICT

    def test_change_role(self, api_client, project, other_user, emitted):
        add_member(project, other_user)

        res = api_client.patch(
            f"{PROJECTS_URL}{project.pk}/members/{other_user.pk}/",
            {"role": "Admin"},
        )

        assert res.status_code == status.HTTP_200_OK
        membership = ProjectMember.objects.get(project=project, user=other_user)
        assert membership.role == "Admin"

    def test_remove_member(self, api_client, project, other_user, emitted):
        add_member(project, other_user)

        res = api_client.delete(f"{PROJECTS_URL}{project.pk}/members/{other_user.pk}/")

        assert res.status_code == status.HTTP_204_NO_CONTENT
        assert not ProjectMember.objects.filter(project=project, user=other_user).exists()
        _, payload, _ = emitted_events(emitted)[0]
        assert payload["activity_type"] == "member_removed"

    def test_owner_cannot_be_removed(self, api_client, project, user):
        res = api_client.delete(f"{PROJECTS_URL}{project.pk}/members/{user.pk}/")
        assert res.status_code == status.HTTP_400_BAD_REQUEST

    def test_member_cannot_add_members(self, project, other_user):
        add_member(project, other_user)
        carol = make_user("carol")

        res = client_for(other_user).post(
            f"{PROJECTS_URL}{project.pk}/members/",
            {"user_id": carol.pk},
        )

        assert res.status_code == status.HTTP_403_FORBIDDEN


def test_activity_feed_limit(api_client, project, emitted):
    for i in range(5):
        ProjectActivity.objects.create(
            project=project,
            activity_type="task_created",
            details={"n": i},
        )

    res = api_client.get(f"{PROJECTS_URL}{project.pk}/activity/?limit=3")

    assert res.status_code == status.HTTP_200_OK
    assert res.data["limit"] == 3
    assert [row["details"]["n"] for row in res.data["results"]] == [4, 3, 2]


def test_activity_feed_bad_limit_falls_back(api_client, project):
    res = api_client.get(f"{PROJECTS_URL}{project.pk}/activity/?limit=abc")
    assert res.data["limit"] == 20


def test_online_members_empty_without_connections(api_client, project):
    res = api_client.get(f"{PROJECTS_URL}{project.pk}/online-members/")
    assert res.status_code == status.HTTP_200_OK
    assert res.data == {"results": []}


class TestInvitations:
    def test_invite_creates_notification_and_pushes(
        self,
        api_client,
        project,
        other_user,
        emitted,
    ):
        res = api_client.post(
            f"{PROJECTS_URL}{project.pk}/invite/",
            {"user_id": other_user.pk},
        )

        assert res.status_code == status.HTTP_201_CREATED
        invitation = ProjectInvitation.objects.get(project=project, invitee=other_user)
        notification = Notification.objects.get(recipient=other_user)
        assert notification.notification_type == "project_invitation"
        assert notification.link == f"/notifications/invitations/{invitation.pk}"
        assert "Alice Smith invited you to join Apollo" in notification.content

        event, payload, room = emitted_events(emitted)[0]
        assert (event, room) == ("new_notification", f"user:{other_user.pk}")
        assert payload["id"] == notification.pk

    def test_invite_kept_when_notification_cannot_be_stored(
        self,
        api_client,
        project,
        other_user,
        emitted,
        monkeypatch,
        caplog,
    ):
        def fail(**kwargs):
            msg = "disk full"
            raise DatabaseError(msg)

        monkeypatch.setattr(Notification.objects, "create", fail)

        res = api_client.post(
            f"{PROJECTS_URL}{project.pk}/invite/",
            {"user_id": other_user.pk},
        )

        assert res.status_code == status.HTTP_201_CREATED
        invitation = ProjectInvitation.objects.get(project=project, invitee=other_user)
        assert res.data["id"] == invitation.pk
        assert invitation.status == ProjectInvitation.Status.PENDING
        assert not Notification.objects.filter(recipient=other_user).exists()
        assert emitted_events(emitted) == []
        assert "Could not notify user" in caplog.text

    def test_invite_existing_member_conflict(self, api_client, project, user):
        res = api_client.post(f"{PROJECTS_URL}{project.pk}/invite/", {"user_id": user.pk})
        assert res.status_code == status.HTTP_409_CONFLICT

    def test_reinvite_resets_to_pending(self, api_client, project, user, other_user):
        ProjectInvitation.objects.create(
            project=project,
            inviter=user,
            invitee=other_user,
            status=ProjectInvitation.Status.DECLINED,
        )

        api_client.post(f"{PROJECTS_URL}{project.pk}/invite/", {"user_id": other_user.pk})

        invitation = ProjectInvitation.objects.get(project=project, invitee=other_user)
        assert invitation.status == ProjectInvitation.Status.PENDING
        assert invitation.responded_at is None

    def test_accept_adds_membership(self, project, user, other_user, emitted):
        invitation = ProjectInvitation.objects.create(
            project=project,
            inviter=user,
            invitee=other_user,
        )

        res = client_for(other_user).post(
            f"/api/v1/notifications/invitations/{invitation.pk}/accept/",
        )

        assert res.status_code == status.HTTP_200_OK
        assert res.data["status"] == "accepted"
        assert ProjectMember.objects.filter(project=project, user=other_user).exists()
        event, payload, room = emitted_events(emitted)[0]
        assert (event, room) == ("project_activity", f"project:{project.pk}")
        assert payload["activity_type"] == "member_joined"

    def test_decline(self, project, user, other_user):
        invitation = ProjectInvitation.objects.create(
            project=project,
            inviter=user,
            invitee=other_user,
        )

        res = client_for(other_user).post(
            f"/api/v1/notifications/invitations/{invitation.pk}/decline/",
        )

        assert res.status_code == status.HTTP_200_OK
        assert not ProjectMember.objects.filter(project=project, user=other_user).exists()

    def test_already_processed_is_not_found(self, project, user, other_user):
        invitation = ProjectInvitation.objects.create(
            project=project,
            inviter=user,
            invitee=other_user,
            status=ProjectInvitation.Status.ACCEPTED,
        )

        res = client_for(other_user).post(
            f"/api/v1/notifications/invitations/{invitation.pk}/accept/",
        )

        assert res.status_code == status.HTTP_404_NOT_FOUND

    def test_only_invitee_sees_invitation(self, api_client, project, user, other_user):
        invitation = ProjectInvitation.objects.create(
            project=project,
            inviter=user,
            invitee=other_user,
        )

        res = api_client.post(
            f"/api/v1/notifications/invitations/{invitation.pk}/accept/",
        )

        assert res.status_code == status.HTTP_404_NOT_FOUND

    def test_list_filters_by_status(self, project, user, other_user):
        ProjectInvitation.objects.create(project=project, inviter=user, invitee=other_user)

        res = client_for(other_user).get(
            "/api/v1/notifications/invitations/?status=pending",
        )

        assert res.status_code == status.HTTP_200_OK
        assert [row["project_name"] for row in res.data["results"]] == ["Apollo"]
