from unittest.mock import AsyncMock

import pytest
from rest_framework.test import APIClient

from synergysphere.projects.models import Project
from synergysphere.projects.models import ProjectMember
from synergysphere.realtime.socketio import sio
from synergysphere.users.models import User

TEST_PASSWORD = "TestPass123!"  # noqa: S105 - test credentials only


def make_user(username: str, **extra) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=TEST_PASSWORD,
        **extra,
    )


@pytest.fixture
def user(db) -> User:
    return make_user("alice", first_name="Alice", last_name="Smith")


@pytest.fixture
def other_user(db) -> User:
    return make_user("bob", first_name="Bob", last_name="Jones")


@pytest.fixture
def api_client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def project(user) -> Project:
    project = Project.objects.create(name="Apollo", owner=user)
    ProjectMember.objects.create(
        project=project,
        user=user,
        role=ProjectMember.Role.ADMIN,
    )
    return project


@pytest.fixture
def emitted(monkeypatch) -> AsyncMock:
    """Capture every event the global Socket.IO server would send."""

    mock = AsyncMock()
    monkeypatch.setattr(sio, "emit", mock)
    return mock


def emitted_events(mock: AsyncMock) -> list[tuple[str, dict, str]]:
    """Flatten captured ``sio.emit`` calls into ``(event, payload, to)``."""

    return [(c.args[0], c.args[1], c.kwargs.get("to")) for c in mock.await_args_list]
