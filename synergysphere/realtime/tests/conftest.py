"""In-memory doubles for the socket server and the stores."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import pytest

from synergysphere.messaging.services import RECIPIENT_NOT_FOUND
from synergysphere.realtime.auth import INVALID_TOKEN
from synergysphere.realtime.auth import AuthenticatedUser
from synergysphere.realtime.exceptions import MessageValidationError
from synergysphere.realtime.exceptions import PersistenceError
from synergysphere.realtime.gateway import RealtimeGateway


class FakeServer:
    """Records rooms and emits the way python-socketio's manager would."""

    def __init__(self) -> None:
        self.rooms: dict[str, set[str]] = defaultdict(set)
        self.sent: list[tuple[str, Any, str]] = []
        self.handlers: dict[str, Any] = {}

    def on(self, event, handler):
        self.handlers[event] = handler

    async def enter_room(self, sid, room):
        self.rooms[room].add(sid)

    async def leave_room(self, sid, room):
        self.rooms[room].discard(sid)

    async def emit(self, event, data=None, to=None):
        self.sent.append((event, data, to))

    def drop(self, sid):
        for members in self.rooms.values():
            members.discard(sid)

    def deliveries(self, sid: str, rooms_of: dict[str, set[str]] | None = None):
        """Events that reached ``sid`` directly or through one of its rooms."""

        rooms = rooms_of or self.rooms
        joined = {room for room, members in rooms.items() if sid in members}
        return [(e, d) for e, d, to in self.sent if to == sid or to in joined]

    def events(self, name: str):
        return [(d, to) for e, d, to in self.sent if e == name]


class FakeDirectory:
    def __init__(self, memberships: dict[int, set[int]] | None = None) -> None:
        # project_id -> member user ids
        self.memberships = memberships or {}
        self.fail = False
        self.calls = 0

    def _check(self):
        self.calls += 1
        if self.fail:
            msg = "directory unavailable"
            raise RuntimeError(msg)

    async def project_ids_for(self, user_id):
        self._check()
        return sorted(p for p, members in self.memberships.items() if user_id in members)

    async def is_member(self, user_id, project_id):
        self._check()
        return user_id in self.memberships.get(project_id, set())

    async def member_ids(self, project_id):
        self._check()
        return sorted(self.memberships.get(project_id, set()))


class FakeMessageStore:
    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail = False
        self.unknown_recipients: set[int] = set()

    async def create_message(self, sender_id, recipient_id, content):
        if recipient_id in self.unknown_recipients:
            raise MessageValidationError(RECIPIENT_NOT_FOUND)
        if self.fail:
            msg = "Failed to send message"
            raise PersistenceError(msg)
        row = {
            "id": len(self.rows) + 1,
            "sender_id": sender_id,
            "recipient_id": recipient_id,
            "content": content,
            "is_read": False,
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        self.rows.append(row)
        return row


class FakeNotificationStore:
    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail = False

    async def create_notification(self, user_id, notification_type, content, link=""):
        if self.fail:
            msg = "Failed to create notification"
            raise PersistenceError(msg)
        row = {
            "id": len(self.rows) + 1,
            "user_id": user_id,
            "type": notification_type,
            "content": content,
            "link": link,
            "is_read": False,
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        self.rows.append(row)
        return row


USERS = {
    "tok-alice": AuthenticatedUser(1, "alice", "Alice Smith"),
    "tok-bob": AuthenticatedUser(2, "bob", "Bob Jones"),
    "tok-carol": AuthenticatedUser(3, "carol", "Carol King"),
}


async def fake_verifier(token):
    try:
        return USERS[token]
    except KeyError:
        raise ConnectionRefusedError(INVALID_TOKEN) from None


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def directory():
    return FakeDirectory({10: {1, 2}, 20: {1}})


@pytest.fixture
def message_store():
    return FakeMessageStore()


@pytest.fixture
def notification_store():
    return FakeNotificationStore()


@pytest.fixture
def gateway(server, directory, message_store, notification_store):
    gw = RealtimeGateway(
        server,
        verifier=fake_verifier,
        directory=directory,
        message_store=message_store,
        notification_store=notification_store,
    )
    gw.attach()
    return gw


@pytest.fixture
def connect(gateway, server):
    """Open a connection for a token the way python-socketio would."""

    async def _connect(sid, token):
        await gateway.on_connect(sid, {}, {"token": token})
        return gateway.presence.get(sid)

    return _connect


@pytest.fixture
def disconnect(gateway, server):
    async def _disconnect(sid):
        await gateway.on_disconnect(sid, "client disconnect")
        server.drop(sid)

    return _disconnect
