"""Presence registry: which users are reachable and through which connection."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Connection:
    """An authenticated Socket.IO connection.

    ``sid`` is the opaque handle python-socketio hands us; the display fields
    are the ones copied into direct-message and typing payloads.
    """

    sid: str
    user_id: int
    username: str
    full_name: str = ""


class PresenceRegistry:
    """Bidirectional map between online users and their live connections.

    Only the most recent connection of a user is tracked for online/offline
    queries. All mutations happen on the event loop, so plain dicts suffice.
    """

    def __init__(self) -> None:
        self._sid_by_user: dict[int, str] = {}
        self._connections: dict[str, Connection] = {}

    def register(self, connection: Connection) -> None:
        # Last connection wins; an older sid stays known until it disconnects.
        self._sid_by_user[connection.user_id] = connection.sid
        self._connections[connection.sid] = connection

    def unregister(self, sid: str) -> Connection | None:
        connection = self._connections.pop(sid, None)
        if connection is None:
            return None
        if self._sid_by_user.get(connection.user_id) == sid:
            del self._sid_by_user[connection.user_id]
        return connection

    def get(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    def is_connected(self, sid: str) -> bool:
        return sid in self._connections

    def is_online(self, user_id: int) -> bool:
        return int(user_id) in self._sid_by_user

    def connection_for(self, user_id: int) -> Connection | None:
        sid = self._sid_by_user.get(int(user_id))
        return self._connections.get(sid) if sid is not None else None

    def online_count(self) -> int:
        return len(self._sid_by_user)

    def online_user_ids(self) -> set[int]:
        return set(self._sid_by_user)
