from synergysphere.realtime.presence import Connection
from synergysphere.realtime.presence import PresenceRegistry


def test_register_and_unregister():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 1, "alice"))

    assert registry.is_online(1)
    assert registry.online_count() == 1
    assert registry.connection_for(1).sid == "s1"

    removed = registry.unregister("s1")
    assert removed.user_id == 1
    assert not registry.is_online(1)
    assert registry.online_count() == 0


def test_unknown_sid_unregister_is_noop():
    registry = PresenceRegistry()
    assert registry.unregister("missing") is None


def test_last_connection_wins():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 1, "alice"))
    registry.register(Connection("s2", 1, "alice"))

    assert registry.connection_for(1).sid == "s2"
    assert registry.online_count() == 1
    # Both handles stay addressable until they disconnect.
    assert registry.is_connected("s1")
    assert registry.is_connected("s2")


def test_stale_disconnect_keeps_newer_connection_online():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 1, "alice"))
    registry.register(Connection("s2", 1, "alice"))

    registry.unregister("s1")

    assert registry.is_online(1)
    assert registry.connection_for(1).sid == "s2"


def test_newest_disconnect_marks_user_offline():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 1, "alice"))
    registry.register(Connection("s2", 1, "alice"))

    registry.unregister("s2")

    assert not registry.is_online(1)
    assert registry.is_connected("s1")


def test_online_user_ids_counts_users_not_connections():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 1, "alice"))
    registry.register(Connection("s2", 1, "alice"))
    registry.register(Connection("s3", 2, "bob"))

    assert registry.online_user_ids() == {1, 2}
    assert registry.online_count() == 2


def test_is_online_accepts_string_ids():
    registry = PresenceRegistry()
    registry.register(Connection("s1", 7, "dave"))
    assert registry.is_online("7")
