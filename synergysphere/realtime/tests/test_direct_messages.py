import pytest

from synergysphere.messaging.services import RECIPIENT_NOT_FOUND
from synergysphere.messaging.services import REQUIRED
from synergysphere.messaging.services import TO_SELF
from synergysphere.messaging.services import TOO_LONG
from synergysphere.realtime.direct_messages import SEND_FAILED
from synergysphere.realtime.direct_messages import DirectMessageChannel
from synergysphere.realtime.dispatcher import EventDispatcher
from synergysphere.realtime.presence import Connection
from synergysphere.realtime.presence import PresenceRegistry


@pytest.fixture
def presence():
    return PresenceRegistry()


@pytest.fixture
def channel(server, presence, message_store, notification_store):
    dispatcher = EventDispatcher(server, notification_store)
    return DirectMessageChannel(dispatcher, presence, message_store)


@pytest.fixture
def alice(presence):
    connection = Connection("a1", 1, "alice", "Alice Smith")
    presence.register(connection)
    return connection


@pytest.fixture
def bob(presence):
    connection = Connection("b1", 2, "bob", "Bob Jones")
    presence.register(connection)
    return connection


@pytest.mark.asyncio
async def test_send_message_pushes_and_confirms(channel, server, message_store, alice):
    message = await channel.send_message(alice, {"recipientId": 2, "content": "hi"})

    assert message_store.rows[0]["content"] == "hi"
    assert message["sender_username"] == "alice"
    assert message["sender_name"] == "Alice Smith"
    assert server.sent == [
        ("new_message", message, "user:2"),
        ("message_sent", message, "a1"),
    ]


@pytest.mark.asyncio
async def test_send_message_accepts_snake_case_and_string_id(channel, message_store, alice):
    await channel.send_message(alice, {"recipient_id": "2", "content": "  hey  "})

    assert message_store.rows[0]["recipient_id"] == 2
    assert message_store.rows[0]["content"] == "hey"


@pytest.mark.parametrize(
    ("data", "error"),
    [
        ({"recipientId": 2, "content": ""}, REQUIRED),
        ({"recipientId": 2, "content": "   "}, REQUIRED),
        ({"content": "hi"}, REQUIRED),
        ({"recipientId": "x", "content": "hi"}, REQUIRED),
        (None, REQUIRED),
        ({"recipientId": 1, "content": "hi"}, TO_SELF),
        ({"recipientId": 2, "content": "x" * 1001}, TOO_LONG),
    ],
)
@pytest.mark.asyncio
async def test_send_message_validation(channel, server, message_store, alice, data, error):
    assert await channel.send_message(alice, data) is None

    assert server.sent == [("error", {"message": error}, "a1")]
    assert message_store.rows == []


@pytest.mark.asyncio
async def test_send_message_persistence_failure(channel, server, message_store, alice):
    message_store.fail = True

    assert await channel.send_message(alice, {"recipientId": 2, "content": "hi"}) is None
    assert server.sent == [("error", {"message": SEND_FAILED}, "a1")]


@pytest.mark.asyncio
async def test_send_message_to_unknown_recipient(channel, server, message_store, alice):
    message_store.unknown_recipients.add(99)

    assert await channel.send_message(alice, {"recipientId": 99, "content": "hi"}) is None
    assert server.sent == [("error", {"message": RECIPIENT_NOT_FOUND}, "a1")]
    assert message_store.rows == []


@pytest.mark.asyncio
async def test_send_message_unexpected_store_error(channel, server, message_store, alice):
    async def broken(*args):
        msg = "boom"
        raise RuntimeError(msg)

    message_store.create_message = broken

    assert await channel.send_message(alice, {"recipientId": 2, "content": "hi"}) is None
    assert server.sent == [("error", {"message": SEND_FAILED}, "a1")]


@pytest.mark.asyncio
async def test_typing_to_offline_user_is_dropped(channel, server, alice):
    assert not await channel.typing_start(alice, {"recipientId": 2})

    assert server.sent == []
    assert not channel.is_typing("a1", 2)


@pytest.mark.asyncio
async def test_typing_start_and_stop(channel, server, alice, bob):
    assert await channel.typing_start(alice, {"recipientId": 2})
    assert channel.is_typing("a1", 2)

    assert await channel.typing_stop(alice, {"recipientId": 2})
    assert not channel.is_typing("a1", 2)

    assert server.sent == [
        ("user_typing", {"userId": 1, "username": "alice"}, "user:2"),
        ("user_stopped_typing", {"userId": 1, "username": "alice"}, "user:2"),
    ]


@pytest.mark.asyncio
async def test_typing_without_recipient_is_ignored(channel, server, alice, bob):
    assert not await channel.typing_start(alice, {})
    assert not await channel.typing_stop(alice, {"recipientId": None})
    assert server.sent == []


@pytest.mark.asyncio
async def test_sending_clears_typing_state(channel, alice, bob):
    await channel.typing_start(alice, {"recipientId": 2})
    await channel.send_message(alice, {"recipientId": 2, "content": "done"})

    assert not channel.is_typing("a1", 2)


@pytest.mark.asyncio
async def test_forget_clears_indicator_for_online_recipient(channel, server, alice, bob):
    await channel.typing_start(alice, {"recipientId": 2})
    server.sent.clear()

    await channel.forget(alice)

    assert server.sent == [
        ("user_stopped_typing", {"userId": 1, "username": "alice"}, "user:2"),
    ]
    assert not channel.is_typing("a1", 2)


@pytest.mark.asyncio
async def test_forget_skips_offline_recipient(channel, server, presence, alice, bob):
    await channel.typing_start(alice, {"recipientId": 2})
    presence.unregister("b1")
    server.sent.clear()

    await channel.forget(alice)

    assert server.sent == []
