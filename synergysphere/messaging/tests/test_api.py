import pytest
from rest_framework import status

from synergysphere.conftest import emitted_events
from synergysphere.conftest import make_user
from synergysphere.messaging.models import DirectMessage

pytestmark = pytest.mark.django_db

MESSAGES_URL = "/api/v1/messages/"


def test_send_message_stores_and_pushes(api_client, user, other_user, emitted):
    res = api_client.post(
        MESSAGES_URL,
        {"recipient_id": other_user.pk, "content": "hello"},
        format="json",
    )

    assert res.status_code == status.HTTP_201_CREATED
    message = DirectMessage.objects.get()
    assert message.sender == user
    assert res.data["id"] == message.pk
    assert res.data["sender_username"] == "alice"
    assert emitted_events(emitted) == [
        ("new_message", res.data, f"user:{other_user.pk}"),
    ]


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        ({"content": "hello"}, "Recipient ID and content are required"),
        ({"recipient_id": 2, "content": ""}, "Recipient ID and content are required"),
        ({"recipient_id": 2, "content": "x" * 1001}, "Message cannot exceed 1000 characters"),
    ],
)
def test_send_message_validation(api_client, other_user, emitted, payload, error):
    res = api_client.post(MESSAGES_URL, payload, format="json")

    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.data["non_field_errors"] == [error]
    assert not DirectMessage.objects.exists()
    assert emitted.await_count == 0


def test_cannot_message_yourself(api_client, user, emitted):
    res = api_client.post(
        MESSAGES_URL,
        {"recipient_id": user.pk, "content": "me"},
        format="json",
    )

    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.data["non_field_errors"] == ["Cannot send message to yourself"]


def test_unknown_recipient(api_client, emitted):
    res = api_client.post(
        MESSAGES_URL,
        {"recipient_id": 9999, "content": "anyone?"},
        format="json",
    )

    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert not DirectMessage.objects.exists()


def test_conversation_marks_incoming_read(api_client, user, other_user):
    DirectMessage.objects.create(sender=other_user, recipient=user, content="one")
    DirectMessage.objects.create(sender=user, recipient=other_user, content="two")
    DirectMessage.objects.create(sender=other_user, recipient=user, content="three")

    res = api_client.get(f"{MESSAGES_URL}conversation/{other_user.pk}/")

    assert res.status_code == status.HTTP_200_OK
    assert [m["content"] for m in res.data["messages"]] == ["one", "two", "three"]
    assert not DirectMessage.objects.filter(recipient=user, is_read=False).exists()
    # Outgoing messages stay unread until the other side opens the thread.
    assert DirectMessage.objects.get(content="two").is_read is False


def test_conversation_limit_returns_latest(api_client, user, other_user):
    for i in range(5):
        DirectMessage.objects.create(sender=other_user, recipient=user, content=f"m{i}")

    res = api_client.get(f"{MESSAGES_URL}conversation/{other_user.pk}/?limit=2")

    assert [m["content"] for m in res.data["messages"]] == ["m3", "m4"]


def test_conversations_and_unread_count(api_client, user, other_user):
    carol = make_user("carol")
    DirectMessage.objects.create(sender=other_user, recipient=user, content="hi")
    DirectMessage.objects.create(sender=other_user, recipient=user, content="again")
    DirectMessage.objects.create(sender=user, recipient=carol, content="yo")

    res = api_client.get(f"{MESSAGES_URL}conversations/")

    assert res.status_code == status.HTTP_200_OK
    rows = {row["user"]["username"]: row for row in res.data}
    assert rows["bob"]["unread_count"] == 2
    assert rows["bob"]["last_message"]["content"] == "again"
    assert rows["carol"]["unread_count"] == 0

    unread = api_client.get(f"{MESSAGES_URL}unread-count/")
    assert unread.data == {"unread_count": 2}


def test_mark_conversation_read(api_client, user, other_user):
    carol = make_user("carol")
    DirectMessage.objects.create(sender=other_user, recipient=user, content="one")
    DirectMessage.objects.create(sender=other_user, recipient=user, content="two")
    DirectMessage.objects.create(sender=carol, recipient=user, content="three")
    DirectMessage.objects.create(sender=user, recipient=other_user, content="mine")

    res = api_client.put(f"{MESSAGES_URL}conversation/{other_user.pk}/read/")

    assert res.status_code == status.HTTP_200_OK
    assert res.data == {"updated": 2}
    unread = DirectMessage.objects.filter(recipient=user, is_read=False)
    assert [m.content for m in unread] == ["three"]
    assert not DirectMessage.objects.get(content="mine").is_read


def test_inactive_recipient(api_client, other_user, emitted):
    other_user.is_active = False
    other_user.save(update_fields=["is_active"])

    res = api_client.post(
        MESSAGES_URL,
        {"recipient_id": other_user.pk, "content": "still there?"},
        format="json",
    )

    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.data["non_field_errors"] == ["Recipient not found"]
    assert emitted.await_count == 0
