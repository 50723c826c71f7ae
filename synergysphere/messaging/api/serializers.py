from __future__ import annotations

from typing import Any

from rest_framework import serializers

from synergysphere.messaging.models import DirectMessage
from synergysphere.messaging.services import clean_message_input
from synergysphere.messaging.services import get_active_recipient
from synergysphere.realtime.exceptions import MessageValidationError
from synergysphere.users.api.serializers import UserSummarySerializer



class DirectMessageSerializer(serializers.ModelSerializer):
    sender_username = serializers.CharField(source="sender.username", read_only=True)
    sender_name = serializers.CharField(source="sender.name", read_only=True)

    class Meta:
        model = DirectMessage
        fields = (
            "id",
            "sender_id",
            "recipient_id",
            "content",
            "is_read",
            "created_at",
            "sender_username",
            "sender_name",
        )
        read_only_fields = fields


class SendMessageSerializer(serializers.Serializer):
    """Same rules as the Socket.IO ``send_message`` event."""

    recipient_id = serializers.JSONField(required=False)
    content = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        sender = self.context["request"].user
        try:
            recipient_id, content = clean_message_input(
                sender.pk,
                attrs.get("recipient_id"),
                attrs.get("content"),
            )
            recipient = get_active_recipient(recipient_id)
        except MessageValidationError as exc:
            raise serializers.ValidationError(exc.message) from exc
        return {"recipient": recipient, "content": content}


class ConversationSerializer(serializers.Serializer):
    user = UserSummarySerializer()
    last_message = DirectMessageSerializer()
    unread_count = serializers.IntegerField()
