from __future__ import annotations

from rest_framework import serializers

from synergysphere.notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Read serializer for notifications."""

    type = serializers.CharField(source="notification_type", read_only=True)
    user_id = serializers.IntegerField(source="recipient_id", read_only=True)

    class Meta:
        model = Notification
        fields = (
            "id",
            "user_id",
            "type",
            "content",
            "link",
            "is_read",
            "created_at",
        )
        read_only_fields = fields
