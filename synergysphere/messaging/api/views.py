from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from synergysphere.messaging.models import DirectMessage
from synergysphere.realtime.events.messages import publish_direct_message

from .serializers import ConversationSerializer
from .serializers import DirectMessageSerializer
from .serializers import SendMessageSerializer

User = get_user_model()


def _bounded_int(raw, default: int, upper: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    return max(0, min(value, upper))


def _mark_read(sender_id: int, recipient) -> int:
    return DirectMessage.objects.filter(
        sender_id=sender_id,
        recipient=recipient,
        is_read=False,
    ).update(is_read=True)


@extend_schema(tags=["Messages"])
class MessageViewSet(GenericViewSet):
    """Direct messages of the authenticated user.

    - create: store a message and push ``new_message`` to the recipient
    - conversations: one row per correspondent with the latest message
    - conversation/<user_id>: history with one user; marks incoming as read
    - conversation/<user_id>/read: mark incoming from one user as read
    - unread-count
    """

    permission_classes = [IsAuthenticated]
    serializer_class = DirectMessageSerializer

    def get_queryset(self):
        user = self.request.user
        return DirectMessage.objects.filter(
            Q(sender=user) | Q(recipient=user)
        ).select_related("sender", "recipient")

    @extend_schema(request=SendMessageSerializer, responses=DirectMessageSerializer)
    def create(self, request):
        serializer = SendMessageSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)
        message = DirectMessage.objects.create(
            sender=request.user,
            recipient=serializer.validated_data["recipient"],
            content=serializer.validated_data["content"],
        )
        payload = publish_direct_message(message)
        return Response(payload, status=status.HTTP_201_CREATED)

    @extend_schema(responses=ConversationSerializer(many=True))
    @action(detail=False, methods=["get"])
    def conversations(self, request):
        me = request.user.pk
        latest: dict[int, DirectMessage] = {}
        for message in self.get_queryset().order_by("-created_at", "-id"):
            other = message.recipient if message.sender_id == me else message.sender
            latest.setdefault(other.pk, message)

        unread: dict[int, int] = {}
        for sender_id in DirectMessage.objects.filter(
            recipient_id=me,
            is_read=False,
        ).values_list("sender_id", flat=True):
            unread[sender_id] = unread.get(sender_id, 0) + 1

        rows = []
        for other_id, message in latest.items():
            other = message.recipient if message.sender_id == me else message.sender
            rows.append(
                {
                    "user": other,
                    "last_message": message,
                    "unread_count": unread.get(other_id, 0),
                },
            )
        return Response(ConversationSerializer(rows, many=True).data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"conversation/(?P<user_id>\d+)",
    )
    def conversation(self, request, user_id=None):
        other = get_object_or_404(User, pk=int(user_id))
        limit = _bounded_int(request.query_params.get("limit"), 50, 200) or 50
        offset = _bounded_int(request.query_params.get("offset"), 0, 10_000)

        qs = self.get_queryset().filter(
            Q(sender=other, recipient=request.user)
            | Q(sender=request.user, recipient=other)
        )
        page = list(qs.order_by("-created_at", "-id")[offset : offset + limit])
        page.reverse()

        _mark_read(sender_id=other.pk, recipient=request.user)

        return Response(
            {
                "messages": DirectMessageSerializer(page, many=True).data,
                "limit": limit,
                "offset": offset,
            },
        )

    @extend_schema(request=None)
    @action(
        detail=False,
        methods=["put"],
        url_path=r"conversation/(?P<user_id>\d+)/read",
    )
    def mark_conversation_read(self, request, user_id=None):
        updated = _mark_read(sender_id=int(user_id), recipient=request.user)
        return Response({"updated": updated})

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = DirectMessage.objects.filter(
            recipient=request.user,
            is_read=False,
        ).count()
        return Response({"unread_count": count})
