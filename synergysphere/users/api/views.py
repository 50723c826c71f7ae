from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import filters
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.generics import CreateAPIView
from rest_framework.mixins import ListModelMixin
from rest_framework.mixins import RetrieveModelMixin
from rest_framework.mixins import UpdateModelMixin
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from synergysphere.realtime.socketio import online_count
from synergysphere.users.models import User

from .serializers import RegisterSerializer
from .serializers import UserSerializer

MIN_USERNAME_LENGTH = 3


@extend_schema_view(
    list=extend_schema(tags=["Users"]),
    retrieve=extend_schema(tags=["Users"]),
    partial_update=extend_schema(tags=["Users"]),
    update=extend_schema(tags=["Users"]),
)
class UserViewSet(RetrieveModelMixin, ListModelMixin, UpdateModelMixin, GenericViewSet):
    """Directory of users, used to pick message recipients and invitees."""

    serializer_class = UserSerializer
    queryset = User.objects.filter(is_active=True).order_by("username")
    lookup_field = "username"
    filter_backends = [filters.SearchFilter]
    search_fields = ["username", "name", "email"]

    def get_queryset(self, *args, **kwargs):  # type: ignore[override]
        qs = super().get_queryset()
        if self.action in {"update", "partial_update"}:
            # Only your own profile is writable.
            return qs.filter(pk=self.request.user.pk)
        return qs

    @action(detail=False)
    def me(self, request):
        serializer = UserSerializer(request.user, context={"request": request})
        return Response(status=status.HTTP_200_OK, data=serializer.data)

    @action(detail=False)
    def online(self, request):
        return Response({"online_count": online_count()})

    @action(detail=False, url_path=r"check-username/(?P<candidate>[^/]+)")
    def check_username(self, request, candidate=None):
        candidate = (candidate or "").strip().lower()
        if len(candidate) < MIN_USERNAME_LENGTH:
            return Response(
                {"detail": "Username must be at least 3 characters long."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        # Inactive accounts still hold their username.
        taken = User.objects.filter(username__iexact=candidate).exists()
        return Response({"username": candidate, "available": not taken})


@extend_schema(tags=["Authentication"])
class RegisterView(CreateAPIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(
            UserSerializer(user, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )
