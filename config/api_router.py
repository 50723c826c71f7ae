from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from synergysphere.messaging.api.views import MessageViewSet
from synergysphere.notifications.api.views import NotificationViewSet
from synergysphere.projects.api.views import ProjectInvitationViewSet
from synergysphere.projects.api.views import ProjectViewSet
from synergysphere.tasks.api.views import TaskViewSet
from synergysphere.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet)
router.register("projects", ProjectViewSet, basename="projects")
router.register("tasks", TaskViewSet, basename="tasks")
router.register("messages", MessageViewSet, basename="messages")
# Registered before "notifications" so its prefix wins over the detail route.
router.register(
    "notifications/invitations",
    ProjectInvitationViewSet,
    basename="invitations",
)
router.register("notifications", NotificationViewSet, basename="notifications")


app_name = "api"
urlpatterns = router.urls
