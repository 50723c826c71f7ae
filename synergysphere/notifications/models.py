from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    class Type(models.TextChoices):
        PROJECT_INVITATION = "project_invitation", _("Project Invitation")
        TASK_ASSIGNED = "task_assigned", _("Task Assigned")
        COMMENT = "comment", _("Comment")
        MESSAGE = "message", _("Message")
        OTHER = "other", _("Other")

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    notification_type = models.CharField(
        max_length=50, choices=Type.choices, default=Type.OTHER
    )
    content = models.TextField()
    link = models.CharField(max_length=500, blank=True, default="")
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.notification_type} - {self.recipient}"
