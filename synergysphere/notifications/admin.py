from django.contrib import admin

from synergysphere.notifications import models


@admin.register(models.Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["id", "recipient", "notification_type", "content", "is_read"]
    search_fields = ["content", "notification_type", "link"]
    list_filter = ["notification_type", "is_read", "created_at"]
