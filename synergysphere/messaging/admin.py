from django.contrib import admin

from synergysphere.messaging import models


@admin.register(models.DirectMessage)
class DirectMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "recipient", "is_read", "created_at"]
    search_fields = ["content"]
    list_filter = ["is_read", "created_at"]
