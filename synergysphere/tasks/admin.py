from django.contrib import admin

from synergysphere.tasks import models


@admin.register(models.Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "project", "status", "due_date"]
    search_fields = ["title", "description"]
    list_filter = ["status", "due_date"]
    filter_horizontal = ["assignees"]


@admin.register(models.TaskComment)
class TaskCommentAdmin(admin.ModelAdmin):
    list_display = ["id", "task", "author", "created_at"]
    search_fields = ["content"]
