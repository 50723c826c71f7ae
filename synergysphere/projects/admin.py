from django.contrib import admin

from synergysphere.projects import models


class ProjectMemberInline(admin.TabularInline):
    model = models.ProjectMember
    extra = 0


@admin.register(models.Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "owner", "created_at"]
    search_fields = ["name", "description"]
    inlines = [ProjectMemberInline]


@admin.register(models.ProjectInvitation)
class ProjectInvitationAdmin(admin.ModelAdmin):
    list_display = ["id", "project", "inviter", "invitee", "role", "status"]
    list_filter = ["status", "role"]


@admin.register(models.ProjectActivity)
class ProjectActivityAdmin(admin.ModelAdmin):
    list_display = ["id", "project", "actor", "activity_type", "created_at"]
    list_filter = ["activity_type", "created_at"]
