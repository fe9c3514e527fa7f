from __future__ import annotations

from django.contrib import admin

from .models import Event


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "name", "rank", "format", "participants")
    ordering = ("rank",)
    search_fields = ("event_id", "name")
