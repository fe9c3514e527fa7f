from __future__ import annotations

from django.contrib import admin

from .models import RecordType


@admin.register(RecordType)
class RecordTypeAdmin(admin.ModelAdmin):
    list_display = ("label", "equivalent", "order", "active")
    list_editable = ("active",)
