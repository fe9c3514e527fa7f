from __future__ import annotations

from django.contrib import admin

from .models import Person


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ("person_id", "name", "country_iso2")
    search_fields = ("name",)
