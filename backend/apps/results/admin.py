from __future__ import annotations

from django.contrib import admin

from .models import Result


@admin.register(Result)
class ResultAdmin(admin.ModelAdmin):
    list_display = ("id", "contest", "event", "date", "person_ids", "best", "average", "ranking",
                    "single_record_type", "average_record_type")
    list_filter = ("single_record_type", "average_record_type", "not_published")
    search_fields = ("contest__contest_id", "event__event_id")
    raw_id_fields = ("contest", "round", "event")
    # 成绩只能通过提交接口写入，纪录标签为派生数据
    readonly_fields = ("best", "average", "ranking", "single_record_type", "average_record_type")
