from __future__ import annotations

from django.contrib import admin, messages

from apps.common.exceptions import BizError
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.permissions import Role

from .models import Contest, ContestEvent, ContestState, Round
from .services import ContestStateService

# 后台注册：仅负责 Django Admin 展示配置，不包含业务逻辑

logger = get_logger(__name__)


class AdminAuditMixin:
    """后台审计日志：记录增删改关键对象"""

    audit_model = ""

    def _audit(self, request, obj, action: str, **extra):
        logger.info(
            "Admin操作",
            extra=logger_extra(
                {
                    "admin": getattr(request.user, "username", None),
                    "model": self.audit_model or obj.__class__.__name__,
                    "object_id": getattr(obj, "pk", None),
                    "action": action,
                    **extra,
                }
            ),
        )

    def log_change(self, request, obj, message):
        super().log_change(request, obj, message)  # type: ignore[misc]
        self._audit(request, obj, "change")

    def log_addition(self, request, obj, message):
        super().log_addition(request, obj, message)  # type: ignore[misc]
        self._audit(request, obj, "add")

    def log_deletion(self, request, obj, object_repr):
        super().log_deletion(request, obj, object_repr)  # type: ignore[misc]
        self._audit(request, obj, "delete", object_repr=object_repr)


class ContestEventInline(admin.TabularInline):
    """比赛详情页内联项目"""

    model = ContestEvent
    extra = 0
    raw_id_fields = ("event",)


@admin.register(Contest)
class ContestAdmin(AdminAuditMixin, admin.ModelAdmin):
    audit_model = "Contest"
    list_display = ("contest_id", "name", "type", "state", "country_id", "start_date", "participants")
    list_filter = ("state", "type", "country_id")
    search_fields = ("contest_id", "name", "city")
    readonly_fields = ("participants", "created_at", "updated_at")
    filter_horizontal = ("organizers",)
    inlines = [ContestEventInline]
    actions = ["approve_contests", "publish_contests"]

    def _change_state(self, request, queryset, state: int) -> None:
        # 状态变更走服务层，保证公示钩子被执行
        service = ContestStateService()
        changed = 0
        for contest in queryset:
            try:
                report = service.execute(contest.contest_id, state, [Role.ADMIN])
            except BizError as exc:
                self.message_user(request, f"{contest.contest_id}: {exc.message}", level=messages.ERROR)
                continue
            changed += int(report.applied)
        self.message_user(request, f"已更新 {changed} 场比赛", level=messages.SUCCESS)

    @admin.action(description="审核通过所选比赛")
    def approve_contests(self, request, queryset):
        self._change_state(request, queryset, ContestState.APPROVED)

    @admin.action(description="公示所选比赛")
    def publish_contests(self, request, queryset):
        self._change_state(request, queryset, ContestState.PUBLISHED)


@admin.register(Round)
class RoundAdmin(admin.ModelAdmin):
    list_display = ("id", "contest", "contest_event", "round_type_id", "format", "date", "not_published")
    list_filter = ("format", "round_type_id", "not_published")
    search_fields = ("contest__contest_id",)
    raw_id_fields = ("contest", "contest_event")
