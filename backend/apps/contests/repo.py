from __future__ import annotations

from typing import Optional

from django.db.models import Count, Prefetch, QuerySet

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import NotFoundError
from apps.results.models import Result

from .models import Contest, ContestEvent, ContestState, Round


# 仓储层：封装比赛、比赛项目、轮次的 ORM 访问，提供业务友好的查询与写入


class ContestRepo(BaseRepo[Contest]):
    """比赛仓储：提供 contest_id 查询、加锁读取等快捷方法"""
    model = Contest
    not_found_message = "比赛不存在"

    def get_by_contest_id(self, contest_id: str, *, queryset: Optional[QuerySet[Contest]] = None) -> Contest:
        """通过 contest_id 获取比赛，未找到抛业务级 404"""
        qs = queryset if queryset is not None else self.get_queryset()
        try:
            return qs.get(contest_id=contest_id)
        except Contest.DoesNotExist as exc:  # type: ignore[attr-defined]
            raise NotFoundError(message=f"比赛 {contest_id} 不存在") from exc

    def get_for_update(self, contest_id: str) -> Contest:
        """在事务内锁定比赛行，串行化同一比赛的并发写操作"""
        return self.get_by_contest_id(contest_id, queryset=self.get_queryset().select_for_update())

    def with_structure(self) -> QuerySet[Contest]:
        """预取项目、轮次、成绩与组织者，避免详情接口 N+1"""
        rounds_qs = Round.objects.prefetch_related(
            Prefetch("results", queryset=Result.objects.order_by("ranking", "id"))
        ).order_by("date", "id")
        events_qs = ContestEvent.objects.select_related("event").prefetch_related(
            Prefetch("rounds", queryset=rounds_qs)
        )
        return self.get_queryset().select_related("created_by").prefetch_related(
            Prefetch("events", queryset=events_qs),
            "organizers",
        )

    def list_public(self, *, country_id: Optional[str] = None) -> QuerySet[Contest]:
        """公开列表：只返回已审核及之后的比赛"""
        qs = self.filter(state__gt=ContestState.CREATED)
        if country_id:
            qs = qs.filter(country_id=country_id)
        return qs.order_by("-start_date", "contest_id")

    def list_created_by(self, user) -> QuerySet[Contest]:
        return self.filter(created_by=user).order_by("-start_date", "contest_id")


class ContestEventRepo(BaseRepo[ContestEvent]):
    """比赛项目仓储"""
    model = ContestEvent
    not_found_message = "比赛项目不存在"

    def list_for_contest(self, contest: Contest) -> list[ContestEvent]:
        """按项目展示顺序返回比赛项目，轮次附带成绩数量"""
        rounds_qs = Round.objects.annotate(result_count=Count("results")).order_by("date", "id")
        return list(
            self.filter(contest=contest)
            .select_related("event")
            .prefetch_related(Prefetch("rounds", queryset=rounds_qs))
            .order_by("event__rank", "id")
        )


class RoundRepo(BaseRepo[Round]):
    """轮次仓储"""
    model = Round
    not_found_message = "轮次不存在"

    def has_results(self, round_obj: Round) -> bool:
        count = getattr(round_obj, "result_count", None)
        if count is not None:
            return count > 0
        return round_obj.results.exists()

    def get_many_for_contest(self, contest: Contest, round_ids: list[int]) -> dict[int, Round]:
        """批量获取属于该比赛的轮次，返回 id -> Round 映射"""
        rounds = self.filter(contest=contest, pk__in=round_ids).select_related("contest_event", "contest_event__event")
        return {r.pk: r for r in rounds}

    def publish_by_contest(self, contest: Contest) -> int:
        """清除比赛下全部轮次的未公示标记"""
        return self.update_where({"not_published": False}, contest=contest, not_published=True)
