from __future__ import annotations

from datetime import date
from typing import Iterable

from django.db.models import QuerySet

from apps.common.base.base_repo import BaseRepo

from .models import Result


# 仓储层：成绩读写与纪录查询，纪录查询只读不写


class ResultRepo(BaseRepo[Result]):
    """成绩仓储：提供按比赛批量替换与按纪录标签查询"""
    model = Result
    not_found_message = "成绩不存在"

    def get_queryset(self) -> QuerySet[Result]:
        return super().get_queryset().select_related("event", "round")

    def best_single_before(self, event_id: str, labels: Iterable[str], cutoff: date) -> QuerySet[Result]:
        """
        获取截止日期（不含）之前带有任一给定单次纪录标签的成绩，最好的在前
        """
        return self.filter(
            event__event_id=event_id,
            single_record_type__in=list(labels),
            date__lt=cutoff,
            best__gt=0,
        ).order_by("best", "date", "id")

    def best_average_before(self, event_id: str, labels: Iterable[str], cutoff: date) -> QuerySet[Result]:
        """
        获取截止日期（不含）之前带有任一给定平均纪录标签的成绩，最好的在前
        """
        return self.filter(
            event__event_id=event_id,
            average_record_type__in=list(labels),
            date__lt=cutoff,
            average__gt=0,
        ).order_by("average", "date", "id")

    def delete_by_contest(self, contest) -> int:
        """删除比赛下全部成绩，返回删除条数"""
        return self.delete_where(contest=contest)

    def publish_by_contest(self, contest) -> int:
        """清除比赛下全部成绩的未公示标记"""
        return self.update_where({"not_published": False}, contest=contest, not_published=True)
