"""
比赛项目 / 轮次结构合并（apps.contests.reconcile）

reconcile(contest, incoming) 把提交的项目结构合并到已存储的结构上，分三个阶段：
1. 删除：提交中缺失的项目 / 轮次只有在没有成绩时才删除，有成绩的保留并记入报告
2. 更新与新增：轮次类型总是可改；成绩格式只在轮次没有成绩时可改；
   晋级规则在提交中存在时写入（轮次无成绩，或原本是最后一轮），提交中缺失时清除
3. 排序：按项目目录的展示顺序返回合并后的项目列表

轮次日期不在合并时修改；轮次内的顺序由日期决定，在提交成绩时确定。
任何持久化异常都直接向上抛出，由外层服务的事务回滚并转换为内部错误。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from apps.common.infra.logger import get_logger, logger_extra
from apps.events.repo import EventRepo

from .models import Contest, ContestEvent, ContestState, Round
from .repo import ContestEventRepo, RoundRepo
from .schemas import ContestEventSchema, RoundSchema

logger = get_logger(__name__)


@dataclass
class ReconcileReport:
    """结构合并报告：列出每个项目 / 轮次的处理结果"""
    created_events: list[str] = field(default_factory=list)
    deleted_events: list[str] = field(default_factory=list)
    # 提交中缺失但因有成绩而保留的项目
    kept_events: list[str] = field(default_factory=list)
    created_rounds: list[int] = field(default_factory=list)
    updated_rounds: list[int] = field(default_factory=list)
    deleted_rounds: list[int] = field(default_factory=list)
    # 提交中缺失但因有成绩而保留的轮次
    kept_rounds: list[int] = field(default_factory=list)
    # 因已有成绩而未修改成绩格式的轮次
    format_locked_rounds: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created_events": self.created_events,
            "deleted_events": self.deleted_events,
            "kept_events": self.kept_events,
            "created_rounds": self.created_rounds,
            "updated_rounds": self.updated_rounds,
            "deleted_rounds": self.deleted_rounds,
            "kept_rounds": self.kept_rounds,
            "format_locked_rounds": self.format_locked_rounds,
        }


class EventReconciler:
    """比赛结构合并器：只处理项目与轮次，不触碰成绩"""

    def __init__(
            self,
            event_repo: EventRepo | None = None,
            contest_event_repo: ContestEventRepo | None = None,
            round_repo: RoundRepo | None = None,
    ):
        self.event_repo = event_repo or EventRepo()
        self.contest_event_repo = contest_event_repo or ContestEventRepo()
        self.round_repo = round_repo or RoundRepo()

    def reconcile(
            self,
            contest: Contest,
            incoming: Sequence[ContestEventSchema],
    ) -> tuple[list[ContestEvent], ReconcileReport]:
        report = ReconcileReport()
        stored = self.contest_event_repo.list_for_contest(contest)
        incoming_by_event = {ev.event_id: ev for ev in incoming}

        # 阶段一：删除
        remaining_events: dict[str, ContestEvent] = {}
        remaining_rounds: dict[int, list[Round]] = {}
        for contest_event in stored:
            event_id = contest_event.event.event_id
            rounds = list(contest_event.rounds.all())
            counterpart = incoming_by_event.get(event_id)
            if counterpart is None:
                if any(self.round_repo.has_results(r) for r in rounds):
                    report.kept_events.append(event_id)
                    remaining_events[event_id] = contest_event
                    remaining_rounds[contest_event.pk] = rounds
                    continue
                self.round_repo.delete_where(contest_event=contest_event)
                self.contest_event_repo.delete(contest_event)
                report.deleted_events.append(event_id)
                continue

            incoming_ids = {r.id for r in counterpart.rounds if r.id is not None}
            kept: list[Round] = []
            for round_obj in rounds:
                if round_obj.pk in incoming_ids:
                    kept.append(round_obj)
                elif self.round_repo.has_results(round_obj):
                    report.kept_rounds.append(round_obj.pk)
                    kept.append(round_obj)
                else:
                    self.round_repo.delete(round_obj)
                    report.deleted_rounds.append(round_obj.pk)
            remaining_events[event_id] = contest_event
            remaining_rounds[contest_event.pk] = kept

        # 阶段二：更新与新增
        for event_schema in incoming:
            contest_event = remaining_events.get(event_schema.event_id)
            if contest_event is None:
                self._create_contest_event(contest, event_schema, report)
                continue
            rounds_by_id = {r.pk: r for r in remaining_rounds.get(contest_event.pk, [])}
            for round_schema in event_schema.rounds:
                stored_round = rounds_by_id.get(round_schema.id) if round_schema.id is not None else None
                if stored_round is None:
                    created = self._create_round(contest, contest_event, round_schema)
                    report.created_rounds.append(created.pk)
                else:
                    self._update_round(stored_round, round_schema, report)

        if report.kept_rounds or report.kept_events:
            logger.info(
                "比赛结构合并：保留了含成绩的轮次",
                extra=logger_extra({
                    "contest": contest.contest_id,
                    "kept_rounds": report.kept_rounds,
                    "kept_events": report.kept_events,
                }),
            )

        # 阶段三：按项目展示顺序返回
        return self.contest_event_repo.list_for_contest(contest), report

    def _update_round(self, stored_round: Round, round_schema: RoundSchema, report: ReconcileReport) -> None:
        has_results = self.round_repo.has_results(stored_round)
        data: dict = {"round_type_id": round_schema.round_type_id}
        if not has_results:
            data["format"] = round_schema.format
        elif round_schema.format != stored_round.format:
            report.format_locked_rounds.append(stored_round.pk)

        if round_schema.proceed:
            if not has_results or not stored_round.proceed:
                data["proceed"] = round_schema.proceed
        elif stored_round.proceed:
            # 后面的轮次被删除，本轮变为最后一轮
            data["proceed"] = None

        self.round_repo.update(stored_round, data)
        report.updated_rounds.append(stored_round.pk)

    def _create_round(self, contest: Contest, contest_event: ContestEvent, round_schema: RoundSchema) -> Round:
        return self.round_repo.create(
            {
                "contest": contest,
                "contest_event": contest_event,
                "round_type_id": round_schema.round_type_id,
                "format": round_schema.format,
                "date": round_schema.date,
                "proceed": round_schema.proceed,
                "not_published": contest.state < ContestState.PUBLISHED,
            }
        )

    def _create_contest_event(
            self,
            contest: Contest,
            event_schema: ContestEventSchema,
            report: ReconcileReport,
    ) -> ContestEvent:
        """新增整个项目及其全部轮次，项目未登记时抛 404"""
        event = self.event_repo.get_by_event_id(event_schema.event_id)
        contest_event = self.contest_event_repo.create({"contest": contest, "event": event})
        for round_schema in event_schema.rounds:
            created = self._create_round(contest, contest_event, round_schema)
            report.created_rounds.append(created.pk)
        report.created_events.append(event.event_id)
        return contest_event
