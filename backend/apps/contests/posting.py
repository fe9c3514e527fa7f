"""
成绩提交（apps.contests.posting）

PostResultsService 用新提交的成绩整体替换比赛的全部成绩：
1. 校验比赛状态（已审核 ≤ 状态 < 已结束）与提交的轮次 / 选手 / 尝试次数，校验失败时不做任何修改
2. 删除比赛的现有成绩，读取启用的纪录类型
3. 逐个项目：查询当前纪录快照，轮次按日期排序，同一天的轮次作为一批打纪录标签后写入
4. 统计参赛人数，比赛状态推进到进行中

整个流程在数据库事务中执行，任一步骤失败都会回滚到提交前的成绩、状态与参赛人数，
并以 InternalServiceError 返回。比赛行在事务内加锁，同一比赛的并发提交会串行执行。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import groupby
from typing import Iterable

from apps.common.base.base_service import BaseService
from apps.common.exceptions import ContestFinishedError, ContestNotApprovedError, ValidationError
from apps.common.infra.logger import get_logger, logger_extra
from apps.records.models import RecordType
from apps.records.repo import RecordTypeRepo
from apps.records.services import compute_records, mark_batch_records
from apps.results.formats import ATTEMPT_COUNTS, compute_average, compute_best, sort_and_rank
from apps.results.models import Result
from apps.results.participants import collect_participant_ids
from apps.results.repo import ResultRepo

from .models import Contest, ContestState, Round
from .repo import ContestRepo, RoundRepo
from .schemas import ContestEventSchema, PostResultsSchema, RoundSchema

logger = get_logger(__name__)


@dataclass
class PostedRound:
    round: Round
    results: list[Result] = field(default_factory=list)


@dataclass
class PostResultsOutcome:
    """提交结果：参赛人数与每个项目按日期排好序的轮次"""
    participants: int
    events: dict[str, list[PostedRound]] = field(default_factory=dict)


def ensure_can_post(contest: Contest) -> None:
    if contest.state < ContestState.APPROVED:
        raise ContestNotApprovedError()
    if contest.state >= ContestState.FINISHED:
        raise ContestFinishedError()


class PostResultsService(BaseService[PostResultsOutcome]):
    """成绩提交事务"""

    wrap_internal_errors = True

    def __init__(
            self,
            contest_repo: ContestRepo | None = None,
            round_repo: RoundRepo | None = None,
            result_repo: ResultRepo | None = None,
            record_type_repo: RecordTypeRepo | None = None,
    ):
        self.contest_repo = contest_repo or ContestRepo()
        self.round_repo = round_repo or RoundRepo()
        self.result_repo = result_repo or ResultRepo()
        self.record_type_repo = record_type_repo or RecordTypeRepo()

    def perform(self, contest_id: str, schema: PostResultsSchema) -> PostResultsOutcome:
        contest = self.contest_repo.get_for_update(contest_id)
        ensure_can_post(contest)
        rounds = self._load_rounds(contest, schema.events)

        deleted = self.result_repo.delete_by_contest(contest)
        record_types = self.record_type_repo.get_record_types(active=True)

        outcome = PostResultsOutcome(participants=0)
        for event_schema in schema.events:
            outcome.events[event_schema.event_id] = self._post_event(contest, event_schema, rounds, record_types)

        posted_rounds = [posted for event_rounds in outcome.events.values() for posted in event_rounds]
        outcome.participants = len(collect_participant_ids(posted_rounds))
        self.contest_repo.update(
            contest,
            {"participants": outcome.participants, "state": ContestState.ONGOING},
        )
        logger.info(
            "提交比赛成绩",
            extra=logger_extra({
                "contest": contest.contest_id,
                "deleted_results": deleted,
                "created_results": sum(len(p.results) for p in posted_rounds),
                "participants": outcome.participants,
            }),
        )
        return outcome

    def _load_rounds(self, contest: Contest, events: Iterable[ContestEventSchema]) -> dict[int, Round]:
        """写入之前一次性校验全部轮次，保证校验失败时没有任何修改"""
        events = list(events)
        round_ids = [r.id for ev in events for r in ev.rounds]
        rounds = self.round_repo.get_many_for_contest(contest, round_ids)
        for event_schema in events:
            for round_schema in event_schema.rounds:
                round_obj = rounds.get(round_schema.id)
                if round_obj is None:
                    raise ValidationError(message=f"轮次 {round_schema.id} 不属于比赛 {contest.contest_id}")
                event = round_obj.contest_event.event
                if event.event_id != event_schema.event_id:
                    raise ValidationError(message=f"轮次 {round_schema.id} 不属于项目 {event_schema.event_id}")
                self._check_results(round_obj, round_schema)
        return rounds

    @staticmethod
    def _check_results(round_obj: Round, round_schema: RoundSchema) -> None:
        event = round_obj.contest_event.event
        max_attempts = ATTEMPT_COUNTS[round_obj.format]
        for result_schema in round_schema.results:
            if len(result_schema.attempts) > max_attempts:
                raise ValidationError(
                    message=f"项目 {event.event_id} 的轮次最多 {max_attempts} 次尝试，收到 {len(result_schema.attempts)} 次"
                )
            if len(result_schema.person_ids) != event.participants:
                raise ValidationError(message=f"项目 {event.event_id} 每条成绩需要 {event.participants} 名选手")

    def _post_event(
            self,
            contest: Contest,
            event_schema: ContestEventSchema,
            rounds: dict[int, Round],
            record_types: list[RecordType],
    ) -> list[PostedRound]:
        snapshot = compute_records(event_schema.event_id, record_types, result_repo=self.result_repo)

        posted: list[PostedRound] = []
        for round_schema in event_schema.rounds:
            round_obj = rounds[round_schema.id]
            results = [self._build_result(contest, round_obj, r) for r in round_schema.results]
            posted.append(PostedRound(round=round_obj, results=sort_and_rank(results, round_obj.format)))
        # 轮次按日期排序（稳定排序，同一天保持提交顺序）
        posted.sort(key=lambda p: p.round.date)

        for _, batch in groupby(posted, key=lambda p: p.round.date):
            batch_rounds = list(batch)
            batch_results = [result for p in batch_rounds for result in p.results]
            snapshot = mark_batch_records(batch_results, snapshot, record_types)
            self.result_repo.bulk_create(batch_results)
        return posted

    @staticmethod
    def _build_result(contest: Contest, round_obj: Round, result_schema) -> Result:
        attempts = list(result_schema.attempts)
        return Result(
            contest=contest,
            round=round_obj,
            event=round_obj.contest_event.event,
            date=round_obj.date,
            person_ids=list(result_schema.person_ids),
            attempts=attempts,
            best=compute_best(attempts),
            average=compute_average(attempts, round_obj.format),
            not_published=contest.state < ContestState.PUBLISHED,
        )
