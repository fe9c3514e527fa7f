from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from django.db import IntegrityError

from apps.common.base.base_service import BaseService
from apps.common.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.permissions import Role, is_admin
from apps.persons.models import Person
from apps.persons.repo import PersonRepo
from apps.records.repo import RecordTypeRepo
from apps.records.services import compute_records
from apps.results.models import Result
from apps.results.participants import collect_participant_ids, join_person_ids
from apps.results.repo import ResultRepo

from .models import Contest, ContestEvent, ContestState, ContestType, Round
from .reconcile import EventReconciler, ReconcileReport
from .repo import ContestRepo, RoundRepo
from .schemas import ContestCreateSchema, ContestUpdateSchema

# 服务层：实现比赛创建、修改、状态流转与查询，依赖仓储与 Schema 校验

logger = get_logger(__name__)


# ------------------------
# 序列化
# ------------------------

def serialize_result(result: Result) -> dict:
    """成绩序列化：person_id 同时输出列表与兼容的分隔格式"""
    return {
        "id": getattr(result, "id", None),
        "person_ids": list(result.person_ids),
        "person_id": join_person_ids(result.person_ids),
        "attempts": list(result.attempts),
        "best": result.best,
        "average": result.average,
        "ranking": result.ranking,
        "date": result.date,
        "single_record_type": result.single_record_type,
        "average_record_type": result.average_record_type,
    }


def serialize_round(round_obj: Round, *, results: Iterable[Result] | None = None) -> dict:
    data = {
        "id": getattr(round_obj, "id", None),
        "round_type_id": round_obj.round_type_id,
        "format": round_obj.format,
        "date": round_obj.date,
        "proceed": round_obj.proceed,
        "not_published": round_obj.not_published,
    }
    if results is not None:
        data["results"] = [serialize_result(r) for r in results]
    return data


def serialize_contest_event(contest_event: ContestEvent, *, include_results: bool = False) -> dict:
    rounds = list(contest_event.rounds.all())
    return {
        "event_id": contest_event.event.event_id,
        "event_name": contest_event.event.name,
        "rank": contest_event.event.rank,
        "rounds": [
            serialize_round(r, results=r.results.all() if include_results else None)
            for r in rounds
        ],
    }


def serialize_person(person: Person) -> dict:
    return {
        "person_id": person.person_id,
        "name": person.name,
        "country_iso2": person.country_iso2,
    }


def serialize_contest(
        contest: Contest,
        *,
        events: Iterable[ContestEvent] | None = None,
        include_results: bool = False,
        include_creator: bool = False,
) -> dict:
    """比赛序列化：events 为 None 时只输出基础信息（列表接口）"""
    data = {
        "contest_id": contest.contest_id,
        "name": contest.name,
        "type": contest.type,
        "state": contest.state,
        "country_id": contest.country_id,
        "city": contest.city,
        "venue": contest.venue,
        "address": contest.address,
        "latitude": contest.latitude,
        "longitude": contest.longitude,
        "start_date": contest.start_date,
        "end_date": contest.end_date,
        "contact": contest.contact,
        "description": contest.description,
        "competitor_limit": contest.competitor_limit,
        "main_event_id": contest.main_event_id,
        "participants": contest.participants,
    }
    if include_creator:
        data["created_by"] = getattr(contest, "created_by_id", None)
    if events is not None:
        data["organizers"] = [serialize_person(p) for p in contest.organizers.all()]
        data["events"] = [serialize_contest_event(ce, include_results=include_results) for ce in events]
    return data


# ------------------------
# 变更报告
# ------------------------

@dataclass
class ContestChangeReport:
    """比赛修改报告：applied 为生效字段，skipped 为因状态 / 角色被忽略的字段"""
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    rounds: Optional[ReconcileReport] = None

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "rounds": self.rounds.to_dict() if self.rounds else None,
        }


@dataclass
class StateChangeReport:
    applied: bool
    previous_state: int
    state: int

    def to_dict(self) -> dict:
        return {"applied": self.applied, "previous_state": self.previous_state, "state": self.state}


# 字段分组：管理员专属 / 结束前可改 / 开始前可改
ADMIN_ONLY_FIELDS = ("contest_id", "country_id")
BEFORE_FINISHED_FIELDS = ("contact", "description", "events")
BEFORE_ONGOING_FIELDS = (
    "name",
    "city",
    "venue",
    "address",
    "latitude",
    "longitude",
    "start_date",
    "end_date",
    "organizer_ids",
    "competitor_limit",
    "main_event_id",
)


def editable_fields(contest: Contest, roles: Iterable[str]) -> set[str]:
    """当前状态与角色下允许修改的字段"""
    if is_admin(roles):
        return set(ADMIN_ONLY_FIELDS + BEFORE_FINISHED_FIELDS + BEFORE_ONGOING_FIELDS)
    allowed: set[str] = set()
    if contest.state < ContestState.FINISHED:
        allowed.update(BEFORE_FINISHED_FIELDS)
    if contest.state < ContestState.ONGOING:
        allowed.update(BEFORE_ONGOING_FIELDS)
    return allowed


def ensure_contest_access(contest: Contest, user: Any, roles: Iterable[str]) -> None:
    """非管理员只能管理自己创建的比赛"""
    if is_admin(roles):
        return
    if Role.MODERATOR not in set(roles) or contest.created_by_id != getattr(user, "id", None):
        raise PermissionDeniedError(message="只能管理自己创建的比赛")


def resolve_organizers(person_ids: list[int], person_repo: PersonRepo) -> list[Person]:
    """组织者必须都已登记"""
    persons = person_repo.get_persons_by_ids(person_ids)
    missing = sorted(set(person_ids) - {p.person_id for p in persons})
    if missing:
        raise ValidationError(message=f"组织者未登记：{', '.join(str(pid) for pid in missing)}")
    return persons


# ------------------------
# 创建 / 修改
# ------------------------

class ContestCreateService(BaseService[Contest]):
    """创建比赛：比赛与全部轮次同时落库，初始状态为已创建、参赛人数为 0"""

    wrap_internal_errors = True

    def __init__(
            self,
            repo: ContestRepo | None = None,
            person_repo: PersonRepo | None = None,
            reconciler: EventReconciler | None = None,
    ):
        self.repo = repo or ContestRepo()
        self.person_repo = person_repo or PersonRepo()
        self.reconciler = reconciler or EventReconciler()

    def validate(self, schema: ContestCreateSchema, user: Any = None) -> None:
        if self.repo.exists(contest_id=schema.contest_id):
            raise ConflictError(message=f"比赛 {schema.contest_id} 已存在")

    def perform(self, schema: ContestCreateSchema, user: Any = None) -> Contest:
        organizers = resolve_organizers(schema.organizer_ids, self.person_repo)
        payload = schema.to_dict(exclude=("events", "organizer_ids"))
        payload.update(
            {
                "state": ContestState.CREATED,
                "participants": 0,
                "created_by": user if getattr(user, "is_authenticated", False) else None,
            }
        )
        try:
            contest = self.repo.create(payload)
        except IntegrityError as exc:
            raise ConflictError(message=f"比赛 {schema.contest_id} 已存在") from exc
        if organizers:
            contest.organizers.set(organizers)
        # 新比赛没有已存储的结构，合并等价于全部新建
        _, report = self.reconciler.reconcile(contest, schema.events)
        logger.info(
            "创建比赛",
            extra=logger_extra({"contest": contest.contest_id, "rounds": len(report.created_rounds)}),
        )
        return contest


class ContestUpdateService(BaseService[tuple[Contest, ContestChangeReport]]):
    """
    修改比赛：提交内容视为修改意图，按状态与角色过滤后只应用允许的字段，
    被过滤的字段保持原值并记入报告，不报错
    """

    wrap_internal_errors = True

    def __init__(
            self,
            repo: ContestRepo | None = None,
            person_repo: PersonRepo | None = None,
            reconciler: EventReconciler | None = None,
    ):
        self.repo = repo or ContestRepo()
        self.person_repo = person_repo or PersonRepo()
        self.reconciler = reconciler or EventReconciler()

    def perform(
            self,
            contest_id: str,
            schema: ContestUpdateSchema,
            roles: Iterable[str],
    ) -> tuple[Contest, ContestChangeReport]:
        roles = list(roles)
        contest = self.repo.get_for_update(contest_id)
        allowed = editable_fields(contest, roles)
        report = ContestChangeReport()

        provided = schema.provided_fields()
        report.applied = [name for name in provided if name in allowed]
        report.skipped = [name for name in provided if name not in allowed]

        # 多日正式比赛：修改后的结束日期不能为空
        end_date = schema.end_date if "end_date" in report.applied else contest.end_date
        start_date = schema.start_date if "start_date" in report.applied else contest.start_date
        if contest.type == ContestType.COMPETITION and end_date is None:
            raise ValidationError(message="正式比赛必须填写结束日期")
        if end_date is not None and end_date < start_date:
            raise ValidationError(message="结束日期不能早于开始日期")

        new_contest_id = schema.contest_id if "contest_id" in report.applied else None
        if new_contest_id and new_contest_id != contest.contest_id and self.repo.exists(contest_id=new_contest_id):
            raise ConflictError(message=f"比赛 {new_contest_id} 已存在")

        data = {
            name: getattr(schema, name)
            for name in report.applied
            if name not in ("events", "organizer_ids")
        }
        if data:
            self.repo.update(contest, data)
        if "organizer_ids" in report.applied:
            contest.organizers.set(resolve_organizers(schema.organizer_ids or [], self.person_repo))
        if "events" in report.applied:
            _, report.rounds = self.reconciler.reconcile(contest, schema.events or [])

        if report.skipped:
            logger.info(
                "修改比赛：部分字段因状态或角色被忽略",
                extra=logger_extra({"contest": contest.contest_id, "skipped": report.skipped}),
            )
        logger.info(
            "修改比赛",
            extra=logger_extra({"contest": contest.contest_id, "applied": report.applied}),
        )
        return contest, report


# ------------------------
# 状态流转
# ------------------------

def publish_contest(contest: Contest) -> None:
    """公示：清除比赛下所有轮次与成绩的未公示标记"""
    rounds = RoundRepo().publish_by_contest(contest)
    results = ResultRepo().publish_by_contest(contest)
    logger.info(
        "公示比赛",
        extra=logger_extra({"contest": contest.contest_id, "rounds": rounds, "results": results}),
    )


# 目标状态 -> 状态变更后依次执行的钩子
STATE_HOOKS: dict[int, list[Callable[[Contest], None]]] = {
    ContestState.PUBLISHED: [publish_contest],
}


def can_change_state(contest: Contest, new_state: int, roles: Iterable[str]) -> bool:
    """管理员可变更到任意状态；其他角色只能把进行中的比赛结束"""
    if is_admin(roles):
        return True
    return contest.state == ContestState.ONGOING and new_state == ContestState.FINISHED


class ContestStateService(BaseService[StateChangeReport]):
    """
    比赛状态变更：未授权的变更不报错，状态保持不变并在报告中标记 applied=False
    """

    wrap_internal_errors = True

    def __init__(self, repo: ContestRepo | None = None, hooks: dict | None = None):
        self.repo = repo or ContestRepo()
        self.hooks = STATE_HOOKS if hooks is None else hooks

    def perform(self, contest_id: str, new_state: int, roles: Iterable[str]) -> StateChangeReport:
        roles = list(roles)
        contest = self.repo.get_for_update(contest_id)
        previous = contest.state
        if not can_change_state(contest, new_state, roles):
            logger.info(
                "忽略未授权的状态变更",
                extra=logger_extra({"contest": contest.contest_id, "from_state": previous, "to_state": new_state}),
            )
            return StateChangeReport(applied=False, previous_state=previous, state=previous)

        self.repo.update(contest, {"state": new_state})
        for hook in self.hooks.get(new_state, []):
            hook(contest)
        logger.info(
            "比赛状态变更",
            extra=logger_extra({"contest": contest.contest_id, "from_state": previous, "to_state": new_state}),
        )
        return StateChangeReport(applied=True, previous_state=previous, state=new_state)


# ------------------------
# 查询
# ------------------------

class ContestQueryService:
    """比赛查询：公开列表 / 管理列表 / 公开详情 / 管理详情"""

    def __init__(
            self,
            repo: ContestRepo | None = None,
            person_repo: PersonRepo | None = None,
            record_type_repo: RecordTypeRepo | None = None,
    ):
        self.repo = repo or ContestRepo()
        self.person_repo = person_repo or PersonRepo()
        self.record_type_repo = record_type_repo or RecordTypeRepo()

    def list_contests(self, country_id: Optional[str] = None) -> list[Contest]:
        return list(self.repo.list_public(country_id=country_id))

    def list_mod_contests(self, user: Any, roles: Iterable[str]) -> list[Contest]:
        if is_admin(roles):
            return list(self.repo.filter().order_by("-start_date", "contest_id"))
        return list(self.repo.list_created_by(user))

    def get_full_contest(self, contest_id: str) -> Contest:
        return self.repo.get_by_contest_id(contest_id, queryset=self.repo.with_structure())

    @staticmethod
    def participants_of(contest: Contest) -> set[int]:
        rounds = [r for ce in contest.events.all() for r in ce.rounds.all()]
        return collect_participant_ids(rounds)

    def get_contest(self, contest_id: str) -> dict:
        """公开详情：已创建（未审核）的比赛视为不存在；进行中之后附带参赛选手"""
        contest = self.get_full_contest(contest_id)
        if contest.state <= ContestState.CREATED:
            raise NotFoundError(message=f"比赛 {contest_id} 不存在")
        persons: list[Person] = []
        if contest.state >= ContestState.ONGOING:
            persons = self.person_repo.get_persons_by_ids(self.participants_of(contest))
        return {
            "contest": serialize_contest(contest, events=contest.events.all(), include_results=True),
            "persons": [serialize_person(p) for p in persons],
        }

    def get_mod_contest(self, contest_id: str) -> dict:
        """管理详情：附带参赛选手与比赛开始日期之前各项目的纪录"""
        contest = self.get_full_contest(contest_id)
        persons = self.person_repo.get_persons_by_ids(self.participants_of(contest))
        record_types = self.record_type_repo.get_record_types(active=True)
        records = {
            ce.event.event_id: compute_records(ce.event.event_id, record_types, contest.start_date)
            for ce in contest.events.all()
        }
        return {
            "contest": serialize_contest(
                contest, events=contest.events.all(), include_results=True, include_creator=True
            ),
            "persons": [serialize_person(p) for p in persons],
            "records": records,
        }
