# apps/contests/schemas.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from django.conf import settings

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import ValidationError
from apps.common.utils.time import ensure_date
from apps.results.formats import DNS, RoundFormat
from apps.results.participants import split_person_ids

from .models import ContestState, ContestType, ProceedType, RoundType


# Schema 层：负责请求入参的结构化与校验，禁止写业务逻辑


def get_max_rounds() -> int:
    return getattr(settings, "CONTEST_MAX_ROUNDS", 10)


@dataclass
class ResultSchema(BaseSchema[None]):
    """
    单条成绩入参：
    - person_ids 兼容 "5;9" 分隔格式，入参阶段即解析为整数列表
    - attempts 为厘秒整数，-1 表示 DNF，-2 表示 DNS
    """
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {"personId": "person_ids", "personIds": "person_ids"}
    person_ids: Any
    attempts: list[int] = field(default_factory=list)

    def validate(self) -> None:
        self.person_ids = split_person_ids(self.person_ids)
        if not self.attempts:
            raise ValidationError(message="成绩至少需要一次尝试")
        cleaned: list[int] = []
        for attempt in self.attempts:
            if isinstance(attempt, dict):
                attempt = attempt.get("result")
            if isinstance(attempt, bool) or not isinstance(attempt, int) or attempt < DNS:
                raise ValidationError(message=f"非法的尝试成绩：{attempt!r}")
            cleaned.append(attempt)
        self.attempts = cleaned


@dataclass
class RoundSchema(BaseSchema[None]):
    """
    轮次入参：id 为已存在轮次的主键，新建轮次不传
    """
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {"_id": "id", "roundTypeId": "round_type_id"}
    round_type_id: str
    format: str
    date: Any
    id: Optional[int] = None
    proceed: Optional[dict] = None
    results: list[ResultSchema] = field(default_factory=list)

    def validate(self) -> None:
        if self.round_type_id not in RoundType.values:
            raise ValidationError(message=f"未知的轮次类型：{self.round_type_id}")
        if self.format not in RoundFormat.values:
            raise ValidationError(message=f"未知的成绩格式：{self.format}")
        self.date = ensure_date(self.date, field_name="轮次日期")
        if self.id is not None:
            try:
                self.id = int(self.id)
            except (TypeError, ValueError) as exc:
                raise ValidationError(message=f"非法的轮次标识：{self.id!r}") from exc
        if self.proceed:
            proceed_type = self.proceed.get("type")
            value = self.proceed.get("value")
            if proceed_type not in ProceedType.values:
                raise ValidationError(message="晋级规则类型只能是 number 或 percentage")
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(message="晋级人数必须为正整数")
            if proceed_type == ProceedType.PERCENTAGE and value > 100:
                raise ValidationError(message="晋级百分比不能超过 100")
            self.proceed = {"type": proceed_type, "value": value}
        else:
            self.proceed = None
        self.results = ResultSchema.from_list(self.results)


@dataclass
class ContestEventSchema(BaseSchema[None]):
    """
    比赛项目入参：校验轮次数量上下限，event_id 指向项目目录
    """
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {"eventId": "event_id"}
    event_id: str
    rounds: list[RoundSchema] = field(default_factory=list)

    @classmethod
    def normalize_keys(cls, data: dict[str, Any]) -> dict[str, Any]:
        # 兼容 {"event": {"eventId": "333"}} 的嵌套写法
        data = dict(data)
        nested = data.get("event")
        if isinstance(nested, dict) and "event_id" not in data and "eventId" not in data:
            data["event_id"] = nested.get("event_id") or nested.get("eventId")
        return super().normalize_keys(data)

    def validate(self) -> None:
        if not self.event_id:
            raise ValidationError(message="缺少项目标识")
        self.event_id = str(self.event_id)
        self.rounds = RoundSchema.from_list(self.rounds)
        if not self.rounds:
            raise ValidationError(message=f"项目 {self.event_id} 至少需要一个轮次")
        max_rounds = get_max_rounds()
        if len(self.rounds) > max_rounds:
            raise ValidationError(message=f"项目 {self.event_id} 的轮次不能超过 {max_rounds} 个")
        round_ids = [r.id for r in self.rounds if r.id is not None]
        if len(round_ids) != len(set(round_ids)):
            raise ValidationError(message=f"项目 {self.event_id} 存在重复的轮次")

    def validate_proceed(self) -> None:
        """最后一轮不能有晋级规则，其余轮次必须有"""
        for index, round_schema in enumerate(self.rounds):
            is_last = index == len(self.rounds) - 1
            if is_last and round_schema.proceed:
                raise ValidationError(message=f"项目 {self.event_id} 的最后一轮不能设置晋级规则")
            if not is_last and not round_schema.proceed:
                raise ValidationError(message=f"项目 {self.event_id} 的非最后一轮必须设置晋级规则")


def _validate_events(events: list[ContestEventSchema]) -> list[ContestEventSchema]:
    events = ContestEventSchema.from_list(events)
    event_ids = [ev.event_id for ev in events]
    if len(event_ids) != len(set(event_ids)):
        raise ValidationError(message="比赛中存在重复的项目")
    for ev in events:
        ev.validate_proceed()
    return events


def _validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError(message="纬度必须介于 -90 与 90 之间")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError(message="经度必须介于 -180 与 180 之间")


@dataclass
class ContestCreateSchema(BaseSchema[None]):
    """
    创建比赛入参：
    - 比赛基础信息、地点、日期与项目结构
    - 多日正式比赛必须填写结束日期
    """
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {
        "competitionId": "contest_id",
        "contestId": "contest_id",
        "countryId": "country_id",
        "startDate": "start_date",
        "endDate": "end_date",
        "competitorLimit": "competitor_limit",
        "mainEventId": "main_event_id",
        "organizers": "organizer_ids",
    }
    # 比赛标识
    contest_id: str
    # 比赛名称
    name: str
    # 开始日期
    start_date: Any
    type: int = ContestType.MEETUP
    end_date: Any = None
    country_id: str = ""
    city: str = ""
    venue: str = ""
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    # 组织者 person_id 列表
    organizer_ids: list[Any] = field(default_factory=list)
    contact: str = ""
    description: str = ""
    competitor_limit: Optional[int] = None
    main_event_id: str = ""
    events: list[ContestEventSchema] = field(default_factory=list)

    def validate(self) -> None:
        """校验标识、类型、日期与项目结构"""
        if not self.contest_id:
            raise ValidationError(message="比赛标识不能为空")
        if not self.name:
            raise ValidationError(message="比赛名称不能为空")
        if self.type not in ContestType.values:
            raise ValidationError(message=f"未知的比赛类型：{self.type}")
        self.start_date = ensure_date(self.start_date, field_name="开始日期")
        if self.end_date is not None:
            self.end_date = ensure_date(self.end_date, field_name="结束日期")
        if self.type == ContestType.COMPETITION and self.end_date is None:
            raise ValidationError(message="正式比赛必须填写结束日期")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValidationError(message="结束日期不能早于开始日期")
        _validate_coordinates(self.latitude, self.longitude)
        if self.competitor_limit is not None and self.competitor_limit < 1:
            raise ValidationError(message="人数上限必须为正整数")
        self.organizer_ids = normalize_organizer_ids(self.organizer_ids)
        self.events = _validate_events(self.events)


def normalize_organizer_ids(values: list[Any] | None) -> list[int]:
    """组织者既可以是 person_id，也可以是 {"personId": 1} 的对象"""
    person_ids: list[int] = []
    for value in values or []:
        if isinstance(value, dict):
            value = value.get("personId", value.get("person_id"))
        person_ids.extend(split_person_ids(value))
    return list(dict.fromkeys(person_ids))


@dataclass
class ContestUpdateSchema(BaseSchema[None]):
    """
    更新比赛入参：所有字段可选，None 表示未提供
    各字段在当前状态 / 角色下是否生效由 ContestUpdateService 决定
    """
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = ContestCreateSchema.ALIASES
    contest_id: Optional[str] = None
    country_id: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_date: Any = None
    end_date: Any = None
    organizer_ids: Optional[list[Any]] = None
    contact: Optional[str] = None
    description: Optional[str] = None
    competitor_limit: Optional[int] = None
    main_event_id: Optional[str] = None
    events: Optional[list[ContestEventSchema]] = None

    def validate(self) -> None:
        if self.contest_id is not None and not self.contest_id:
            raise ValidationError(message="比赛标识不能为空")
        if self.name is not None and not self.name:
            raise ValidationError(message="比赛名称不能为空")
        if self.start_date is not None:
            self.start_date = ensure_date(self.start_date, field_name="开始日期")
        if self.end_date is not None:
            self.end_date = ensure_date(self.end_date, field_name="结束日期")
        _validate_coordinates(self.latitude, self.longitude)
        if self.competitor_limit is not None and self.competitor_limit < 1:
            raise ValidationError(message="人数上限必须为正整数")
        if self.organizer_ids is not None:
            self.organizer_ids = normalize_organizer_ids(self.organizer_ids)
        if self.events is not None:
            self.events = _validate_events(self.events)


@dataclass
class StateChangeSchema(BaseSchema[None]):
    """状态变更入参"""
    auto_validate: ClassVar[bool] = True
    ALIASES: ClassVar[dict[str, str]] = {"newState": "state"}
    state: int

    def validate(self) -> None:
        try:
            self.state = int(self.state)
        except (TypeError, ValueError) as exc:
            raise ValidationError(message="非法的比赛状态") from exc
        if self.state not in ContestState.values:
            raise ValidationError(message=f"未知的比赛状态：{self.state}")


@dataclass
class PostResultsSchema(BaseSchema[None]):
    """
    提交成绩入参：每个轮次必须带上已存在轮次的 id
    """
    auto_validate: ClassVar[bool] = True
    events: list[ContestEventSchema] = field(default_factory=list)

    def validate(self) -> None:
        self.events = ContestEventSchema.from_list(self.events)
        event_ids = [ev.event_id for ev in self.events]
        if len(event_ids) != len(set(event_ids)):
            raise ValidationError(message="成绩中存在重复的项目")
        for ev in self.events:
            for round_schema in ev.rounds:
                if round_schema.id is None:
                    raise ValidationError(message=f"项目 {ev.event_id} 的轮次缺少标识，请先保存比赛结构")
