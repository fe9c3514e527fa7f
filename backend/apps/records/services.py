"""
纪录计算（apps.records.services）

职责：
- compute_records：查询某项目在截止日期之前各纪录类别的最好单次 / 平均，纯读操作
- mark_batch_records：对同一天的一批成绩按纪录快照打纪录标签，并推进快照
- EventRecordsService：对外的纪录查询服务（HTTP 与管理端详情复用）

约定：
- 纪录比较以日期为粒度，截止日期会被截断为 UTC 日历日
- 没有纪录的类别用 -1 占位，而不是缺省
- 没有启用的纪录类型时返回 None
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from apps.common.base.base_service import BaseService
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.utils.time import to_utc_date
from apps.events.repo import EventRepo
from apps.results.repo import ResultRepo

from .models import RecordType
from .repo import RecordTypeRepo

logger = get_logger(__name__)

NO_RECORD = -1

RecordSnapshot = dict[str, dict[str, int]]


def truncate_cutoff(before: date | datetime | None) -> date:
    """
    截止日期归一：
    - None → 最大日期（即当前纪录）
    - datetime → 转为 UTC 后取日期部分
    """
    if before is None:
        return date.max
    return to_utc_date(before)


def compute_records(
        event_id: str,
        record_types: Sequence[RecordType],
        before: date | datetime | None = None,
        *,
        result_repo: ResultRepo | None = None,
) -> Optional[RecordSnapshot]:
    """
    返回 {纪录类别: {"best": int, "average": int}}，没有启用的纪录类型时返回 None
    """
    active_types = [rt for rt in record_types if rt.active]
    if not active_types:
        return None
    repo = result_repo or ResultRepo()
    cutoff = truncate_cutoff(before)

    records: RecordSnapshot = {}
    for rt in active_types:
        # 一条成绩只保留最高层级的标签，层级更高的纪录同样是本类别的纪录
        labels = [other.label for other in active_types if other.order <= rt.order]
        entry = {"best": NO_RECORD, "average": NO_RECORD}
        single = repo.best_single_before(event_id, labels, cutoff).first()
        if single is not None:
            entry["best"] = single.best
        average = repo.best_average_before(event_id, labels, cutoff).first()
        if average is not None:
            entry["average"] = average.average
        records[rt.equivalent] = entry
    return records


def _beats(value: int, record: int) -> bool:
    # 持平也算新纪录
    return value > 0 and (record == NO_RECORD or value <= record)


def mark_batch_records(
        results: Iterable[Any],
        snapshot: Optional[RecordSnapshot],
        record_types: Sequence[RecordType],
) -> RecordSnapshot | None:
    """
    同一天的一批成绩打纪录标签：
    - 每个纪录类别只比较该批次开始前的快照，批内最好的单次 / 平均若持平或刷新快照即获得标签
    - 快照推进到批内最好值，后续日期的批次基于新快照比较，早先日期不受后续成绩影响
    - 一条成绩只保留层级最高（order 最小）的标签，低层级类别仍然推进自己的快照
    """
    batch = list(results)
    for result in batch:
        result.single_record_type = None
        result.average_record_type = None
    if snapshot is None:
        return None

    ordered_types = sorted((rt for rt in record_types if rt.active), key=lambda rt: (rt.order, rt.label))
    for rt in ordered_types:
        record = snapshot.setdefault(rt.equivalent, {"best": NO_RECORD, "average": NO_RECORD})

        singles = [r.best for r in batch if r.best > 0]
        if singles:
            batch_best = min(singles)
            if _beats(batch_best, record["best"]):
                for result in batch:
                    if result.best == batch_best and not result.single_record_type:
                        result.single_record_type = rt.label
                record["best"] = batch_best

        averages = [r.average for r in batch if r.average > 0]
        if averages:
            batch_average = min(averages)
            if _beats(batch_average, record["average"]):
                for result in batch:
                    if result.average == batch_average and not result.average_record_type:
                        result.average_record_type = rt.label
                record["average"] = batch_average
    return snapshot


class EventRecordsService(BaseService[Optional[RecordSnapshot]]):
    """
    项目纪录查询：未传 record_types 时读取全部启用的纪录类型
    """

    atomic_enabled = False

    def __init__(
            self,
            event_repo: EventRepo | None = None,
            record_type_repo: RecordTypeRepo | None = None,
            result_repo: ResultRepo | None = None,
    ):
        self.event_repo = event_repo or EventRepo()
        self.record_type_repo = record_type_repo or RecordTypeRepo()
        self.result_repo = result_repo or ResultRepo()

    def perform(
            self,
            event_id: str,
            record_types: Sequence[RecordType] | None = None,
            before: date | datetime | None = None,
    ) -> Optional[RecordSnapshot]:
        self.event_repo.get_by_event_id(event_id)
        if record_types is None:
            record_types = self.record_type_repo.get_record_types(active=True)
        records = compute_records(event_id, record_types, before, result_repo=self.result_repo)
        logger.debug(
            "查询项目纪录",
            extra=logger_extra({"event_id": event_id, "before": str(before) if before else None}),
        )
        return records
