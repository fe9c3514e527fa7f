"""
参赛选手统计

- 成绩内部使用有序的整数列表 person_ids 表示选手（团队成绩有多人）
- 旧格式 "5;9" 只在入参边界由 split_person_ids 解析，内部不再出现分隔字符串
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from django.conf import settings

from apps.common.exceptions import ValidationError


def get_person_id_delimiter() -> str:
    return getattr(settings, "CONTEST_PERSON_ID_DELIMITER", ";")


def split_person_ids(value: Any, *, delimiter: Optional[str] = None) -> list[int]:
    """
    把入参中的选手标识统一转为整数列表：
    - "5;9" → [5, 9]
    - 9 / "9" → [9]
    - [5, "9"] → [5, 9]
    非法片段直接拒绝，避免脏数据进入存储
    """
    sep = delimiter or get_person_id_delimiter()
    if isinstance(value, bool) or value is None:
        raise ValidationError(message="选手标识不能为空")
    if isinstance(value, int):
        tokens: list[Any] = [value]
    elif isinstance(value, str):
        tokens = value.split(sep)
    elif isinstance(value, (list, tuple)):
        tokens = list(value)
    else:
        raise ValidationError(message=f"无法识别的选手标识：{value!r}")

    person_ids: list[int] = []
    for token in tokens:
        try:
            person_id = int(str(token).strip())
        except (TypeError, ValueError) as exc:
            raise ValidationError(message=f"非法的选手标识：{value!r}") from exc
        if person_id <= 0:
            raise ValidationError(message=f"非法的选手标识：{value!r}")
        person_ids.append(person_id)
    if not person_ids:
        raise ValidationError(message="选手标识不能为空")
    return person_ids


def join_person_ids(person_ids: Iterable[int], *, delimiter: Optional[str] = None) -> str:
    """输出兼容格式，仅用于对外展示"""
    sep = delimiter or get_person_id_delimiter()
    return sep.join(str(pid) for pid in person_ids)


def _round_results(round_obj: Any) -> Iterable[Any]:
    if isinstance(round_obj, dict):
        return round_obj.get("results") or []
    results = getattr(round_obj, "results", None)
    if results is None:
        return []
    # ORM 反向关系管理器
    if hasattr(results, "all"):
        return results.all()
    return results


def _result_person_ids(result: Any) -> Iterable[int]:
    if isinstance(result, dict):
        return result.get("person_ids") or []
    return getattr(result, "person_ids", None) or []


def collect_participant_ids(rounds: Iterable[Any]) -> set[int]:
    """
    汇总一组轮次中出现过的全部选手（去重），轮次可以是模型对象或字典
    """
    person_ids: set[int] = set()
    for round_obj in rounds:
        for result in _round_results(round_obj):
            person_ids.update(_result_person_ids(result))
    return person_ids
