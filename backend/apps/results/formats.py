"""
成绩格式与成绩计算

- 成绩以厘秒整数存储；DNF 记为 -1，DNS 记为 -2，0 表示“无平均”（最佳类格式）
- best / average 由 attempts 与轮次格式推导，不接受外部直接写入
- 排名：平均类格式先比平均再比单次，最佳类格式只比单次；非正值（DNF/DNS）垫底，成绩相同名次相同
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence, TypeVar

from django.db import models

DNF = -1
DNS = -2
NO_AVERAGE = 0


class RoundFormat(models.TextChoices):
    """轮次成绩格式"""
    BEST_OF_1 = "1", "一次最佳"
    BEST_OF_2 = "2", "两次最佳"
    BEST_OF_3 = "3", "三次最佳"
    AVERAGE = "a", "五次去头尾平均"
    MEAN = "m", "三次平均"


ATTEMPT_COUNTS: dict[str, int] = {
    RoundFormat.BEST_OF_1: 1,
    RoundFormat.BEST_OF_2: 2,
    RoundFormat.BEST_OF_3: 3,
    RoundFormat.AVERAGE: 5,
    RoundFormat.MEAN: 3,
}


def is_average_format(fmt: str) -> bool:
    return fmt in (RoundFormat.AVERAGE, RoundFormat.MEAN)


def _sortable(value: int) -> float:
    # 非正值（DNF/DNS/无成绩）视为无穷大
    return value if value > 0 else math.inf


def compute_best(attempts: Sequence[int]) -> int:
    """最好单次：最小的正值成绩，没有则为 DNF"""
    valid = [a for a in attempts if a > 0]
    return min(valid) if valid else DNF


def compute_average(attempts: Sequence[int], fmt: str) -> int:
    """
    平均成绩：
    - 五次去头尾平均：去掉最好和最差各一次，最多允许一次 DNF/DNS
    - 三次平均：不允许 DNF/DNS
    - 最佳类格式没有平均，返回 0
    """
    if not is_average_format(fmt):
        return NO_AVERAGE
    if len(attempts) != ATTEMPT_COUNTS[fmt]:
        return DNF
    failed = sum(1 for a in attempts if a <= 0)
    if fmt == RoundFormat.AVERAGE:
        if failed > 1:
            return DNF
        counted = sorted(attempts, key=_sortable)[1:-1]
    else:
        if failed > 0:
            return DNF
        counted = list(attempts)
    return int(round(sum(counted) / len(counted)))


def ranking_key(best: int, average: int, fmt: str) -> tuple:
    """排序键：值越小越靠前"""
    if is_average_format(fmt):
        return (_sortable(average), _sortable(best))
    return (_sortable(best),)


R = TypeVar("R")


def sort_and_rank(results: Iterable[R], fmt: str) -> list[R]:
    """
    按轮次格式排序成绩并写入 ranking 属性，成绩完全相同的名次相同
    （结果对象需具备 best / average / ranking 属性）
    """
    ordered = sorted(results, key=lambda r: ranking_key(r.best, r.average, fmt))
    prev_key = None
    for index, result in enumerate(ordered):
        key = ranking_key(result.best, result.average, fmt)
        if key != prev_key:
            result.ranking = index + 1
            prev_key = key
        else:
            result.ranking = ordered[index - 1].ranking
    return ordered
