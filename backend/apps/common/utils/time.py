"""
时间工具：日期解析与 UTC 日期截断，比赛与纪录只按日历日比较
"""

from __future__ import annotations

import datetime
from typing import Any, Optional

from django.utils.dateparse import parse_date, parse_datetime

from apps.common.exceptions import ValidationError


def to_utc_date(value: datetime.date | datetime.datetime | None) -> Optional[datetime.date]:
    """datetime 转为 UTC 后取日期部分；date 原样返回"""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    return value


def ensure_date(value: Any, *, field_name: str = "日期") -> datetime.date:
    """将 ISO 字符串 / datetime / date 统一转换为 date，失败抛业务校验错误"""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return to_utc_date(value)  # type: ignore[return-value]
    if isinstance(value, str) and value:
        try:
            parsed = parse_date(value) or to_utc_date(parse_datetime(value))
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(message=f"{field_name}格式不正确")
