from __future__ import annotations

from typing import Optional

from apps.common.base.base_repo import BaseRepo

from .models import RecordType


class RecordTypeRepo(BaseRepo[RecordType]):
    """纪录类型仓储"""
    model = RecordType
    not_found_message = "纪录类型不存在"

    def get_record_types(self, *, active: Optional[bool] = None) -> list[RecordType]:
        """按层级顺序返回纪录类型，active 为 None 时不过滤"""
        qs = self.get_queryset()
        if active is not None:
            qs = qs.filter(active=active)
        return list(qs.order_by("order", "label"))
