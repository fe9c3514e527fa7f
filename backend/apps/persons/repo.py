from __future__ import annotations

from typing import Iterable

from apps.common.base.base_repo import BaseRepo

from .models import Person


class PersonRepo(BaseRepo[Person]):
    """选手仓储：按 person_id 批量查询"""
    model = Person
    not_found_message = "选手不存在"

    def get_persons_by_ids(self, person_ids: Iterable[int]) -> list[Person]:
        """批量获取选手，未登记的 person_id 直接忽略"""
        ids = sorted(set(person_ids))
        if not ids:
            return []
        return list(self.filter(person_id__in=ids).order_by("person_id"))
