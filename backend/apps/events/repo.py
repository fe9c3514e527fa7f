from __future__ import annotations

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import NotFoundError

from .models import Event


class EventRepo(BaseRepo[Event]):
    """项目目录仓储：按 event_id 查询项目定义"""
    model = Event
    not_found_message = "项目不存在"

    def get_by_event_id(self, event_id: str) -> Event:
        """通过 event_id 获取项目，未找到抛业务级 404"""
        try:
            return self.filter(event_id=event_id).get()
        except Event.DoesNotExist as exc:  # type: ignore[attr-defined]
            raise NotFoundError(message=f"项目 {event_id} 不存在") from exc

    def get_many(self, event_ids: list[str]) -> dict[str, Event]:
        """批量获取项目，返回 event_id -> Event 映射"""
        return {event.event_id: event for event in self.filter(event_id__in=event_ids)}
