from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.events.models import Event
from apps.records.models import RecordCategory, RecordType
from apps.results.formats import RoundFormat

# (event_id, 名称, 展示顺序, 默认格式, 每条成绩人数)
DEFAULT_EVENTS = [
    ("333", "三阶", 10, RoundFormat.AVERAGE, 1),
    ("222", "二阶", 20, RoundFormat.AVERAGE, 1),
    ("444", "四阶", 30, RoundFormat.AVERAGE, 1),
    ("555", "五阶", 40, RoundFormat.AVERAGE, 1),
    ("666", "六阶", 50, RoundFormat.MEAN, 1),
    ("777", "七阶", 60, RoundFormat.MEAN, 1),
    ("333oh", "三阶单手", 70, RoundFormat.AVERAGE, 1),
    ("333bf", "三阶盲拧", 80, RoundFormat.BEST_OF_3, 1),
    ("333fm", "最少步", 90, RoundFormat.MEAN, 1),
    ("333tm", "三阶团队接力", 100, RoundFormat.AVERAGE, 2),
]

# (标签, 纪录类别, 层级顺序)
DEFAULT_RECORD_TYPES = [
    ("WR", RecordCategory.WR, 0),
    ("CR", RecordCategory.CR, 1),
    ("NR", RecordCategory.NR, 2),
]


class Command(BaseCommand):
    help = "初始化项目目录、纪录类型与比赛管理员用户组（已存在的条目只更新，不删除）"

    def add_arguments(self, parser):
        parser.add_argument(
            "--inactive-records",
            action="store_true",
            help="新建的纪录类型默认不启用",
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("开始初始化基础数据..."))
        with transaction.atomic():
            events = self._seed_events()
            record_types = self._seed_record_types(active=not options["inactive_records"])
            group_name = getattr(settings, "CONTEST_MODERATOR_GROUP", "moderators")
            Group.objects.get_or_create(name=group_name)
        self.stdout.write(
            self.style.SUCCESS(f"基础数据已就绪：项目 {events} 个，纪录类型 {record_types} 个，用户组 {group_name}")
        )

    def _seed_events(self) -> int:
        for event_id, name, rank, fmt, participants in DEFAULT_EVENTS:
            Event.objects.update_or_create(
                event_id=event_id,
                defaults={"name": name, "rank": rank, "format": fmt, "participants": participants},
            )
        return len(DEFAULT_EVENTS)

    def _seed_record_types(self, *, active: bool) -> int:
        for label, category, order in DEFAULT_RECORD_TYPES:
            # 已存在的纪录类型保留启用状态
            RecordType.objects.get_or_create(
                equivalent=category,
                defaults={"label": label, "order": order, "active": active},
            )
        return len(DEFAULT_RECORD_TYPES)
