from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.events.models import Event
from apps.persons.models import Person
from apps.results.formats import RoundFormat

# 模型文件：负责比赛、比赛项目与轮次的数据结构定义，不承载业务流程

User = settings.AUTH_USER_MODEL


class ContestState(models.IntegerChoices):
    """
    比赛生命周期状态：序号单调递增，状态比较直接使用数值
    REJECTED 是不参与推进的终止分支，数值低于 CREATED
    """
    REJECTED = 0, "已驳回"
    CREATED = 10, "已创建"
    APPROVED = 20, "已审核"
    ONGOING = 30, "进行中"
    FINISHED = 40, "已结束"
    PUBLISHED = 50, "已公示"


class ContestType(models.IntegerChoices):
    """比赛类型：COMPETITION 为多日正式比赛，必须填写结束日期"""
    MEETUP = 1, "聚会"
    COMPETITION = 2, "正式比赛"
    ONLINE = 3, "线上比赛"


class RoundType(models.TextChoices):
    """轮次类型"""
    FIRST = "1", "第一轮"
    SECOND = "2", "第二轮"
    THIRD = "3", "第三轮"
    SEMI_FINAL = "s", "半决赛"
    FINAL = "f", "决赛"


class ProceedType(models.TextChoices):
    """晋级规则类型：按人数或按百分比"""
    NUMBER = "number", "人数"
    PERCENTAGE = "percentage", "百分比"


class Contest(models.Model):
    """
    比赛模型：
    - contest_id 为对外唯一标识，仅管理员可修改
    - state 控制可编辑字段与可执行操作（见 services 中的字段分组）
    - participants 为成绩提交时重新统计的参赛人数缓存
    """

    # 唯一标识，供路由与接口访问
    contest_id = models.SlugField("比赛标识", max_length=64, unique=True)
    # 比赛名称
    name = models.CharField("比赛名称", max_length=120)
    # 比赛类型
    type = models.PositiveSmallIntegerField("比赛类型", choices=ContestType.choices, default=ContestType.MEETUP)
    # 生命周期状态
    state = models.SmallIntegerField("状态", choices=ContestState.choices, default=ContestState.CREATED)
    # 所属国家/地区代码
    country_id = models.CharField("国家/地区", max_length=2, blank=True)
    city = models.CharField("城市", max_length=100, blank=True)
    venue = models.CharField("场馆", max_length=120, blank=True)
    address = models.CharField("地址", max_length=200, blank=True)
    latitude = models.FloatField("纬度", null=True, blank=True)
    longitude = models.FloatField("经度", null=True, blank=True)
    start_date = models.DateField("开始日期")
    # 多日比赛必填
    end_date = models.DateField("结束日期", null=True, blank=True)
    organizers = models.ManyToManyField(Person, verbose_name="组织者", related_name="organized_contests", blank=True)
    contact = models.CharField("联系方式", max_length=200, blank=True)
    description = models.TextField("比赛描述", blank=True)
    competitor_limit = models.PositiveIntegerField("人数上限", null=True, blank=True)
    main_event_id = models.CharField("主项目", max_length=32, blank=True)
    created_by = models.ForeignKey(
        User,
        verbose_name="创建者",
        related_name="created_contests",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    # 参赛人数缓存
    participants = models.PositiveIntegerField("参赛人数", default=0)
    created_at = models.DateTimeField("创建时间", auto_now_add=True)
    updated_at = models.DateTimeField("更新时间", auto_now=True)

    class Meta:
        ordering = ["-start_date", "contest_id"]
        verbose_name = "比赛"
        verbose_name_plural = "比赛"

    def __str__(self) -> str:
        return self.name


class ContestEvent(models.Model):
    """
    比赛项目：比赛与项目目录的关联，每个项目在同一比赛中只出现一次
    """

    contest = models.ForeignKey(Contest, verbose_name="所属比赛", related_name="events", on_delete=models.CASCADE)
    event = models.ForeignKey(Event, verbose_name="项目", related_name="contest_events", on_delete=models.PROTECT)

    class Meta:
        unique_together = ("contest", "event")
        ordering = ["event__rank", "id"]
        verbose_name = "比赛项目"
        verbose_name_plural = "比赛项目"

    def __str__(self) -> str:
        return f"{self.contest.contest_id}: {self.event.event_id}"


class Round(models.Model):
    """
    轮次模型：
    - 除项目最后一轮外都必须有晋级规则 proceed
    - 已有成绩的轮次不可删除（Result.round 使用 RESTRICT）
    - not_published 在比赛公示前为 True
    """

    contest = models.ForeignKey(Contest, verbose_name="所属比赛", related_name="rounds", on_delete=models.CASCADE)
    contest_event = models.ForeignKey(
        ContestEvent, verbose_name="比赛项目", related_name="rounds", on_delete=models.CASCADE
    )
    round_type_id = models.CharField("轮次类型", max_length=2, choices=RoundType.choices)
    format = models.CharField("成绩格式", max_length=2, choices=RoundFormat.choices)
    date = models.DateField("日期")
    # {"type": "number" | "percentage", "value": int}，最后一轮为空
    proceed = models.JSONField("晋级规则", null=True, blank=True)
    not_published = models.BooleanField("未公示", default=True)

    class Meta:
        ordering = ["date", "id"]
        indexes = [
            models.Index(fields=["contest", "date"], name="contests_ro_contest_1c2f0a_idx"),
        ]
        verbose_name = "轮次"
        verbose_name_plural = "轮次"

    def __str__(self) -> str:
        return f"{self.contest_event} R{self.round_type_id}"
