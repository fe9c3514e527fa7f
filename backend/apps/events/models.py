from __future__ import annotations

from django.db import models

from apps.results.formats import RoundFormat

# 模型文件：项目目录，只描述项目定义，不承载业务流程


class Event(models.Model):
    """
    项目模型：
    - event_id 为对外唯一标识（如 "333"），比赛项目通过它引用目录
    - rank 决定项目在比赛中的展示顺序（越小越靠前）
    """

    # 项目标识
    event_id = models.CharField("项目标识", max_length=32, unique=True)
    # 项目名称
    name = models.CharField("项目名称", max_length=100)
    # 展示顺序
    rank = models.PositiveIntegerField("展示顺序", default=0)
    # 默认成绩格式
    format = models.CharField("默认成绩格式", max_length=2, choices=RoundFormat.choices, default=RoundFormat.AVERAGE)
    # 参赛人数（团队项目大于 1）
    participants = models.PositiveSmallIntegerField("每条成绩人数", default=1)

    class Meta:
        ordering = ["rank", "event_id"]
        verbose_name = "项目"
        verbose_name_plural = "项目"

    def __str__(self) -> str:
        return f"{self.event_id} {self.name}"
