from __future__ import annotations

from django.db import models


class Person(models.Model):
    """
    选手模型：
    - person_id 为成绩中引用的整数标识（团队成绩包含多个 person_id）
    - 比赛的组织者同样引用选手
    """

    # 选手标识
    person_id = models.PositiveIntegerField("选手标识", unique=True)
    # 姓名
    name = models.CharField("姓名", max_length=120)
    # 国家/地区代码
    country_iso2 = models.CharField("国家/地区", max_length=2, blank=True)

    class Meta:
        ordering = ["person_id"]
        verbose_name = "选手"
        verbose_name_plural = "选手"

    def __str__(self) -> str:
        return f"{self.name} ({self.person_id})"
