from __future__ import annotations

from django.db import models


class RecordCategory(models.TextChoices):
    """纪录类别（等价层级），order 越小层级越高"""
    WR = "WR", "世界纪录"
    CR = "CR", "洲纪录"
    NR = "NR", "国家/地区纪录"


class RecordType(models.Model):
    """
    纪录类型：
    - label 为写入成绩的纪录标签（可与类别同名，也可自定义如 "XWR"）
    - equivalent 指明它对应的纪录类别，纪录计算以类别为键
    - 只有 active=True 的类型参与纪录计算
    """

    # 纪录标签
    label = models.CharField("纪录标签", max_length=10, unique=True)
    # 对应纪录类别
    equivalent = models.CharField("纪录类别", max_length=4, choices=RecordCategory.choices, unique=True)
    # 层级顺序
    order = models.PositiveSmallIntegerField("层级顺序", default=0)
    # 是否启用
    active = models.BooleanField("启用", default=True)

    class Meta:
        ordering = ["order", "label"]
        verbose_name = "纪录类型"
        verbose_name_plural = "纪录类型"

    def __str__(self) -> str:
        return f"{self.label} ({self.equivalent})"
