from __future__ import annotations

from django.db import models

from apps.events.models import Event

# 模型文件：成绩记录。best / average / ranking / 纪录标签均为派生数据，只在提交成绩时计算


class Result(models.Model):
    """
    成绩模型：
    - person_ids 为有序的选手标识列表（团队成绩包含多人）
    - attempts 为各次尝试成绩（厘秒，DNF=-1，DNS=-2）
    - single_record_type / average_record_type 为获得的纪录标签
    """

    contest = models.ForeignKey(
        "contests.Contest", verbose_name="所属比赛", related_name="results", on_delete=models.CASCADE
    )
    # 有成绩的轮次不可单独删除，只能随比赛级联删除
    round = models.ForeignKey(
        "contests.Round", verbose_name="所属轮次", related_name="results", on_delete=models.RESTRICT
    )
    event = models.ForeignKey(Event, verbose_name="项目", related_name="results", on_delete=models.PROTECT)
    date = models.DateField("日期")
    person_ids = models.JSONField("选手", default=list)
    attempts = models.JSONField("尝试成绩", default=list)
    best = models.IntegerField("最好单次")
    average = models.IntegerField("平均")
    ranking = models.PositiveIntegerField("名次", null=True, blank=True)
    single_record_type = models.CharField("单次纪录", max_length=10, null=True, blank=True)
    average_record_type = models.CharField("平均纪录", max_length=10, null=True, blank=True)
    not_published = models.BooleanField("未公示", default=True)
    created_at = models.DateTimeField("创建时间", auto_now_add=True)

    class Meta:
        ordering = ["round", "ranking", "id"]
        indexes = [
            models.Index(fields=["event", "single_record_type", "date"], name="results_res_event_i_5a1c3e_idx"),
            models.Index(fields=["event", "average_record_type", "date"], name="results_res_event_i_8d7b21_idx"),
            models.Index(fields=["contest"], name="results_res_contest_0e4f9a_idx"),
        ]
        verbose_name = "成绩"
        verbose_name_plural = "成绩"

    def __str__(self) -> str:
        return f"{self.event_id} {self.person_ids} {self.best}/{self.average}"
