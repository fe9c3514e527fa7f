from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contests", "0001_initial"),
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Result",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(verbose_name="日期")),
                ("person_ids", models.JSONField(default=list, verbose_name="选手")),
                ("attempts", models.JSONField(default=list, verbose_name="尝试成绩")),
                ("best", models.IntegerField(verbose_name="最好单次")),
                ("average", models.IntegerField(verbose_name="平均")),
                ("ranking", models.PositiveIntegerField(blank=True, null=True, verbose_name="名次")),
                ("single_record_type", models.CharField(blank=True, max_length=10, null=True, verbose_name="单次纪录")),
                ("average_record_type", models.CharField(blank=True, max_length=10, null=True, verbose_name="平均纪录")),
                ("not_published", models.BooleanField(default=True, verbose_name="未公示")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="创建时间")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="results",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="results",
                        to="events.event",
                        verbose_name="项目",
                    ),
                ),
                (
                    "round",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.RESTRICT,
                        related_name="results",
                        to="contests.round",
                        verbose_name="所属轮次",
                    ),
                ),
            ],
            options={
                "verbose_name": "成绩",
                "verbose_name_plural": "成绩",
                "ordering": ["round", "ranking", "id"],
                "indexes": [
                    models.Index(fields=["event", "single_record_type", "date"], name="results_res_event_i_5a1c3e_idx"),
                    models.Index(fields=["event", "average_record_type", "date"], name="results_res_event_i_8d7b21_idx"),
                    models.Index(fields=["contest"], name="results_res_contest_0e4f9a_idx"),
                ],
            },
        ),
    ]
