from __future__ import annotations

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("events", "0001_initial"),
        ("persons", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Contest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("contest_id", models.SlugField(max_length=64, unique=True, verbose_name="比赛标识")),
                ("name", models.CharField(max_length=120, verbose_name="比赛名称")),
                (
                    "type",
                    models.PositiveSmallIntegerField(
                        choices=[(1, "聚会"), (2, "正式比赛"), (3, "线上比赛")], default=1, verbose_name="比赛类型"
                    ),
                ),
                (
                    "state",
                    models.SmallIntegerField(
                        choices=[
                            (0, "已驳回"),
                            (10, "已创建"),
                            (20, "已审核"),
                            (30, "进行中"),
                            (40, "已结束"),
                            (50, "已公示"),
                        ],
                        default=10,
                        verbose_name="状态",
                    ),
                ),
                ("country_id", models.CharField(blank=True, max_length=2, verbose_name="国家/地区")),
                ("city", models.CharField(blank=True, max_length=100, verbose_name="城市")),
                ("venue", models.CharField(blank=True, max_length=120, verbose_name="场馆")),
                ("address", models.CharField(blank=True, max_length=200, verbose_name="地址")),
                ("latitude", models.FloatField(blank=True, null=True, verbose_name="纬度")),
                ("longitude", models.FloatField(blank=True, null=True, verbose_name="经度")),
                ("start_date", models.DateField(verbose_name="开始日期")),
                ("end_date", models.DateField(blank=True, null=True, verbose_name="结束日期")),
                ("contact", models.CharField(blank=True, max_length=200, verbose_name="联系方式")),
                ("description", models.TextField(blank=True, verbose_name="比赛描述")),
                ("competitor_limit", models.PositiveIntegerField(blank=True, null=True, verbose_name="人数上限")),
                ("main_event_id", models.CharField(blank=True, max_length=32, verbose_name="主项目")),
                ("participants", models.PositiveIntegerField(default=0, verbose_name="参赛人数")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="创建时间")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="更新时间")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_contests",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="创建者",
                    ),
                ),
                (
                    "organizers",
                    models.ManyToManyField(
                        blank=True, related_name="organized_contests", to="persons.person", verbose_name="组织者"
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛",
                "verbose_name_plural": "比赛",
                "ordering": ["-start_date", "contest_id"],
            },
        ),
        migrations.CreateModel(
            name="ContestEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="contest_events",
                        to="events.event",
                        verbose_name="项目",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛项目",
                "verbose_name_plural": "比赛项目",
                "ordering": ["event__rank", "id"],
                "unique_together": {("contest", "event")},
            },
        ),
        migrations.CreateModel(
            name="Round",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "round_type_id",
                    models.CharField(
                        choices=[("1", "第一轮"), ("2", "第二轮"), ("3", "第三轮"), ("s", "半决赛"), ("f", "决赛")],
                        max_length=2,
                        verbose_name="轮次类型",
                    ),
                ),
                (
                    "format",
                    models.CharField(
                        choices=[("1", "一次最佳"), ("2", "两次最佳"), ("3", "三次最佳"), ("a", "五次去头尾平均"), ("m", "三次平均")],
                        max_length=2,
                        verbose_name="成绩格式",
                    ),
                ),
                ("date", models.DateField(verbose_name="日期")),
                ("proceed", models.JSONField(blank=True, null=True, verbose_name="晋级规则")),
                ("not_published", models.BooleanField(default=True, verbose_name="未公示")),
                (
                    "contest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rounds",
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
                (
                    "contest_event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rounds",
                        to="contests.contestevent",
                        verbose_name="比赛项目",
                    ),
                ),
            ],
            options={
                "verbose_name": "轮次",
                "verbose_name_plural": "轮次",
                "ordering": ["date", "id"],
                "indexes": [models.Index(fields=["contest", "date"], name="contests_ro_contest_1c2f0a_idx")],
            },
        ),
    ]
