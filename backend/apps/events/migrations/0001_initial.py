from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.CharField(max_length=32, unique=True, verbose_name="项目标识")),
                ("name", models.CharField(max_length=100, verbose_name="项目名称")),
                ("rank", models.PositiveIntegerField(default=0, verbose_name="展示顺序")),
                (
                    "format",
                    models.CharField(
                        choices=[("1", "一次最佳"), ("2", "两次最佳"), ("3", "三次最佳"), ("a", "五次去头尾平均"), ("m", "三次平均")],
                        default="a",
                        max_length=2,
                        verbose_name="默认成绩格式",
                    ),
                ),
                ("participants", models.PositiveSmallIntegerField(default=1, verbose_name="每条成绩人数")),
            ],
            options={
                "verbose_name": "项目",
                "verbose_name_plural": "项目",
                "ordering": ["rank", "event_id"],
            },
        ),
    ]
