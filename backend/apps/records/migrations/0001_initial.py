from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RecordType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("label", models.CharField(max_length=10, unique=True, verbose_name="纪录标签")),
                (
                    "equivalent",
                    models.CharField(
                        choices=[("WR", "世界纪录"), ("CR", "洲纪录"), ("NR", "国家/地区纪录")],
                        max_length=4,
                        unique=True,
                        verbose_name="纪录类别",
                    ),
                ),
                ("order", models.PositiveSmallIntegerField(default=0, verbose_name="层级顺序")),
                ("active", models.BooleanField(default=True, verbose_name="启用")),
            ],
            options={
                "verbose_name": "纪录类型",
                "verbose_name_plural": "纪录类型",
                "ordering": ["order", "label"],
            },
        ),
    ]
