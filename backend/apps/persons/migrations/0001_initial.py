from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Person",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("person_id", models.PositiveIntegerField(unique=True, verbose_name="选手标识")),
                ("name", models.CharField(max_length=120, verbose_name="姓名")),
                ("country_iso2", models.CharField(blank=True, max_length=2, verbose_name="国家/地区")),
            ],
            options={
                "verbose_name": "选手",
                "verbose_name_plural": "选手",
                "ordering": ["person_id"],
            },
        ),
    ]
