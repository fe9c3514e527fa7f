from django.apps import AppConfig


class RecordsConfig(AppConfig):
    """
    Records 应用配置：纪录类型目录与纪录计算
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.records'
    label = 'records'
    verbose_name = "Records"
