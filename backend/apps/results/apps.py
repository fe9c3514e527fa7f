from django.apps import AppConfig


class ResultsConfig(AppConfig):
    """
    Results 应用配置：成绩存储、纪录查询与参赛人统计
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.results'
    label = 'results'
    verbose_name = "Results"
