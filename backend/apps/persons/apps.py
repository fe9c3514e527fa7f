from django.apps import AppConfig


class PersonsConfig(AppConfig):
    """
    Persons 应用配置：选手目录，供组织者与参赛者查询
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.persons'
    label = 'persons'
    verbose_name = "Persons"
