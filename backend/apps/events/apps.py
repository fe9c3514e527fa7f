from django.apps import AppConfig


class EventsConfig(AppConfig):
    """
    Events 应用配置：项目目录（比赛可设置的项目及其展示顺序）
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.events'
    label = 'events'
    verbose_name = "Events"
