"""
URL configuration for Config project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

# Admin 中文化：修改后台标题/页眉/站点名称，避免默认英文显示
admin.site.site_header = "比赛成绩管理后台"
admin.site.site_title = "比赛成绩"
admin.site.index_title = "管理控制台"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/contests/', include('apps.contests.urls')),
    path('api/records/', include('apps.records.urls')),
    # OpenAPI 文档：提供 schema JSON 及 UI，仅供内部/前端获取接口定义
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
