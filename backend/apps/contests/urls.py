from __future__ import annotations

from django.urls import path

from .views import (
    ContestDetailView,
    ContestListView,
    ContestResultsView,
    ContestStateView,
    ModContestDetailView,
    ModContestListView,
)

# 路由配置：声明比赛相关的 API 路径

app_name = "contests"

urlpatterns = [
    # 比赛列表 / 创建
    path("", ContestListView.as_view(), name="list"),
    # 管理端比赛列表
    path("mod/", ModContestListView.as_view(), name="mod-list"),
    # 管理端比赛详情
    path("<slug:contest_id>/mod/", ModContestDetailView.as_view(), name="mod-detail"),
    # 状态变更
    path("<slug:contest_id>/state/", ContestStateView.as_view(), name="state"),
    # 提交成绩
    path("<slug:contest_id>/results/", ContestResultsView.as_view(), name="results"),
    # 比赛详情 / 修改
    path("<slug:contest_id>/", ContestDetailView.as_view(), name="detail"),
]
