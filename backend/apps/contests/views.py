from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import response
from apps.common.permissions import AllowAny, IsModerator, roles_for_user

from .posting import PostResultsOutcome, PostResultsService
from .repo import ContestRepo
from .schemas import ContestCreateSchema, ContestUpdateSchema, PostResultsSchema, StateChangeSchema
from .services import (
    ContestCreateService,
    ContestQueryService,
    ContestStateService,
    ContestUpdateService,
    ensure_contest_access,
    serialize_contest,
    serialize_round,
)


# 视图层：暴露比赛接口，仅做参数转换与调用服务层，不承载业务


def _check_access(request: Request, contest_id: str) -> list[str]:
    """管理类接口：校验当前用户能否管理该比赛，返回角色列表"""
    roles = roles_for_user(request.user)
    contest = ContestRepo().get_by_contest_id(contest_id)
    ensure_contest_access(contest, request.user, roles)
    return roles


def serialize_post_outcome(outcome: PostResultsOutcome) -> dict:
    return {
        "participants": outcome.participants,
        "events": [
            {
                "event_id": event_id,
                "rounds": [serialize_round(p.round, results=p.results) for p in posted_rounds],
            }
            for event_id, posted_rounds in outcome.events.items()
        ],
    }


class ContestListView(APIView):
    """比赛列表/创建接口：GET 公共访问，POST 需要比赛管理员"""

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsModerator()]
        return [AllowAny()]

    @extend_schema(
        summary="比赛列表",
        operation_id="contest_list",
        request=None,
        responses=OpenApiTypes.OBJECT,
        parameters=[
            OpenApiParameter(
                name="region",
                location=OpenApiParameter.QUERY,
                description="国家/地区代码过滤",
                required=False,
                type=str,
            ),
        ],
        tags=["contests"],
    )
    def get(self, request: Request) -> Response:
        contests = ContestQueryService().list_contests(request.query_params.get("region") or None)
        return response.success({"items": [serialize_contest(c) for c in contests]})

    @extend_schema(
        summary="创建比赛",
        operation_id="contest_create",
        request=OpenApiTypes.OBJECT,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def post(self, request: Request) -> Response:
        schema = ContestCreateSchema.from_dict(request.data)
        contest = ContestCreateService().execute(schema, request.user)
        return response.created({"contest": serialize_contest(contest)}, message="比赛已创建")


class ModContestListView(APIView):
    """管理端比赛列表：管理员看到全部，比赛管理员只看到自己创建的"""
    permission_classes = [IsModerator]

    @extend_schema(
        summary="管理端比赛列表",
        operation_id="contest_mod_list",
        request=None,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def get(self, request: Request) -> Response:
        roles = roles_for_user(request.user)
        contests = ContestQueryService().list_mod_contests(request.user, roles)
        return response.success({"items": [serialize_contest(c, include_creator=True) for c in contests]})


class ContestDetailView(APIView):
    """比赛详情 / 修改接口"""

    def get_permissions(self):
        if self.request.method in ("PATCH", "PUT"):
            return [IsModerator()]
        return [AllowAny()]

    @extend_schema(
        summary="比赛详情",
        operation_id="contest_detail",
        request=None,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def get(self, request: Request, contest_id: str) -> Response:
        return response.success(ContestQueryService().get_contest(contest_id))

    @extend_schema(
        summary="修改比赛",
        operation_id="contest_update",
        request=OpenApiTypes.OBJECT,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def patch(self, request: Request, contest_id: str) -> Response:
        """提交内容按比赛状态与角色过滤，extra.changes 中列出生效与被忽略的字段"""
        roles = _check_access(request, contest_id)
        schema = ContestUpdateSchema.from_dict(request.data)
        contest, report = ContestUpdateService().execute(contest_id, schema, roles)
        return response.success(
            {"contest": serialize_contest(contest)},
            message="比赛信息已更新",
            extra={"changes": report.to_dict()},
        )

    put = patch


class ModContestDetailView(APIView):
    """管理端比赛详情：附带参赛选手与赛前纪录"""
    permission_classes = [IsModerator]

    @extend_schema(
        summary="管理端比赛详情",
        operation_id="contest_mod_detail",
        request=None,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def get(self, request: Request, contest_id: str) -> Response:
        _check_access(request, contest_id)
        return response.success(ContestQueryService().get_mod_contest(contest_id))


class ContestStateView(APIView):
    """比赛状态变更"""
    permission_classes = [IsModerator]

    @extend_schema(
        summary="变更比赛状态",
        operation_id="contest_state",
        request=OpenApiTypes.OBJECT,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def post(self, request: Request, contest_id: str) -> Response:
        roles = _check_access(request, contest_id)
        schema = StateChangeSchema.from_dict(request.data)
        report = ContestStateService().execute(contest_id, schema.state, roles)
        message = "比赛状态已更新" if report.applied else "当前角色不能执行该状态变更"
        return response.success(report.to_dict(), message=message)


class ContestResultsView(APIView):
    """提交比赛成绩：整体替换比赛的全部成绩"""
    permission_classes = [IsModerator]

    @extend_schema(
        summary="提交比赛成绩",
        operation_id="contest_post_results",
        request=OpenApiTypes.OBJECT,
        responses=OpenApiTypes.OBJECT,
        tags=["contests"],
    )
    def post(self, request: Request, contest_id: str) -> Response:
        _check_access(request, contest_id)
        schema = PostResultsSchema.from_dict(request.data)
        outcome = PostResultsService().execute(contest_id, schema)
        return response.success(serialize_post_outcome(outcome), message="成绩已提交")
