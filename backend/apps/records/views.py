from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common import response
from apps.common.permissions import AllowAny
from apps.common.utils.time import ensure_date

from .services import EventRecordsService


class EventRecordsView(APIView):
    """项目纪录查询：不传 before 时返回当前纪录"""
    permission_classes = [AllowAny]

    @extend_schema(
        summary="项目纪录",
        operation_id="event_records",
        request=None,
        responses=OpenApiTypes.OBJECT,
        parameters=[
            OpenApiParameter(
                name="before",
                location=OpenApiParameter.QUERY,
                description="截止日期（不含），格式 YYYY-MM-DD",
                required=False,
                type=str,
            ),
        ],
        tags=["records"],
    )
    def get(self, request: Request, event_id: str) -> Response:
        before = request.query_params.get("before")
        cutoff = ensure_date(before, field_name="截止日期") if before else None
        records = EventRecordsService().execute(event_id, before=cutoff)
        return response.success({"event_id": event_id, "records": records})
