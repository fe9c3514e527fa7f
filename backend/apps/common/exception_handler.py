"""
自定义全局异常处理器（DRF 入口）：
- 统一前端收到的错误结构，区分业务错误（可修正请求）、资源不存在与内部错误（可重试）
- 处理策略：
  1) BizError 及子类 → 直接转换为 {code, message, data, extra}
  2) DRF 内置异常（Validation/Authentication/Permission/NotFound）→ 映射为 BizError，再统一输出
  3) 未知/系统异常 → 记录完整日志，返回 500 标准格式，避免泄露内部信息
"""

from typing import Any

from rest_framework import status
from rest_framework.exceptions import (
    ValidationError as DRFValidationError,
    AuthenticationFailed,
    NotAuthenticated,
    PermissionDenied as DRFPermissionDenied,
    NotFound as DRFNotFound,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import (
    BizError,
    ValidationError as BizValidationError,
    AuthError,
    PermissionDeniedError,
    NotFoundError,
    InternalServiceError,
)
from .response import api_response, payload_from_biz_error
from .infra.logger import get_logger
from .utils.request_context import get_request_context

logger = get_logger(__name__)


def _extract_message(detail: Any) -> str:
    """
    从 DRF 的 detail 结构中提取第一条可读错误信息（str / list / dict 均可）
    """
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return _extract_message(detail[0])
    if isinstance(detail, dict) and detail:
        return _extract_message(next(iter(detail.values())))
    return str(detail)


def _handle_biz_error(exc: BizError) -> Response:
    if isinstance(exc, InternalServiceError):
        # 内部错误只记录原因，不把原始异常信息带给客户端
        logger.error("内部错误：%s", exc, exc_info=exc.__cause__ or exc)
    return Response(payload_from_biz_error(exc), status=exc.http_status)


def _handle_unexpected_exception(exc: Exception, context: dict) -> Response:
    """
    处理程序 bug / 存储故障：记录完整堆栈，返回统一的 500 错误响应
    """
    ctx = get_request_context()
    req = context.get("request")
    logger.exception(
        "Unhandled exception in API",
        exc_info=exc,
        extra={
            "method": getattr(req, "method", None),
        },
    )
    return api_response(
        code=InternalServiceError.default_code,
        message=InternalServiceError.default_message,
        data=None,
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        extra={
            "view": context.get("view").__class__.__name__ if context.get("view") else None,
            "request_id": ctx.get("request_id"),
        },
    )


def _map_drf_exception_to_biz(exc: Exception) -> BizError | None:
    """
    把 DRF 内置异常映射为 BizError 子类，映射不到就返回 None
    """
    if isinstance(exc, DRFValidationError):
        return BizValidationError(message=_extract_message(exc.detail), extra={"raw_detail": exc.detail})
    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        return AuthError(message=_extract_message(getattr(exc, "detail", str(exc))))
    if isinstance(exc, DRFPermissionDenied):
        return PermissionDeniedError(message=_extract_message(getattr(exc, "detail", str(exc))))
    if isinstance(exc, DRFNotFound):
        return NotFoundError(message=_extract_message(getattr(exc, "detail", str(exc))))
    return None


def custom_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF 入口函数：全局异常处理器
    """
    if isinstance(exc, BizError):
        return _handle_biz_error(exc)

    mapped = _map_drf_exception_to_biz(exc)
    if mapped is not None:
        return _handle_biz_error(mapped)

    drf_response = drf_exception_handler(exc, context)
    if drf_response is not None:
        status_code = drf_response.status_code
        return api_response(
            code=40000 if status_code < 500 else InternalServiceError.default_code,
            message=_extract_message(drf_response.data),
            data=None,
            http_status=status_code,
            extra={"raw": drf_response.data},
        )

    return _handle_unexpected_exception(exc, context)
