"""
通用权限封装（apps.common.permissions）

职责：
- 定义业务角色（管理员 / 比赛管理员 / 普通用户）及从登录用户推导角色的规则
- 提供 DRF 权限类，出错时统一抛出 PermissionDeniedError，由全局异常处理器包装响应

角色约定：
- ADMIN      : is_staff / is_superuser，可执行任意状态变更与字段修改
- MODERATOR  : 属于 settings.CONTEST_MODERATOR_GROUP 组的用户，只能在受限范围内维护比赛
- USER       : 其他已登录用户
"""

from __future__ import annotations

from typing import Any, Iterable

from django.conf import settings
from django.db import models
from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from .exceptions import PermissionDeniedError


class Role(models.TextChoices):
    """业务角色枚举"""
    ADMIN = "admin", "管理员"
    MODERATOR = "moderator", "比赛管理员"
    USER = "user", "普通用户"


def roles_for_user(user: Any) -> list[Role]:
    """
    根据登录用户推导角色列表；匿名用户返回空列表
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return []
    roles = [Role.USER]
    group_name = getattr(settings, "CONTEST_MODERATOR_GROUP", "moderators")
    if user.groups.filter(name=group_name).exists():
        roles.append(Role.MODERATOR)
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        roles.extend([Role.MODERATOR, Role.ADMIN])
    return list(dict.fromkeys(roles))


def is_admin(roles: Iterable[str]) -> bool:
    """是否拥有特权角色"""
    return Role.ADMIN in set(roles)


def _ensure_authenticated(request: Request):
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        raise PermissionDeniedError(message="请先登录后再执行此操作")
    return user


class AllowAny(BasePermission):
    """允许任何请求通过（公开接口）"""

    def has_permission(self, request: Request, view: Any) -> bool:  # noqa: D401
        return True


class IsModerator(BasePermission):
    """
    需要比赛管理员或管理员角色

    - 未登录 → 提示先登录
    - 已登录但无角色 → 无权访问
    """

    message = "仅比赛管理员可以执行此操作"

    def has_permission(self, request: Request, view: Any) -> bool:
        user = _ensure_authenticated(request)
        roles = roles_for_user(user)
        if Role.MODERATOR in roles or Role.ADMIN in roles:
            return True
        raise PermissionDeniedError(message=self.message)
