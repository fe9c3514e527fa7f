# -*- coding: utf-8 -*-
"""
公共模块单测：
- 全局异常处理器的统一响应结构
- 服务基类的事务与内部错误包装
- 日期解析与角色推导
"""

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group
from django.test import SimpleTestCase, TestCase
from rest_framework.exceptions import ValidationError as DRFValidationError

from apps.common.base.base_service import BaseService
from apps.common.exception_handler import custom_exception_handler
from apps.common.exceptions import ContestNotApprovedError, InternalServiceError, NotFoundError, ValidationError
from apps.common.permissions import Role, roles_for_user
from apps.common.utils.time import ensure_date


class ExceptionHandlerTests(SimpleTestCase):
    """异常统一输出 {code, message, data}"""

    def test_biz_error_keeps_code_and_status(self):
        resp = custom_exception_handler(NotFoundError(message="比赛 x 不存在"), {})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], 40400)
        self.assertEqual(resp.data["message"], "比赛 x 不存在")

    def test_contest_state_error_is_rejected_request(self):
        resp = custom_exception_handler(ContestNotApprovedError(), {})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], 46011)

    def test_drf_validation_error_is_mapped(self):
        resp = custom_exception_handler(DRFValidationError({"name": ["必填"]}), {})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], ValidationError.default_code)
        self.assertEqual(resp.data["message"], "必填")

    def test_unexpected_error_is_opaque(self):
        resp = custom_exception_handler(RuntimeError("db password leaked"), {})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["code"], InternalServiceError.default_code)
        self.assertNotIn("password", resp.data["message"])


class _FailingService(BaseService[None]):
    wrap_internal_errors = True

    def perform(self):
        raise RuntimeError("disk full")


class _PlainFailingService(_FailingService):
    wrap_internal_errors = False


class BaseServiceTests(TestCase):
    """系统异常按服务配置包装为 InternalServiceError"""

    def test_internal_errors_are_wrapped_with_cause(self):
        with self.assertRaises(InternalServiceError) as ctx:
            _FailingService().execute()
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_unwrapped_service_propagates_original(self):
        with self.assertRaises(RuntimeError):
            _PlainFailingService().execute()


class EnsureDateTests(SimpleTestCase):
    def test_accepts_iso_strings_and_datetimes(self):
        self.assertEqual(ensure_date("2024-05-01"), date(2024, 5, 1))
        self.assertEqual(ensure_date("2024-05-01T23:30:00-02:00"), date(2024, 5, 2))
        self.assertEqual(ensure_date(datetime(2024, 5, 1, 10, tzinfo=dt_timezone.utc)), date(2024, 5, 1))

    def test_rejects_garbage(self):
        for value in ("", "tomorrow", "2024-13-01", None, 20240501):
            with self.assertRaises(ValidationError):
                ensure_date(value)


class RoleTests(TestCase):
    def test_roles_for_users(self):
        User = get_user_model()
        plain = User.objects.create_user(username="plain", password="Pass1234")
        mod = User.objects.create_user(username="mod", password="Pass1234")
        mod.groups.add(Group.objects.create(name="moderators"))
        admin = User.objects.create_user(username="root", password="Pass1234", is_staff=True)

        self.assertEqual(roles_for_user(AnonymousUser()), [])
        self.assertEqual(roles_for_user(plain), [Role.USER])
        self.assertIn(Role.MODERATOR, roles_for_user(mod))
        self.assertNotIn(Role.ADMIN, roles_for_user(mod))
        self.assertIn(Role.ADMIN, roles_for_user(admin))
