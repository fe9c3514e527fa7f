# apps/common/base/base_repo.py

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, Iterable, Optional, TypeVar

from django.db.models import Model, QuerySet

from apps.common.exceptions import NotFoundError

T = TypeVar("T", bound=Model)


class BaseRepo(ABC, Generic[T]):
    """
    Repository（数据访问层）基类：
    - 统一封装 Django ORM 读写细节，给 Service 提供稳定接口
    - 集中管理 select_related/prefetch/filter 等查询配置
    - 用法示例：class RoundRepo(BaseRepo[Round]): model = Round
    """

    #: 子类必须指定对应的模型
    model: type[T]

    #: 未命中时的提示语，子类可覆盖
    not_found_message: str = "资源不存在"

    # ------------------------
    # QuerySet 构建
    # ------------------------

    def get_queryset(self) -> QuerySet[T]:
        """
        返回默认 QuerySet，子类可覆盖以附加 select_related/prefetch/filter
        """
        if not getattr(self, "model", None):
            raise NotImplementedError("BaseRepo 子类必须声明 model 属性")
        return self.model._default_manager.all()

    def filter(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> QuerySet[T]:
        """
        通用过滤入口，允许注入自定义 QuerySet
        """
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters)

    def list(self, **filters) -> Iterable[T]:
        return self.filter(**filters)

    def get_by_id(self, pk: Any, *, queryset: Optional[QuerySet[T]] = None) -> T:
        """
        根据主键获取对象，未命中抛业务级 404
        """
        qs = queryset if queryset is not None else self.get_queryset()
        try:
            return qs.get(pk=pk)
        except self.model.DoesNotExist as exc:  # type: ignore[attr-defined]
            raise NotFoundError(message=self.not_found_message) from exc

    def get_or_none(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> Optional[T]:
        """
        返回符合条件的单个对象，未命中则为 None
        """
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters).first()

    def exists(self, **filters) -> bool:
        return self.filter(**filters).exists()

    def count(self, **filters) -> int:
        return self.filter(**filters).count()

    # ------------------------
    # 写操作
    # ------------------------

    def create(self, data: dict) -> T:
        """
        创建记录；若需写入额外字段，可在子类中统一处理
        """
        return self.model._default_manager.create(**data)

    def bulk_create(self, objs: Iterable[T]) -> list[T]:
        """
        批量写入，返回带主键的对象列表
        """
        return self.model._default_manager.bulk_create(list(objs))

    def update(self, instance: T, data: dict) -> T:
        """
        批量更新字段并保存，返回最新实例
        """
        for field, value in data.items():
            setattr(instance, field, value)
        if data:
            instance.save(update_fields=list(data.keys()))
        else:
            instance.save()
        return instance

    def update_where(self, data: dict, **filters) -> int:
        """
        按条件批量更新（不触发 save 信号），返回影响行数
        """
        return self.filter(**filters).update(**data)

    def delete(self, instance: T) -> None:
        instance.delete()

    def delete_where(self, **filters) -> int:
        """
        按条件批量删除，返回删除的本模型记录数
        """
        _, per_model = self.filter(**filters).delete()
        return per_model.get(self.model._meta.label, 0)
