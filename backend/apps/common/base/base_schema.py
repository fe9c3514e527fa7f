# apps/common/base/base_schema.py

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import MISSING, asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Generic, Iterable, Optional, TypeVar

from apps.common.exceptions import ValidationError

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound="BaseSchema[Any]")


@dataclass
class BaseSchema(ABC, Generic[T]):
    """
    业务 Schema / DTO 基类

    目的：
        - 用于 Service 层在 Model 与外部输入之间传递结构化数据；
        - 聚合字段校验逻辑，替代零散的 serializer/表单校验；
        - 负责把外部命名（如 camelCase）归一到内部字段名

    子类示例：
        @dataclass
        class RoundSchema(BaseSchema):
            round_type_id: str
            format: str

            def validate(self):
                if self.format not in RoundFormat.values:
                    raise ValidationError("未知的成绩格式")
    """

    #: 是否在 __post_init__ 中自动执行 validate
    auto_validate: ClassVar[bool] = False
    #: 字段别名映射：外部字段名 -> 内部字段名
    ALIASES: ClassVar[dict[str, str]] = {}

    def __post_init__(self):
        if self.auto_validate:
            self.validate()

    # ------------------------
    # 校验钩子
    # ------------------------

    @abstractmethod
    def validate(self) -> None:
        """
        子类实现字段/业务约束校验，出错时抛 BizError
        """

    # ------------------------
    # 数据转换
    # ------------------------

    def to_dict(
            self,
            *,
            exclude_none: bool = False,
            exclude: Iterable[str] | None = None,
    ) -> Dict[str, Any]:
        """
        将 Schema 转为 dict，支持过滤 None 或移除指定字段
        """
        data = asdict(self)
        if exclude_none:
            data = {key: value for key, value in data.items() if value is not None}
        if exclude:
            for key in exclude:
                data.pop(key, None)
        return data

    def provided_fields(self, *, exclude: Iterable[str] | None = None) -> list[str]:
        """
        返回调用方实际提供（非 None）的字段名，按声明顺序
        """
        skipped = set(exclude or ())
        return [
            f.name for f in fields(self)
            if f.name not in skipped and getattr(self, f.name) is not None
        ]

    # ------------------------
    # 构建方法
    # ------------------------

    @classmethod
    def required_fields(cls) -> list[str]:
        """没有默认值、调用方必须提供的字段"""
        return [
            f.name for f in fields(cls)
            if f.init and f.default is MISSING and f.default_factory is MISSING
        ]

    @classmethod
    def normalize_keys(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        兼容别名：将外部使用的别名映射到内部字段名，并丢弃未声明的字段
        """
        if not isinstance(data, dict):
            data = dict(data)
        normalized = dict(data)
        for alias, target in cls.ALIASES.items():
            if alias in normalized and target not in normalized:
                normalized[target] = normalized.pop(alias)
            elif alias in normalized:
                # 已存在目标字段时，移除别名避免 __init__ 收到未知参数
                normalized.pop(alias)
        known = {f.name for f in fields(cls)}
        return {key: value for key, value in normalized.items() if key in known}

    @classmethod
    def from_dict(
            cls: type[SchemaType],
            data: Dict[str, Any],
            *,
            auto_validate: Optional[bool] = None,
    ) -> SchemaType:
        """
        将外部 payload 转为 Schema；auto_validate 控制是否立即校验
        （声明了 auto_validate 的子类已在 __post_init__ 中校验过）
        """
        if not isinstance(data, Mapping):
            raise ValidationError(message="请求数据格式不正确")
        normalized = cls.normalize_keys(data)
        missing = [name for name in cls.required_fields() if name not in normalized]
        if missing:
            raise ValidationError(message=f"缺少必填字段：{', '.join(missing)}")
        instance = cls(**normalized)  # type: ignore[arg-type]
        if auto_validate and not cls.auto_validate:
            instance.validate()
        return instance

    @classmethod
    def from_list(cls: type[SchemaType], items: Iterable[Any] | None) -> list[SchemaType]:
        """
        将嵌套列表统一转为 Schema 列表，已是 Schema 实例的元素原样保留
        """
        result: list[SchemaType] = []
        for item in items or []:
            result.append(item if isinstance(item, cls) else cls.from_dict(item))
        return result
