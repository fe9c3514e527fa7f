"""
业务异常体系（BizError）

约定与作用：
- 所有“预期内的业务错误”都继承 BizError，避免直接抛框架异常
- 统一错误码/HTTP 状态/提示语，便于前后端对齐
- 系统级错误（代码 bug、数据库故障等）由全局异常处理器按 500 处理，
  或在需要明确语义的服务中包装为 InternalServiceError

错误码规范：
- 0                : 成功（只出现在正常响应里）
- 40000~40099      : 通用请求 / 参数错误（Validation、BadRequest）
- 40100~40199      : 认证错误（未登录等）
- 40300~40399      : 权限错误（无权限访问某资源/操作）
- 40400~40499      : 资源不存在（比赛、项目、轮次等）
- 40900~40999      : 资源冲突（重复的比赛标识等）
- 46000~46099      : 比赛状态相关错误（未审核、已结束等）
- 50000            : 内部错误（存储失败、回滚失败等，对外只返回不透明提示）

使用方式：
- 业务层抛 BizError 或子类；全局异常处理器读取 exc.code/message/http_status/extra 构造统一响应
"""


class BizError(Exception):
    """
    所有业务异常的基类

    设计要点：
    - 不耦合 DRF / Response，只是纯数据和语义；
    - 子类只需覆盖 default_code / default_message / http_status；
    - 也可以在 __init__ 时传入自定义 message / code / extra 做覆盖
    """

    #: 子类可覆盖的默认错误码
    default_code: int = 40000

    #: 子类可覆盖的默认提示信息
    default_message: str = "业务错误"

    #: 子类可覆盖的建议 HTTP 状态码（交给异常处理器用）
    http_status: int = 400

    def __init__(self, message: str | None = None, code: int | None = None, *, extra: dict | None = None):
        self.code = code if code is not None else self.default_code
        self.message = message if message is not None else self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self) -> str:  # 方便日志输出
        return f"[{self.code}] {self.message}"


# ======================
# 通用类错误
# ======================

class ValidationError(BizError):
    """
    参数校验 / 请求数据不合法：
    - 缺少必要字段
    - 字段格式错误
    - 轮次数量越界、缺少结束日期等业务约束
    """
    default_code = 40002
    default_message = "请求参数不合法"
    http_status = 400


class NotFoundError(BizError):
    """
    通用资源不存在：
    - 比赛不存在
    - 项目/轮次/选手不存在
    """
    default_code = 40400
    default_message = "资源不存在"
    http_status = 404


class ConflictError(BizError):
    """
    资源冲突：
    - 已存在相同标识的比赛
    """
    default_code = 40900
    default_message = "资源冲突"
    http_status = 409


# ======================
# 认证 / 授权相关
# ======================

class AuthError(BizError):
    """
    认证相关错误：统一归类为 401xx
    """
    default_code = 40100
    default_message = "认证失败"
    http_status = 401


class PermissionDeniedError(BizError):
    """
    权限不足：
    - 角色不够（普通用户访问管理接口）
    - 不是比赛的创建者
    """
    default_code = 40300
    default_message = "无权限进行该操作"
    http_status = 403


# ======================
# 比赛领域错误
# ======================

class ContestError(BizError):
    """比赛相关通用错误基类"""
    default_code = 46000
    default_message = "比赛相关错误"
    http_status = 400


class ContestStateError(ContestError):
    """当前比赛状态不允许该操作"""
    default_code = 46010
    default_message = "当前比赛状态不允许该操作"


class ContestNotApprovedError(ContestStateError):
    """比赛尚未审核通过"""
    default_code = 46011
    default_message = "比赛尚未审核通过，无法提交成绩"


class ContestFinishedError(ContestStateError):
    """比赛已结束"""
    default_code = 46012
    default_message = "比赛已结束，无法提交成绩"


# ======================
# 内部错误
# ======================

class InternalServiceError(BizError):
    """
    内部错误（存储失败、回滚失败等）：
    - 对外只暴露不透明提示，原始异常通过 __cause__ 链保留并写入日志
    - 调用方可据此判断是否重试，而不是修改请求
    """
    default_code = 50000
    default_message = "内部服务器错误，请稍后重试"
    http_status = 500


# ======================
# 工具函数
# ======================

def require(condition: bool, error: BizError) -> None:
    """
    小工具：用于在业务代码中快速断言业务条件

    用法：
        require(len(rounds) > 0, ValidationError("项目至少需要一个轮次"))
    """
    if not condition:
        raise error
