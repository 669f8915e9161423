"""
服务层异常
业务校验失败仍使用 ValueError；以下异常供路由映射为特定状态码
"""


class NotFoundError(LookupError):
    """资源不存在 -> 404"""


class AuthenticationError(ValueError):
    """账号或密码错误 -> 401"""


class AccountRestrictedError(PermissionError):
    """账号被封禁/拉黑/删除 -> 403"""


class OwnershipError(PermissionError):
    """访问不属于自己的资源 -> 403"""


class DeliveryError(RuntimeError):
    """外部协作方（邮件、支付网关）调用失败 -> 502"""


class ManagementDeniedError(PermissionError):
    """账号管理规则拒绝 -> 403；decision 为策略返回的拒绝结果"""

    def __init__(self, decision):
        super().__init__(decision.message)
        self.decision = decision
