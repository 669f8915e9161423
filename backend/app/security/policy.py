"""
授权策略 (Authorization Policy)

authorize() 与 can_manage() 均为纯函数：确定、全函数，
任何输入组合都返回 Decision，不抛异常。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional

from app.models.ontology import Role, Task

# 账号管理矩阵：操作者角色 -> 可管理的目标角色
MANAGEABLE_ROLES = {
    Role.OWNER: frozenset({Role.ADMIN, Role.STAFF}),
    Role.ADMIN: frozenset({Role.STAFF}),
}


class DenyReason(str, Enum):
    """拒绝原因类型"""
    ACCOUNT_RESTRICTED = "AccountRestricted"
    ROLE_NOT_ALLOWED = "RoleNotAllowed"
    TASK_NOT_ASSIGNED = "TaskNotAssigned"
    TARGET_NOT_MANAGEABLE = "TargetNotManageable"


@dataclass(frozen=True)
class AuthorizationRule:
    """
    声明式授权规则

    Attributes:
        allowed_roles: 允许的角色集合
        required_task: Staff 角色必须具备的任务分工（None 表示不要求）
    """

    allowed_roles: FrozenSet[Role]
    required_task: Optional[Task] = None

    @classmethod
    def of(cls, *roles: Role, task: Optional[Task] = None) -> "AuthorizationRule":
        return cls(allowed_roles=frozenset(roles), required_task=task)


@dataclass(frozen=True)
class Decision:
    """授权结果"""

    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    def to_detail(self) -> dict:
        return {"kind": self.reason.value if self.reason else None, "reason": self.message}


ALLOW = Decision(allowed=True)


def deny(reason: DenyReason, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


def _restriction_message(principal: Any) -> Optional[str]:
    if getattr(principal, "is_deleted", False):
        return "Account deleted"
    if getattr(principal, "is_banned", False):
        return "Account banned"
    if getattr(principal, "is_blocked", False):
        return "Account blocked"
    return None


def _contains(collection: FrozenSet[Any], value: Any) -> bool:
    try:
        return value in collection
    except TypeError:
        return False


def _manageable(actor_role: Any) -> FrozenSet[Role]:
    try:
        return MANAGEABLE_ROLES.get(actor_role, frozenset())
    except TypeError:
        return frozenset()


def _task_set(principal: Any) -> FrozenSet[Any]:
    tasks = getattr(principal, "tasks", None) or ()
    if isinstance(tasks, (str, Task)):
        tasks = (tasks,)
    try:
        return frozenset(tasks)
    except TypeError:
        return frozenset()


def authorize(principal: Any, rule: Optional[AuthorizationRule]) -> Decision:
    """
    判定 principal 是否可执行受 rule 保护的操作

    检查顺序:
    1. 被封禁/禁用/删除的账号无条件拒绝（先于角色判断）
    2. 角色不在允许列表中则拒绝
    3. Staff 角色且规则要求任务分工时，必须具备该任务
    """
    if principal is None:
        return deny(DenyReason.ROLE_NOT_ALLOWED, "No authenticated principal")

    allowed_roles = getattr(rule, "allowed_roles", None)
    if not allowed_roles:
        return deny(DenyReason.ROLE_NOT_ALLOWED, "No authorization rule")

    restriction = _restriction_message(principal)
    if restriction:
        return deny(DenyReason.ACCOUNT_RESTRICTED, restriction)

    role = getattr(principal, "role", None)
    if not _contains(allowed_roles, role):
        return deny(DenyReason.ROLE_NOT_ALLOWED, "Access denied or unauthorized role.")

    required_task = getattr(rule, "required_task", None)
    if role == Role.STAFF and required_task is not None:
        if not _contains(_task_set(principal), required_task):
            task = getattr(required_task, "value", required_task)
            return deny(
                DenyReason.TASK_NOT_ASSIGNED,
                f"Access denied. '{task}' task is not assigned to you.",
            )

    return ALLOW


def can_manage(actor_role: Any, target_role: Any) -> Decision:
    """
    账号管理规则

    Owner 可管理 Admin 与 Staff；Admin 只能管理 Staff；
    任何人都不能管理 Owner 账号，也不能把目标提升为 Owner。
    """
    if _contains(_manageable(actor_role), target_role):
        return ALLOW
    target = target_role.value if isinstance(target_role, Role) else str(target_role)
    return deny(
        DenyReason.TARGET_NOT_MANAGEABLE,
        f"Access denied. You cannot manage an account with role: {target}",
    )


def can_manage_all(actor_role: Any, target_roles: Iterable[Any]) -> Decision:
    """同时检查多个目标角色（如修改角色时的原角色与新角色）"""
    for target_role in target_roles:
        decision = can_manage(actor_role, target_role)
        if not decision:
            return decision
    return ALLOW


def manageable_roles(actor_role: Any) -> FrozenSet[Role]:
    """操作者可管理的角色集合"""
    return _manageable(actor_role)
