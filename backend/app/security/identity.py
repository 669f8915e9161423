"""
身份解析器 (Identity Resolver)

将 (凭证, 声明类别) 解析为已认证的 Principal。
预期内的失败（缺少凭证、签名错误、过期、账号不存在、账号受限）以 Rejection 返回，
只有基础设施故障（数据库不可达等）才会向上抛出。
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple, Union

from jose import JWTError, jwt

from app.models.ontology import Category, Role, Task

logger = logging.getLogger(__name__)

ACCESS_PURPOSE = "access"
RESET_PURPOSE = "reset"


@dataclass(frozen=True)
class AuthConfig:
    """
    认证配置，进程启动时构建一次，之后不可变

    Attributes:
        secret_key: 凭证签名密钥
        algorithm: 签名算法
        guest_token_ttl: 客人访问凭证有效期
        staff_token_ttl: 员工访问凭证有效期
        reset_token_ttl: 重置密码凭证有效期
    """

    secret_key: str
    algorithm: str = "HS256"
    guest_token_ttl: timedelta = timedelta(minutes=60)
    staff_token_ttl: timedelta = timedelta(minutes=480)
    reset_token_ttl: timedelta = timedelta(minutes=10)

    @classmethod
    def from_settings(cls, settings) -> "AuthConfig":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            guest_token_ttl=timedelta(minutes=settings.GUEST_TOKEN_EXPIRE_MINUTES),
            staff_token_ttl=timedelta(minutes=settings.STAFF_TOKEN_EXPIRE_MINUTES),
            reset_token_ttl=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )

    def ttl_for(self, category: Category, purpose: str = ACCESS_PURPOSE) -> timedelta:
        if purpose == RESET_PURPOSE:
            return self.reset_token_ttl
        if category == Category.STAFF:
            return self.staff_token_ttl
        return self.guest_token_ttl


class RejectionKind(str, Enum):
    """认证拒绝类型"""
    MISSING_CREDENTIAL = "MissingCredential"
    INVALID_CATEGORY = "InvalidCategory"
    INVALID_CREDENTIAL = "InvalidCredential"
    CREDENTIAL_EXPIRED = "CredentialExpired"
    PRINCIPAL_NOT_FOUND = "PrincipalNotFound"
    ACCOUNT_RESTRICTED = "AccountRestricted"


_STATUS_BY_KIND = {
    RejectionKind.MISSING_CREDENTIAL: 401,
    RejectionKind.INVALID_CREDENTIAL: 401,
    RejectionKind.CREDENTIAL_EXPIRED: 401,
    RejectionKind.PRINCIPAL_NOT_FOUND: 401,
    RejectionKind.ACCOUNT_RESTRICTED: 403,
    RejectionKind.INVALID_CATEGORY: 400,
}


@dataclass(frozen=True)
class Rejection:
    """认证拒绝：kind 供客户端分支判断，reason 供展示"""

    kind: RejectionKind
    reason: str

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]

    def to_detail(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "reason": self.reason}


def parse_tasks(raw: Any) -> Tuple[Task, ...]:
    """
    将存储的任务字段规整为有序、去重的 Task 元组

    历史数据中任务既有标量也有列表，两种形态都接受；
    未知标签和 "none" 被忽略。
    """
    if raw is None:
        return ()
    values: Iterable[Any] = [raw] if isinstance(raw, (str, Task)) else raw
    result = []
    for value in values:
        try:
            task = Task(value)
        except ValueError:
            continue
        if task not in result:
            result.append(task)
    return tuple(result)


@dataclass(frozen=True)
class Principal:
    """
    已认证的调用方，每个请求重新构建，不缓存

    Attributes:
        id: 账号 ID
        category: guest 或 staff
        role: 角色（客人固定为 Guest）
        tasks: 员工任务分工（有序）
        record: 完整的持久化记录
    """

    id: int
    category: Category
    role: Role
    tasks: Tuple[Task, ...] = ()
    is_blocked: bool = False
    is_banned: bool = False
    is_deleted: bool = False
    record: Any = field(default=None, compare=False, repr=False)

    @property
    def is_restricted(self) -> bool:
        return bool(self.is_blocked or self.is_banned or self.is_deleted)

    @property
    def is_guest(self) -> bool:
        return self.category == Category.GUEST

    def has_task(self, task: Task) -> bool:
        return task in self.tasks

    @classmethod
    def from_record(cls, record: Any, category: Category) -> "Principal":
        if category == Category.GUEST:
            role = Role.GUEST
            tasks: Tuple[Task, ...] = ()
        else:
            role = Role(record.role)
            tasks = parse_tasks(record.tasks)
        return cls(
            id=record.id,
            category=category,
            role=role,
            tasks=tasks,
            is_blocked=bool(record.is_blocked),
            is_banned=bool(record.is_banned),
            is_deleted=bool(record.is_deleted),
            record=record,
        )


class PrincipalStore(Protocol):
    """按类别查找账号记录"""

    def get_guest(self, principal_id: int) -> Optional[Any]: ...

    def get_staff(self, principal_id: int) -> Optional[Any]: ...


AuthResult = Union[Principal, Rejection]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def issue_credential(config: AuthConfig, subject_id: int, category: Category,
                     purpose: str = ACCESS_PURPOSE,
                     expires_in: Optional[timedelta] = None,
                     now: Optional[datetime] = None) -> str:
    """签发凭证，绑定账号 ID、类别、用途和过期时间"""
    issued_at = now or _utcnow()
    expire = issued_at + (expires_in if expires_in is not None else config.ttl_for(category, purpose))
    to_encode = {
        "sub": str(subject_id),
        "cat": category.value,
        "purpose": purpose,
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


def decode_credential(config: AuthConfig, token: str,
                      expected_purpose: str = ACCESS_PURPOSE,
                      now: Optional[datetime] = None) -> Union[Dict[str, Any], Rejection]:
    """
    校验签名、用途与过期时间

    过期判断由本函数按注入的时钟完成（now >= exp 即过期），
    不依赖 jose 内部的系统时钟。
    """
    try:
        claims = jwt.decode(
            token, config.secret_key,
            algorithms=[config.algorithm],
            options={"verify_exp": False},
        )
    except JWTError:
        return Rejection(RejectionKind.INVALID_CREDENTIAL, "Invalid token")

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return Rejection(RejectionKind.INVALID_CREDENTIAL, "Token has no expiry")
    if claims.get("purpose") != expected_purpose:
        return Rejection(RejectionKind.INVALID_CREDENTIAL, "Token cannot be used for this purpose")

    current = now or _utcnow()
    if current.timestamp() >= exp:
        return Rejection(RejectionKind.CREDENTIAL_EXPIRED, "Token expired")
    return claims


class IdentityResolver:
    """
    身份解析器

    只读操作：不修改任何记录。每次调用的输入输出都是自包含的，
    可被任意数量的并发请求共享。
    """

    def __init__(self, config: AuthConfig, store: PrincipalStore, clock: Optional[Clock] = None):
        self.config = config
        self.store = store
        self.clock = clock or _utcnow

    def authenticate(self, credential: Optional[str], declared_category: Optional[str]) -> AuthResult:
        """解析凭证；返回 Principal 或 Rejection"""
        if not credential:
            return Rejection(RejectionKind.MISSING_CREDENTIAL, "No token provided")
        if not declared_category:
            return Rejection(RejectionKind.MISSING_CREDENTIAL, "From header must be set (guest/staff)")

        try:
            category = Category(declared_category.strip().lower())
        except ValueError:
            return Rejection(RejectionKind.INVALID_CATEGORY, "Invalid From header value")

        claims = decode_credential(self.config, credential, now=self.clock())
        if isinstance(claims, Rejection):
            return claims

        # 凭证绑定签发时的类别，防止 guest 凭证冒充同 ID 的 staff
        if claims.get("cat") != category.value:
            return Rejection(RejectionKind.INVALID_CREDENTIAL, f"Token was not issued for {category.value}")

        try:
            principal_id = int(claims.get("sub"))
        except (TypeError, ValueError):
            return Rejection(RejectionKind.INVALID_CREDENTIAL, "Invalid token subject")

        if category == Category.GUEST:
            record = self.store.get_guest(principal_id)
            if record is None:
                return Rejection(RejectionKind.PRINCIPAL_NOT_FOUND, "Guest not found")
            return Principal.from_record(record, category)

        record = self.store.get_staff(principal_id)
        if record is None:
            return Rejection(RejectionKind.PRINCIPAL_NOT_FOUND, "Staff not found")

        restriction = _staff_restriction(record)
        if restriction:
            logger.info(f"Rejected restricted staff account {principal_id}: {restriction}")
            return Rejection(RejectionKind.ACCOUNT_RESTRICTED, restriction)
        return Principal.from_record(record, category)


def _staff_restriction(record: Any) -> Optional[str]:
    if record.is_deleted:
        return "Staff account deleted"
    if record.is_banned:
        return "Staff account banned"
    if record.is_blocked:
        return "Staff account blocked"
    return None
