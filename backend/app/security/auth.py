"""
认证与授权依赖

把 Identity Resolver / Authorization Policy 的判定结果转换为 HTTP 响应：
认证拒绝 -> 401/403/400，授权拒绝 -> 403。
"""
import bcrypt
import logging
from functools import lru_cache
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.models.ontology import Category, Guest, Staff
from app.security.identity import (
    ACCESS_PURPOSE, RESET_PURPOSE, AuthConfig, IdentityResolver, Principal, Rejection,
    issue_credential,
)
from app.security.policy import AuthorizationRule, Decision, authorize

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """密码哈希"""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


@lru_cache
def get_auth_config() -> AuthConfig:
    """进程级认证配置（只构建一次）"""
    return AuthConfig.from_settings(settings)


def create_access_token(principal_id: int, category: Category,
                        config: Optional[AuthConfig] = None) -> str:
    """签发访问凭证"""
    return issue_credential(config or get_auth_config(), principal_id, category, ACCESS_PURPOSE)


def create_reset_token(principal_id: int, category: Category,
                       config: Optional[AuthConfig] = None) -> str:
    """签发重置密码凭证（短时有效）"""
    return issue_credential(config or get_auth_config(), principal_id, category, RESET_PURPOSE)


class SqlPrincipalStore:
    """基于 SQLAlchemy 会话的账号查找"""

    def __init__(self, db: Session):
        self.db = db

    def get_guest(self, principal_id: int) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.id == principal_id).first()

    def get_staff(self, principal_id: int) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.id == principal_id).first()


def raise_for_rejection(rejection: Rejection) -> None:
    raise HTTPException(status_code=rejection.status_code, detail=rejection.to_detail())


def raise_for_decision(decision: Decision) -> None:
    """授权拒绝时抛出 403"""
    if not decision:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.to_detail())


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
) -> Principal:
    """
    获取当前调用方

    凭证取自 Authorization: Bearer，缺省时回退到 x-auth-token；
    类别取自 From 请求头。
    """
    token = credentials.credentials if credentials else request.headers.get("x-auth-token")
    resolver = IdentityResolver(config, SqlPrincipalStore(db))
    result = resolver.authenticate(token, request.headers.get("From"))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    request.state.principal = result
    return result


def require(rule: AuthorizationRule):
    """按声明式规则校验权限的依赖"""
    async def rule_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        raise_for_decision(authorize(principal, rule))
        return principal
    return rule_checker
