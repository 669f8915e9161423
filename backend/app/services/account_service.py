"""
账号服务基类 - 客人与员工共用的登录态与密码操作
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app.models.ontology import Category
from app.models.schemas import PasswordChange, PasswordResetConfirm
from app.security.auth import (
    get_auth_config, get_password_hash, verify_password, create_access_token, create_reset_token
)
from app.security.identity import AuthConfig, RESET_PURPOSE, Rejection, decode_credential
from app.services.errors import AccountRestrictedError, NotFoundError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)


class AccountService:
    """账号服务基类；子类指定 model 与 category"""

    model = None
    category: Category = None

    def __init__(self, db: Session, config: Optional[AuthConfig] = None):
        self.db = db
        self.config = config or get_auth_config()

    @property
    def label(self) -> str:
        return self.category.value.capitalize()

    def get(self, account_id: int):
        return self.db.query(self.model).filter(self.model.id == account_id).first()

    def get_by_email(self, email: str):
        return self.db.query(self.model).filter(self.model.email == email.strip().lower()).first()

    def ensure_active(self, account) -> None:
        """登录前检查账号状态"""
        if account.is_deleted:
            raise AccountRestrictedError(f"{self.label} account deleted")
        for flag, reason in (("banned", account.ban_reason), ("blocked", account.block_reason)):
            if getattr(account, f"is_{flag}"):
                message = f"{self.label} account {flag}"
                raise AccountRestrictedError(f"{message}: {reason}" if reason else message)

    def _start_session(self, account) -> str:
        account.is_online = True
        account.last_login = datetime.utcnow()
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"{self.label} {account.id} signed in")
        return create_access_token(account.id, self.category, self.config)

    def logout(self, account) -> None:
        """退出登录"""
        account.is_online = False
        account.last_logout = datetime.utcnow()
        self.db.commit()

    def change_password(self, account, data: PasswordChange) -> None:
        """修改密码"""
        if data.new_password != data.confirm_new_password:
            raise ValueError("Passwords do not match")
        if not verify_password(data.old_password, account.password_hash):
            raise ValueError("Old password is incorrect")
        if data.old_password == data.new_password:
            raise ValueError("New password must differ from the old password")

        account.password_hash = get_password_hash(data.new_password)
        self.db.commit()

    def forgot_password(self, email: str, notifier: Notifier) -> None:
        """签发重置凭证并邮件发送；邮件发送失败时抛出 DeliveryError"""
        account = self.get_by_email(email)
        if not account or account.is_deleted:
            raise NotFoundError(f"{self.label} not found")

        token = create_reset_token(account.id, self.category, self.config)
        notifier.send_password_reset(account.email, account.fullname, token, self.category.value)
        logger.info(f"Password reset issued for {self.category.value} {account.id}")

    def reset_password(self, data: PasswordResetConfirm) -> None:
        """凭重置凭证设置新密码"""
        if data.new_password != data.confirm_new_password:
            raise ValueError("Passwords do not match")

        claims = decode_credential(self.config, data.token, RESET_PURPOSE)
        if isinstance(claims, Rejection) or claims.get("cat") != self.category.value:
            raise ValueError("Invalid or expired reset token")

        try:
            account = self.get(int(claims.get("sub")))
        except (TypeError, ValueError):
            account = None
        if not account or account.is_deleted:
            raise ValueError("Invalid or expired reset token")

        account.password_hash = get_password_hash(data.new_password)
        self.db.commit()
        logger.info(f"Password reset completed for {self.category.value} {account.id}")
