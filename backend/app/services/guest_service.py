"""
客人服务 - 注册、登录、个人资料、注销
"""
import logging
from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy import or_
from app.models.ontology import Category, Guest, GuestStatus
from app.models.schemas import GuestSignUp, GuestSignIn, GuestProfileUpdate
from app.security.auth import get_password_hash, verify_password
from app.services.account_service import AccountService
from app.services.errors import AuthenticationError

logger = logging.getLogger(__name__)


class GuestService(AccountService):
    """客人服务"""

    model = Guest
    category = Category.GUEST

    def get_by_phone(self, phone_no: str) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.phone_no == phone_no.strip()).first()

    def sign_up(self, data: GuestSignUp) -> Guest:
        """注册"""
        email = data.email.strip().lower() if data.email else None
        phone_no = data.phone_no.strip() if data.phone_no else None

        conditions = []
        if email:
            conditions.append(Guest.email == email)
        if phone_no:
            conditions.append(Guest.phone_no == phone_no)
        if self.db.query(Guest).filter(or_(*conditions)).first():
            raise ValueError("Guest already exists")

        guest = Guest(
            fullname=data.fullname.strip(),
            email=email,
            phone_no=phone_no,
            gender=data.gender,
            password_hash=get_password_hash(data.password),
        )
        self.db.add(guest)
        self.db.commit()
        self.db.refresh(guest)
        logger.info(f"Guest {guest.id} registered")
        return guest

    def sign_in(self, data: GuestSignIn) -> Tuple[Guest, str]:
        """登录，返回 (客人, 访问凭证)"""
        guest = self.get_by_email(data.email) if data.email else self.get_by_phone(data.phone_no)
        if not guest or not verify_password(data.password, guest.password_hash):
            raise AuthenticationError("Invalid credentials")
        self.ensure_active(guest)
        return guest, self._start_session(guest)

    def update_profile(self, guest: Guest, data: GuestProfileUpdate) -> Guest:
        """更新个人资料"""
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("phone_no"):
            existing = self.get_by_phone(update_data["phone_no"])
            if existing and existing.id != guest.id:
                raise ValueError("Phone number already in use")

        for key, value in update_data.items():
            setattr(guest, key, value)

        self.db.commit()
        self.db.refresh(guest)
        return guest

    def delete_account(self, guest: Guest, password: str, reason: Optional[str] = None) -> None:
        """注销账号（软删除）"""
        if not verify_password(password, guest.password_hash):
            raise ValueError("Password is incorrect")

        guest.is_deleted = True
        guest.delete_reason = reason or ""
        guest.status = GuestStatus.DEACTIVATED
        guest.is_online = False
        guest.last_logout = datetime.utcnow()
        self.db.commit()
        logger.info(f"Guest {guest.id} deleted own account")

    def resolve_walk_in(self, email: Optional[str], fullname: str,
                        phone_no: Optional[str] = None) -> Guest:
        """按邮箱查找到店客人，不存在时创建一个无法登录的账号"""
        guest = self.get_by_email(email) if email else None
        if guest is None and phone_no:
            guest = self.get_by_phone(phone_no)
        if guest:
            return guest

        guest = Guest(
            fullname=fullname or "Walk-in Guest",
            email=email.strip().lower() if email else None,
            phone_no=phone_no.strip() if phone_no else None,
            password_hash="",
        )
        self.db.add(guest)
        self.db.flush()
        logger.info(f"Walk-in guest {guest.id} created")
        return guest
