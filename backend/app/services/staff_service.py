"""
员工服务 - 登录、个人资料与账号管理

账号管理遵循 can_manage 规则：Owner 管理 Admin 与 Staff，Admin 只管理 Staff，
任何人都不能管理 Owner。
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func
from app.models.ontology import Category, Role, Staff
from app.models.schemas import StaffLogin, StaffCreate, StaffUpdate, StaffProfileUpdate
from app.security.auth import get_password_hash, verify_password
from app.security.policy import can_manage, can_manage_all, manageable_roles
from app.services.account_service import AccountService
from app.services.errors import AuthenticationError, ManagementDeniedError, NotFoundError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)


class StaffService(AccountService):
    """员工服务"""

    model = Staff
    category = Category.STAFF

    # ============== 登录与个人资料 ==============

    def login(self, data: StaffLogin) -> Tuple[Staff, str]:
        """员工登录，返回 (员工, 访问凭证)"""
        staff = self.get_by_email(data.email)
        if not staff or not verify_password(data.password, staff.password_hash):
            raise AuthenticationError("Invalid credentials")
        self.ensure_active(staff)
        return staff, self._start_session(staff)

    def update_profile(self, staff: Staff, data: StaffProfileUpdate) -> Staff:
        """更新个人资料（不含角色、薪资、任务）"""
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(staff, key, value)
        self.db.commit()
        self.db.refresh(staff)
        return staff

    # ============== 账号管理 ==============

    def _managed_query(self, actor_role: Role):
        roles = list(manageable_roles(actor_role))
        return self.db.query(Staff).filter(Staff.role.in_(roles), Staff.is_deleted == False)

    def _get_manageable(self, actor_role: Role, staff_id: int) -> Staff:
        staff = self.get(staff_id)
        if not staff or staff.is_deleted:
            raise NotFoundError("Staff not found")
        decision = can_manage(actor_role, staff.role)
        if not decision:
            raise ManagementDeniedError(decision)
        return staff

    def get_stats(self, actor_role: Role) -> dict:
        """可管理账号统计"""
        query = self._managed_query(actor_role)
        return {
            "total": query.count(),
            "blocked": query.filter(Staff.is_blocked == True).count(),
        }

    def list_members(self, actor_role: Role, blocked: Optional[bool] = None,
                     search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Staff]:
        """列出可管理账号"""
        query = self._managed_query(actor_role)
        if blocked is not None:
            query = query.filter(Staff.is_blocked == blocked)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                func.lower(Staff.fullname).like(pattern) | func.lower(Staff.email).like(pattern)
            )
        return query.order_by(Staff.created_at.desc()).offset(offset).limit(limit).all()

    def get_member(self, actor_role: Role, staff_id: int) -> Staff:
        return self._get_manageable(actor_role, staff_id)

    def create_member(self, actor_role: Role, data: StaffCreate,
                      notifier: Optional[Notifier] = None) -> Staff:
        """创建员工账号；角色必须在操作者可管理范围内"""
        decision = can_manage(actor_role, data.role)
        if not decision:
            raise ManagementDeniedError(decision)

        email = data.email.strip().lower()
        if self.get_by_email(email):
            raise ValueError("Staff with this email already exists")

        staff = Staff(
            fullname=data.fullname.strip(),
            email=email,
            phone_no=data.phone_no,
            password_hash=get_password_hash(data.password),
            role=data.role,
            primary_role=data.primary_role or "",
            salary=data.salary,
            tasks=[t.value for t in data.tasks] if data.role == Role.STAFF else [],
            gender=data.gender,
            address=data.address,
            date_of_birth=data.date_of_birth,
        )
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"{actor_role.value} created {staff.role.value} account {staff.id}")

        if notifier:
            notifier.staff_account_created(staff.email, staff.fullname, staff.role.value, data.password)
        return staff

    def update_member(self, actor_role: Role, staff_id: int, data: StaffUpdate) -> Staff:
        """
        编辑员工账号

        修改角色时，操作者必须同时可管理原角色与新角色。
        status: Blocked 拉黑，Active 解除拉黑。
        """
        staff = self._get_manageable(actor_role, staff_id)
        update_data = data.model_dump(exclude_unset=True)

        new_role = update_data.pop("role", None)
        if new_role is not None and new_role != staff.role:
            decision = can_manage_all(actor_role, [staff.role, new_role])
            if not decision:
                raise ManagementDeniedError(decision)
            staff.role = new_role

        if "email" in update_data and update_data["email"]:
            email = update_data.pop("email").strip().lower()
            existing = self.get_by_email(email)
            if existing and existing.id != staff.id:
                raise ValueError("Staff with this email already exists")
            staff.email = email

        tasks = update_data.pop("tasks", None)
        if staff.role != Role.STAFF:
            staff.tasks = []
        elif tasks is not None:
            staff.tasks = [t.value for t in tasks]

        status = update_data.pop("status", None)
        if status == "Blocked":
            staff.is_blocked = True
        elif status == "Active":
            staff.is_blocked = False
            staff.block_reason = ""
        elif status is not None:
            raise ValueError("status must be Blocked or Active")

        for key, value in update_data.items():
            if value is not None:
                setattr(staff, key, value)

        self.db.commit()
        self.db.refresh(staff)
        return staff

    def set_blocked(self, actor_role: Role, staff_id: int, blocked: bool,
                    reason: Optional[str] = None) -> Staff:
        """拉黑/解除拉黑"""
        staff = self._get_manageable(actor_role, staff_id)
        staff.is_blocked = blocked
        staff.block_reason = (reason or "") if blocked else ""
        if blocked:
            staff.is_online = False
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"Staff {staff.id} {'blocked' if blocked else 'unblocked'} by {actor_role.value}")
        return staff

    def delete_member(self, actor_role: Role, staff_id: int, reason: Optional[str] = None) -> None:
        """软删除员工账号"""
        staff = self._get_manageable(actor_role, staff_id)
        staff.is_deleted = True
        staff.delete_reason = reason or ""
        staff.is_online = False
        staff.last_logout = datetime.utcnow()
        self.db.commit()
        logger.info(f"Staff {staff.id} deleted by {actor_role.value}")
