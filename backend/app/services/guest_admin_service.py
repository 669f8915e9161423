"""
客人管理服务 - 员工端的客人查询、冻结、封禁与导出
"""
import logging
import math
from datetime import date, datetime, time
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.ontology import Booking, Guest, GuestStatus
from app.services.errors import NotFoundError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Fullname", "Email", "Phone", "Gender", "Status", "Joined"]


class GuestAdminService:
    """客人管理服务"""

    def __init__(self, db: Session):
        self.db = db

    def _active_query(self):
        return self.db.query(Guest).filter(Guest.is_deleted == False)

    def get_guest(self, guest_id: int) -> Guest:
        guest = self._active_query().filter(Guest.id == guest_id).first()
        if not guest:
            raise NotFoundError("Guest not found")
        return guest

    # ============== 查询与统计 ==============

    def get_stats(self) -> dict:
        """
        客人统计

        online_signups 为设置了密码（线上注册）的客人数；
        retainment_rate 为有预订的客人中预订超过一次者的百分比。
        """
        query = self._active_query()
        counts = dict(
            query.with_entities(Guest.status, func.count(Guest.id)).group_by(Guest.status).all()
        )
        per_guest = self.db.query(Booking.guest_id, func.count(Booking.id)) \
            .filter(Booking.guest_id.isnot(None)).group_by(Booking.guest_id).all()
        repeat = sum(1 for _, n in per_guest if n > 1)
        return {
            "total": query.count(),
            "active": counts.get(GuestStatus.ACTIVE, 0),
            "suspended": counts.get(GuestStatus.SUSPENDED, 0),
            "former": counts.get(GuestStatus.DEACTIVATED, 0),
            "online_signups": query.filter(Guest.password_hash != "").count(),
            "retainment_rate": round(repeat * 100 / len(per_guest)) if per_guest else 0,
        }

    def list_guests(self, search: Optional[str] = None, start_date: Optional[date] = None,
                    end_date: Optional[date] = None, page: int = 1, limit: int = 20) -> dict:
        """分页查询客人，可按注册日期区间过滤"""
        query = self._active_query()
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                func.lower(Guest.fullname).like(pattern)
                | func.lower(Guest.email).like(pattern)
                | Guest.phone_no.like(pattern)
            )
        if start_date:
            query = query.filter(Guest.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Guest.created_at <= datetime.combine(end_date, time.max))

        count = query.count()
        guests = query.order_by(Guest.created_at.desc(), Guest.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return {
            "count": count,
            "total_pages": math.ceil(count / limit) if limit else 0,
            "current_page": page,
            "guests": guests,
        }

    def get_blocked(self) -> List[Guest]:
        return self._active_query().filter(Guest.is_blocked == True) \
            .order_by(Guest.updated_at.desc()).all()

    def get_banned(self) -> List[Guest]:
        return self._active_query().filter(Guest.is_banned == True) \
            .order_by(Guest.updated_at.desc()).all()

    # ============== 冻结与封禁 ==============

    def _restrict(self, guest: Guest, flag: str, reason_field: str, value: bool,
                  reason: Optional[str], notifier: Optional[Notifier]) -> Guest:
        setattr(guest, f"is_{flag}", value)
        setattr(guest, reason_field, reason if value else "")
        restricted = guest.is_blocked or guest.is_banned
        guest.status = GuestStatus.SUSPENDED if restricted else GuestStatus.ACTIVE
        if restricted:
            guest.is_online = False
        self.db.commit()
        self.db.refresh(guest)

        action = flag if value else f"un{flag}"
        logger.info(f"Guest {guest.id} {action}")
        if value and notifier:
            notifier.guest_restricted(guest.email, guest.fullname, flag, reason)
        return guest

    def set_blocked(self, guest_id: int, blocked: bool, reason: Optional[str] = None,
                    notifier: Optional[Notifier] = None) -> Guest:
        guest = self.get_guest(guest_id)
        if blocked and guest.is_blocked:
            raise ValueError("Guest is already blocked")
        if not blocked and not guest.is_blocked:
            raise ValueError("Guest is not blocked")
        return self._restrict(guest, "blocked", "block_reason", blocked, reason, notifier)

    def set_banned(self, guest_id: int, banned: bool, reason: Optional[str] = None,
                   notifier: Optional[Notifier] = None) -> Guest:
        guest = self.get_guest(guest_id)
        if banned and guest.is_banned:
            raise ValueError("Guest is already banned")
        if not banned and not guest.is_banned:
            raise ValueError("Guest is not banned")
        return self._restrict(guest, "banned", "ban_reason", banned, reason, notifier)

    def delete_guest(self, guest_id: int, reason: Optional[str] = None) -> None:
        """软删除：保留历史单据，账号不再可用"""
        guest = self.get_guest(guest_id)
        guest.is_deleted = True
        guest.is_online = False
        guest.status = GuestStatus.DEACTIVATED
        guest.delete_reason = reason
        self.db.commit()
        logger.info(f"Guest {guest.id} deleted by staff")

    def export(self) -> Tuple[List[str], List[list]]:
        rows = [
            [
                g.fullname, g.email or "", g.phone_no or "", g.gender or "",
                g.status.value if g.status else "",
                g.created_at.date().isoformat() if g.created_at else "",
            ]
            for g in self._active_query().order_by(Guest.fullname).all()
        ]
        return EXPORT_HEADER, rows
