"""
会场服务 - 会场目录、预订与取消

预订使用条件 UPDATE（仅 Available 会场可被预订），并发请求不会重复订出同一会场。
"""
import logging
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from app.models.ontology import Hall, HallStatus, HallType
from app.models.schemas import HallBook, HallCreate, HallUpdate
from app.services.errors import NotFoundError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

# 存在有效预订的会场状态
ACTIVE_HALL_STATES = frozenset({HallStatus.BOOKED, HallStatus.IN_PROGRESS, HallStatus.OVERDUE})


class HallService:
    """会场服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_halls(self, status: Optional[HallStatus] = None, hall_type: Optional[HallType] = None,
                  search: Optional[str] = None) -> List[Hall]:
        query = self.db.query(Hall)
        if status:
            query = query.filter(Hall.status == status)
        if hall_type:
            query = query.filter(Hall.hall_type == hall_type)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Hall.name).like(pattern),
                func.lower(Hall.location).like(pattern),
                func.lower(Hall.description).like(pattern),
            ))
        return query.order_by(Hall.created_at.desc(), Hall.id.desc()).all()

    def get_hall(self, hall_id: int) -> Hall:
        hall = self.db.query(Hall).filter(Hall.id == hall_id).first()
        if not hall:
            raise NotFoundError("Hall not found")
        return hall

    def _check_name(self, name: str, hall_id: Optional[int] = None) -> None:
        existing = self.db.query(Hall).filter(func.lower(Hall.name) == name.strip().lower()).first()
        if existing and existing.id != hall_id:
            raise ValueError(f"Hall '{name}' already exists")

    def create_hall(self, data: HallCreate) -> Hall:
        self._check_name(data.name)
        hall = Hall(**data.model_dump())
        hall.name = data.name.strip()
        self.db.add(hall)
        self.db.commit()
        self.db.refresh(hall)
        logger.info(f"Hall {hall.id} '{hall.name}' created")
        return hall

    def update_hall(self, hall_id: int, data: HallUpdate) -> Hall:
        """
        更新会场信息

        Raises:
            ValueError: 名称重复，或试图手动置为 Booked（预订须走 book_hall）
        """
        hall = self.get_hall(hall_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            self._check_name(update_data["name"], hall_id)
        status = update_data.pop("status", None)
        if status == HallStatus.BOOKED and hall.status != HallStatus.BOOKED:
            raise ValueError("Use the booking action to book a hall")

        for key, value in update_data.items():
            if value is not None:
                setattr(hall, key, value)
        if status is not None:
            hall.status = status
            if status == HallStatus.AVAILABLE:
                self._clear_booking(hall)

        self.db.commit()
        self.db.refresh(hall)
        return hall

    @staticmethod
    def _clear_booking(hall: Hall) -> None:
        hall.guest_name = None
        hall.email = None
        hall.check_in_date = None
        hall.check_out_date = None

    def book_hall(self, hall_id: int, data: HallBook, notifier: Optional[Notifier] = None) -> Hall:
        """
        为客人预订会场

        Raises:
            NotFoundError: 会场不存在
            ValueError: 会场当前不可预订
        """
        hall = self.get_hall(hall_id)
        values = {
            Hall.status: HallStatus.BOOKED,
            Hall.guest_name: data.guest_name.strip(),
            Hall.email: data.email.strip().lower(),
            Hall.check_in_date: data.check_in_date,
            Hall.check_out_date: data.check_out_date,
        }
        if data.amount is not None:
            values[Hall.amount] = data.amount

        held = self.db.query(Hall).filter(
            Hall.id == hall_id, Hall.status == HallStatus.AVAILABLE
        ).update(values, synchronize_session=False)
        if held != 1:
            self.db.rollback()
            raise ValueError(f"Hall {hall.name} is not available")

        self.db.commit()
        self.db.refresh(hall)
        logger.info(f"Hall {hall.id} booked for {hall.email}")

        if notifier:
            notifier.hall_booked(hall.email, hall.guest_name, hall.name, hall.hall_type.value,
                                 hall.location, hall.check_in_date, hall.check_out_date, hall.amount)
        return hall

    def cancel_hall(self, hall_id: int, notifier: Optional[Notifier] = None) -> Hall:
        """取消会场当前预订并通知预订人"""
        hall = self.get_hall(hall_id)
        if hall.status not in ACTIVE_HALL_STATES:
            raise ValueError(f"Cannot cancel a hall that is {hall.status.value}")

        hall.status = HallStatus.CANCELLED
        self.db.commit()
        self.db.refresh(hall)
        logger.info(f"Hall {hall.id} booking cancelled")

        if notifier:
            notifier.hall_cancelled(hall.email, hall.guest_name or "Guest", hall.name)
        return hall
