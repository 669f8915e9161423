"""
活动预约服务
客人提交活动申请（Pending），员工审批、分配会场并推进状态
"""
import logging
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from app.models.ontology import Event, EventStatus, Guest
from app.models.schemas import EventReserve, EventUpdate
from app.services.errors import NotFoundError, OwnershipError
from app.services.hall_service import HallService
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

# 允许的状态流转；Completed 与 Cancelled 为终态
STATUS_TRANSITIONS: Dict[EventStatus, frozenset] = {
    EventStatus.PENDING: frozenset({EventStatus.APPROVED, EventStatus.CANCELLED}),
    EventStatus.APPROVED: frozenset({EventStatus.IN_PROGRESS, EventStatus.CANCELLED}),
    EventStatus.IN_PROGRESS: frozenset({EventStatus.COMPLETED, EventStatus.CANCELLED}),
    EventStatus.COMPLETED: frozenset(),
    EventStatus.CANCELLED: frozenset(),
}

# 客人只能取消尚未开始的活动
GUEST_CANCELLABLE = frozenset({EventStatus.PENDING, EventStatus.APPROVED})


def check_transition(current: EventStatus, target: EventStatus) -> None:
    if current == target:
        return
    if target not in STATUS_TRANSITIONS[current]:
        raise ValueError(f"Cannot change event status from {current.value} to {target.value}")


class EventService:
    """活动预约服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 查询 ==============

    def get_events(self, status: Optional[EventStatus] = None, search: Optional[str] = None,
                   guest_id: Optional[int] = None) -> List[Event]:
        query = self.db.query(Event)
        if guest_id is not None:
            query = query.filter(Event.guest_id == guest_id)
        if status:
            query = query.filter(Event.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Event.event_name).like(pattern),
                func.lower(Event.description).like(pattern),
                func.lower(Event.hall_name).like(pattern),
            ))
        return query.order_by(Event.created_at.desc(), Event.id.desc()).all()

    def get_event(self, event_id: int) -> Event:
        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFoundError("Event not found")
        return event

    def get_guest_event(self, guest_id: int, event_id: int) -> Event:
        event = self.get_event(event_id)
        if event.guest_id != guest_id:
            raise OwnershipError("This event does not belong to you")
        return event

    def get_overview(self) -> dict:
        counts = dict(
            self.db.query(Event.status, func.count(Event.id)).group_by(Event.status).all()
        )
        return {
            "total": sum(counts.values()),
            "pending": counts.get(EventStatus.PENDING, 0),
            "approved": counts.get(EventStatus.APPROVED, 0),
            "in_progress": counts.get(EventStatus.IN_PROGRESS, 0),
            "completed": counts.get(EventStatus.COMPLETED, 0),
            "cancelled": counts.get(EventStatus.CANCELLED, 0),
        }

    # ============== 客人端 ==============

    def reserve(self, guest: Guest, data: EventReserve, notifier: Optional[Notifier] = None) -> Event:
        """提交活动申请，等待员工审批"""
        if data.date < date.today():
            raise ValueError("Event date cannot be in the past")

        event = Event(
            guest_id=guest.id,
            event_name=data.event_name.strip(),
            description=data.description or f"Event request for {data.event_name.strip()}",
            date=data.date,
            duration=data.duration,
            start_time=data.start_time,
            end_time=data.end_time,
            additional_notes=data.additional_notes,
            status=EventStatus.PENDING,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} requested by guest {guest.id}")

        if notifier:
            notifier.event_requested(guest.email, guest.fullname, event.event_name, event.date)
        return event

    def cancel_for_guest(self, guest: Guest, event_id: int,
                         notifier: Optional[Notifier] = None) -> Event:
        event = self.get_guest_event(guest.id, event_id)
        if event.status not in GUEST_CANCELLABLE:
            raise ValueError(f"Cannot cancel an event that is already {event.status.value}")

        event.status = EventStatus.CANCELLED
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} cancelled by guest {guest.id}")

        if notifier:
            notifier.event_status_changed(guest.email, guest.fullname, event.event_name,
                                          EventStatus.CANCELLED.value)
        return event

    # ============== 员工端 ==============

    def update_event(self, event_id: int, data: EventUpdate) -> Event:
        """更新活动；指定 hall_id 时同步会场名称与位置"""
        event = self.get_event(event_id)
        update_data = data.model_dump(exclude_unset=True)
        hall_id = update_data.pop("hall_id", None)
        if hall_id is not None:
            hall = HallService(self.db).get_hall(hall_id)
            event.hall_id = hall.id
            event.hall_name = hall.name
            event.location = hall.location

        for key, value in update_data.items():
            if value is not None:
                setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)
        return event

    def update_status(self, event_id: int, status: EventStatus,
                      notifier: Optional[Notifier] = None) -> Event:
        event = self.get_event(event_id)
        check_transition(event.status, status)
        changed = event.status != status
        event.status = status
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} -> {status.value}")

        if changed and notifier and event.guest:
            notifier.event_status_changed(event.guest.email, event.guest.fullname,
                                          event.event_name, status.value)
        return event

    def delete_event(self, event_id: int) -> None:
        event = self.get_event(event_id)
        self.db.delete(event)
        self.db.commit()
