"""
客房与预订服务

预订状态变更与房间可用状态在同一事务内更新；
占用房间使用条件 UPDATE（仅 Available 房间可被占用），并发请求不会重复订出同一房间。
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.ontology import (
    Booking, BookingRoom, BookingStatus, BookingType, Guest, PaymentMethod, PaymentStatus,
    Room, RoomAvailability
)
from app.models.schemas import (
    RoomCreate, RoomUpdate, RoomStatusUpdate, GuestBookingCreate, StaffBookingCreate, BookingUpdate
)
from app.services.errors import NotFoundError, OwnershipError
from app.services.guest_service import GuestService
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

# 预订状态 -> 房间可用状态；None 表示释放房间
ROOM_STATE_FOR_BOOKING = {
    BookingStatus.BOOKED: RoomAvailability.BOOKED,
    BookingStatus.CHECKED_IN: RoomAvailability.CHECKED_IN,
    BookingStatus.CHECKED_OUT: None,
    BookingStatus.CANCELLED: None,
}

FINAL_BOOKING_STATES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})

# 预订号冲突时的最大取号次数
NUMBER_ATTEMPTS = 3


class RoomService:
    """房间服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_rooms(self, availability: Optional[RoomAvailability] = None,
                  room_type: Optional[str] = None, category: Optional[str] = None) -> List[Room]:
        query = self.db.query(Room)
        if availability:
            query = query.filter(Room.availability == availability)
        if room_type:
            query = query.filter(func.lower(Room.room_type) == room_type.lower())
        if category:
            query = query.filter(Room.category == category)
        return query.order_by(Room.name).all()

    def get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room not found")
        return room

    def _check_name(self, name: str, room_id: Optional[int] = None) -> None:
        existing = self.db.query(Room).filter(Room.name == name).first()
        if existing and existing.id != room_id:
            raise ValueError(f"Room '{name}' already exists")

    def create_room(self, data: RoomCreate) -> Room:
        self._check_name(data.name)
        room = Room(**data.model_dump())
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        room = self.get_room(room_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            self._check_name(update_data["name"], room_id)
        for key, value in update_data.items():
            if value is not None:
                setattr(room, key, value)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room_status(self, room_id: int, data: RoomStatusUpdate) -> Room:
        """手动更新房态；占用中的房间只能通过预订状态变更"""
        room = self.get_room(room_id)
        if data.availability is not None and data.availability != room.availability:
            if room.current_booking_id is not None:
                raise ValueError("Room is held by a booking; change the booking status instead")
            if data.availability in (RoomAvailability.BOOKED, RoomAvailability.CHECKED_IN):
                raise ValueError("Rooms are booked or checked in through bookings")
            room.availability = data.availability
        if data.cleaning_status is not None:
            room.cleaning_status = data.cleaning_status
        self.db.commit()
        self.db.refresh(room)
        return room

    def delete_room(self, room_id: int) -> None:
        room = self.get_room(room_id)
        if room.current_booking_id is not None:
            raise ValueError("Room is held by a booking and cannot be deleted")
        self.db.query(BookingRoom).filter(BookingRoom.room_id == room_id).update(
            {BookingRoom.room_id: None}, synchronize_session=False
        )
        self.db.delete(room)
        self.db.commit()


class BookingService:
    """房间预订服务"""

    def __init__(self, db: Session):
        self.db = db

    def _generate_booking_no(self) -> str:
        """生成预订号：BK+日期+序号"""
        today = datetime.now().strftime('%Y%m%d')
        prefix = f"BK{today}"
        last = self.db.query(Booking.booking_no).filter(Booking.booking_no.like(f"{prefix}%")) \
            .order_by(func.length(Booking.booking_no).desc(), Booking.booking_no.desc()).first()
        seq = int(last[0][len(prefix):]) + 1 if last else 1
        return f"{prefix}{str(seq).zfill(3)}"

    # ============== 查询 ==============

    def get_bookings(self, status: Optional[BookingStatus] = None, search: Optional[str] = None,
                     guest_id: Optional[int] = None) -> List[Booking]:
        query = self.db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        if guest_id:
            query = query.filter(Booking.guest_id == guest_id)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Booking.booking_no).like(pattern),
                func.lower(Booking.email).like(pattern),
            ))
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_guest_booking(self, guest_id: int, booking_id: int) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.guest_id != guest_id:
            raise OwnershipError("This booking does not belong to you")
        return booking

    def get_stats(self) -> dict:
        bookings = self.db.query(Booking)
        return {
            "total": bookings.count(),
            "online": bookings.filter(Booking.booking_type == BookingType.ONLINE).count(),
            "direct": bookings.filter(Booking.booking_type == BookingType.DIRECT).count(),
            "checked_in": bookings.filter(Booking.status == BookingStatus.CHECKED_IN).count(),
        }

    # ============== 创建 ==============

    def _hold_rooms(self, booking: Booking, room_ids: List[int], duration: int) -> Decimal:
        """
        在当前事务内占用房间并写入房间快照，返回总金额

        Raises:
            NotFoundError: 房间不存在
            ValueError: 房间不可用（已被占用或维护中）
        """
        amount = Decimal("0")
        for room_id in dict.fromkeys(room_ids):
            room = self.db.query(Room).filter(Room.id == room_id).first()
            if not room:
                raise NotFoundError(f"Room {room_id} not found")

            held = self.db.query(Room).filter(
                Room.id == room_id, Room.availability == RoomAvailability.AVAILABLE
            ).update({
                Room.availability: RoomAvailability.BOOKED,
                Room.current_guest_id: booking.guest_id,
                Room.current_booking_id: booking.id,
            }, synchronize_session=False)
            if held != 1:
                raise ValueError(f"Room {room.name} is not available")

            price = Decimal(str(room.price))
            booking.rooms.append(BookingRoom(
                room_id=room.id, room_no=room.name, room_type=room.room_type, price=price
            ))
            amount += price * duration
        return amount

    def _insert_numbered(self, build) -> Booking:
        """
        以新预订号插入预订；预订号与并发请求冲突时回滚并重新取号

        Raises:
            ValueError: 多次重试仍未取得预订号
        """
        for attempt in range(1, NUMBER_ATTEMPTS + 1):
            booking = build(self._generate_booking_no())
            self.db.add(booking)
            try:
                self.db.flush()
                return booking
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Booking number {booking.booking_no} taken, attempt {attempt}")
        raise ValueError("Could not allocate a booking number, please retry")

    def _create(self, guest: Guest, email: str, room_ids: List[int], data,
                booking_type: BookingType, payment_status: PaymentStatus) -> Booking:
        duration = (data.check_out_date - data.check_in_date).days
        guest_id = guest.id
        booking = self._insert_numbered(lambda booking_no: Booking(
            booking_no=booking_no,
            guest_id=guest_id,
            email=email,
            payment_method=data.payment_method,
            payment_status=payment_status,
            status=BookingStatus.BOOKED,
            booking_type=booking_type,
            duration=duration,
            no_of_guests=data.no_of_guests,
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
        ))
        try:
            booking.amount = self._hold_rooms(booking, room_ids, duration)
            self.db.commit()
        except (ValueError, LookupError):
            self.db.rollback()
            raise
        self.db.refresh(booking)
        logger.info(f"Booking {booking.booking_no} created for guest {guest_id}, amount {booking.amount}")
        return booking

    def _notify_created(self, booking: Booking, fullname: str, notifier: Optional[Notifier]) -> None:
        if notifier:
            notifier.booking_confirmed(
                booking.email, fullname, booking.booking_no,
                [r.room_no for r in booking.rooms],
                booking.check_in_date, booking.check_out_date, booking.amount,
            )

    def create_for_guest(self, guest: Guest, data: GuestBookingCreate,
                         notifier: Optional[Notifier] = None) -> Booking:
        """客人为自己预订"""
        if not guest.email:
            raise ValueError("An email address is required to book a room")
        booking = self._create(guest, guest.email, data.rooms, data,
                               BookingType.ONLINE, PaymentStatus.PENDING)
        self._notify_created(booking, guest.fullname, notifier)
        return booking

    def create_by_staff(self, data: StaffBookingCreate, notifier: Optional[Notifier] = None) -> Booking:
        """员工代客预订；客人不存在时按邮箱创建"""
        if data.guest_id:
            guest = self.db.query(Guest).filter(Guest.id == data.guest_id).first()
            if not guest:
                raise NotFoundError("Guest not found")
        else:
            fullname = " ".join(p for p in (data.firstname, data.lastname) if p)
            guest = GuestService(self.db).resolve_walk_in(data.email, fullname, data.phone)
            self.db.commit()

        booking = self._create(guest, data.email.strip().lower(), data.rooms, data,
                               data.booking_type, data.payment_status)
        self._notify_created(booking, guest.fullname, notifier)
        return booking

    # ============== 变更 ==============

    def _release_rooms(self, booking: Booking) -> None:
        room_ids = [r.room_id for r in booking.rooms if r.room_id]
        if not room_ids:
            return
        self.db.query(Room).filter(
            Room.id.in_(room_ids), Room.current_booking_id == booking.id
        ).update({
            Room.availability: RoomAvailability.AVAILABLE,
            Room.current_guest_id: None,
            Room.current_booking_id: None,
        }, synchronize_session=False)

    def _set_room_state(self, booking: Booking, availability: RoomAvailability) -> None:
        room_ids = [r.room_id for r in booking.rooms if r.room_id]
        if room_ids:
            self.db.query(Room).filter(
                Room.id.in_(room_ids), Room.current_booking_id == booking.id
            ).update({Room.availability: availability}, synchronize_session=False)

    def update_status(self, booking_id: int, status: BookingStatus,
                      notifier: Optional[Notifier] = None) -> Booking:
        """更新预订状态，同一事务内级联房间可用状态"""
        booking = self.get_booking(booking_id)
        if booking.status == status:
            return booking
        if booking.status in FINAL_BOOKING_STATES:
            raise ValueError(f"Booking is already {booking.status.value}")

        booking.status = status
        if status in ROOM_STATE_FOR_BOOKING:
            availability = ROOM_STATE_FOR_BOOKING[status]
            if availability is None:
                self._release_rooms(booking)
            else:
                self._set_room_state(booking, availability)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.booking_no} -> {status.value}")

        if notifier:
            notifier.booking_status_changed(
                booking.email, booking.guest.fullname if booking.guest else "Guest",
                booking.booking_no, status.value,
            )
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Booking:
        """更新预订；日期变化时按房间快照单价重算金额"""
        booking = self.get_booking(booking_id)
        if booking.status in FINAL_BOOKING_STATES:
            raise ValueError(f"Booking is already {booking.status.value}")

        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        check_in = update_data.get("check_in_date", booking.check_in_date)
        check_out = update_data.get("check_out_date", booking.check_out_date)
        if check_out <= check_in:
            raise ValueError("check_out_date must be after check_in_date")

        for key, value in update_data.items():
            setattr(booking, key, value)

        booking.duration = (check_out - check_in).days
        booking.amount = sum((Decimal(str(r.price)) * booking.duration for r in booking.rooms), Decimal("0"))
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def cancel_for_guest(self, guest: Guest, booking_id: int,
                         notifier: Optional[Notifier] = None) -> Booking:
        """客人取消自己的预订，仅 Booked 状态可取消"""
        booking = self.get_guest_booking(guest.id, booking_id)
        if booking.status != BookingStatus.BOOKED:
            raise ValueError("Only bookings in Booked status can be cancelled")
        return self.update_status(booking.id, BookingStatus.CANCELLED, notifier)

    def delete_booking(self, booking_id: int) -> None:
        """删除预订并释放房间"""
        booking = self.get_booking(booking_id)
        self._release_rooms(booking)
        self.db.delete(booking)
        self.db.commit()
        logger.info(f"Booking {booking_id} deleted")

    def mark_paid(self, booking: Booking) -> None:
        """网关支付成功回调"""
        booking.payment_method = PaymentMethod.ONLINE
        booking.payment_status = PaymentStatus.PAID
