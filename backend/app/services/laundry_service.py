"""
洗衣服务 - 价目表与洗衣订单
计价委托给 laundry_pricing，本模块负责持久化、状态流转与导出
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from app.models.ontology import (
    CatalogStatus, LaundryBooking, LaundryBookingLine, LaundryItem, LaundryStatus,
    PaymentMethod, PaymentStatus, Guest
)
from app.models.schemas import (
    LaundryItemCreate, LaundryItemUpdate, LaundryBookingCreate, LaundryBookingUpdate
)
from app.services.errors import NotFoundError
from app.services.guest_service import GuestService
from app.services.laundry_pricing import (
    CatalogPrices, Fees, LineRequest, PricedLine, PricedOrder, PricingError,
    price_order, reprice_lines
)
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

# 允许的状态流转；Delivered 与 Cancelled 为终态
STATUS_TRANSITIONS: Dict[LaundryStatus, frozenset] = {
    LaundryStatus.PENDING: frozenset({LaundryStatus.IN_PROGRESS, LaundryStatus.CANCELLED}),
    LaundryStatus.IN_PROGRESS: frozenset({LaundryStatus.READY, LaundryStatus.CANCELLED}),
    LaundryStatus.READY: frozenset({LaundryStatus.DELIVERED, LaundryStatus.CANCELLED}),
    LaundryStatus.DELIVERED: frozenset(),
    LaundryStatus.CANCELLED: frozenset(),
}

ITEM_EXPORT_HEADER = [
    "Name", "Category", "Price", "Wash Price", "Iron Price", "Both Price",
    "Discount %", "Min Qty", "Status", "Date Added"
]
BOOKING_EXPORT_HEADER = ["Order ID", "Guest", "Items", "Amount", "Type", "Priority", "Status", "Date"]


def payment_status_for(method: Optional[PaymentMethod]) -> PaymentStatus:
    """指定了支付方式（非 N/A）即视为已付款"""
    if method and method != PaymentMethod.NOT_APPLICABLE:
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


def check_transition(current: LaundryStatus, target: LaundryStatus) -> None:
    if current == target:
        return
    if target not in STATUS_TRANSITIONS[current]:
        raise ValueError(f"Cannot change laundry status from {current.value} to {target.value}")


class LaundryService:
    """洗衣服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 统计 ==============

    def get_stats(self) -> dict:
        bookings = self.db.query(LaundryBooking)
        return {
            "total_bookings": bookings.count(),
            "online_bookings": bookings.filter(LaundryBooking.payment_method != PaymentMethod.CASH).count(),
            "direct_bookings": bookings.filter(LaundryBooking.payment_method == PaymentMethod.CASH).count(),
            "total_items": self.db.query(LaundryItem).filter(
                LaundryItem.status == CatalogStatus.AVAILABLE).count(),
            "in_progress": bookings.filter(LaundryBooking.status == LaundryStatus.IN_PROGRESS).count(),
            "delivered": bookings.filter(LaundryBooking.status == LaundryStatus.DELIVERED).count(),
        }

    # ============== 价目表 ==============

    def get_items(self, status: Optional[CatalogStatus] = None, category: Optional[str] = None,
                  search: Optional[str] = None) -> List[LaundryItem]:
        query = self.db.query(LaundryItem)
        if status:
            query = query.filter(LaundryItem.status == status)
        if category:
            query = query.filter(LaundryItem.category == category)
        if search:
            query = query.filter(func.lower(LaundryItem.name).like(f"%{search.lower()}%"))
        return query.order_by(LaundryItem.created_at.desc()).all()

    def get_item(self, item_id: int) -> LaundryItem:
        item = self.db.query(LaundryItem).filter(LaundryItem.id == item_id).first()
        if not item:
            raise NotFoundError("Item not found")
        return item

    def get_item_last_ordered(self, item_id: int) -> Optional[datetime]:
        """最近一次包含该价目项的订单时间"""
        return self.db.query(func.max(LaundryBooking.request_date)).join(
            LaundryBookingLine, LaundryBookingLine.booking_id == LaundryBooking.id
        ).filter(LaundryBookingLine.item_id == item_id).scalar()

    def create_item(self, data: LaundryItemCreate) -> LaundryItem:
        existing = self.db.query(LaundryItem).filter(
            func.lower(LaundryItem.name) == data.name.strip().lower()).first()
        if existing:
            raise ValueError(f"Laundry item '{data.name}' already exists")

        item = LaundryItem(**data.model_dump())
        item.name = data.name.strip()
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_item(self, item_id: int, data: LaundryItemUpdate) -> LaundryItem:
        """更新价目项；已有订单的单价快照不受影响"""
        item = self.get_item(item_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(item, key, value)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int) -> None:
        item = self.get_item(item_id)
        self.db.query(LaundryBookingLine).filter(LaundryBookingLine.item_id == item_id).update(
            {LaundryBookingLine.item_id: None}, synchronize_session=False
        )
        self.db.delete(item)
        self.db.commit()

    def export_items(self) -> Tuple[List[str], List[list]]:
        rows = [
            [
                item.name, item.category, item.price, item.price_wash, item.price_iron,
                item.price_both, item.discount_percentage, item.discount_min_qty,
                item.status.value, item.created_at.date().isoformat() if item.created_at else "",
            ]
            for item in self.get_items()
        ]
        return ITEM_EXPORT_HEADER, rows

    # ============== 订单 ==============

    def _catalog_for(self, requests: List[LineRequest]) -> Dict[int, CatalogPrices]:
        """读取请求涉及的可用价目项"""
        ids = {r.item_id for r in requests}
        items = self.db.query(LaundryItem).filter(
            LaundryItem.id.in_(ids), LaundryItem.status == CatalogStatus.AVAILABLE
        ).all()
        return {item.id: CatalogPrices.from_item(item) for item in items}

    def _price(self, lines, fees: Fees, discount_requested: bool) -> PricedOrder:
        requests = [LineRequest(l.item_id, l.quantity, l.service_type) for l in lines]
        priced = price_order(requests, self._catalog_for(requests), fees, discount_requested)
        if not priced.lines:
            raise PricingError("No valid laundry items in request")
        return priced

    @staticmethod
    def _apply_pricing(booking: LaundryBooking, priced: PricedOrder, replace_lines: bool) -> None:
        if replace_lines:
            booking.lines = [
                LaundryBookingLine(
                    item_id=line.item_id, position=position, name=line.name,
                    service_type=line.service_type, quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for position, line in enumerate(priced.lines)
            ]
        booking.subtotal = priced.subtotal
        booking.discount_amount = priced.discount
        booking.urgent_fee = priced.fees.urgent_fee
        booking.service_charge = priced.fees.service_charge
        booking.total_amount = priced.total

    def _resolve_guest(self, data: LaundryBookingCreate) -> Tuple[Optional[Guest], str]:
        fullname = " ".join(p for p in (data.first_name, data.last_name) if p).strip()
        if data.guest_id:
            guest = self.db.query(Guest).filter(Guest.id == data.guest_id).first()
            if not guest:
                raise NotFoundError("Guest not found")
            return guest, guest.fullname
        if data.email or data.phone:
            guest = GuestService(self.db).resolve_walk_in(data.email, fullname, data.phone)
            return guest, fullname or guest.fullname
        if not fullname:
            raise ValueError("Guest details are required")
        return None, fullname

    def create_booking(self, data: LaundryBookingCreate, notifier: Optional[Notifier] = None) -> LaundryBooking:
        """创建洗衣订单（按当前价目表计价）"""
        guest, guest_name = self._resolve_guest(data)
        priced = self._price(data.items, Fees.of(data.urgent_fee, data.service_charge), data.discount_enabled)

        booking = LaundryBooking(
            guest_id=guest.id if guest else None,
            guest_name=guest_name,
            email=(data.email or (guest.email if guest else None)),
            phone=(data.phone or (guest.phone_no if guest else None)),
            room=data.room or "N/A",
            discount_enabled=data.discount_enabled,
            payment_method=data.payment_method,
            payment_status=payment_status_for(data.payment_method),
            laundry_type=data.laundry_type,
            priority=data.priority,
            delivery_date=data.delivery_date,
        )
        self._apply_pricing(booking, priced, replace_lines=True)
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Laundry booking {booking.id} created, total {booking.total_amount}")

        if notifier:
            notifier.laundry_booked(booking.email, booking.guest_name, booking.id, booking.total_amount)
        return booking

    def get_bookings(self, search: Optional[str] = None, status: Optional[LaundryStatus] = None,
                     start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                     guest_id: Optional[int] = None) -> List[LaundryBooking]:
        query = self.db.query(LaundryBooking)
        if status:
            query = query.filter(LaundryBooking.status == status)
        if start_date:
            query = query.filter(LaundryBooking.request_date >= start_date)
        if end_date:
            query = query.filter(LaundryBooking.request_date <= end_date)
        if guest_id:
            query = query.filter(LaundryBooking.guest_id == guest_id)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(LaundryBooking.guest_name).like(pattern),
                func.lower(LaundryBooking.room).like(pattern),
            ))
        return query.order_by(LaundryBooking.request_date.desc(), LaundryBooking.id.desc()).all()

    def get_booking(self, booking_id: int) -> LaundryBooking:
        booking = self.db.query(LaundryBooking).filter(LaundryBooking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def update_booking(self, booking_id: int, data: LaundryBookingUpdate) -> LaundryBooking:
        """
        更新洗衣订单

        传入 items 时按当前价目表整单重新计价；
        只改费用或折扣时使用已保存的单价快照重新汇总。
        """
        booking = self.get_booking(booking_id)
        update_data = data.model_dump(exclude_unset=True)

        if STATUS_TRANSITIONS[booking.status] == frozenset():
            raise ValueError(f"Laundry booking is already {booking.status.value}")

        if update_data.get("status") is not None:
            check_transition(booking.status, update_data["status"])

        discount = update_data.get("discount_enabled")
        if discount is None:
            discount = booking.discount_enabled
        urgent_fee = update_data.get("urgent_fee")
        service_charge = update_data.get("service_charge")
        fees = Fees.of(
            booking.urgent_fee if urgent_fee is None else urgent_fee,
            booking.service_charge if service_charge is None else service_charge,
        )

        if data.items:
            self._apply_pricing(booking, self._price(data.items, fees, discount), replace_lines=True)
        elif urgent_fee is not None or service_charge is not None or "discount_enabled" in update_data:
            frozen = [
                PricedLine(l.item_id, l.name, l.service_type, l.quantity, l.unit_price)
                for l in booking.lines
            ]
            self._apply_pricing(booking, reprice_lines(frozen, fees, discount), replace_lines=False)
        booking.discount_enabled = discount

        if update_data.get("payment_method") is not None:
            booking.payment_method = update_data["payment_method"]
            booking.payment_status = payment_status_for(booking.payment_method)

        for key in ("laundry_type", "priority", "status", "delivery_date", "room"):
            if update_data.get(key) is not None:
                setattr(booking, key, update_data[key])

        self.db.commit()
        self.db.refresh(booking)
        return booking

    def update_status(self, booking_id: int, status: LaundryStatus) -> LaundryBooking:
        booking = self.get_booking(booking_id)
        check_transition(booking.status, status)
        booking.status = status
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Laundry booking {booking.id} -> {status.value}")
        return booking

    def delete_booking(self, booking_id: int) -> None:
        booking = self.get_booking(booking_id)
        self.db.delete(booking)
        self.db.commit()

    def mark_paid(self, booking: LaundryBooking) -> None:
        """网关支付成功回调"""
        booking.payment_method = PaymentMethod.ONLINE
        booking.payment_status = PaymentStatus.PAID

    def export_bookings(self) -> Tuple[List[str], List[list]]:
        rows = [
            [
                b.id, b.guest_name or "",
                "; ".join(f"{l.quantity}x {l.name}" for l in b.lines),
                b.total_amount, b.laundry_type.value, b.priority.value, b.status.value,
                b.request_date.date().isoformat() if b.request_date else "",
            ]
            for b in self.get_bookings()
        ]
        return BOOKING_EXPORT_HEADER, rows
