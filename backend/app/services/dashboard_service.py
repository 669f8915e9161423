"""
仪表盘服务 - 运营总览
"""
from datetime import datetime, timedelta, date
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.ontology import (
    Booking, BookingStatus, Guest, LaundryBooking, LaundryStatus, Order, OrderStatus,
    Room, RoomAvailability, Staff
)


class DashboardService:
    """仪表盘服务"""

    def __init__(self, db: Session):
        self.db = db

    def _count_by(self, column) -> dict:
        rows = self.db.query(column, func.count()).group_by(column).all()
        return {key.value if hasattr(key, "value") else key: count for key, count in rows}

    def _daily_order_revenue(self, days: int = 7) -> list:
        """最近 N 天（含今天）每日点餐收入，已取消订单不计"""
        start = date.today() - timedelta(days=days - 1)
        orders = self.db.query(Order.order_date, Order.amount).filter(
            Order.order_date >= datetime.combine(start, datetime.min.time()),
            Order.status != OrderStatus.CANCELLED,
        ).all()

        totals = {start + timedelta(days=i): Decimal("0") for i in range(days)}
        for order_date, amount in orders:
            day = order_date.date()
            if day in totals:
                totals[day] += Decimal(str(amount or 0))
        return [{"date": day.isoformat(), "revenue": total} for day, total in totals.items()]

    def get_overview(self) -> dict:
        rooms_by_state = self._count_by(Room.availability)
        bookings_by_status = self._count_by(Booking.status)
        orders_by_status = self._count_by(Order.status)
        order_revenue = self.db.query(func.coalesce(func.sum(Order.amount), 0)).filter(
            Order.status != OrderStatus.CANCELLED).scalar()
        laundry_revenue = self.db.query(func.coalesce(func.sum(LaundryBooking.total_amount), 0)).filter(
            LaundryBooking.status != LaundryStatus.CANCELLED).scalar()

        return {
            "rooms": {
                "total": self.db.query(Room).count(),
                **{state.value: rooms_by_state.get(state.value, 0) for state in RoomAvailability},
            },
            "guests": self.db.query(Guest).filter(Guest.is_deleted == False).count(),
            "staff": self.db.query(Staff).filter(Staff.is_deleted == False).count(),
            "bookings": {
                "total": self.db.query(Booking).count(),
                **{s.value: bookings_by_status.get(s.value, 0) for s in BookingStatus},
            },
            "orders": {
                "total": self.db.query(Order).count(),
                "revenue": Decimal(str(order_revenue)),
                "by_status": {s.value: orders_by_status.get(s.value, 0) for s in OrderStatus},
                "daily_revenue": self._daily_order_revenue(),
            },
            "laundry": {
                "revenue": Decimal(str(laundry_revenue)),
                "pending": self.db.query(LaundryBooking).filter(
                    LaundryBooking.status == LaundryStatus.PENDING).count(),
            },
        }
