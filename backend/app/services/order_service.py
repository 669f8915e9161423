"""
餐饮服务 - 菜品与点餐订单

下单时每道菜的库存通过条件 UPDATE（stock >= qty）原子扣减；
任意一道菜库存不足则整单回滚。
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.ontology import (
    CatalogStatus, Dish, DishCategory, Guest, Order, OrderDish, OrderStatus,
    PaymentMethod, PaymentStatus
)
from app.models.schemas import DishCreate, DishUpdate, OrderCreate
from app.services.errors import NotFoundError, OwnershipError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

FINAL_ORDER_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# 订单号冲突时的最大取号次数
NUMBER_ATTEMPTS = 3


class DishService:
    """菜品服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_dishes(self, category: Optional[DishCategory] = None,
                   status: Optional[CatalogStatus] = None, search: Optional[str] = None) -> List[Dish]:
        query = self.db.query(Dish)
        if category:
            query = query.filter(Dish.category == category)
        if status:
            query = query.filter(Dish.status == status)
        if search:
            query = query.filter(func.lower(Dish.name).like(f"%{search.lower()}%"))
        return query.order_by(Dish.name).all()

    def get_dish(self, dish_id: int) -> Dish:
        dish = self.db.query(Dish).filter(Dish.id == dish_id).first()
        if not dish:
            raise NotFoundError("Dish not found")
        return dish

    def create_dish(self, data: DishCreate) -> Dish:
        if self.db.query(Dish).filter(func.lower(Dish.name) == data.name.strip().lower()).first():
            raise ValueError(f"Dish '{data.name}' already exists")
        dish = Dish(**data.model_dump())
        self.db.add(dish)
        self.db.commit()
        self.db.refresh(dish)
        return dish

    def update_dish(self, dish_id: int, data: DishUpdate) -> Dish:
        dish = self.get_dish(dish_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(dish, key, value)
        self.db.commit()
        self.db.refresh(dish)
        return dish

    def delete_dish(self, dish_id: int) -> None:
        dish = self.get_dish(dish_id)
        self.db.query(OrderDish).filter(OrderDish.dish_id == dish_id).update(
            {OrderDish.dish_id: None}, synchronize_session=False
        )
        self.db.delete(dish)
        self.db.commit()


class OrderService:
    """点餐订单服务"""

    def __init__(self, db: Session):
        self.db = db

    def _generate_order_no(self) -> str:
        """生成订单号：OD+日期+序号"""
        today = datetime.now().strftime('%Y%m%d')
        prefix = f"OD{today}"
        last = self.db.query(Order.order_no).filter(Order.order_no.like(f"{prefix}%")) \
            .order_by(func.length(Order.order_no).desc(), Order.order_no.desc()).first()
        seq = int(last[0][len(prefix):]) + 1 if last else 1
        return f"{prefix}{str(seq).zfill(3)}"

    def _take_stock(self, dish_id: int, quantity: int) -> Dish:
        """原子扣减菜品库存"""
        dish = self.db.query(Dish).filter(Dish.id == dish_id).first()
        if not dish or dish.status != CatalogStatus.AVAILABLE:
            raise ValueError(f"Dish {dish_id} not found or unavailable")

        taken = self.db.query(Dish).filter(
            Dish.id == dish_id, Dish.quantity >= quantity
        ).update({
            Dish.quantity: Dish.quantity - quantity,
            Dish.last_ordered: datetime.utcnow(),
        }, synchronize_session=False)
        if taken != 1:
            raise ValueError(f"Insufficient stock for {dish.name}")
        return dish

    def _insert_numbered(self, build) -> Order:
        """
        以新订单号插入订单；订单号与并发请求冲突时回滚并重新取号

        Raises:
            ValueError: 多次重试仍未取得订单号
        """
        for attempt in range(1, NUMBER_ATTEMPTS + 1):
            order = build(self._generate_order_no())
            self.db.add(order)
            try:
                self.db.flush()
                return order
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Order number {order.order_no} taken, attempt {attempt}")
        raise ValueError("Could not allocate an order number, please retry")

    def place_order(self, guest: Guest, data: OrderCreate, notifier: Optional[Notifier] = None) -> Order:
        """客人下单"""
        if not guest.email:
            raise ValueError("An email address is required to place an order")

        guest_id, email, fullname = guest.id, guest.email, guest.fullname
        order = self._insert_numbered(lambda order_no: Order(
            order_no=order_no,
            guest_id=guest_id,
            email=email,
            room=data.room,
            payment_method=data.payment_method,
            payment_status=PaymentStatus.PENDING,
            status=OrderStatus.PLACED,
            amount=Decimal("0"),
        ))
        total = Decimal("0")
        try:
            for line in data.dishes:
                dish = self._take_stock(line.dish_id, line.quantity)
                unit_price = Decimal(str(dish.amount_per_portion))
                price = unit_price * line.quantity
                order.dishes.append(OrderDish(
                    dish_id=dish.id, name=dish.name, quantity=line.quantity,
                    unit_price=unit_price, price=price,
                ))
                total += price
            order.amount = total
            self.db.commit()
        except ValueError:
            self.db.rollback()
            raise
        self.db.refresh(order)
        logger.info(f"Order {order.order_no} placed by guest {guest_id}, amount {order.amount}")

        if notifier:
            notifier.order_placed(order.email, fullname, order.order_no,
                                  [(d.name, d.quantity) for d in order.dishes], order.amount)
        return order

    def get_orders(self, status: Optional[OrderStatus] = None, guest_id: Optional[int] = None,
                   search: Optional[str] = None) -> List[Order]:
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        if guest_id:
            query = query.filter(Order.guest_id == guest_id)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                func.lower(Order.order_no).like(pattern) | func.lower(Order.room).like(pattern)
            )
        return query.order_by(Order.order_date.desc(), Order.id.desc()).all()

    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_guest_order(self, guest_id: int, order_id: int) -> Order:
        order = self.get_order(order_id)
        if order.guest_id != guest_id:
            raise OwnershipError("This order does not belong to you")
        return order

    def update_status(self, order_id: int, status: OrderStatus) -> Order:
        """更新订单状态；取消时归还库存"""
        order = self.get_order(order_id)
        if order.status == status:
            return order
        if order.status in FINAL_ORDER_STATES:
            raise ValueError(f"Order is already {order.status.value}")

        if status == OrderStatus.CANCELLED:
            for line in order.dishes:
                if line.dish_id:
                    self.db.query(Dish).filter(Dish.id == line.dish_id).update(
                        {Dish.quantity: Dish.quantity + line.quantity}, synchronize_session=False
                    )
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.order_no} -> {status.value}")
        return order

    def mark_paid(self, order: Order) -> None:
        """网关支付成功回调"""
        order.payment_method = PaymentMethod.ONLINE
        order.payment_status = PaymentStatus.PAID
