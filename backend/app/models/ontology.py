"""
领域对象定义
所有业务实体通过 SQLAlchemy ORM 建模；订单类对象保存下单时的价格快照
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey, Text,
    Enum as SQLEnum, Boolean, Numeric, JSON
)
from sqlalchemy.orm import relationship
from app.database import Base


# ============== 枚举定义 ==============

class Category(str, Enum):
    """调用方类别（From 请求头）"""
    GUEST = "guest"
    STAFF = "staff"


class Role(str, Enum):
    """角色；客人统一为 Guest"""
    OWNER = "Owner"
    ADMIN = "Admin"
    STAFF = "Staff"
    GUEST = "Guest"


class Task(str, Enum):
    """员工任务分工，决定 Staff 角色可访问的业务域"""
    BOOKING = "booking"
    ROOM = "room"
    DISH = "dish"
    HALL = "hall"
    ORDER = "order"
    EVENT = "event"
    LAUNDRY = "laundry"
    INVENTORY = "inventory"
    SERVICE_REQUEST = "serviceRequest"
    GUEST = "guest"


class GuestStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    DEACTIVATED = "Deactivated"


class RoomAvailability(str, Enum):
    """房间可用状态"""
    AVAILABLE = "Available"
    CHECKED_IN = "Checked-In"
    BOOKED = "Booked"
    UNDER_MAINTENANCE = "Under Maintenance"


class CleaningStatus(str, Enum):
    CLEAN = "Clean"
    CLEANING = "Cleaning"
    UNTIDY = "Untidy"


class BookingStatus(str, Enum):
    """房间预订状态"""
    BOOKED = "Booked"
    CHECKED_IN = "Checked-in"
    CHECKED_OUT = "Checked-out"
    CANCELLED = "Cancelled"
    OVERDUE = "Overdue"


class BookingType(str, Enum):
    ONLINE = "Online"
    DIRECT = "Direct"


class PaymentMethod(str, Enum):
    """支付方式（房间、点餐、洗衣共用）"""
    CASH = "Cash"
    POS = "POS"
    TRANSFER = "Transfer"
    ONLINE = "Online"
    CARD = "Card"
    ROOM_CHARGE = "Room Charge"
    NOT_APPLICABLE = "N/A"


class PaymentStatus(str, Enum):
    """业务单据的付款状态"""
    PAID = "Paid"
    PENDING = "Pending"
    PARTIAL = "Partial"
    FAILED = "Failed"


class DishCategory(str, Enum):
    BREAKFAST = "Breakfast"
    MAIN_MEAL = "Main Meal"
    SWALLOW = "Swallow"
    SOUP = "Soup"
    BAR_AND_DRINKS = "Bar & Drinks"
    BEVERAGES = "Beverages"
    MEAT_AND_FISH = "Meat & Fish"
    SNACKS_AND_DESSERTS = "Snacks & Desserts"


class OrderStatus(str, Enum):
    """点餐订单状态"""
    PLACED = "Order Placed"
    PREPARING = "Preparing"
    SERVED = "Order Served"
    DELIVERED = "Order Delivered"
    CANCELLED = "Order Cancelled"


class LaundryStatus(str, Enum):
    """洗衣订单状态"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    READY = "Ready"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class LaundryType(str, Enum):
    WASH = "Wash"
    IRON = "Iron"
    WASH_AND_IRON = "Wash + Iron"
    DRY_CLEAN = "Dry Clean"
    MIXED = "Mixed"


class LaundryPriority(str, Enum):
    STANDARD = "Standard"
    URGENT = "Urgent"


class CatalogStatus(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"


class InventoryType(str, Enum):
    ROOM = "room"
    KITCHEN = "kitchen"
    ASSETS = "assets"
    OFFICE = "office"


class InventoryStatus(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"


class SupplierStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class GatewayStatus(str, Enum):
    """支付网关交易状态"""
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"


class PaymentTarget(str, Enum):
    """支付关联的业务单据类型"""
    BOOKING = "booking"
    ORDER = "order"
    LAUNDRY = "laundry"


class HallType(str, Enum):
    CONFERENCE = "Conference Hall"
    BANQUET = "Banquet Hall B"
    BOARDROOM = "Boardroom"
    BALLROOM = "Grand Ballroom"


class HallStatus(str, Enum):
    """会场状态"""
    AVAILABLE = "Available"
    BOOKED = "Booked"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    OVERDUE = "Overdue"


class EventStatus(str, Enum):
    """活动预约状态"""
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ServiceType(str, Enum):
    ROOM_BOOKING = "Room Booking"
    SPA = "Spa & Relaxation"
    LAUNDRY = "Laundry & Dry Cleaning"
    EVENTS = "Events & Hall"
    BAR = "Bar & Grill"
    FITNESS = "Fitness Center"


class ServiceStatus(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    UNDER_MAINTENANCE = "Under Maintenance"


class ServiceRequestStatus(str, Enum):
    """服务请求状态"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# ============== 账号 ==============

class Guest(Base):
    """
    客人账号
    is_blocked / is_banned / is_deleted 任一为真时不得通过授权
    """
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    fullname = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True)
    phone_no = Column(String(20), unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    gender = Column(String(20))
    date_of_birth = Column(String(20))
    address = Column(Text)
    profile_img_url = Column(String(255), default="")
    status = Column(SQLEnum(GuestStatus), default=GuestStatus.ACTIVE)
    is_online = Column(Boolean, default=False)
    last_login = Column(DateTime)
    last_logout = Column(DateTime)
    is_blocked = Column(Boolean, default=False)
    block_reason = Column(Text, default="")
    is_banned = Column(Boolean, default=False)
    ban_reason = Column(Text, default="")
    is_deleted = Column(Boolean, default=False)
    delete_reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="guest")
    orders = relationship("Order", back_populates="guest")
    laundry_bookings = relationship("LaundryBooking", back_populates="guest")
    payments = relationship("Payment", back_populates="guest")
    events = relationship("Event", back_populates="guest")
    service_requests = relationship("ServiceRequest", back_populates="guest")


class Staff(Base):
    """
    员工账号
    tasks 为有序的任务标签列表，仅对 Staff 角色生效
    """
    __tablename__ = "staffs"

    id = Column(Integer, primary_key=True, index=True)
    fullname = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone_no = Column(String(20))
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(Role), default=Role.STAFF, nullable=False)
    primary_role = Column(String(50), default="")   # 岗位名称，如前台、厨师
    salary = Column(Numeric(12, 2), default=0)
    tasks = Column(JSON, default=list)
    gender = Column(String(20))
    date_of_birth = Column(String(20))
    address = Column(Text)
    profile_img_url = Column(String(255), default="")
    is_online = Column(Boolean, default=False)
    last_login = Column(DateTime)
    last_logout = Column(DateTime)
    is_blocked = Column(Boolean, default=False)
    block_reason = Column(Text, default="")
    is_banned = Column(Boolean, default=False)
    ban_reason = Column(Text, default="")
    is_deleted = Column(Boolean, default=False)
    delete_reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ============== 客房与预订 ==============

class Room(Base):
    """房间"""
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)   # 房间号/名称
    room_type = Column(String(50), nullable=False)
    category = Column(String(30), default="All")
    price = Column(Numeric(12, 2), nullable=False)
    capacity = Column(Integer, nullable=False, default=1)
    availability = Column(SQLEnum(RoomAvailability), default=RoomAvailability.AVAILABLE)
    cleaning_status = Column(SQLEnum(CleaningStatus), default=CleaningStatus.CLEAN)
    amenities = Column(JSON, default=list)
    image_urls = Column(JSON, default=list)
    description = Column(Text)
    rating = Column(Numeric(3, 1), default=0)
    current_guest_id = Column(Integer, ForeignKey("guests.id"))
    current_booking_id = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Booking(Base):
    """
    房间预订 - 聚合根
    状态变更与房间可用状态在同一事务内更新
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_no = Column(String(20), unique=True, nullable=False)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    email = Column(String(100), nullable=False)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.CASH)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    amount = Column(Numeric(12, 2), default=0)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.BOOKED)
    booking_type = Column(SQLEnum(BookingType), default=BookingType.ONLINE)
    duration = Column(Integer, nullable=False)
    no_of_guests = Column(Integer, default=1)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guest = relationship("Guest", back_populates="bookings")
    rooms = relationship("BookingRoom", back_populates="booking", cascade="all, delete-orphan")


class BookingRoom(Base):
    """预订中的房间快照（房号、房型、单价）"""
    __tablename__ = "booking_rooms"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"))
    room_no = Column(String(50))
    room_type = Column(String(50))
    price = Column(Numeric(12, 2))

    booking = relationship("Booking", back_populates="rooms")
    room = relationship("Room")


# ============== 餐饮 ==============

class Dish(Base):
    """菜品；quantity 为可售份数"""
    __tablename__ = "dishes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    category = Column(SQLEnum(DishCategory))
    description = Column(Text)
    is_ready = Column(Boolean, default=False)
    status = Column(SQLEnum(CatalogStatus), default=CatalogStatus.AVAILABLE)
    quantity = Column(Integer, default=0)
    amount_per_portion = Column(Numeric(12, 2), default=0)
    image_url = Column(String(255), default="")
    last_ordered = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)


class Order(Base):
    """点餐订单"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_no = Column(String(20), unique=True, nullable=False)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    email = Column(String(100), nullable=False)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PLACED)
    room = Column(String(50))
    amount = Column(Numeric(12, 2), default=0)
    vat = Column(Numeric(12, 2), default=0)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.NOT_APPLICABLE)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    order_date = Column(DateTime, default=datetime.utcnow)

    guest = relationship("Guest", back_populates="orders")
    dishes = relationship("OrderDish", back_populates="order", cascade="all, delete-orphan")


class OrderDish(Base):
    """订单菜品快照"""
    __tablename__ = "order_dishes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    dish_id = Column(Integer, ForeignKey("dishes.id", ondelete="SET NULL"))
    name = Column(String(100))
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="dishes")


# ============== 洗衣 ==============

class LaundryItem(Base):
    """
    洗衣价目项
    price 为基础价；price_wash / price_iron / price_both 为 0 时回退到基础价
    """
    __tablename__ = "laundry_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(50), default="Others")
    price = Column(Numeric(12, 2), nullable=False)
    price_wash = Column(Numeric(12, 2), default=0)
    price_iron = Column(Numeric(12, 2), default=0)
    price_both = Column(Numeric(12, 2), default=0)
    discount_percentage = Column(Numeric(5, 2), default=0)
    discount_min_qty = Column(Integer, default=0)
    discount_enabled = Column(Boolean, default=False)
    description = Column(Text)
    image_url = Column(String(255), default="")
    status = Column(SQLEnum(CatalogStatus), default=CatalogStatus.AVAILABLE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class LaundryBooking(Base):
    """
    洗衣订单 - 聚合根
    明细行保存下单时的单价快照，价目表后续调价不影响已有订单
    """
    __tablename__ = "laundry_bookings"

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"))
    guest_name = Column(String(100))     # 快照，客人删除后仍可显示
    email = Column(String(100))
    phone = Column(String(20))
    room = Column(String(50), default="N/A")
    subtotal = Column(Numeric(12, 2), default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    urgent_fee = Column(Numeric(12, 2), default=0)
    service_charge = Column(Numeric(12, 2), default=0)
    discount_enabled = Column(Boolean, default=False)
    discount_amount = Column(Numeric(12, 2), default=0)
    status = Column(SQLEnum(LaundryStatus), default=LaundryStatus.PENDING)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.NOT_APPLICABLE)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    laundry_type = Column(SQLEnum(LaundryType), default=LaundryType.MIXED)
    priority = Column(SQLEnum(LaundryPriority), default=LaundryPriority.STANDARD)
    delivery_date = Column(DateTime)
    request_date = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guest = relationship("Guest", back_populates="laundry_bookings")
    lines = relationship(
        "LaundryBookingLine", back_populates="booking",
        cascade="all, delete-orphan", order_by="LaundryBookingLine.position"
    )


class LaundryBookingLine(Base):
    """洗衣订单明细（单价快照）"""
    __tablename__ = "laundry_booking_lines"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("laundry_bookings.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("laundry_items.id", ondelete="SET NULL"))
    position = Column(Integer, default=0)
    name = Column(String(100))
    service_type = Column(String(50), default="N/A")
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False)

    booking = relationship("LaundryBooking", back_populates="lines")


# ============== 库存与供应商 ==============

class Supplier(Base):
    """供应商"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone_no = Column(String(20), nullable=False)
    email = Column(String(100))
    office_address = Column(Text)
    category = Column(String(50))          # 供货类别，如 Food、Laundry
    last_supply = Column(DateTime)
    total_supply = Column(Integer, default=0)
    status = Column(SQLEnum(SupplierStatus), default=SupplierStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("InventoryItem", back_populates="supplier")


class InventoryItem(Base):
    """
    库存物品
    status 由 stock 推导：<=0 缺货，<=10 低库存，其余有货
    """
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(SQLEnum(InventoryType), nullable=False)
    category = Column(String(50), nullable=False)
    location = Column(String(100), default="")
    description = Column(Text, default="")
    unit_of_measurement = Column(String(20), default="units")
    stock = Column(Integer, default=0)
    damaged_stock = Column(Integer, default=0)
    price = Column(Numeric(12, 2), default=0)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"))
    image_url = Column(String(255), default="")
    status = Column(SQLEnum(InventoryStatus), default=InventoryStatus.IN_STOCK)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="items")


# ============== 支付 ==============

class Payment(Base):
    """
    网关支付记录
    target_type + target_id 指向被支付的业务单据
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    fullname = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False)
    phone_no = Column(String(20))
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), default="NGN")
    reference = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(GatewayStatus), default=GatewayStatus.PENDING)
    description = Column(Text)
    target_type = Column(SQLEnum(PaymentTarget), nullable=False)
    target_id = Column(Integer, nullable=False)
    gateway = Column(String(20), default="Paystack")
    authorization_url = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guest = relationship("Guest", back_populates="payments")


# ============== 会场与活动 ==============

class Hall(Base):
    """
    会场
    被预订时记录当前预订人与起止时间；取消后保留记录，状态置为 Cancelled
    """
    __tablename__ = "halls"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    hall_type = Column(SQLEnum(HallType), nullable=False)
    description = Column(Text)
    location = Column(String(50))
    amenities = Column(JSON, default=list)
    capacity = Column(Integer, nullable=False)
    status = Column(SQLEnum(HallStatus), default=HallStatus.AVAILABLE)
    amount = Column(Numeric(12, 2), nullable=False)     # 每场/每日价格
    duration = Column(String(50))                       # 如 "3D 3N"
    image_url = Column(String(255), default="")
    guest_name = Column(String(100))
    email = Column(String(100))
    check_in_date = Column(DateTime)
    check_out_date = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Event(Base):
    """
    客人活动预约
    客人提交后为 Pending，员工审批时分配会场与价格
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    event_name = Column(String(100), nullable=False)
    hall_id = Column(Integer, ForeignKey("halls.id", ondelete="SET NULL"))
    hall_name = Column(String(100))
    description = Column(Text)
    total_price = Column(Numeric(12, 2), default=0)
    date = Column(Date, nullable=False)
    duration = Column(String(50), nullable=False)
    start_time = Column(String(10))
    end_time = Column(String(10))
    location = Column(String(50))
    status = Column(SQLEnum(EventStatus), default=EventStatus.PENDING)
    additional_notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guest = relationship("Guest", back_populates="events")
    hall = relationship("Hall")


# ============== 酒店服务 ==============

class ServiceItem(Base):
    """酒店服务目录（水疗、健身等）"""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(SQLEnum(ServiceType), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    price = Column(Numeric(12, 2), nullable=False)
    status = Column(SQLEnum(ServiceStatus), default=ServiceStatus.AVAILABLE)
    image_url = Column(String(255), default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ServiceRequest(Base):
    """客人服务请求；服务名称与价格为请求时快照"""
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    guest_name = Column(String(100))
    email = Column(String(100), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"))
    service_name = Column(String(100))
    room = Column(String(50), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    duration = Column(String(50))
    delivery_date = Column(DateTime)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.NOT_APPLICABLE)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    status = Column(SQLEnum(ServiceRequestStatus), default=ServiceRequestStatus.PENDING)
    request_date = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guest = relationship("Guest", back_populates="service_requests")
