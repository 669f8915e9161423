"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from app.models.ontology import (
    Role, Task, GuestStatus, RoomAvailability, CleaningStatus, BookingStatus, BookingType,
    PaymentMethod, PaymentStatus, DishCategory, OrderStatus, LaundryStatus, LaundryType,
    LaundryPriority, CatalogStatus, InventoryType, InventoryStatus, SupplierStatus,
    GatewayStatus, PaymentTarget, HallType, HallStatus, EventStatus, ServiceType, ServiceStatus,
    ServiceRequestStatus
)


class MessageResponse(BaseModel):
    message: str


# ============== 认证 Schemas ==============

class GuestSignUp(BaseModel):
    fullname: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone_no: Optional[str] = Field(None, max_length=20)
    password: str = Field(..., min_length=6)
    gender: Optional[str] = None

    @model_validator(mode="after")
    def check_contact(self):
        if not self.email and not self.phone_no:
            raise ValueError("email or phone_no is required")
        return self


class GuestSignIn(BaseModel):
    email: Optional[str] = None
    phone_no: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def check_contact(self):
        if not self.email and not self.phone_no:
            raise ValueError("email or phone_no is required")
        return self


class StaffLogin(BaseModel):
    email: str
    password: str


class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=6)
    confirm_new_password: str


class ForgotPassword(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)
    confirm_new_password: str


class AccountDelete(BaseModel):
    password: str
    reason: Optional[str] = None


# ============== 客人 Schemas ==============

class GuestResponse(BaseModel):
    id: int
    fullname: str
    email: Optional[str] = None
    phone_no: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    profile_img_url: Optional[str] = None
    status: GuestStatus
    is_online: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class GuestProfileUpdate(BaseModel):
    fullname: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_no: Optional[str] = Field(None, max_length=20)
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    profile_img_url: Optional[str] = None


class GuestLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    guest: GuestResponse


# ============== 员工 Schemas ==============

class StaffResponse(BaseModel):
    id: int
    fullname: str
    email: str
    phone_no: Optional[str] = None
    role: Role
    primary_role: Optional[str] = None
    salary: Decimal = Decimal("0")
    tasks: List[str] = []
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    profile_img_url: Optional[str] = None
    is_online: bool = False
    is_blocked: bool = False
    block_reason: Optional[str] = None
    is_deleted: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

    @field_validator("tasks", mode="before")
    @classmethod
    def normalise_tasks(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return list(v)


class StaffLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    staff: StaffResponse


class StaffCreate(BaseModel):
    fullname: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6)
    phone_no: str = Field(..., max_length=20)
    role: Role
    primary_role: Optional[str] = ""
    salary: Decimal = Field(default=Decimal("0"), ge=0)
    tasks: List[Task] = []
    gender: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None


class StaffUpdate(BaseModel):
    fullname: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone_no: Optional[str] = Field(None, max_length=20)
    role: Optional[Role] = None
    primary_role: Optional[str] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    tasks: Optional[List[Task]] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    status: Optional[str] = Field(None, description="Blocked | Active")


class StaffProfileUpdate(BaseModel):
    fullname: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_no: Optional[str] = Field(None, max_length=20)
    gender: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    profile_img_url: Optional[str] = None


class StaffAction(BaseModel):
    reason: Optional[str] = None


class StaffStats(BaseModel):
    total: int
    blocked: int


# ============== 客房 Schemas ==============

class RoomBase(BaseModel):
    name: str = Field(..., max_length=50)
    room_type: str = Field(..., max_length=50)
    category: str = "All"
    price: Decimal = Field(..., ge=0)
    capacity: int = Field(..., ge=1)
    amenities: List[str] = []
    image_urls: List[str] = []
    description: Optional[str] = None


class RoomCreate(RoomBase):
    availability: RoomAvailability = RoomAvailability.AVAILABLE


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    room_type: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    amenities: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None
    description: Optional[str] = None


class RoomStatusUpdate(BaseModel):
    availability: Optional[RoomAvailability] = None
    cleaning_status: Optional[CleaningStatus] = None


class RoomResponse(RoomBase):
    id: int
    availability: RoomAvailability
    cleaning_status: CleaningStatus
    rating: Decimal = Decimal("0")
    current_guest_id: Optional[int] = None
    current_booking_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class BookingCreateBase(BaseModel):
    rooms: List[int] = Field(..., min_length=1)
    no_of_guests: int = Field(1, ge=1)
    check_in_date: date
    check_out_date: date

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self


class GuestBookingCreate(BookingCreateBase):
    payment_method: PaymentMethod = PaymentMethod.ONLINE


class StaffBookingCreate(BookingCreateBase):
    guest_id: Optional[int] = None
    email: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    booking_type: BookingType = BookingType.DIRECT
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingUpdate(BaseModel):
    no_of_guests: Optional[int] = Field(None, ge=1)
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None


class BookingRoomResponse(BaseModel):
    room_id: Optional[int] = None
    room_no: Optional[str] = None
    room_type: Optional[str] = None
    price: Decimal
    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    id: int
    booking_no: str
    guest_id: int
    email: str
    rooms: List[BookingRoomResponse] = []
    amount: Decimal
    status: BookingStatus
    booking_type: BookingType
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    duration: int
    no_of_guests: int
    check_in_date: date
    check_out_date: date
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 餐饮 Schemas ==============

class DishBase(BaseModel):
    name: str = Field(..., max_length=100)
    category: Optional[DishCategory] = None
    description: Optional[str] = None
    quantity: int = Field(0, ge=0)
    amount_per_portion: Decimal = Field(..., ge=0)
    image_url: Optional[str] = ""
    is_ready: bool = False


class DishCreate(DishBase):
    pass


class DishUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    category: Optional[DishCategory] = None
    description: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    amount_per_portion: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_ready: Optional[bool] = None
    status: Optional[CatalogStatus] = None


class DishResponse(DishBase):
    id: int
    status: CatalogStatus
    last_ordered: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class OrderLineRequest(BaseModel):
    dish_id: int
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    dishes: List[OrderLineRequest] = Field(..., min_length=1)
    room: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.ROOM_CHARGE


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderDishResponse(BaseModel):
    dish_id: Optional[int] = None
    name: str
    quantity: int
    unit_price: Decimal
    price: Decimal
    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    order_no: str
    guest_id: int
    email: str
    status: OrderStatus
    room: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_date: datetime
    dishes: List[OrderDishResponse] = []
    model_config = ConfigDict(from_attributes=True)


# ============== 洗衣 Schemas ==============

class LaundryItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = "Others"
    price: Decimal = Field(..., ge=0)
    price_wash: Decimal = Field(default=Decimal("0"), ge=0)
    price_iron: Decimal = Field(default=Decimal("0"), ge=0)
    price_both: Decimal = Field(default=Decimal("0"), ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_min_qty: int = Field(0, ge=0)
    discount_enabled: bool = False
    description: Optional[str] = None
    image_url: Optional[str] = ""


class LaundryItemCreate(LaundryItemBase):
    status: CatalogStatus = CatalogStatus.AVAILABLE


class LaundryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    price_wash: Optional[Decimal] = Field(None, ge=0)
    price_iron: Optional[Decimal] = Field(None, ge=0)
    price_both: Optional[Decimal] = Field(None, ge=0)
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    discount_min_qty: Optional[int] = Field(None, ge=0)
    discount_enabled: Optional[bool] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[CatalogStatus] = None


class LaundryItemResponse(LaundryItemBase):
    id: int
    status: CatalogStatus
    created_at: datetime
    updated_at: datetime
    last_ordered: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class LaundryLineRequest(BaseModel):
    item_id: int
    quantity: int = Field(1, ge=1)
    service_type: Optional[str] = Field(None, max_length=50)


class LaundryBookingCreate(BaseModel):
    guest_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    items: List[LaundryLineRequest] = Field(..., min_length=1)
    room: Optional[str] = "N/A"
    delivery_date: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.NOT_APPLICABLE
    laundry_type: LaundryType = LaundryType.MIXED
    priority: LaundryPriority = LaundryPriority.STANDARD
    urgent_fee: Decimal = Field(default=Decimal("0"), ge=0)
    service_charge: Decimal = Field(default=Decimal("0"), ge=0)
    discount_enabled: bool = False


class LaundryBookingUpdate(BaseModel):
    items: Optional[List[LaundryLineRequest]] = None
    laundry_type: Optional[LaundryType] = None
    priority: Optional[LaundryPriority] = None
    urgent_fee: Optional[Decimal] = Field(None, ge=0)
    service_charge: Optional[Decimal] = Field(None, ge=0)
    discount_enabled: Optional[bool] = None
    status: Optional[LaundryStatus] = None
    delivery_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    room: Optional[str] = None


class LaundryStatusUpdate(BaseModel):
    status: LaundryStatus


class LaundryLineResponse(BaseModel):
    item_id: Optional[int] = None
    name: str
    service_type: str
    quantity: int
    unit_price: Decimal
    model_config = ConfigDict(from_attributes=True)


class LaundryBookingResponse(BaseModel):
    id: int
    guest_id: Optional[int] = None
    guest_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    room: Optional[str] = None
    lines: List[LaundryLineResponse] = []
    subtotal: Decimal
    discount_enabled: bool
    discount_amount: Decimal
    urgent_fee: Decimal
    service_charge: Decimal
    total_amount: Decimal
    status: LaundryStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    laundry_type: LaundryType
    priority: LaundryPriority
    delivery_date: Optional[datetime] = None
    request_date: datetime
    model_config = ConfigDict(from_attributes=True)


class LaundryStats(BaseModel):
    total_bookings: int
    online_bookings: int
    direct_bookings: int
    total_items: int
    in_progress: int
    delivered: int


# ============== 库存 Schemas ==============

class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: InventoryType
    category: str = Field(..., min_length=1, max_length=50)
    location: str = ""
    description: str = ""
    unit_of_measurement: str = "units"
    stock: int = Field(0, ge=0)
    damaged_stock: int = Field(0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    supplier_id: Optional[int] = None
    image_url: Optional[str] = ""


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    unit_of_measurement: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    damaged_stock: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    supplier_id: Optional[int] = None
    image_url: Optional[str] = None


class StockConsume(BaseModel):
    quantity: int = Field(..., ge=1)


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    type: InventoryType
    category: str
    location: Optional[str] = ""
    description: Optional[str] = ""
    unit_of_measurement: str
    stock: int
    damaged_stock: int
    price: Decimal
    supplier_id: Optional[int] = None
    image_url: Optional[str] = ""
    status: InventoryStatus
    last_updated: datetime
    total_value: Decimal = Decimal("0")
    model_config = ConfigDict(from_attributes=True)


class InventoryPage(BaseModel):
    count: int
    total_pages: int
    current_page: int
    items: List[InventoryItemResponse]


class InventoryStats(BaseModel):
    total_items: int
    total_value: Decimal
    low_stock: int
    out_of_stock: int
    damaged_items: int
    damaged_value: Decimal


class CategoryCount(BaseModel):
    name: str
    count: int


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone_no: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = None
    office_address: Optional[str] = None
    category: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_no: Optional[str] = Field(None, min_length=1, max_length=20)
    email: Optional[str] = None
    office_address: Optional[str] = None
    category: Optional[str] = None
    status: Optional[SupplierStatus] = None
    last_supply: Optional[datetime] = None
    total_supply: Optional[int] = Field(None, ge=0)


class SupplierResponse(SupplierBase):
    id: int
    status: SupplierStatus
    last_supply: Optional[datetime] = None
    total_supply: int = 0
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 支付 Schemas ==============

class PaymentInitialize(BaseModel):
    target_type: PaymentTarget
    target_id: int
    phone_no: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    reference: str
    amount: Decimal
    currency: str
    status: GatewayStatus
    target_type: PaymentTarget
    target_id: int
    description: Optional[str] = None
    authorization_url: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 客人管理 Schemas ==============

class GuestAdminResponse(GuestResponse):
    is_blocked: bool = False
    block_reason: Optional[str] = None
    is_banned: bool = False
    ban_reason: Optional[str] = None
    last_login: Optional[datetime] = None


class GuestPage(BaseModel):
    count: int
    total_pages: int
    current_page: int
    guests: List[GuestAdminResponse]


class GuestAction(BaseModel):
    reason: str = Field(..., min_length=1)


class GuestStats(BaseModel):
    total: int
    active: int
    suspended: int
    former: int
    online_signups: int
    retainment_rate: int


# ============== 会场 Schemas ==============

class HallBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    hall_type: HallType
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=50)
    amenities: List[str] = []
    capacity: int = Field(..., ge=1)
    amount: Decimal = Field(..., ge=0)
    duration: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = ""


class HallCreate(HallBase):
    pass


class HallUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    hall_type: Optional[HallType] = None
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=50)
    amenities: Optional[List[str]] = None
    capacity: Optional[int] = Field(None, ge=1)
    amount: Optional[Decimal] = Field(None, ge=0)
    duration: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = None
    status: Optional[HallStatus] = None


class HallBook(BaseModel):
    guest_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    check_in_date: datetime
    check_out_date: datetime
    amount: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self


class HallPublicResponse(HallBase):
    id: int
    status: HallStatus
    model_config = ConfigDict(from_attributes=True)


class HallResponse(HallPublicResponse):
    guest_name: Optional[str] = None
    email: Optional[str] = None
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ============== 活动 Schemas ==============

class EventReserve(BaseModel):
    event_name: str = Field(..., min_length=1, max_length=100)
    date: date
    duration: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    start_time: Optional[str] = Field(None, max_length=10)
    end_time: Optional[str] = Field(None, max_length=10)
    additional_notes: Optional[str] = None


class EventUpdate(BaseModel):
    event_name: Optional[str] = Field(None, min_length=1, max_length=100)
    hall_id: Optional[int] = None
    description: Optional[str] = None
    total_price: Optional[Decimal] = Field(None, ge=0)
    date: Optional[date] = None
    duration: Optional[str] = Field(None, min_length=1, max_length=50)
    start_time: Optional[str] = Field(None, max_length=10)
    end_time: Optional[str] = Field(None, max_length=10)
    additional_notes: Optional[str] = None


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    id: int
    guest_id: int
    event_name: str
    hall_id: Optional[int] = None
    hall_name: Optional[str] = None
    description: Optional[str] = None
    total_price: Decimal
    date: date
    duration: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    status: EventStatus
    additional_notes: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class EventOverview(BaseModel):
    total: int
    pending: int
    approved: int
    in_progress: int
    completed: int
    cancelled: int


# ============== 酒店服务 Schemas ==============

class ServiceItemCreate(BaseModel):
    service_type: ServiceType
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    status: ServiceStatus = ServiceStatus.AVAILABLE
    image_url: Optional[str] = ""


class ServiceItemUpdate(BaseModel):
    service_type: Optional[ServiceType] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    status: Optional[ServiceStatus] = None
    image_url: Optional[str] = None


class ServiceItemResponse(ServiceItemCreate):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ServiceRequestCreate(BaseModel):
    service_id: int
    room: str = Field(..., min_length=1, max_length=50)
    payment_method: PaymentMethod = PaymentMethod.NOT_APPLICABLE
    duration: Optional[str] = Field(None, max_length=50)
    delivery_date: Optional[datetime] = None


class ServiceRequestStatusUpdate(BaseModel):
    status: ServiceRequestStatus


class ServiceRequestResponse(BaseModel):
    id: int
    guest_id: int
    guest_name: Optional[str] = None
    email: str
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    room: str
    amount: Decimal
    duration: Optional[str] = None
    delivery_date: Optional[datetime] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: ServiceRequestStatus
    request_date: datetime
    model_config = ConfigDict(from_attributes=True)
