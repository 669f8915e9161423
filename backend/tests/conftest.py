"""
Pytest 配置和共享 fixtures
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal

from app.database import Base, get_db
from app.models import ontology  # noqa
from app.models.ontology import (
    Category, Guest, Staff, Role, Task, Room, LaundryItem, Dish, CatalogStatus, DishCategory
)
from app.security.auth import get_password_hash, create_access_token
from app.services.errors import DeliveryError
from app.services.notification import Notifier, get_notifier
from app.services.payment_service import PaystackClient, get_payment_gateway
from app.main import app

WEBHOOK_SECRET = "sk_test_secret"


class RecordingChannel:
    """记录已发送邮件的测试渠道；fail=True 时模拟 SMTP 故障"""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, recipient, subject, content, extra=None):
        if self.fail:
            raise ConnectionError("smtp unavailable")
        self.sent.append({"to": recipient, "subject": subject, "content": content})

    def subjects_for(self, recipient):
        return [mail["subject"] for mail in self.sent if mail["to"] == recipient]


class FakeGateway(PaystackClient):
    """不访问网络的网关：initialize 返回固定链接，verify 返回预置结果"""

    def __init__(self):
        super().__init__(WEBHOOK_SECRET)
        self.initialized = []
        self.fail = False
        self.verified = {}

    def initialize(self, email, amount, reference, currency="NGN"):
        if self.fail:
            raise DeliveryError("Failed to initialize payment")
        self.initialized.append({"email": email, "amount": amount, "reference": reference})
        return {
            "authorization_url": f"https://checkout.paystack.test/{reference}",
            "reference": reference,
        }

    def verify(self, reference):
        if self.fail:
            raise DeliveryError("Failed to verify payment")
        return self.verified.get(reference, {"status": "pending", "reference": reference})


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def mail_channel():
    return RecordingChannel()


@pytest.fixture
def notifier(mail_channel):
    return Notifier(mail_channel, hotel_name="Test Hotel", public_base_url="http://hotel.test")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def client(db_session, notifier, gateway):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== 账号相关 Fixtures ==============

def make_staff(db_session, role, email, tasks=None, **kwargs):
    staff = Staff(
        fullname=kwargs.pop("fullname", email.split("@")[0].title()),
        email=email,
        password_hash=get_password_hash(kwargs.pop("password", "123456")),
        role=role,
        tasks=tasks or [],
        **kwargs
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


def staff_headers(staff):
    token = create_access_token(staff.id, Category.STAFF)
    return {"Authorization": f"Bearer {token}", "From": "staff"}


def guest_headers_for(guest):
    token = create_access_token(guest.id, Category.GUEST)
    return {"Authorization": f"Bearer {token}", "From": "guest"}


@pytest.fixture
def owner(db_session):
    return make_staff(db_session, Role.OWNER, "owner@hotel.test")


@pytest.fixture
def admin(db_session):
    return make_staff(db_session, Role.ADMIN, "admin@hotel.test")


@pytest.fixture
def laundry_staff(db_session):
    """具备洗衣分工的员工"""
    return make_staff(db_session, Role.STAFF, "laundry@hotel.test",
                      tasks=[Task.LAUNDRY.value, Task.ROOM.value])


@pytest.fixture
def desk_staff(db_session):
    """前台员工：预订、点餐与库存分工"""
    return make_staff(db_session, Role.STAFF, "desk@hotel.test",
                      tasks=[Task.BOOKING.value, Task.ORDER.value, Task.DISH.value,
                             Task.INVENTORY.value])


@pytest.fixture
def guest(db_session):
    guest = Guest(
        fullname="Ada Obi",
        email="ada@example.com",
        phone_no="08030000001",
        password_hash=get_password_hash("secret123"),
    )
    db_session.add(guest)
    db_session.commit()
    db_session.refresh(guest)
    return guest


@pytest.fixture
def owner_headers(owner):
    return staff_headers(owner)


@pytest.fixture
def admin_headers(admin):
    return staff_headers(admin)


@pytest.fixture
def laundry_headers(laundry_staff):
    return staff_headers(laundry_staff)


@pytest.fixture
def desk_headers(desk_staff):
    return staff_headers(desk_staff)


@pytest.fixture
def guest_headers(guest):
    return guest_headers_for(guest)


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_room(db_session):
    room = Room(name="101", room_type="Standard", price=Decimal("25000.00"), capacity=2)
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def sample_room_201(db_session):
    room = Room(name="201", room_type="Deluxe", price=Decimal("40000.00"), capacity=2)
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def shirt(db_session):
    """基础价 500，洗 700，熨 400，洗烫 1000"""
    item = LaundryItem(
        name="Shirt", category="Tops",
        price=Decimal("500"), price_wash=Decimal("700"),
        price_iron=Decimal("400"), price_both=Decimal("1000"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def suit(db_session):
    """洗涤价未设置（0），回退到基础价"""
    item = LaundryItem(
        name="Suit", category="Formal",
        price=Decimal("2500"), price_wash=Decimal("0"),
        price_iron=Decimal("1500"), price_both=Decimal("3500"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def sample_dish(db_session):
    dish = Dish(
        name="Jollof Rice", category=DishCategory.MAIN_MEAL,
        amount_per_portion=Decimal("3500"), quantity=5,
        is_ready=True, status=CatalogStatus.AVAILABLE,
    )
    db_session.add(dish)
    db_session.commit()
    db_session.refresh(dish)
    return dish


@pytest.fixture
def staff_factory(db_session):
    """按角色与分工创建员工，返回 (员工, 请求头)"""
    def _create(role, email, tasks=None, **kwargs):
        staff = make_staff(db_session, role, email, tasks=tasks, **kwargs)
        return staff, staff_headers(staff)
    return _create


@pytest.fixture
def guest_factory(db_session):
    """创建客人，返回 (客人, 请求头)"""
    def _create(email, fullname="Test Guest", **kwargs):
        guest = Guest(
            fullname=fullname,
            email=email,
            password_hash=get_password_hash(kwargs.pop("password", "secret123")),
            **kwargs
        )
        db_session.add(guest)
        db_session.commit()
        db_session.refresh(guest)
        return guest, guest_headers_for(guest)
    return _create
