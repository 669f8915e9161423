"""
支付服务 - Paystack 网关
初始化交易前先保存 Pending 支付记录；Webhook 回调校验签名后更新支付与关联单据
"""
import hashlib
import hmac
import json
import logging
import uuid
from decimal import Decimal
from typing import List, Optional
import httpx
from sqlalchemy.orm import Session
from app.config import settings
from app.models.ontology import (
    GatewayStatus, Guest, Payment, PaymentStatus, PaymentTarget
)
from app.models.schemas import PaymentInitialize
from app.services.booking_service import BookingService
from app.services.errors import DeliveryError, NotFoundError, OwnershipError
from app.services.laundry_service import LaundryService
from app.services.notification import Notifier
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


class PaystackClient:
    """Paystack HTTP 客户端"""

    def __init__(self, secret_key: Optional[str], base_url: str = "https://api.paystack.co",
                 callback_url: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.callback_url = callback_url
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.secret_key}"}

    @staticmethod
    def to_minor_units(amount) -> int:
        """Paystack 以最小货币单位（kobo）计价"""
        return int((Decimal(str(amount)) * 100).to_integral_value())

    def initialize(self, email: str, amount, reference: str, currency: str = "NGN") -> dict:
        """
        初始化交易，返回 data（authorization_url、access_code、reference）

        Raises:
            DeliveryError: 网关未配置、请求失败或返回失败状态
        """
        if not self.configured:
            raise DeliveryError("Payment gateway is not configured")

        payload = {
            "email": email,
            "amount": self.to_minor_units(amount),
            "reference": reference,
            "currency": currency,
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url

        try:
            with self._client() as client:
                resp = client.post(
                    f"{self.base_url}/transaction/initialize",
                    json=payload,
                    headers=self._auth_headers(),
                )
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Paystack initialize failed for {reference}: {e}")
            raise DeliveryError("Failed to initialize payment") from e

        if not body.get("status"):
            logger.error(f"Paystack rejected {reference}: {body.get('message')}")
            raise DeliveryError("Failed to initialize payment")
        return body.get("data") or {}

    def verify(self, reference: str) -> dict:
        """
        查询交易状态，返回 data（status、amount、currency、reference 等）

        Raises:
            DeliveryError: 网关未配置、请求失败或返回失败状态
        """
        if not self.configured:
            raise DeliveryError("Payment gateway is not configured")

        try:
            with self._client() as client:
                resp = client.get(
                    f"{self.base_url}/transaction/verify/{reference}",
                    headers=self._auth_headers(),
                )
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Paystack verify failed for {reference}: {e}")
            raise DeliveryError("Failed to verify payment") from e

        if not body.get("status"):
            logger.error(f"Paystack could not verify {reference}: {body.get('message')}")
            raise DeliveryError("Failed to verify payment")
        return body.get("data") or {}

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """x-paystack-signature = HMAC-SHA512(密钥, 原始请求体)"""
        if not self.configured or not signature:
            return False
        expected = hmac.new(self.secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)


def get_payment_gateway() -> PaystackClient:
    """依赖注入：按当前配置构建网关客户端"""
    return PaystackClient(
        settings.PAYSTACK_SECRET_KEY,
        base_url=settings.PAYSTACK_BASE_URL,
        callback_url=settings.PAYSTACK_CALLBACK_URL,
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


class PaymentService:
    """支付服务"""

    def __init__(self, db: Session, gateway: PaystackClient):
        self.db = db
        self.gateway = gateway

    def _load_target(self, guest_id: int, target_type: PaymentTarget, target_id: int):
        """读取属于该客人的业务单据，返回 (单据, 金额, 描述)"""
        if target_type == PaymentTarget.BOOKING:
            target = BookingService(self.db).get_guest_booking(guest_id, target_id)
            return target, target.amount, f"Room booking {target.booking_no}"
        if target_type == PaymentTarget.ORDER:
            target = OrderService(self.db).get_guest_order(guest_id, target_id)
            return target, target.amount, f"Order {target.order_no}"

        target = LaundryService(self.db).get_booking(target_id)
        if target.guest_id != guest_id:
            raise OwnershipError("This laundry booking does not belong to you")
        return target, target.total_amount, f"Laundry booking #{target.id}"

    def _mark_target_paid(self, payment: Payment) -> None:
        if payment.target_type == PaymentTarget.BOOKING:
            service = BookingService(self.db)
            service.mark_paid(service.get_booking(payment.target_id))
        elif payment.target_type == PaymentTarget.ORDER:
            service = OrderService(self.db)
            service.mark_paid(service.get_order(payment.target_id))
        else:
            service = LaundryService(self.db)
            service.mark_paid(service.get_booking(payment.target_id))

    def initialize(self, guest: Guest, data: PaymentInitialize) -> Payment:
        """
        发起支付

        Raises:
            NotFoundError / OwnershipError: 单据不存在或不属于该客人
            ValueError: 单据已付款
            DeliveryError: 网关调用失败（支付记录标记为 Failed）
        """
        if not guest.email:
            raise ValueError("An email address is required for online payment")

        target, amount, description = self._load_target(guest.id, data.target_type, data.target_id)
        if target.payment_status == PaymentStatus.PAID:
            raise ValueError("This item has already been paid for")
        if not amount or Decimal(str(amount)) <= 0:
            raise ValueError("Nothing to pay for this item")

        payment = Payment(
            guest_id=guest.id,
            fullname=guest.fullname,
            email=guest.email,
            phone_no=data.phone_no or guest.phone_no,
            amount=amount,
            currency=settings.CURRENCY,
            reference=uuid.uuid4().hex,
            status=GatewayStatus.PENDING,
            description=description,
            target_type=data.target_type,
            target_id=data.target_id,
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        try:
            result = self.gateway.initialize(payment.email, payment.amount, payment.reference, payment.currency)
        except DeliveryError:
            payment.status = GatewayStatus.FAILED
            self.db.commit()
            raise

        payment.authorization_url = result.get("authorization_url")
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment {payment.reference} initialized for {description}")
        return payment

    def _matches_charge(self, payment: Payment, data: dict) -> bool:
        """网关回报的金额（kobo）与币种必须与支付记录一致"""
        try:
            amount = int(data.get("amount"))
        except (TypeError, ValueError):
            return False
        currency = str(data.get("currency") or "").upper()
        return (amount == self.gateway.to_minor_units(payment.amount)
                and currency == (payment.currency or "").upper())

    def _apply_success(self, payment: Payment, data: dict,
                       notifier: Optional[Notifier] = None) -> Payment:
        if payment.status == GatewayStatus.SUCCESS:
            return payment
        if not self._matches_charge(payment, data):
            logger.warning(f"Payment {payment.reference} charge mismatch: got "
                           f"{data.get('amount')} {data.get('currency')}, expected "
                           f"{self.gateway.to_minor_units(payment.amount)} {payment.currency}")
            return payment

        payment.status = GatewayStatus.SUCCESS
        try:
            self._mark_target_paid(payment)
        except NotFoundError:
            logger.warning(f"Payment {payment.reference} target {payment.target_type.value} "
                           f"{payment.target_id} no longer exists")
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment {payment.reference} succeeded")
        if notifier:
            notifier.payment_receipt(payment.email, payment.fullname, payment.reference,
                                     payment.amount, payment.description)
        return payment

    def _apply_failure(self, payment: Payment) -> Payment:
        if payment.status != GatewayStatus.SUCCESS:
            payment.status = GatewayStatus.FAILED
            self.db.commit()
            self.db.refresh(payment)
            logger.info(f"Payment {payment.reference} failed")
        return payment

    def handle_webhook(self, raw_body: bytes, signature: Optional[str],
                       notifier: Optional[Notifier] = None) -> Optional[Payment]:
        """
        处理网关回调；返回被更新的支付记录（未知事件或引用时返回 None）

        Raises:
            ValueError: 签名无效或请求体不是 JSON 对象
        """
        if not self.gateway.verify_signature(raw_body, signature):
            raise ValueError("Invalid signature")
        try:
            event = json.loads(raw_body)
        except ValueError as e:
            raise ValueError("Invalid payload") from e
        if not isinstance(event, dict):
            raise ValueError("Invalid payload")
        data = event.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("Invalid payload")

        event_type = event.get("event")
        reference = data.get("reference")
        payment = self.get_by_reference(reference) if isinstance(reference, str) else None
        if payment is None:
            logger.warning(f"Webhook {event_type} for unknown reference {reference}")
            return None

        if event_type == "charge.success":
            return self._apply_success(payment, data, notifier)
        if event_type == "charge.failed":
            return self._apply_failure(payment)
        logger.info(f"Ignored webhook event {event_type} for {reference}")
        return payment

    def get_by_reference(self, reference: str) -> Optional[Payment]:
        return self.db.query(Payment).filter(Payment.reference == reference).first()

    def verify(self, guest_id: int, reference: str,
               notifier: Optional[Notifier] = None) -> Payment:
        """
        主动向网关查询交易并同步状态（用于回调丢失的情况）

        Raises:
            NotFoundError: 支付记录不存在
            OwnershipError: 支付记录不属于该客人
            DeliveryError: 网关查询失败
        """
        payment = self.get_by_reference(reference)
        if payment is None:
            raise NotFoundError("Payment not found")
        if payment.guest_id != guest_id:
            raise OwnershipError("This payment does not belong to you")
        if payment.status == GatewayStatus.SUCCESS:
            return payment

        data = self.gateway.verify(reference)
        if data.get("status") == "success":
            return self._apply_success(payment, data, notifier)
        if data.get("status") in ("failed", "abandoned"):
            return self._apply_failure(payment)
        return payment

    def get_guest_payments(self, guest_id: int) -> List[Payment]:
        return self.db.query(Payment).filter(Payment.guest_id == guest_id) \
            .order_by(Payment.created_at.desc(), Payment.id.desc()).all()
