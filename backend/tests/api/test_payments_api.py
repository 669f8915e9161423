"""
在线支付 API 测试
网关由 FakeGateway 代替；Webhook 使用测试密钥签名
"""
import hashlib
import hmac
import json
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient

from app.models.ontology import Booking, PaymentStatus
from app.services.errors import DeliveryError
from app.services.payment_service import PaystackClient

WEBHOOK_SECRET = b"sk_test_secret"


def _book(client, headers, room_id):
    check_in = date.today() + timedelta(days=1)
    return client.post("/guest/bookings", headers=headers, json={
        "rooms": [room_id],
        "check_in_date": check_in.isoformat(),
        "check_out_date": (check_in + timedelta(days=2)).isoformat(),
        "no_of_guests": 1,
    }).json()


def _signed(event: dict):
    body = json.dumps(event).encode("utf-8")
    signature = hmac.new(WEBHOOK_SECRET, body, hashlib.sha512).hexdigest()
    return body, {"x-paystack-signature": signature, "Content-Type": "application/json"}


def _charge(reference, amount=5000000, currency="NGN", event="charge.success"):
    return {"event": event, "data": {"reference": reference, "amount": amount, "currency": currency}}


def _initialize(client, headers, booking_id):
    return client.post("/payments/initialize", headers=headers, json={
        "target_type": "booking", "target_id": booking_id
    })


class TestInitialize:
    """发起支付"""

    def test_initialize_booking_payment(self, client: TestClient, guest, guest_headers, sample_room, gateway):
        booking = _book(client, guest_headers, sample_room.id)

        response = _initialize(client, guest_headers, booking["id"])
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Pending"
        assert Decimal(data["amount"]) == Decimal("50000")
        assert data["authorization_url"].endswith(data["reference"])
        assert gateway.initialized[0]["email"] == guest.email

    def test_gateway_failure(self, client: TestClient, guest_headers, sample_room, gateway):
        booking = _book(client, guest_headers, sample_room.id)
        gateway.fail = True

        response = _initialize(client, guest_headers, booking["id"])
        assert response.status_code == 502

        payments = client.get("/payments", headers=guest_headers).json()
        assert [p["status"] for p in payments] == ["Failed"]

    def test_unknown_booking(self, client: TestClient, guest_headers):
        assert _initialize(client, guest_headers, 9999).status_code == 404

    def test_staff_cannot_pay(self, client: TestClient, desk_headers):
        assert _initialize(client, desk_headers, 1).status_code == 403


class TestWebhook:
    """网关回调"""

    def test_charge_success_marks_booking_paid(self, client: TestClient, db_session, guest, guest_headers,
                                               sample_room, mail_channel):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()

        body, headers = _signed(_charge(payment["reference"]))
        response = client.post("/payments/webhook", content=body, headers=headers)
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(Booking, booking["id"]).payment_status == PaymentStatus.PAID
        assert "Payment receipt" in mail_channel.subjects_for(guest.email)

        response = _initialize(client, guest_headers, booking["id"])
        assert response.status_code == 400

    def test_invalid_signature(self, client: TestClient):
        body = json.dumps({"event": "charge.success", "data": {"reference": "x"}}).encode("utf-8")
        response = client.post("/payments/webhook", content=body,
                               headers={"x-paystack-signature": "bad"})
        assert response.status_code == 400

    def test_unknown_reference_acknowledged(self, client: TestClient):
        body, headers = _signed({"event": "charge.success", "data": {"reference": "missing"}})
        response = client.post("/payments/webhook", content=body, headers=headers)
        assert response.status_code == 200

    @pytest.mark.parametrize("payload", [[], "x", 1, {"event": "charge.success", "data": []}])
    def test_non_object_payload_rejected(self, client: TestClient, payload):
        body = json.dumps(payload).encode("utf-8")
        signature = hmac.new(WEBHOOK_SECRET, body, hashlib.sha512).hexdigest()
        response = client.post("/payments/webhook", content=body,
                               headers={"x-paystack-signature": signature})
        assert response.status_code == 400

    @pytest.mark.parametrize("amount,currency", [(100, "NGN"), (5000000, "USD"), (None, "NGN")])
    def test_charge_mismatch_does_not_mark_paid(self, client: TestClient, db_session, guest, guest_headers,
                                                sample_room, mail_channel, amount, currency):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()

        body, headers = _signed(_charge(payment["reference"], amount=amount, currency=currency))
        response = client.post("/payments/webhook", content=body, headers=headers)
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(Booking, booking["id"]).payment_status != PaymentStatus.PAID
        payments = client.get("/payments", headers=guest_headers).json()
        assert [p["status"] for p in payments] == ["Pending"]
        assert "Payment receipt" not in mail_channel.subjects_for(guest.email)

    def test_charge_failed(self, client: TestClient, guest_headers, sample_room):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()

        body, headers = _signed(_charge(payment["reference"], event="charge.failed"))
        client.post("/payments/webhook", content=body, headers=headers)

        payments = client.get("/payments", headers=guest_headers).json()
        assert [p["status"] for p in payments] == ["Failed"]


class TestVerify:
    """主动查询交易"""

    def test_verify_marks_booking_paid(self, client: TestClient, db_session, guest_headers,
                                       sample_room, gateway):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()
        gateway.verified[payment["reference"]] = dict(
            _charge(payment["reference"])["data"], status="success"
        )

        response = client.post(f"/payments/{payment['reference']}/verify", headers=guest_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "Success"

        db_session.expire_all()
        assert db_session.get(Booking, booking["id"]).payment_status == PaymentStatus.PAID

    def test_pending_stays_pending(self, client: TestClient, guest_headers, sample_room):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()

        response = client.post(f"/payments/{payment['reference']}/verify", headers=guest_headers)
        assert response.json()["status"] == "Pending"

    def test_other_guest_payment(self, client: TestClient, guest_headers, guest_factory, sample_room):
        booking = _book(client, guest_headers, sample_room.id)
        payment = _initialize(client, guest_headers, booking["id"]).json()

        _, other_headers = guest_factory("bola@example.com", "Bola Ade")

        response = client.post(f"/payments/{payment['reference']}/verify",
                               headers=other_headers)
        assert response.status_code == 403

    def test_unknown_reference(self, client: TestClient, guest_headers):
        response = client.post("/payments/missing/verify", headers=guest_headers)
        assert response.status_code == 404


class TestPaystackClient:
    """PaystackClient 的 HTTP 调用（httpx.MockTransport）"""

    def test_verify_calls_transaction_endpoint(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return httpx.Response(200, json={
                "status": True, "data": {"status": "success", "amount": 5000000, "currency": "NGN"}
            })

        client = PaystackClient("sk_live", base_url="https://paystack.test/",
                                transport=httpx.MockTransport(handler))
        data = client.verify("ref123")

        assert data["status"] == "success"
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://paystack.test/transaction/verify/ref123"
        assert seen[0].headers["Authorization"] == "Bearer sk_live"

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"status": False}),
        httpx.Response(200, json={"status": False, "message": "Transaction reference not found"}),
        httpx.Response(200, content=b"not json"),
    ])
    def test_verify_failures_raise_delivery_error(self, response):
        client = PaystackClient("sk_live", transport=httpx.MockTransport(lambda request: response))
        with pytest.raises(DeliveryError):
            client.verify("ref123")

    def test_unconfigured_gateway(self):
        with pytest.raises(DeliveryError):
            PaystackClient(None).verify("ref123")
