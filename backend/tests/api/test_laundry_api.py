"""
洗衣管理 API 测试
覆盖价目表维护、订单计价、状态流转与导出
"""
from decimal import Decimal

from fastapi.testclient import TestClient

from app.models.ontology import CatalogStatus, Role


def _booking(item_id, quantity=1, service_type="Wash", **extra):
    payload = {
        "first_name": "Tunde",
        "last_name": "Bello",
        "room": "101",
        "items": [{"item_id": item_id, "quantity": quantity, "service_type": service_type}],
    }
    payload.update(extra)
    return payload


class TestLaundryItems:
    """价目表"""

    def test_admin_creates_item(self, client: TestClient, admin_headers):
        response = client.post("/laundry/items", headers=admin_headers, json={
            "name": "Blouse", "category": "Tops", "price": "300", "price_wash": "450"
        })
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Available"
        assert Decimal(data["price_wash"]) == Decimal("450")

    def test_duplicate_name_rejected(self, client: TestClient, admin_headers, shirt):
        response = client.post("/laundry/items", headers=admin_headers, json={
            "name": "shirt", "price": "300"
        })
        assert response.status_code == 400

    def test_laundry_staff_reads_but_cannot_edit(self, client: TestClient, laundry_headers, shirt):
        assert client.get("/laundry/items", headers=laundry_headers).status_code == 200

        response = client.put(f"/laundry/items/{shirt.id}", headers=laundry_headers, json={"price": "1"})
        assert response.status_code == 403

    def test_staff_without_laundry_task(self, client: TestClient, desk_headers):
        response = client.get("/laundry/items", headers=desk_headers)
        assert response.status_code == 403
        assert response.json()["detail"]["kind"] == "TaskNotAssigned"

    def test_last_ordered(self, client: TestClient, laundry_headers, shirt):
        response = client.get(f"/laundry/items/{shirt.id}", headers=laundry_headers)
        assert response.json()["last_ordered"] is None

        client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id))
        response = client.get(f"/laundry/items/{shirt.id}", headers=laundry_headers)
        assert response.json()["last_ordered"] is not None

    def test_delete_item_keeps_booking_lines(self, client: TestClient, admin_headers, laundry_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()

        response = client.delete(f"/laundry/items/{shirt.id}", headers=admin_headers)
        assert response.status_code == 200

        response = client.get(f"/laundry/bookings/{booking['id']}", headers=laundry_headers)
        line = response.json()["lines"][0]
        assert line["item_id"] is None
        assert line["name"] == "Shirt"

    def test_export_items(self, client: TestClient, laundry_headers, shirt):
        response = client.get("/laundry/items/export", headers=laundry_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("Name,Category,Price")
        assert lines[1].startswith("Shirt,Tops")


class TestLaundryBookings:
    """洗衣订单计价"""

    def test_bulk_order_with_urgent_fee(self, client: TestClient, laundry_headers, shirt):
        response = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(
            shirt.id, quantity=20, service_type="Wash + Iron",
            urgent_fee="500", discount_enabled=True, priority="Urgent",
        ))
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["subtotal"]) == Decimal("20000")
        assert Decimal(data["discount_amount"]) == Decimal("2000")
        assert Decimal(data["total_amount"]) == Decimal("18500")
        assert data["guest_name"] == "Tunde Bello"

    def test_nineteen_pieces_get_no_discount(self, client: TestClient, laundry_headers, shirt):
        response = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(
            shirt.id, quantity=19, service_type="Iron", discount_enabled=True,
        ))
        data = response.json()
        assert Decimal(data["discount_amount"]) == Decimal("0")
        assert Decimal(data["total_amount"]) == Decimal("7600")

    def test_unset_variant_uses_base_price(self, client: TestClient, laundry_headers, suit):
        response = client.post("/laundry/bookings", headers=laundry_headers,
                               json=_booking(suit.id, quantity=2, service_type="Wash"))
        assert Decimal(response.json()["lines"][0]["unit_price"]) == Decimal("2500")

    def test_unknown_item_dropped(self, client: TestClient, laundry_headers, shirt):
        payload = _booking(shirt.id, quantity=1, service_type="Dry Clean")
        payload["items"].append({"item_id": 9999, "quantity": 4})
        response = client.post("/laundry/bookings", headers=laundry_headers, json=payload)

        assert response.status_code == 200
        assert len(response.json()["lines"]) == 1
        assert Decimal(response.json()["total_amount"]) == Decimal("500")

    def test_only_unknown_items_rejected(self, client: TestClient, laundry_headers):
        response = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(9999))
        assert response.status_code == 400

    def test_unavailable_item_not_priced(self, client: TestClient, db_session, laundry_headers, shirt):
        shirt.status = CatalogStatus.UNAVAILABLE
        db_session.commit()
        response = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id))
        assert response.status_code == 400

    def test_guest_details_required(self, client: TestClient, laundry_headers, shirt):
        payload = _booking(shirt.id)
        payload.pop("first_name")
        payload.pop("last_name")
        response = client.post("/laundry/bookings", headers=laundry_headers, json=payload)
        assert response.status_code == 400

    def test_walk_in_by_email_links_guest(self, client: TestClient, laundry_headers, guest, shirt, mail_channel):
        response = client.post("/laundry/bookings", headers=laundry_headers,
                               json=_booking(shirt.id, email=guest.email))
        assert response.json()["guest_id"] == guest.id
        assert mail_channel.subjects_for(guest.email)

    def test_payment_method_marks_paid(self, client: TestClient, laundry_headers, shirt):
        pending = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()
        paid = client.post("/laundry/bookings", headers=laundry_headers,
                           json=_booking(shirt.id, payment_method="Cash")).json()
        assert pending["payment_status"] == "Pending"
        assert paid["payment_status"] == "Paid"

    def test_price_change_does_not_touch_existing_booking(self, client: TestClient, admin_headers,
                                                          laundry_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers,
                              json=_booking(shirt.id, quantity=2)).json()
        client.put(f"/laundry/items/{shirt.id}", headers=admin_headers, json={"price_wash": "9999"})

        response = client.put(f"/laundry/bookings/{booking['id']}", headers=laundry_headers,
                              json={"service_charge": "100"})
        data = response.json()
        assert Decimal(data["lines"][0]["unit_price"]) == Decimal("700")
        assert Decimal(data["total_amount"]) == Decimal("1500")

    def test_replacing_items_reprices(self, client: TestClient, laundry_headers, shirt, suit):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()
        response = client.put(f"/laundry/bookings/{booking['id']}", headers=laundry_headers, json={
            "items": [{"item_id": suit.id, "quantity": 1, "service_type": "Wash + Iron"}]
        })
        data = response.json()
        assert [line["name"] for line in data["lines"]] == ["Suit"]
        assert Decimal(data["total_amount"]) == Decimal("3500")


class TestLaundryStatus:
    """状态流转"""

    def test_forward_flow(self, client: TestClient, laundry_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()
        for status in ("In Progress", "Ready", "Delivered"):
            response = client.patch(f"/laundry/bookings/{booking['id']}/status",
                                    headers=laundry_headers, json={"status": status})
            assert response.status_code == 200
            assert response.json()["status"] == status

        stats = client.get("/laundry/stats", headers=laundry_headers).json()
        assert stats["delivered"] == 1

    def test_cannot_skip_steps(self, client: TestClient, laundry_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()
        response = client.patch(f"/laundry/bookings/{booking['id']}/status",
                                headers=laundry_headers, json={"status": "Delivered"})
        assert response.status_code == 400

    def test_cancelled_booking_is_final(self, client: TestClient, laundry_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()
        client.patch(f"/laundry/bookings/{booking['id']}/status",
                     headers=laundry_headers, json={"status": "Cancelled"})

        response = client.put(f"/laundry/bookings/{booking['id']}", headers=laundry_headers,
                              json={"urgent_fee": "100"})
        assert response.status_code == 400

    def test_only_admins_delete(self, client: TestClient, laundry_headers, admin_headers, shirt):
        booking = client.post("/laundry/bookings", headers=laundry_headers, json=_booking(shirt.id)).json()

        assert client.delete(f"/laundry/bookings/{booking['id']}", headers=laundry_headers).status_code == 403
        assert client.delete(f"/laundry/bookings/{booking['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/laundry/bookings/{booking['id']}", headers=admin_headers).status_code == 404

    def test_filter_and_export(self, client: TestClient, staff_factory, shirt):
        _, headers = staff_factory(Role.STAFF, "wash@hotel.test", tasks=["laundry"])
        client.post("/laundry/bookings", headers=headers, json=_booking(shirt.id))

        response = client.get("/laundry/bookings", headers=headers, params={"search": "bello"})
        assert len(response.json()) == 1
        response = client.get("/laundry/bookings", headers=headers, params={"status": "Ready"})
        assert response.json() == []

        response = client.get("/laundry/bookings/export", headers=headers)
        assert "1x Shirt" in response.text
