"""
餐饮 API 测试
覆盖菜品维护、客人下单扣库存、订单状态与取消归还库存
"""
from decimal import Decimal

from fastapi.testclient import TestClient

from app.models.ontology import Dish
from app.services.order_service import OrderService


def _order(dish_id, quantity=1, room="101"):
    return {"dishes": [{"dish_id": dish_id, "quantity": quantity}], "room": room}


class TestDishes:
    """菜品维护"""

    def test_public_menu(self, client: TestClient, sample_dish):
        response = client.get("/dishes")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Jollof Rice"

    def test_dish_staff_creates_dish(self, client: TestClient, desk_headers):
        response = client.post("/dishes", headers=desk_headers, json={
            "name": "Pepper Soup", "category": "Soup", "amount_per_portion": "4000", "quantity": 10
        })
        assert response.status_code == 200
        assert response.json()["status"] == "Available"

    def test_duplicate_dish(self, client: TestClient, desk_headers, sample_dish):
        response = client.post("/dishes", headers=desk_headers, json={
            "name": "jollof rice", "amount_per_portion": "1"
        })
        assert response.status_code == 400

    def test_laundry_staff_cannot_edit_menu(self, client: TestClient, laundry_headers, sample_dish):
        response = client.put(f"/dishes/{sample_dish.id}", headers=laundry_headers, json={"quantity": 0})
        assert response.status_code == 403


class TestGuestOrders:
    """客人下单"""

    def test_place_order_takes_stock(self, client: TestClient, db_session, guest, guest_headers,
                                     sample_dish, mail_channel):
        response = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id, 2))
        assert response.status_code == 200
        data = response.json()
        assert data["order_no"].startswith("OD")
        assert Decimal(data["amount"]) == Decimal("7000")
        assert data["dishes"][0]["name"] == "Jollof Rice"
        assert mail_channel.subjects_for(guest.email)

        db_session.expire_all()
        dish = db_session.get(Dish, sample_dish.id)
        assert dish.quantity == 3
        assert dish.last_ordered is not None

    def test_insufficient_stock_rejects_whole_order(self, client: TestClient, db_session, guest_headers,
                                                    sample_dish):
        other = Dish(name="Chapman", amount_per_portion=Decimal("1500"), quantity=10)
        db_session.add(other)
        db_session.commit()

        response = client.post("/guest/orders", headers=guest_headers, json={
            "dishes": [{"dish_id": other.id, "quantity": 2}, {"dish_id": sample_dish.id, "quantity": 6}],
            "room": "101",
        })
        assert response.status_code == 400

        db_session.expire_all()
        assert db_session.get(Dish, other.id).quantity == 10
        assert db_session.get(Dish, sample_dish.id).quantity == 5

    def test_unknown_dish(self, client: TestClient, guest_headers):
        response = client.post("/guest/orders", headers=guest_headers, json=_order(9999))
        assert response.status_code == 400

    def test_order_numbers_are_sequential(self, client: TestClient, guest_headers, sample_dish):
        first = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id)).json()
        second = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id)).json()
        assert first["order_no"].endswith("001")
        assert second["order_no"].endswith("002")

    def test_number_collision_is_retried(self, client: TestClient, db_session, guest_headers,
                                         sample_dish, monkeypatch):
        first = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id)).json()

        issued = []
        real = OrderService._generate_order_no

        def colliding(service):
            issued.append(first["order_no"] if not issued else real(service))
            return issued[-1]

        monkeypatch.setattr(OrderService, "_generate_order_no", colliding)
        response = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id, 2))
        assert response.status_code == 200
        assert response.json()["order_no"].endswith("002")
        assert len(issued) == 2

        db_session.expire_all()
        assert db_session.get(Dish, sample_dish.id).quantity == 2

    def test_guest_lists_own_orders(self, client: TestClient, guest_headers, sample_dish):
        client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id))
        response = client.get("/guest/orders", headers=guest_headers)
        assert len(response.json()) == 1


class TestOrderStatus:
    """员工处理订单"""

    def test_status_flow(self, client: TestClient, desk_headers, guest_headers, sample_dish):
        order = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id)).json()
        for status in ("Preparing", "Order Served", "Order Delivered"):
            response = client.patch(f"/orders/{order['id']}/status", headers=desk_headers,
                                    json={"status": status})
            assert response.status_code == 200

        response = client.patch(f"/orders/{order['id']}/status", headers=desk_headers,
                                json={"status": "Order Cancelled"})
        assert response.status_code == 400

    def test_cancel_restores_stock(self, client: TestClient, db_session, desk_headers, guest_headers,
                                   sample_dish):
        order = client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id, 4)).json()

        response = client.patch(f"/orders/{order['id']}/status", headers=desk_headers,
                                json={"status": "Order Cancelled"})
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(Dish, sample_dish.id).quantity == 5

    def test_search_by_room(self, client: TestClient, desk_headers, guest_headers, sample_dish):
        client.post("/guest/orders", headers=guest_headers, json=_order(sample_dish.id, room="Pool Bar"))
        response = client.get("/orders", headers=desk_headers, params={"search": "pool"})
        assert len(response.json()) == 1

    def test_guest_cannot_manage_orders(self, client: TestClient, guest_headers):
        assert client.get("/orders", headers=guest_headers).status_code == 403
