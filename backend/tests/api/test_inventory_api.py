"""
库存与供应商 API 测试
"""
from decimal import Decimal

from fastapi.testclient import TestClient


def _item(name="Towel", stock=50, **extra):
    payload = {
        "name": name, "type": "room", "category": "Linen",
        "stock": stock, "price": "1500", "unit_of_measurement": "pcs",
    }
    payload.update(extra)
    return payload


class TestInventoryItems:
    """库存物品"""

    def test_create_derives_status(self, client: TestClient, desk_headers):
        in_stock = client.post("/inventory/items", headers=desk_headers, json=_item()).json()
        low = client.post("/inventory/items", headers=desk_headers, json=_item("Soap", stock=10)).json()
        out = client.post("/inventory/items", headers=desk_headers, json=_item("Slippers", stock=0)).json()

        assert in_stock["status"] == "In Stock"
        assert low["status"] == "Low Stock"
        assert out["status"] == "Out of Stock"
        assert Decimal(in_stock["total_value"]) == Decimal("75000")

    def test_paging_by_type(self, client: TestClient, desk_headers):
        for i in range(3):
            client.post("/inventory/items", headers=desk_headers, json=_item(f"Towel {i}"))
        client.post("/inventory/items", headers=desk_headers,
                    json=_item("Rice", type="kitchen", category="Grains"))

        response = client.get("/inventory/items", headers=desk_headers,
                              params={"type": "room", "page": 2, "limit": 2})
        data = response.json()
        assert data["count"] == 3
        assert data["total_pages"] == 2
        assert data["current_page"] == 2
        assert len(data["items"]) == 1

    def test_consume(self, client: TestClient, desk_headers):
        item = client.post("/inventory/items", headers=desk_headers, json=_item(stock=12)).json()

        response = client.post(f"/inventory/items/{item['id']}/consume", headers=desk_headers,
                               json={"quantity": 3})
        assert response.status_code == 200
        assert response.json()["stock"] == 9
        assert response.json()["status"] == "Low Stock"

    def test_consume_more_than_stock(self, client: TestClient, desk_headers):
        item = client.post("/inventory/items", headers=desk_headers, json=_item(stock=2)).json()

        response = client.post(f"/inventory/items/{item['id']}/consume", headers=desk_headers,
                               json={"quantity": 5})
        assert response.status_code == 400

        response = client.get(f"/inventory/items/{item['id']}", headers=desk_headers)
        assert response.json()["stock"] == 2

    def test_update_rederives_status(self, client: TestClient, desk_headers):
        item = client.post("/inventory/items", headers=desk_headers, json=_item(stock=5)).json()
        response = client.put(f"/inventory/items/{item['id']}", headers=desk_headers, json={"stock": 40})
        assert response.json()["status"] == "In Stock"

    def test_stats_and_categories(self, client: TestClient, desk_headers):
        client.post("/inventory/items", headers=desk_headers, json=_item(stock=4, damaged_stock=2))
        client.post("/inventory/items", headers=desk_headers, json=_item("Pillow", category="Bedding", stock=0))

        stats = client.get("/inventory/stats", headers=desk_headers, params={"type": "room"}).json()
        assert stats["total_items"] == 2
        assert stats["low_stock"] == 1
        assert stats["out_of_stock"] == 1
        assert stats["damaged_items"] == 2
        assert Decimal(stats["damaged_value"]) == Decimal("3000")

        categories = client.get("/inventory/categories", headers=desk_headers, params={"type": "room"}).json()
        assert categories == [{"name": "Bedding", "count": 1}, {"name": "Linen", "count": 1}]

    def test_unknown_supplier(self, client: TestClient, desk_headers):
        response = client.post("/inventory/items", headers=desk_headers, json=_item(supplier_id=999))
        assert response.status_code == 404

    def test_requires_inventory_task(self, client: TestClient, laundry_headers):
        response = client.get("/inventory/items", headers=laundry_headers, params={"type": "room"})
        assert response.status_code == 403


class TestSuppliers:
    """供应商"""

    def test_supplier_lifecycle(self, client: TestClient, desk_headers):
        response = client.post("/inventory/suppliers", headers=desk_headers, json={
            "name": "Linen Co", "phone_no": "0809000111", "category": "Laundry"
        })
        assert response.status_code == 200
        supplier = response.json()

        item = client.post("/inventory/items", headers=desk_headers,
                           json=_item(supplier_id=supplier["id"])).json()
        export = client.get("/inventory/export", headers=desk_headers)
        assert "Linen Co" in export.text

        response = client.delete(f"/inventory/suppliers/{supplier['id']}", headers=desk_headers)
        assert response.status_code == 200

        response = client.get(f"/inventory/items/{item['id']}", headers=desk_headers)
        assert response.json()["supplier_id"] is None

    def test_duplicate_phone(self, client: TestClient, desk_headers):
        payload = {"name": "A", "phone_no": "0809000222"}
        client.post("/inventory/suppliers", headers=desk_headers, json=payload)
        response = client.post("/inventory/suppliers", headers=desk_headers, json=dict(payload, name="B"))
        assert response.status_code == 400
