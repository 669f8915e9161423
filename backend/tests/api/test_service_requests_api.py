"""
酒店服务目录与服务请求 API 测试
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.models.ontology import Role, Task


@pytest.fixture
def concierge_headers(staff_factory):
    _, headers = staff_factory(Role.STAFF, "concierge@hotel.test", tasks=[Task.SERVICE_REQUEST.value])
    return headers


@pytest.fixture
def spa(client: TestClient, admin_headers):
    return client.post("/services", headers=admin_headers, json={
        "service_type": "Spa & Relaxation", "name": "Deep Tissue Massage", "price": "20000",
    }).json()


def _request(service_id, **extra):
    payload = {"service_id": service_id, "room": "101", "duration": "1 hour"}
    payload.update(extra)
    return payload


class TestServiceCatalog:
    """服务目录"""

    def test_guest_sees_available_only(self, client: TestClient, admin_headers, spa):
        client.post("/services", headers=admin_headers, json={
            "service_type": "Fitness Center", "name": "Gym", "price": "5000", "status": "Under Maintenance",
        })

        response = client.get("/guest/services")
        assert [s["name"] for s in response.json()] == ["Deep Tissue Massage"]

    def test_staff_cannot_edit_catalog(self, client: TestClient, concierge_headers, spa):
        response = client.put(f"/services/{spa['id']}", headers=concierge_headers, json={"price": "1"})
        assert response.status_code == 403

        response = client.get("/services", headers=concierge_headers)
        assert response.status_code == 200

    def test_delete_keeps_requests(self, client: TestClient, admin_headers, concierge_headers,
                                   guest_headers, spa):
        request = client.post("/guest/service-requests", headers=guest_headers,
                              json=_request(spa["id"])).json()

        response = client.delete(f"/services/{spa['id']}", headers=admin_headers)
        assert response.status_code == 200

        data = client.get(f"/service-requests/{request['id']}", headers=concierge_headers).json()
        assert data["service_id"] is None
        assert data["service_name"] == "Deep Tissue Massage"


class TestServiceRequests:
    """服务请求"""

    def test_create_snapshots_price(self, client: TestClient, admin_headers, guest, guest_headers,
                                    spa, mail_channel):
        response = client.post("/guest/service-requests", headers=guest_headers, json=_request(spa["id"]))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Pending"
        assert data["payment_status"] == "Pending"
        assert data["guest_name"] == "Ada Obi"
        assert Decimal(data["amount"]) == Decimal("20000")
        assert mail_channel.subjects_for(guest.email) == ["Service request received"]

        client.put(f"/services/{spa['id']}", headers=admin_headers, json={"price": "25000"})
        mine = client.get("/guest/service-requests", headers=guest_headers).json()
        assert Decimal(mine[0]["amount"]) == Decimal("20000")

    def test_unavailable_service_rejected(self, client: TestClient, admin_headers, guest_headers, spa):
        client.put(f"/services/{spa['id']}", headers=admin_headers, json={"status": "Unavailable"})
        response = client.post("/guest/service-requests", headers=guest_headers, json=_request(spa["id"]))
        assert response.status_code == 400

    def test_unknown_service(self, client: TestClient, guest_headers):
        response = client.post("/guest/service-requests", headers=guest_headers, json=_request(999))
        assert response.status_code == 404

    def test_other_guest_request_forbidden(self, client: TestClient, guest_headers, guest_factory, spa):
        request = client.post("/guest/service-requests", headers=guest_headers,
                              json=_request(spa["id"])).json()
        _, other_headers = guest_factory("bola@example.com")

        response = client.get(f"/guest/service-requests/{request['id']}", headers=other_headers)
        assert response.status_code == 403

    def test_status_flow(self, client: TestClient, concierge_headers, guest_headers, spa):
        request = client.post("/guest/service-requests", headers=guest_headers,
                              json=_request(spa["id"])).json()
        url = f"/service-requests/{request['id']}/status"

        assert client.patch(url, headers=concierge_headers, json={"status": "Completed"}).status_code == 400
        assert client.patch(url, headers=concierge_headers, json={"status": "In Progress"}).status_code == 200
        response = client.patch(url, headers=concierge_headers, json={"status": "Completed"})
        assert response.json()["status"] == "Completed"
        assert client.patch(url, headers=concierge_headers, json={"status": "Cancelled"}).status_code == 400

    def test_search_and_delete(self, client: TestClient, concierge_headers, guest_headers, spa):
        request = client.post("/guest/service-requests", headers=guest_headers,
                              json=_request(spa["id"])).json()

        found = client.get("/service-requests", headers=concierge_headers, params={"search": "massage"}).json()
        assert [r["id"] for r in found] == [request["id"]]

        response = client.delete(f"/service-requests/{request['id']}", headers=concierge_headers)
        assert response.status_code == 200
        assert client.get("/service-requests", headers=concierge_headers).json() == []

    def test_requires_service_request_task(self, client: TestClient, desk_headers):
        response = client.get("/service-requests", headers=desk_headers)
        assert response.status_code == 403
