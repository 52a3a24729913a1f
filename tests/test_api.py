"""HTTP-level tests: auth, routing, status codes and response shapes."""

from datetime import timedelta

import pytest

from app.auth import create_access_token
from app.config import PUBLIC_RATE_LIMIT
from app.models import Customer
from conftest import SATURDAY, TODAY, TUESDAY, make_appointment


def auth_header(owner_id):
    return {"Authorization": f"Bearer {create_access_token(owner_id)}"}


class TestAuth:
    def test_health_is_open(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_missing_token(self, client, business):
        response = client.get("/services", headers={"Authorization": ""})
        assert response.status_code == 401

    def test_invalid_token(self, client, business):
        response = client.get("/services", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_expired_token(self, client, business):
        token = create_access_token("owner-1", expires_delta=timedelta(minutes=-5))
        response = client.get("/services", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_owner_without_business(self, client, business):
        response = client.get("/services", headers=auth_header("owner-new"))
        assert response.status_code == 403
        assert response.json()["detail"] == "Business onboarding required"

    def test_onboarding_unlocks_tenant_routes(self, client):
        headers = auth_header("owner-new")

        created = client.post("/business", json={"name": "Brilho Total"}, headers=headers)
        assert created.status_code == 201
        assert created.json()["slug"] == "brilho-total"

        assert client.get("/services", headers=headers).status_code == 200
        assert client.post("/business", json={"name": "Again"}, headers=headers).status_code == 409


class TestBusinessApi:
    def test_get_and_update(self, client, business):
        assert client.get("/business").json()["id"] == business.id

        response = client.patch("/business", json={"name": "Lava Rapido Norte", "slotDuration": 30})
        assert response.status_code == 200
        assert response.json()["name"] == "Lava Rapido Norte"
        assert client.get("/business").json()["slotDuration"] == 30

    def test_invalid_hours(self, client, business):
        response = client.patch("/business", json={"closeTime": "07:00"})
        assert response.status_code == 400

    def test_slug_available(self, client, business):
        response = client.get("/business/slug-available", params={"slug": "lava-rapido-centro"})
        assert response.json() == {"slug": "lava-rapido-centro", "available": True}

        response = client.get("/business/slug-available", params={"slug": "Bad Slug"})
        assert response.status_code == 422


class TestCatalogApi:
    def test_service_crud(self, client, business):
        created = client.post(
            "/services", json={"name": "Polimento", "price": "120.50", "duration": 90}
        )
        assert created.status_code == 201
        body = created.json()
        assert body["price"] == 120.5
        assert body["isActive"] is True

        toggled = client.patch(f"/services/{body['id']}/toggle")
        assert toggled.json()["isActive"] is False

        active = client.get("/services", params={"onlyActive": True}).json()
        assert body["id"] not in [s["id"] for s in active]

        updated = client.patch(f"/services/{body['id']}", json={"duration": 120})
        assert updated.json()["duration"] == 120

        assert client.delete(f"/services/{body['id']}").status_code == 200
        assert client.get(f"/services/{body['id']}").status_code == 404

    def test_invalid_duration(self, client, business):
        response = client.post("/services", json={"name": "Rapida", "price": "10", "duration": 5})
        assert response.status_code == 422

    def test_delete_service_in_use(self, client, db, business, customer, service):
        make_appointment(db, business, customer, service, TUESDAY)

        assert client.delete(f"/services/{service.id}").status_code == 409


class TestCustomerApi:
    def test_create_search_and_vehicles(self, client, business):
        created = client.post(
            "/customers",
            json={
                "name": "Ana Lima",
                "phone": "(11) 97777-8888",
                "vehicle": {"brand": "Honda", "model": "Fit", "color": "Azul", "plate": "abc1d23"},
            },
        )
        assert created.status_code == 201
        customer = created.json()
        assert customer["phone"] == "11977778888"
        assert customer["vehicles"][0]["plate"] == "ABC1D23"
        assert customer["vehicles"][0]["isDefault"] is True

        second = client.post(
            f"/customers/{customer['id']}/vehicles",
            json={"brand": "Fiat", "model": "Uno", "color": "Branco", "isDefault": True},
        )
        assert second.status_code == 201

        vehicles = client.get(f"/customers/{customer['id']}/vehicles").json()
        assert [v["isDefault"] for v in vehicles] == [True, False]
        assert vehicles[0]["id"] == second.json()["id"]

        found = client.get("/customers", params={"q": "ana"}).json()
        assert found["pagination"]["total"] == 1

    def test_duplicate_phone(self, client, customer):
        response = client.post("/customers", json={"name": "Maria Duplicada", "phone": "11987654321"})
        assert response.status_code == 409

    def test_invalid_phone(self, client, business):
        response = client.post("/customers", json={"name": "Sem Telefone", "phone": "123"})
        assert response.status_code == 422

    def test_unknown_customer(self, client, business):
        assert client.get("/customers/missing").status_code == 404


class TestAppointmentApi:
    def book(self, client, customer, service, day=TUESDAY, start="10:00"):
        return client.post(
            "/appointments",
            json={"customerId": customer.id, "serviceId": service.id, "date": day, "startTime": start},
        )

    def test_book_and_conflict(self, client, customer, service):
        first = self.book(client, customer, service)
        assert first.status_code == 201
        body = first.json()
        assert body["status"] == "PENDING"
        assert body["endTime"] == "11:00"
        assert body["customer"]["name"] == "Maria Silva"

        assert self.book(client, customer, service, start="10:30").status_code == 409

    def test_outside_hours(self, client, customer, service):
        response = self.book(client, customer, service, start="17:30")
        assert response.status_code == 400

    def test_closed_day(self, client, customer, service):
        assert self.book(client, customer, service, day=SATURDAY).status_code == 400

    def test_malformed_time(self, client, customer, service):
        assert self.book(client, customer, service, start="25:00").status_code == 422

    def test_status_flow(self, client, customer, service):
        appointment_id = self.book(client, customer, service).json()["id"]

        response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "COMPLETED"})
        assert response.status_code == 400

        client.patch(f"/appointments/{appointment_id}/status", json={"status": "CONFIRMED"})
        response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "COMPLETED"})
        assert response.json()["status"] == "COMPLETED"

        response = client.patch(f"/appointments/{appointment_id}", json={"notes": "late"})
        assert response.status_code == 409

    def test_list(self, client, customer, service):
        self.book(client, customer, service, start="14:00")
        self.book(client, customer, service, start="09:00")

        body = client.get("/appointments", params={"date": TUESDAY}).json()
        assert [a["startTime"] for a in body["data"]] == ["09:00", "14:00"]
        assert body["pagination"] == {"page": 1, "limit": 50, "total": 2, "totalPages": 1}

    def test_list_with_bad_date(self, client, business):
        assert client.get("/appointments", params={"date": "2025-13-01"}).status_code == 422

    def test_available_slots(self, client, customer, service):
        self.book(client, customer, service, start="10:00")

        slots = client.get(
            "/appointments/available-slots", params={"date": TUESDAY, "serviceId": service.id}
        ).json()
        assert {"time": "10:00", "available": False} in slots
        assert {"time": "11:00", "available": True} in slots

    def test_available_slots_bad_date(self, client, business):
        response = client.get("/appointments/available-slots", params={"date": "tomorrow"})
        assert response.status_code == 400

    def test_delete(self, client, customer, service):
        appointment_id = self.book(client, customer, service).json()["id"]

        assert client.delete(f"/appointments/{appointment_id}").status_code == 200
        assert client.get(f"/appointments/{appointment_id}").status_code == 404


class TestBillingApi:
    def create_invoice(self, client, customer, **extra):
        payload = {
            "customerId": customer.id,
            "items": [
                {"description": "Lavagem", "quantity": 2, "unitPrice": "50"},
                {"description": "Cera", "quantity": 1, "unitPrice": "30"},
            ],
            "discount": "10",
            "autoIssue": True,
        }
        payload.update(extra)
        return client.post("/billing/invoices", json=payload)

    def test_invoice_and_payments(self, client, customer):
        response = self.create_invoice(client, customer)
        assert response.status_code == 201
        invoice = response.json()
        assert invoice["number"] == "NF-0001"
        assert (invoice["subtotal"], invoice["total"]) == (130.0, 120.0)

        url = f"/billing/invoices/{invoice['id']}/payments"
        partial = client.post(url, json={"amount": "50", "method": "PIX"})
        assert partial.status_code == 201
        assert partial.json()["status"] == "PARTIAL"

        paid = client.post(url, json={"amount": "70", "method": "CASH"}).json()
        assert paid["status"] == "PAID"
        assert paid["paidAmount"] == 120.0

        assert client.post(url, json={"amount": "1", "method": "PIX"}).status_code == 400

        cash = next(p for p in paid["payments"] if p["method"] == "CASH")
        reverted = client.delete(f"{url}/{cash['id']}").json()
        assert reverted["status"] == "PARTIAL"
        assert reverted["paidAmount"] == 50.0

    def test_draft_issue_and_cancel(self, client, customer):
        invoice = self.create_invoice(client, customer, autoIssue=False).json()
        assert invoice["status"] == "DRAFT"

        issued = client.post(f"/billing/invoices/{invoice['id']}/issue")
        assert issued.json()["status"] == "PENDING"

        cancelled = client.post(f"/billing/invoices/{invoice['id']}/cancel")
        assert cancelled.json()["status"] == "CANCELLED"

        second = self.create_invoice(client, customer).json()
        assert second["number"] == "NF-0002"

    def test_invoice_from_appointment(self, client, db, business, customer, service):
        appointment = make_appointment(db, business, customer, service, TUESDAY)

        response = client.post("/billing/invoices/from-appointment", json={"appointmentId": appointment.id})
        assert response.status_code == 201
        assert response.json()["appointment"]["id"] == appointment.id

        again = client.post("/billing/invoices/from-appointment", json={"appointmentId": appointment.id})
        assert again.status_code == 409

    def test_refresh_overdue_and_list(self, client, customer):
        self.create_invoice(client, customer, dueDate="2025-03-01")

        assert client.post("/billing/invoices/refresh-overdue").json() == {"updated": 1}
        listed = client.get("/billing/invoices", params={"status": "OVERDUE"}).json()
        assert listed["pagination"]["total"] == 1

    def test_stats(self, client, customer):
        invoice = self.create_invoice(client, customer).json()
        client.post(f"/billing/invoices/{invoice['id']}/payments", json={"amount": "120", "method": "PIX"})

        stats = client.get("/billing/stats").json()
        assert stats["totalRevenue"] == 120.0
        assert stats["invoiceCount"]["paid"] == 1
        assert stats["revenueByMethod"] == [{"method": "PIX", "total": 120.0, "count": 1}]

    def test_non_positive_payment(self, client, customer):
        invoice = self.create_invoice(client, customer).json()
        response = client.post(
            f"/billing/invoices/{invoice['id']}/payments", json={"amount": "0", "method": "PIX"}
        )
        assert response.status_code == 422


class TestDashboardApi:
    def test_stats_and_today(self, client, db, business, customer, service):
        make_appointment(db, business, customer, service, TODAY, "10:00", "11:00")
        make_appointment(db, business, customer, service, TUESDAY, "10:00", "11:00")

        stats = client.get("/dashboard/stats").json()
        assert stats["today"]["total"] == 1
        assert stats["today"]["pending"] == 1
        assert stats["month"]["newCustomers"] == 1

        today = client.get("/dashboard/today").json()
        assert [a["date"] for a in today] == [TODAY]

        upcoming = client.get("/dashboard/upcoming").json()
        assert [a["date"] for a in upcoming] == [TODAY, TUESDAY]


class TestPublicApi:
    def booking(self, service, **extra):
        payload = {
            "customerName": "Carlos Dias",
            "customerPhone": "(11) 92222-3333",
            "serviceId": service.id,
            "date": TUESDAY,
            "startTime": "10:00",
            "vehicle": {"brand": "Toyota", "model": "Corolla", "color": "Preto"},
        }
        payload.update(extra)
        return payload

    def test_business_profile(self, client, business):
        response = client.get("/public/lava-rapido-centro", headers={"Authorization": ""})
        assert response.status_code == 200
        assert "ownerId" not in response.json()

        assert client.get("/public/missing").status_code == 404

    def test_only_active_services(self, client, db, business, service):
        service.is_active = False
        db.commit()

        assert client.get("/public/lava-rapido-centro/services").json() == []

    def test_slots(self, client, business):
        slots = client.get("/public/lava-rapido-centro/slots", params={"date": TUESDAY}).json()
        assert len(slots) == 10

        assert client.get("/public/lava-rapido-centro/slots", params={"date": SATURDAY}).json() == []

    def test_book(self, client, db, business, service):
        response = client.post("/public/lava-rapido-centro/book", json=self.booking(service))
        assert response.status_code == 201

        body = response.json()
        assert body["appointment"]["isFromPublic"] is True
        assert body["appointment"]["status"] == "PENDING"
        assert body["customer"]["name"] == "Carlos Dias"
        assert body["vehicle"]["brand"] == "Toyota"
        assert body["business"]["name"] == "Lava Rapido Centro"

    def test_returning_customer_is_reused(self, client, db, business, service):
        client.post("/public/lava-rapido-centro/book", json=self.booking(service))
        client.post("/public/lava-rapido-centro/book", json=self.booking(service, startTime="14:00"))

        assert db.query(Customer).filter(Customer.business_id == business.id).count() == 1

    def test_rejected_booking_creates_nothing(self, client, db, business, customer, service):
        make_appointment(db, business, customer, service, TUESDAY, "10:00", "11:00")

        response = client.post("/public/lava-rapido-centro/book", json=self.booking(service))
        assert response.status_code == 409
        assert db.query(Customer).filter(Customer.phone == "11922223333").count() == 0

    def test_rate_limited(self, client, business):
        for _ in range(PUBLIC_RATE_LIMIT):
            assert client.get("/public/lava-rapido-centro").status_code == 200

        response = client.get("/public/lava-rapido-centro")
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    @pytest.mark.parametrize("path", ["/services", "/customers", "/appointments", "/billing/invoices"])
    def test_tenant_routes_require_token(self, client, business, path):
        assert client.get(path, headers={"Authorization": ""}).status_code == 401
