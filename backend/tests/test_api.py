"""
API tests.

Verifies:
- Unauthenticated requests return 401
- Staff accounts are denied admin-only operations (403)
- The order -> payment -> delivery chain works end to end over HTTP
- Error statuses map as documented (400 / 404 / 409)
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/materials"),
            ("POST", "/api/materials"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/invoices"),
            ("GET", "/api/payments"),
            ("POST", "/api/payments/x/mark-paid"),
            ("GET", "/api/fulfillment"),
            ("GET", "/api/rejections"),
            ("GET", "/api/returns"),
            ("GET", "/api/inspections"),
            ("GET", "/api/supplier-history"),
            ("GET", "/api/recap-documents"),
            ("GET", "/api/analytics/summary"),
            ("GET", "/api/workflows"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/orders", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


class TestLogin:

    def test_login_and_me(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "Password123!"})
        assert resp.status_code == 200
        token = resp.json["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json["acting_user"]["roles"] == ["admin"]

    def test_wrong_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, admin_headers):
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 401


# =============================================================================
# STAFF DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestStaffDeniedAdminOperations:

    def test_cannot_reject_material(self, client, staff_headers, rice):
        resp = client.post(
            "/api/rejections",
            json={"product_id": rice.id, "quantity": 1, "reason": "x"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_cannot_list_rejections(self, client, staff_headers):
        assert client.get("/api/rejections", headers=staff_headers).status_code == 403

    def test_cannot_record_inspection(self, client, staff_headers):
        resp = client.post(
            "/api/inspections",
            json={"product_name": "Rice", "condition": "Good"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, staff_headers, rice):
        resp = client.post(f"/api/materials/{rice.id}/adjust", json={"delta": 5}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_delete_material(self, client, staff_headers, rice):
        assert client.delete(f"/api/materials/{rice.id}", headers=staff_headers).status_code == 403

    def test_can_list_inspections(self, client, staff_headers):
        assert client.get("/api/inspections", headers=staff_headers).status_code == 200


# =============================================================================
# END TO END
# =============================================================================


class TestProcurementChain:

    def test_order_pay_deliver(self, client, staff_headers, rice, sugar):
        resp = client.post(
            "/api/orders",
            json={
                "supplier_info": {"supplier_name": "PT Beras Jaya"},
                "items": [
                    {"product_id": rice.id, "quantity": 3},
                    {"product_id": sugar.id, "quantity": 2},
                ],
            },
            headers=staff_headers,
        )
        assert resp.status_code == 201
        order_id = resp.json["order"]["id"]
        payment_id = resp.json["payment"]["id"]
        assert resp.json["order"]["total_amount"] == "66000.00"
        assert resp.json["invoice"]["total_amount"] == "66000.00"
        assert resp.json["payment"]["status"] == "pending"

        resp = client.post(f"/api/payments/{payment_id}/mark-paid", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "processing"
        assert len(resp.json["transactions"]) == 2

        resp = client.post(f"/api/payments/{payment_id}/mark-paid", headers=staff_headers)
        assert resp.status_code == 409

        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "delivered"
        assert len(resp.json["supplier_history"]) == 2

        resp = client.get("/api/materials", headers=staff_headers)
        quantities = {m["name"]: m["quantity"] for m in resp.json["items"]}
        assert quantities == {"Rice": 13, "Sugar": 7}

        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "in_transit"}, headers=staff_headers)
        assert resp.status_code == 400

        resp = client.get(f"/api/orders/{order_id}", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["recomputed_total"] == "66000.00"
        assert len(resp.json["transactions"]) == 2

        summary = client.get("/api/analytics/summary", headers=staff_headers).json
        assert summary["total_orders"] == 1
        assert summary["completed_payments"] == 1
        assert summary["approved_transactions"] == 2

    def test_invalid_order_is_400(self, client, staff_headers):
        resp = client.post(
            "/api/orders",
            json={"supplier_info": {"supplier_name": "X"}, "items": []},
            headers=staff_headers,
        )
        assert resp.status_code == 400

    def test_unknown_order_is_404(self, client, staff_headers):
        assert client.get("/api/orders/missing", headers=staff_headers).status_code == 404

    def test_admin_rejection_over_http(self, client, admin_headers, sugar):
        resp = client.post(
            "/api/rejections",
            json={"product_id": sugar.id, "quantity": 9, "reason": "Crushed"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["stock"]["quantity"] == 0
        assert resp.json["stock"]["applied_delta"] == -5

    def test_failed_run_can_be_resumed_over_http(self, client, staff_headers, rice, monkeypatch):
        from backoffice.services import invoice_service

        def broken(order, user_id=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(invoice_service, "create_invoice_for_order", broken)
        resp = client.post(
            "/api/orders",
            json={"supplier_info": {"supplier_name": "X"}, "items": [{"product_id": rice.id, "quantity": 1}]},
            headers=staff_headers,
        )
        assert resp.status_code == 500
        assert resp.json["failed_step"] == "create_invoice"
        assert "boom" not in resp.json["error"]
        run_id = resp.json["workflow_run_id"]

        monkeypatch.undo()
        resp = client.post(f"/api/workflows/{run_id}/resume", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["run"]["status"] == "completed"

        resp = client.post(f"/api/workflows/{run_id}/resume", headers=staff_headers)
        assert resp.status_code == 409
