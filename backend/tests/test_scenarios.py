"""End-to-end flows across several endpoints, plus app-level behaviour."""

from tipqr.core.rbac import UserRole
from tipqr.db.session import engine
from tipqr.models.user import User

API = "/api/v1"


def _sign_up(client, name, email):
    resp = client.post(f"{API}/auth/sign-up", json={"name": name, "email": email, "password": "password123"})
    assert resp.status_code == 201
    # Later calls authenticate with the bearer token only
    client.cookies.clear()
    body = resp.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}


class TestTippingFlow:
    def test_owner_to_tip_summary(self, client):
        owner, owner_headers = _sign_up(client, "Anita", "anita@example.com")
        assert owner["role"] == "owner"

        resp = client.post(f"{API}/restaurants", json={"name": "R", "upiId": "r@bank"}, headers=owner_headers)
        assert resp.status_code == 201
        restaurant = resp.json()

        resp = client.post(
            f"{API}/staff", json={"restaurantId": restaurant["id"], "displayName": "Sam"}, headers=owner_headers
        )
        assert resp.status_code == 201
        staff = resp.json()
        assert staff["qrKey"]

        worker, worker_headers = _sign_up(client, "Sam", "sam@example.com")
        resp = client.patch(f"{API}/me/role", json={"role": "worker"}, headers=worker_headers)
        assert resp.json()["role"] == "worker"
        resp = client.post(f"{API}/staff/claim", json={"qrKey": staff["qrKey"]}, headers=worker_headers)
        assert resp.status_code == 200
        assert resp.json()["userId"] == worker["id"]

        resp = client.post(f"{API}/tips", json={"staffKey": staff["qrKey"], "amount": 50.00, "currency": "INR"})
        assert resp.status_code == 201
        tip = resp.json()
        assert tip["amountCents"] == 5000
        assert tip["status"] == "succeeded"

        resp = client.post(f"{API}/reviews", json={"staffKey": staff["qrKey"], "rating": 5})
        assert resp.status_code == 201
        assert resp.json()["approved"] is True

        body = client.get(f"{API}/staff/{staff['id']}/tips", headers=owner_headers).json()
        assert body["summary"] == {"totalAmount": 5000, "tipCount": 1}

        # The claimed worker sees the same ledger for their own record
        body = client.get(f"{API}/staff/{staff['id']}/tips", headers=worker_headers).json()
        assert body["summary"]["tipCount"] == 1


class TestProtections:
    def test_only_admin_cannot_be_demoted(self, client, db_session, admin):
        resp = client.patch(f"{API}/admin/users", json={"userId": admin.id, "role": "worker"}, headers=admin.headers)
        assert resp.status_code == 422
        assert resp.json()["code"] == "LAST_ADMIN_PROTECTION"
        db_session.expire_all()
        assert db_session.get(User, admin.id).role == UserRole.ADMIN

    def test_worker_cannot_change_staff_role(self, client, db_session, worker, restaurant, make_staff):
        staff = make_staff(restaurant, "Asha", user_id=worker.id)
        resp = client.patch(
            f"{API}/staff/{staff.id}", json={"role": "manager", "displayName": "Boss"}, headers=worker.headers
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "RESTRICTED_FIELDS"
        db_session.expire_all()
        assert client.get(f"{API}/staff/{staff.id}", headers=worker.headers).json()["displayName"] == "Asha"

    def test_tenants_cannot_see_each_other(self, client, owner, other_owner, restaurant):
        resp = client.get(f"{API}/restaurants/{restaurant.id}", headers=other_owner.headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "RESTAURANT_NOT_FOUND"


class TestApp:
    def test_app_engine_is_in_memory(self):
        assert engine.url.database == ":memory:"

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_readiness_reports_checks(self, client):
        resp = client.get("/health/ready")
        assert resp.status_code == 200
        assert "database" in resp.json()["checks"]

    def test_unknown_route_uses_error_envelope(self, client):
        resp = client.get(f"{API}/nowhere")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found", "code": "NOT_FOUND"}

    def test_malformed_json_is_a_validation_error(self, client, owner):
        resp = client.post(
            f"{API}/restaurants",
            content="{not json",
            headers={**owner.headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
