"""Feature toggle endpoint tests."""

from tipqr.models.feature_toggle import FeatureToggle

API = "/api/v1"


def _create(client, headers, key="tip_goals", label="Tip goals", **extra):
    return client.post(f"{API}/feature-toggles", json={"key": key, "label": label, **extra}, headers=headers)


class TestReadToggles:
    def test_list_is_public(self, client, db_session):
        db_session.add(FeatureToggle(key="qr_payments", label="QR payments", enabled=True))
        db_session.add(FeatureToggle(key="mobile_app", label="Mobile app", enabled=False))
        db_session.commit()
        body = client.get(f"{API}/feature-toggles").json()
        assert body["total"] == 2

    def test_enabled_filter(self, client, db_session):
        db_session.add(FeatureToggle(key="qr_payments", label="QR payments", enabled=True))
        db_session.add(FeatureToggle(key="mobile_app", label="Mobile app", enabled=False))
        db_session.commit()
        body = client.get(f"{API}/feature-toggles?enabled=true").json()
        assert [t["key"] for t in body["data"]] == ["qr_payments"]

    def test_get_by_key(self, client, db_session):
        db_session.add(FeatureToggle(key="qr_payments", label="QR payments", enabled=True))
        db_session.commit()
        resp = client.get(f"{API}/feature-toggles/key/qr_payments")
        assert resp.status_code == 200
        assert resp.json()["enabled"] is True

    def test_unknown_key(self, client):
        resp = client.get(f"{API}/feature-toggles/key/nope")
        assert resp.status_code == 404
        assert resp.json()["code"] == "TOGGLE_NOT_FOUND"


class TestWriteToggles:
    def test_admin_creates(self, client, admin):
        resp = _create(client, admin.headers, enabled=True)
        assert resp.status_code == 201
        body = resp.json()
        assert body["key"] == "tip_goals"
        assert body["enabled"] is True
        assert body["audience"] == "all"

    def test_duplicate_key(self, client, admin):
        _create(client, admin.headers)
        resp = _create(client, admin.headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "DUPLICATE_KEY"

    def test_bad_key_format(self, client, admin):
        resp = _create(client, admin.headers, key="tip goals!")
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_KEY_FORMAT"

    def test_enabled_must_be_boolean(self, client, admin):
        resp = _create(client, admin.headers, enabled="yes")
        assert resp.status_code == 400

    def test_owner_cannot_create(self, client, owner):
        resp = _create(client, owner.headers)
        assert resp.status_code == 403

    def test_anonymous_cannot_create(self, client):
        resp = _create(client, {})
        assert resp.status_code == 401

    def test_partial_update_by_id(self, client, admin):
        toggle = _create(client, admin.headers, label="Original").json()
        resp = client.patch(f"{API}/feature-toggles/{toggle['id']}", json={"enabled": True}, headers=admin.headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["enabled"] is True
        assert body["label"] == "Original"

    def test_update_by_key(self, client, admin):
        _create(client, admin.headers)
        resp = client.patch(f"{API}/feature-toggles/key/tip_goals", json={"audience": "owners"}, headers=admin.headers)
        assert resp.status_code == 200
        assert resp.json()["audience"] == "owners"

    def test_empty_update(self, client, admin):
        toggle = _create(client, admin.headers).json()
        resp = client.patch(f"{API}/feature-toggles/{toggle['id']}", json={}, headers=admin.headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "NO_UPDATE_FIELDS"

    def test_null_enabled(self, client, admin):
        toggle = _create(client, admin.headers).json()
        resp = client.patch(f"{API}/feature-toggles/{toggle['id']}", json={"enabled": None}, headers=admin.headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ENABLED"

    def test_owner_cannot_update(self, client, admin, owner):
        toggle = _create(client, admin.headers).json()
        resp = client.patch(f"{API}/feature-toggles/{toggle['id']}", json={"enabled": True}, headers=owner.headers)
        assert resp.status_code == 403

    def test_delete(self, client, db_session, admin):
        toggle = _create(client, admin.headers).json()
        resp = client.delete(f"{API}/feature-toggles/{toggle['id']}", headers=admin.headers)
        assert resp.status_code == 200
        assert db_session.query(FeatureToggle).count() == 0
