"""Public QR page tests."""

import pytest

API = "/api/v1"


class TestQRPage:
    def test_page_for_active_staff(self, client, staff):
        resp = client.get(f"{API}/qr/{staff.qr_key}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["staff"]["displayName"] == "Asha"
        assert body["restaurant"]["name"] == "Spice Garden"
        assert body["upiIdResolved"] == "spicegarden@upi"
        assert body["upiLink"].startswith("upi://pay?pa=spicegarden@upi&pn=Asha&cu=INR")
        assert "am=" not in body["upiLink"]
        assert "tn=Tip%20for%20Asha%20@%20Spice%20Garden" in body["upiLink"]

    def test_staff_upi_overrides_restaurant(self, client, restaurant, make_staff):
        staff = make_staff(restaurant, "Ravi", upi_id="ravi@okbank")
        body = client.get(f"{API}/qr/{staff.qr_key}").json()
        assert body["upiIdResolved"] == "ravi@okbank"
        assert body["restaurant"]["upiId"] == "spicegarden@upi"
        assert "pa=ravi@okbank" in body["upiLink"]

    def test_amount_prefills_link(self, client, staff):
        body = client.get(f"{API}/qr/{staff.qr_key}?amount=50").json()
        assert "am=50.00" in body["upiLink"]

    def test_bad_amount(self, client, staff):
        resp = client.get(f"{API}/qr/{staff.qr_key}?amount=lots")
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_AMOUNT"

    @pytest.mark.parametrize("amount", ["NaN", "sNaN", "Infinity"])
    def test_non_finite_amount(self, client, staff, amount):
        resp = client.get(f"{API}/qr/{staff.qr_key}", params={"amount": amount})
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_AMOUNT"

    def test_out_of_range_amount(self, client, staff):
        resp = client.get(f"{API}/qr/{staff.qr_key}?amount=0.5")
        assert resp.status_code == 400
        assert resp.json()["code"] == "AMOUNT_OUT_OF_RANGE"

    def test_only_public_activity(self, client, staff, make_review, make_tip):
        make_review(staff, rating=5, comment="Lovely")
        make_review(staff, rating=4)
        make_review(staff, rating=1, approved=False)
        make_tip(staff, amount_cents=5000)
        make_tip(staff, amount_cents=9000, status="failed")
        body = client.get(f"{API}/qr/{staff.qr_key}").json()
        assert sorted(r["rating"] for r in body["recentReviews"]) == [4, 5]
        assert [t["amountCents"] for t in body["recentTips"]] == [5000]
        assert body["stats"] == {
            "reviewCount": 2,
            "averageRating": 4.5,
            "tipCount": 1,
            "totalTipsAmount": 5000,
        }

    def test_empty_stats(self, client, staff):
        stats = client.get(f"{API}/qr/{staff.qr_key}").json()["stats"]
        assert stats["averageRating"] is None
        assert stats["tipCount"] == 0

    def test_recent_lists_are_capped(self, client, staff, make_tip):
        for _ in range(7):
            make_tip(staff, amount_cents=1000)
        body = client.get(f"{API}/qr/{staff.qr_key}").json()
        assert len(body["recentTips"]) == 5
        assert body["stats"]["tipCount"] == 7

    def test_unknown_key(self, client):
        resp = client.get(f"{API}/qr/nobody-123")
        assert resp.status_code == 404
        assert resp.json()["code"] == "STAFF_NOT_FOUND"

    def test_inactive_staff(self, client, restaurant, make_staff):
        staff = make_staff(restaurant, "Ravi", status="inactive")
        resp = client.get(f"{API}/qr/{staff.qr_key}")
        assert resp.status_code == 404
        assert resp.json()["code"] == "STAFF_INACTIVE"
