from datetime import timedelta

from gymdesk.core.config import settings
from gymdesk.core.timeutils import utc_now

from factories import make_member, make_open_visit, make_plan, make_subscription


def test_check_in_returns_201_with_member_and_subscription(client, db, auth_headers, staff_user):
    member = make_member(db, first_name="Dana")
    subscription = make_subscription(db, member, make_plan(db, name="Ten Pack", max_visits=10))

    resp = client.post(
        "/api/v1/attendance/check-in",
        json={"identifier": f"  {member.member_code} "},
        headers=auth_headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["member"]["id"] == member.id
    assert body["subscription"]["id"] == subscription.id
    assert body["subscription"]["plan_name"] == "Ten Pack"
    assert body["subscription"]["remaining_visits"] == 9
    assert body["attendance"]["status"] == "checked_in"
    assert body["attendance"]["check_out_time"] is None
    assert body["attendance"]["processed_by"] == staff_user.id


def test_check_in_error_envelopes(client, db, auth_headers):
    resp = client.post("/api/v1/attendance/check-in", json={"identifier": "missing"}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Member not found", "code": "member_not_found"}

    inactive = make_member(db, is_active=False)
    resp = client.post("/api/v1/attendance/check-in", json={"identifier": inactive.member_code}, headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Member account is inactive"
    assert resp.json()["code"] == "member_inactive"

    expired = make_member(db)
    make_subscription(
        db, expired, make_plan(db),
        start_date=utc_now() - timedelta(days=31),
        end_date=utc_now() - timedelta(days=1),
    )
    resp = client.post("/api/v1/attendance/check-in", json={"identifier": expired.member_code}, headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Membership has expired"


def test_double_check_in_is_409_with_open_visit_details(client, db, auth_headers):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))
    first = client.post("/api/v1/attendance/check-in", json={"identifier": member.member_code}, headers=auth_headers)

    resp = client.post("/api/v1/attendance/check-in", json={"identifier": member.member_code}, headers=auth_headers)

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "Member already checked in"
    assert body["details"]["attendance_id"] == first.json()["attendance"]["id"]
    assert "check_in_time" in body["details"]


def test_manual_check_in(client, db, auth_headers):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))

    resp = client.post(
        "/api/v1/attendance/manual-check-in",
        json={"member_id": member.id, "notes": "forgot card"},
        headers=auth_headers,
    )

    assert resp.status_code == 201
    assert resp.json()["attendance"]["notes"] == "forgot card"


def test_blank_identifier_is_400(client, auth_headers):
    resp = client.post("/api/v1/attendance/check-in", json={"identifier": "   "}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_check_out_then_second_check_out_404(client, db, auth_headers):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))
    checked_in = client.post("/api/v1/attendance/check-in", json={"identifier": member.member_code}, headers=auth_headers)
    attendance_id = checked_in.json()["attendance"]["id"]

    resp = client.post("/api/v1/attendance/check-out", json={"attendance_id": attendance_id}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["attendance"]["status"] == "checked_out"
    assert resp.json()["attendance"]["check_out_time"] is not None

    resp = client.post("/api/v1/attendance/check-out", json={"attendance_id": attendance_id}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Active check-in not found or already checked out"


def test_logs_pagination_and_currently_checked_in(client, db, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "ATTENDANCE_OPEN_LIST_LIMIT", 2)
    now = utc_now()
    members = [make_member(db) for _ in range(3)]
    for minutes, member in enumerate(members):
        make_open_visit(db, member, check_in_time=now - timedelta(minutes=minutes))

    resp = client.get("/api/v1/attendance/logs", params={"page": 1, "limit": 2}, headers=auth_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert [r["member_id"] for r in body["data"]] == [members[0].id, members[1].id]
    assert len(body["currently_checked_in"]) == 2
    assert body["currently_checked_in"][0]["member_id"] == members[0].id


def test_logs_filter_by_member(client, db, auth_headers):
    alice = make_member(db)
    bob = make_member(db)
    make_open_visit(db, alice)
    make_open_visit(db, bob)

    resp = client.get("/api/v1/attendance/logs", params={"member_id": bob.id}, headers=auth_headers)

    assert resp.status_code == 200
    assert [r["member_id"] for r in resp.json()["data"]] == [bob.id]
    assert resp.json()["data"][0]["member"]["id"] == bob.id


def test_logs_rejects_out_of_range_paging(client, auth_headers):
    for params in ({"page": 0}, {"limit": 0}, {"limit": 101}):
        resp = client.get("/api/v1/attendance/logs", params=params, headers=auth_headers)
        assert resp.status_code == 400, params
        assert resp.json()["code"] == "validation_error"


def test_logs_rejects_inverted_date_range(client, auth_headers):
    resp = client.get(
        "/api/v1/attendance/logs",
        params={"start_date": "2026-05-02T00:00:00", "end_date": "2026-05-01T00:00:00"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_date_range"


def test_get_attendance_record(client, db, auth_headers):
    visit = make_open_visit(db, make_member(db))

    resp = client.get(f"/api/v1/attendance/{visit.id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "checked_in"

    resp = client.get("/api/v1/attendance/999", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "attendance_not_found"


def test_attendance_requires_authentication(client):
    resp = client.post("/api/v1/attendance/check-in", json={"identifier": "abc"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required", "code": "unauthorized"}
    assert resp.headers["www-authenticate"] == "Bearer"
