import pytest

from crewleave.core.security import hash_password
from crewleave.models.leave_request import PENDING


@pytest.fixture
async def admin(make_user):
    return await make_user(role="admin", position=None, allocated=None, email="ops@example.com")


@pytest.fixture
async def captain(make_user):
    return await make_user(position="captain", allocated=10)


# ── health & auth ────────────────────────────────────────────────────────────


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_login_and_me(client, make_user):
    await make_user(email="pilot@example.com", password_hash=hash_password("hunter22"))

    resp = await client.post(
        "/api/v1/auth/login", json={"email": "pilot@example.com", "password": "hunter22"}
    )
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "pilot@example.com"
    assert me.json()["position"] == "captain"


async def test_login_rejects_bad_password(client, make_user):
    await make_user(email="pilot@example.com", password_hash=hash_password("hunter22"))
    resp = await client.post(
        "/api/v1/auth/login", json={"email": "pilot@example.com", "password": "wrong"}
    )
    assert resp.status_code == 401


async def test_requests_need_a_token(client):
    resp = await client.get("/api/v1/leave/balance")
    assert resp.status_code in (401, 403)


async def test_forgot_password_is_rate_limited(client, make_user, outbox):
    await make_user(email="pilot@example.com")
    body = {"email": "pilot@example.com"}

    for _ in range(2):
        resp = await client.post("/api/v1/auth/forgot-password", json=body)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
    assert len(outbox.sent) == 2
    assert "reset-password?token=" in outbox.sent[0]["body"]

    resp = await client.post("/api/v1/auth/forgot-password", json=body)
    assert resp.status_code == 429


async def test_forgot_password_does_not_reveal_unknown_emails(client, outbox):
    resp = await client.post(
        "/api/v1/auth/forgot-password", json={"email": "ghost@example.com"}
    )
    assert resp.status_code == 200
    assert outbox.sent == []


async def test_invite_then_register(client, admin, headers_for, outbox):
    resp = await client.post(
        "/api/v1/invites",
        json={
            "email": "fo@example.com",
            "first_name": "Fay",
            "last_name": "Olsen",
            "position": "first_officer",
            "days_allocated": 18,
        },
        headers=headers_for(admin),
    )
    assert resp.status_code == 201
    assert outbox.sent[0]["to"] == "fo@example.com"
    code = outbox.sent[0]["body"].split("verification code is ")[1][:6]

    resp = await client.post(
        "/api/v1/auth/complete-registration",
        json={"email": "fo@example.com", "otp_code": code, "password": "secret1"},
    )
    assert resp.status_code == 201
    token = resp.json()["access_token"]

    balance = await client.get(
        "/api/v1/leave/balance", headers={"Authorization": f"Bearer {token}"}
    )
    assert balance.json() == {"year": 2026, "allocated": 18, "used": 0, "remaining": 18}


async def test_employees_cannot_invite(client, captain, headers_for):
    resp = await client.post(
        "/api/v1/invites",
        json={
            "email": "x@example.com",
            "first_name": "X",
            "last_name": "Y",
            "days_allocated": 5,
        },
        headers=headers_for(captain),
    )
    assert resp.status_code == 403


# ── leave lifecycle ──────────────────────────────────────────────────────────


async def test_submit_approve_delete_over_http(client, admin, captain, headers_for):
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-11", "reason": "Family"},
        headers=headers_for(captain),
    )
    assert resp.status_code == 201
    payload = resp.json()
    assert payload["status"] == PENDING
    assert payload["days"] == 5
    assert payload["startDate"] == "2026-01-05"
    assert "createdAt" in payload
    request_id = payload["id"]

    resp = await client.post(
        "/api/v1/leave/requests/approve",
        json={"requestId": request_id, "adminNotes": "ok"},
        headers=headers_for(admin),
    )
    assert resp.json() == {"success": True}

    balance = await client.get("/api/v1/leave/balance", headers=headers_for(captain))
    assert balance.json()["used"] == 5

    resp = await client.delete(
        f"/api/v1/leave/requests/{request_id}", headers=headers_for(admin)
    )
    assert resp.json() == {"success": True, "daysRestored": 5}
    balance = await client.get("/api/v1/leave/balance", headers=headers_for(captain))
    assert balance.json()["used"] == 0


async def test_rejection_message_reaches_the_caller(client, captain, headers_for):
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-02-02", "endDate": "2026-02-17"},
        headers=headers_for(captain),
    )
    assert resp.status_code == 400
    assert resp.json() == {
        "detail": "Insufficient leave balance. You have 10 days remaining, "
        "but requested 12 days."
    }


async def test_state_errors_are_400(client, admin, captain, headers_for):
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-06"},
        headers=headers_for(captain),
    )
    request_id = resp.json()["id"]
    await client.post(
        "/api/v1/leave/requests/deny",
        json={"requestId": request_id},
        headers=headers_for(admin),
    )
    resp = await client.post(
        "/api/v1/leave/requests/approve",
        json={"requestId": request_id},
        headers=headers_for(admin),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only pending requests can be approved"


async def test_employees_cannot_approve(client, captain, headers_for):
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-06"},
        headers=headers_for(captain),
    )
    resp = await client.post(
        "/api/v1/leave/requests/approve",
        json={"requestId": resp.json()["id"]},
        headers=headers_for(captain),
    )
    assert resp.status_code == 403


async def test_cancel_someone_elses_request_is_forbidden(
    client, captain, make_user, headers_for
):
    colleague = await make_user(position="captain")
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-06"},
        headers=headers_for(captain),
    )
    request_id = resp.json()["id"]

    resp = await client.post(
        f"/api/v1/leave/requests/{request_id}/cancel", headers=headers_for(colleague)
    )
    assert resp.status_code == 403

    resp = await client.post(
        f"/api/v1/leave/requests/{request_id}/cancel", headers=headers_for(captain)
    )
    assert resp.json() == {"success": True}


async def test_listing_is_scoped_to_the_caller(client, admin, captain, make_user, headers_for):
    colleague = await make_user(position="captain")
    for user in (captain, colleague):
        await client.post(
            "/api/v1/leave/requests",
            json={"startDate": "2026-01-05", "endDate": "2026-01-06"},
            headers=headers_for(user),
        )

    own = await client.get("/api/v1/leave/requests", headers=headers_for(captain))
    assert own.json()["total"] == 1
    everyone = await client.get(
        "/api/v1/leave/requests", params={"status": "pending"}, headers=headers_for(admin)
    )
    assert everyone.json()["total"] == 2
    bad = await client.get(
        "/api/v1/leave/requests", params={"status": "lost"}, headers=headers_for(admin)
    )
    assert bad.status_code == 400


async def test_admin_add_and_capacity_query(client, admin, make_user, headers_for):
    captains = [await make_user(position="captain") for _ in range(5)]
    for captain in captains:
        resp = await client.post(
            "/api/v1/leave/admin/add",
            json={"userId": str(captain.id), "startDate": "2026-03-10", "endDate": "2026-03-10"},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "approved"
        assert resp.json()["reason"] == "Added by admin"

    resp = await client.get(
        "/api/v1/leave/capacity", params={"position": "captain"}, headers=headers_for(admin)
    )
    assert resp.json() == {"position": "captain", "disabledDates": ["2026-03-10"]}

    resp = await client.get(
        "/api/v1/leave/capacity",
        params={"position": "captain", "userId": str(captains[0].id)},
        headers=headers_for(admin),
    )
    assert resp.json()["disabledDates"] == []

    resp = await client.get(
        "/api/v1/leave/capacity", params={"position": "purser"}, headers=headers_for(admin)
    )
    assert resp.status_code == 400


async def test_users_with_remaining_days(client, admin, make_user, headers_for):
    spare = await make_user(allocated=10, used=3)
    await make_user(allocated=10, used=10)

    resp = await client.get(
        "/api/v1/leave/users-with-remaining-days", headers=headers_for(admin)
    )
    assert [row["id"] for row in resp.json()] == [str(spare.id)]
    assert resp.json()[0]["daysRemaining"] == 7


# ── settings, calendar, dashboard, reminders ─────────────────────────────────


async def test_settings_sanitise_weekdays_and_upsert_holidays(
    client, admin, captain, headers_for
):
    resp = await client.put(
        "/api/v1/settings/leave",
        json={"excluded_weekdays": [6, 0, 6, 9]},
        headers=headers_for(admin),
    )
    assert resp.json()["excluded_weekdays"] == [0, 6]

    for name in ("Founders Day", "Founders' Day"):
        resp = await client.post(
            "/api/v1/settings/leave/holidays",
            json={"holiday_date": "2026-01-07", "name": name},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201

    resp = await client.get("/api/v1/settings/leave", headers=headers_for(captain))
    holidays = resp.json()["holidays"]
    assert [(h["holiday_date"], h["name"]) for h in holidays] == [
        ("2026-01-07", "Founders' Day")
    ]

    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-11"},
        headers=headers_for(captain),
    )
    assert resp.json()["days"] == 4

    resp = await client.delete(
        f"/api/v1/settings/leave/holidays/{holidays[0]['id']}", headers=headers_for(admin)
    )
    assert resp.json() == {"success": True}
    resp = await client.delete(
        f"/api/v1/settings/leave/holidays/{holidays[0]['id']}", headers=headers_for(admin)
    )
    assert resp.status_code == 404


async def test_calendar_lists_chargeable_days_of_approved_leave(
    client, admin, captain, headers_for
):
    await client.post(
        "/api/v1/leave/admin/add",
        json={"userId": str(captain.id), "startDate": "2026-01-09", "endDate": "2026-01-13"},
        headers=headers_for(admin),
    )
    resp = await client.get(
        "/api/v1/calendar/leave",
        params={"start": "2026-01-01", "end": "2026-01-12"},
        headers=headers_for(captain),
    )
    days = [entry["day"] for entry in resp.json()["days"]]
    assert days == ["2026-01-09", "2026-01-12"]


async def test_dashboard_stats(client, admin, captain, headers_for):
    await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-05", "endDate": "2026-01-06"},
        headers=headers_for(captain),
    )
    resp = await client.get("/api/v1/dashboard/stats", headers=headers_for(admin))
    stats = resp.json()
    assert stats["pendingRequests"] == 1
    assert stats["totalEmployees"] == 1
    assert stats["availableDays"] == 10


async def test_reminder_emails_remaining_balance(
    client, admin, captain, make_user, headers_for, outbox
):
    resp = await client.post(
        "/api/v1/reminders/send", json={"userId": str(captain.id)}, headers=headers_for(admin)
    )
    assert resp.json() == {"success": True}
    assert outbox.sent[-1]["to"] == captain.email
    assert "10 leave days" in outbox.sent[-1]["subject"]

    spent = await make_user(allocated=5, used=5)
    resp = await client.post(
        "/api/v1/reminders/send", json={"userId": str(spent.id)}, headers=headers_for(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User has no remaining leave days"


async def test_reminder_delivery_failure_is_reported(client, admin, captain, headers_for, outbox):
    outbox.result = False
    resp = await client.post(
        "/api/v1/reminders/send", json={"userId": str(captain.id)}, headers=headers_for(admin)
    )
    assert resp.status_code == 502


async def test_upcoming_leave_lists_approved_leave_soonest_first(
    client, admin, captain, make_user, headers_for
):
    officer = await make_user(position="first_officer")
    for user, start, end in (
        (captain, "2026-03-02", "2026-03-03"),
        (officer, "2026-02-02", "2026-02-03"),
    ):
        resp = await client.post(
            "/api/v1/leave/admin/add",
            json={"userId": str(user.id), "startDate": start, "endDate": end},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201
    await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2026-01-12", "endDate": "2026-01-13"},
        headers=headers_for(captain),
    )

    resp = await client.get("/api/v1/dashboard/upcoming-leave", headers=headers_for(captain))
    assert resp.status_code == 200
    rows = resp.json()
    assert [(row["userId"], row["startDate"]) for row in rows] == [
        (str(officer.id), "2026-02-02"),
        (str(captain.id), "2026-03-02"),
    ]
    assert rows[0]["days"] == 2
    assert rows[0]["position"] == "first_officer"

    resp = await client.get(
        "/api/v1/dashboard/upcoming-leave", params={"limit": 1}, headers=headers_for(captain)
    )
    assert len(resp.json()) == 1


async def test_approval_over_the_balance_is_refused(client, admin, captain, headers_for):
    ids = []
    for start, end in (("2026-02-02", "2026-02-11"), ("2026-03-02", "2026-03-11")):
        resp = await client.post(
            "/api/v1/leave/requests",
            json={"startDate": start, "endDate": end},
            headers=headers_for(captain),
        )
        assert resp.status_code == 201
        ids.append(resp.json()["id"])

    resp = await client.post(
        "/api/v1/leave/requests/approve", json={"requestId": ids[0]}, headers=headers_for(admin)
    )
    assert resp.status_code == 200
    resp = await client.post(
        "/api/v1/leave/requests/approve", json={"requestId": ids[1]}, headers=headers_for(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == (
        "Insufficient leave balance. User has 2 days remaining, but requested 8 days."
    )


# ── user administration & profile ────────────────────────────────────────────


async def test_allocation_opens_next_year_for_booking(client, admin, captain, headers_for):
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2027-02-01", "endDate": "2027-02-05"},
        headers=headers_for(captain),
    )
    assert resp.status_code == 404

    resp = await client.post(
        f"/api/v1/users/{captain.id}/leave-balance",
        json={"year": 2027, "daysAllocated": 20},
        headers=headers_for(admin),
    )
    assert resp.status_code == 201
    assert resp.json() == {"year": 2027, "allocated": 20, "used": 0, "remaining": 20}

    resp = await client.post(
        "/api/v1/leave/requests",
        json={"startDate": "2027-02-01", "endDate": "2027-02-05"},
        headers=headers_for(captain),
    )
    assert resp.status_code == 201
    assert resp.json()["days"] == 5

    resp = await client.post(
        f"/api/v1/users/{captain.id}/leave-balance",
        json={"year": 2027, "daysAllocated": 25},
        headers=headers_for(admin),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Allocation already exists for 2027"


async def test_allocation_defaults_to_the_booking_year(client, admin, make_user, headers_for):
    newcomer = await make_user(allocated=None)
    resp = await client.post(
        f"/api/v1/users/{newcomer.id}/leave-balance",
        json={"daysAllocated": 12},
        headers=headers_for(admin),
    )
    assert resp.status_code == 201
    assert resp.json()["year"] == 2026


async def test_admin_edits_lists_and_deletes_users(client, admin, captain, headers_for):
    resp = await client.put(
        f"/api/v1/users/{captain.id}",
        json={"position": "first_officer", "phone": "555-0100"},
        headers=headers_for(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["position"] == "first_officer"
    assert resp.json()["phone"] == "555-0100"

    resp = await client.put(
        f"/api/v1/users/{captain.id}", json={"position": "purser"}, headers=headers_for(admin)
    )
    assert resp.status_code == 400

    resp = await client.get(
        "/api/v1/users", params={"position": "first_officer"}, headers=headers_for(admin)
    )
    assert [row["id"] for row in resp.json()] == [str(captain.id)]

    resp = await client.delete(f"/api/v1/users/{captain.id}", headers=headers_for(admin))
    assert resp.status_code == 200
    assert captain.email in resp.json()["message"]

    resp = await client.get("/api/v1/users", headers=headers_for(admin))
    assert str(captain.id) not in [row["id"] for row in resp.json()]

    resp = await client.get("/api/v1/auth/me", headers=headers_for(captain))
    assert resp.status_code == 401


async def test_admin_cannot_delete_own_account(client, admin, headers_for):
    resp = await client.delete(f"/api/v1/users/{admin.id}", headers=headers_for(admin))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You cannot delete your own account"


async def test_employees_cannot_manage_users(client, captain, make_user, headers_for):
    colleague = await make_user()
    resp = await client.put(
        f"/api/v1/users/{colleague.id}", json={"phone": "1"}, headers=headers_for(captain)
    )
    assert resp.status_code == 403
    resp = await client.delete(f"/api/v1/users/{colleague.id}", headers=headers_for(captain))
    assert resp.status_code == 403
    resp = await client.post(
        f"/api/v1/users/{colleague.id}/leave-balance",
        json={"year": 2027, "daysAllocated": 20},
        headers=headers_for(captain),
    )
    assert resp.status_code == 403


async def test_profile_edit_cannot_change_role(client, captain, headers_for):
    resp = await client.put(
        "/api/v1/auth/me",
        json={"first_name": "Maya", "role": "admin"},
        headers=headers_for(captain),
    )
    assert resp.status_code == 200
    assert resp.json()["first_name"] == "Maya"
    assert resp.json()["role"] == "employee"


async def test_change_password_then_login(client, make_user, headers_for):
    pilot = await make_user(email="pilot@example.com", password_hash=hash_password("hunter22"))

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"currentPassword": "wrong-one", "newPassword": "hunter33"},
        headers=headers_for(pilot),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Current password is incorrect"

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"currentPassword": "hunter22", "newPassword": "hunter33"},
        headers=headers_for(pilot),
    )
    assert resp.status_code == 200

    resp = await client.post(
        "/api/v1/auth/login", json={"email": "pilot@example.com", "password": "hunter33"}
    )
    assert resp.status_code == 200
