"""
Tests for Access Endpoints

Test Coverage:
- Admin endpoints: whitelist add, status update, single and cohort approval, list
- Admin guard: missing session, non-admin, admin_user_ids, management disabled
- Public endpoints: waitlist join, access check
- Status notifications and the shared rate limit
"""

import pytest
from httpx import AsyncClient

from altiora.access.access_models import AccessControlOptions, AccessStatus
from altiora.auth.auth_models import ADMIN_ROLE, USER_ROLE
from altiora.tests.conftest import (
    NotificationRecorder,
    assert_error,
    assert_response_structure,
    client_for,
    create_user_headers,
    generate_test_email,
    seed_entry,
)


class TestWhitelistAdd:
    """Tests for POST /whitelist/add"""

    @pytest.mark.asyncio
    async def test_add_success(self, async_client: AsyncClient, admin_user, store, notifier):
        """Admin can add an email; it is stored approved and lowercased."""
        admin, headers = admin_user
        email = generate_test_email("Whitelist").upper()

        response = await async_client.post("/whitelist/add", json={"email": email}, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert_response_structure(data)
        assert data["message"] == "Email added to the whitelist"

        entry = await store.find_by_email(email)
        assert entry.email == email.lower()
        assert entry.status == AccessStatus.APPROVED
        assert entry.added_by == admin["user_id"]

        assert notifier.calls == [(email.lower(), AccessStatus.APPROVED, None)]

    @pytest.mark.asyncio
    async def test_add_duplicate(self, async_client: AsyncClient, admin_headers, store, notifier):
        """Adding an existing email fails and leaves the entry alone."""
        email = generate_test_email()
        await store.create(email, AccessStatus.PENDING)

        response = await async_client.post("/whitelist/add", json={"email": email}, headers=admin_headers)

        assert_error(response, 400, "EMAIL_ALREADY_EXISTS")
        entry = await store.find_by_email(email)
        assert entry.status == AccessStatus.PENDING
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_add_invalid_email(self, async_client: AsyncClient, admin_headers):
        response = await async_client.post("/whitelist/add", json={"email": "not-an-email"}, headers=admin_headers)
        assert response.status_code == 422


class TestAdminGuard:
    """Who may call the admin endpoints."""

    @pytest.mark.asyncio
    async def test_no_session(self, async_client: AsyncClient):
        response = await async_client.post("/whitelist/add", json={"email": generate_test_email()})
        assert_error(response, 401, "UNAUTHORIZED")
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, async_client: AsyncClient):
        response = await async_client.post(
            "/waitlist/approve-cohort",
            json={"count": 1},
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert_error(response, 401, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_non_admin(self, async_client: AsyncClient, user_headers, store):
        email = generate_test_email()

        response = await async_client.post("/whitelist/add", json={"email": email}, headers=user_headers)

        assert_error(response, 403, "ADMIN_REQUIRED")
        assert await store.find_by_email(email) is None

    @pytest.mark.asyncio
    async def test_admin_user_ids_override_role(self, store):
        """A non-empty admin_user_ids list decides privilege on its own."""
        listed_user, listed_headers = await create_user_headers(USER_ROLE)
        _, role_admin_headers = await create_user_headers(ADMIN_ROLE)
        options = AccessControlOptions(admin_user_ids=[listed_user["user_id"]])

        async with client_for(options) as client:
            allowed = await client.post("/whitelist/add", json={"email": generate_test_email()}, headers=listed_headers)
            denied = await client.post("/whitelist/add", json={"email": generate_test_email()}, headers=role_admin_headers)

        assert allowed.status_code == 200
        assert_error(denied, 403, "ADMIN_REQUIRED")

    @pytest.mark.asyncio
    async def test_management_disabled(self, admin_headers):
        options = AccessControlOptions(allow_admin_management=False)

        async with client_for(options) as client:
            response = await client.get("/access/list", headers=admin_headers)

        assert_error(response, 403, "ADMIN_REQUIRED")


class TestUpdateStatus:
    """Tests for POST /access/update-status"""

    @pytest.mark.asyncio
    async def test_update_success(self, async_client: AsyncClient, admin_headers, store, notifier):
        email = generate_test_email()
        await store.create(email, AccessStatus.APPROVED)

        response = await async_client.post(
            "/access/update-status",
            json={"email": email, "status": "rejected"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Status updated to rejected"
        entry = await store.find_by_email(email)
        assert entry.status == AccessStatus.REJECTED
        assert entry.updated_at >= entry.created_at
        assert notifier.calls == [(email, AccessStatus.REJECTED, AccessStatus.APPROVED)]

    @pytest.mark.asyncio
    async def test_update_not_found(self, async_client: AsyncClient, admin_headers, notifier):
        response = await async_client.post(
            "/access/update-status",
            json={"email": generate_test_email(), "status": "approved"},
            headers=admin_headers,
        )

        assert_error(response, 404, "EMAIL_NOT_FOUND")
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_update_invalid_status(self, async_client: AsyncClient, admin_headers, store):
        email = generate_test_email()
        await store.create(email, AccessStatus.PENDING)

        response = await async_client.post(
            "/access/update-status",
            json={"email": email, "status": "banned"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert (await store.find_by_email(email)).status == AccessStatus.PENDING


class TestApproveWaitlist:
    """Tests for POST /waitlist/approve and /waitlist/approve-cohort"""

    @pytest.mark.asyncio
    async def test_approve_pending(self, async_client: AsyncClient, admin_user, store, notifier):
        admin, headers = admin_user
        email = generate_test_email()
        await store.create(email, AccessStatus.PENDING)

        response = await async_client.post("/waitlist/approve", json={"email": email}, headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "User has been approved"
        entry = await store.find_by_email(email)
        assert entry.status == AccessStatus.APPROVED
        assert entry.added_by == admin["user_id"]
        assert notifier.calls == [(email, AccessStatus.APPROVED, AccessStatus.PENDING)]

    @pytest.mark.asyncio
    async def test_approve_already_approved(self, async_client: AsyncClient, admin_headers, store, notifier):
        email = generate_test_email()
        await store.create(email, AccessStatus.APPROVED, added_by="original-admin")

        response = await async_client.post("/waitlist/approve", json={"email": email}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "User is already approved"
        entry = await store.find_by_email(email)
        assert entry.added_by == "original-admin"
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_approve_not_found(self, async_client: AsyncClient, admin_headers):
        response = await async_client.post(
            "/waitlist/approve", json={"email": generate_test_email()}, headers=admin_headers
        )
        assert_error(response, 404, "EMAIL_NOT_FOUND")

    @pytest.mark.asyncio
    async def test_cohort_oldest_first(self, async_client: AsyncClient, admin_headers, memory_db, store, notifier):
        """Five pending entries, count=2: the two oldest are approved."""
        ages = {"c@x.com": 30, "a@x.com": 50, "e@x.com": 10, "b@x.com": 40, "d@x.com": 20}
        for email, minutes in ages.items():
            seed_entry(memory_db, email, AccessStatus.PENDING, created_minutes_ago=minutes)
        seed_entry(memory_db, "old-approved@x.com", AccessStatus.APPROVED, created_minutes_ago=90)

        response = await async_client.post("/waitlist/approve-cohort", json={"count": 2}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Approved 2 users from the waitlist"
        assert data["data"]["approved_count"] == 2
        assert data["data"]["approved_emails"] == ["a@x.com", "b@x.com"]

        for email in ("a@x.com", "b@x.com"):
            assert (await store.find_by_email(email)).status == AccessStatus.APPROVED
        for email in ("c@x.com", "d@x.com", "e@x.com"):
            assert (await store.find_by_email(email)).status == AccessStatus.PENDING

        assert sorted(call[0] for call in notifier.calls) == ["a@x.com", "b@x.com"]
        assert all(call[1:] == (AccessStatus.APPROVED, AccessStatus.PENDING) for call in notifier.calls)

    @pytest.mark.asyncio
    async def test_cohort_empty(self, async_client: AsyncClient, admin_headers, notifier):
        response = await async_client.post("/waitlist/approve-cohort", json={"count": 5}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "No pending waitlist entries found"
        assert data["data"]["approved_count"] == 0
        assert data["data"]["approved_emails"] == []
        assert notifier.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, -1, 2.5, "3", True])
    async def test_cohort_invalid_count(self, async_client: AsyncClient, admin_headers, count):
        response = await async_client.post("/waitlist/approve-cohort", json={"count": count}, headers=admin_headers)
        assert response.status_code == 422


class TestJoinWaitlist:
    """Tests for POST /waitlist/join"""

    @pytest.mark.asyncio
    async def test_join_new(self, async_client: AsyncClient, store):
        email = generate_test_email("Join").upper()

        response = await async_client.post("/waitlist/join", json={"email": email})

        assert response.status_code == 200
        data = response.json()
        assert_response_structure(data)
        assert data["message"] == "Successfully joined the waitlist"
        entry = await store.find_by_email(email)
        assert entry.email == email.lower()
        assert entry.status == AccessStatus.PENDING
        assert entry.added_by is None

    @pytest.mark.asyncio
    async def test_join_twice_keeps_one_entry(self, async_client: AsyncClient, memory_db, store):
        """The second join changes neither the status nor updated_at."""
        email = generate_test_email()

        first = await async_client.post("/waitlist/join", json={"email": email})
        joined = await store.find_by_email(email)
        second = await async_client.post("/waitlist/join", json={"email": email.upper()})

        assert first.json()["message"] == "Successfully joined the waitlist"
        assert second.status_code == 200
        assert second.json()["message"] == "Email is already on the waitlist"
        assert await memory_db.count("access_list") == 1
        assert (await store.find_by_email(email)).updated_at == joined.updated_at

    @pytest.mark.asyncio
    async def test_join_when_approved(self, async_client: AsyncClient, store):
        email = generate_test_email()
        await store.create(email, AccessStatus.APPROVED)

        response = await async_client.post("/waitlist/join", json={"email": email})

        assert response.json()["message"] == "Email is already approved"
        assert (await store.find_by_email(email)).status == AccessStatus.APPROVED

    @pytest.mark.asyncio
    async def test_rejoin_after_rejection(self, async_client: AsyncClient, store, notifier):
        email = generate_test_email()
        await store.create(email, AccessStatus.REJECTED)

        response = await async_client.post("/waitlist/join", json={"email": email})

        assert response.json()["message"] == "Successfully joined the waitlist"
        assert (await store.find_by_email(email)).status == AccessStatus.PENDING
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_join_disabled(self, store):
        email = generate_test_email()

        async with client_for(AccessControlOptions(allow_waitlist=False)) as client:
            response = await client.post("/waitlist/join", json={"email": email})

        assert_error(response, 403, "WAITLIST_DISABLED")
        assert await store.find_by_email(email) is None

    @pytest.mark.asyncio
    async def test_join_invalid_email(self, async_client: AsyncClient):
        response = await async_client.post("/waitlist/join", json={"email": "nope"})
        assert response.status_code == 422


class TestAccessCheck:
    """Tests for POST /access/check"""

    @pytest.mark.asyncio
    async def test_check_unknown(self, async_client: AsyncClient):
        response = await async_client.post("/access/check", json={"email": generate_test_email()})

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "not_found", "can_join_waitlist": True}

    @pytest.mark.asyncio
    async def test_check_unknown_waitlist_closed(self):
        async with client_for(AccessControlOptions(allow_waitlist=False)) as client:
            response = await client.post("/access/check", json={"email": generate_test_email()})

        assert response.json()["data"] == {"status": "not_found", "can_join_waitlist": False}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", list(AccessStatus))
    async def test_check_existing(self, async_client: AsyncClient, store, status):
        email = generate_test_email()
        await store.create(email, status)

        response = await async_client.post("/access/check", json={"email": email.upper()})

        assert response.json()["data"] == {
            "status": status.value,
            "is_approved": status == AccessStatus.APPROVED,
            "is_pending": status == AccessStatus.PENDING,
            "is_rejected": status == AccessStatus.REJECTED,
        }


class TestAccessList:
    """Tests for GET /access/list"""

    @pytest.mark.asyncio
    async def test_list_filters_and_pages(self, async_client: AsyncClient, admin_headers, memory_db):
        for index in range(5):
            seed_entry(memory_db, f"team{index}@corp.com", AccessStatus.PENDING, created_minutes_ago=index)
        seed_entry(memory_db, "outsider@home.net", AccessStatus.PENDING)
        seed_entry(memory_db, "teamlead@corp.com", AccessStatus.APPROVED)

        response = await async_client.get(
            "/access/list",
            params={"search": "CORP", "status": "pending", "sort_by": "created_at", "sort_order": "asc", "limit": 2, "page": 2},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [entry["email"] for entry in data["entries"]] == ["team2@corp.com", "team1@corp.com"]
        assert data["pagination"] == {
            "total": 5,
            "page": 2,
            "limit": 2,
            "total_pages": 3,
            "has_next_page": True,
            "has_previous_page": True,
        }

    @pytest.mark.asyncio
    async def test_list_rejects_bad_query(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get("/access/list", params={"limit": 500}, headers=admin_headers)
        assert response.status_code == 422


class TestNotifications:
    """Notification failures never reach the caller."""

    @pytest.mark.asyncio
    async def test_failing_notifier(self, admin_headers, store):
        failing = NotificationRecorder(fail=True)
        email = generate_test_email()
        await store.create(email, AccessStatus.PENDING)

        async with client_for(AccessControlOptions(send_status_notification=failing)) as client:
            response = await client.post("/waitlist/approve", json={"email": email}, headers=admin_headers)

        assert response.status_code == 200
        assert (await store.find_by_email(email)).status == AccessStatus.APPROVED
        assert failing.calls == [(email, AccessStatus.APPROVED, AccessStatus.PENDING)]

    @pytest.mark.asyncio
    async def test_no_notifier_configured(self, admin_headers, store):
        async with client_for(AccessControlOptions()) as client:
            response = await client.post("/whitelist/add", json={"email": generate_test_email()}, headers=admin_headers)

        assert response.status_code == 200


class TestRateLimit:
    """One per-IP bucket shared by every access-list endpoint."""

    @pytest.mark.asyncio
    async def test_eleventh_request_limited(self, async_client: AsyncClient, rate_limit_on):
        for _ in range(10):
            response = await async_client.post("/access/check", json={"email": generate_test_email()})
            assert response.status_code == 200

        response = await async_client.post("/access/check", json={"email": generate_test_email()})
        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_bucket_shared_across_paths(self, async_client: AsyncClient, rate_limit_on):
        for _ in range(10):
            await async_client.post("/waitlist/join", json={"email": generate_test_email()})

        response = await async_client.post("/access/check", json={"email": generate_test_email()})
        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_other_routes_not_limited(self, async_client: AsyncClient, rate_limit_on):
        for _ in range(11):
            await async_client.post("/access/check", json={"email": generate_test_email()})

        response = await async_client.get("/health")
        assert response.status_code == 200
