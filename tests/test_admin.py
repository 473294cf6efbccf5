"""Admin user management and audit-log tests."""

from uuid import uuid4

import pytest
from sqlalchemy import select, text

from osintdesk.core.audit import record_audit
from osintdesk.models.audit import AuditLog
from osintdesk.models.iam.users import Profile
from osintdesk.models.jobs import Job


async def _actions(db_session, action):
    result = await db_session.execute(select(AuditLog).where(AuditLog.action == action))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_non_admin_is_forbidden(test_client, auth_headers):
    resp = await test_client.get("/api/v1/admin/users", headers=auth_headers)
    assert resp.status_code == 403
    resp = await test_client.get("/api/v1/admin/audit-logs", headers=auth_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_users(test_client, seed_user, admin_headers):
    resp = await test_client.get("/api/v1/admin/users", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 2

    resp = await test_client.get(
        "/api/v1/admin/users", headers=admin_headers, params={"role": "admin"}
    )
    assert [u["email"] for u in resp.json()["data"]["users"]] == ["boss@example.com"]

    resp = await test_client.get(
        "/api/v1/admin/users", headers=admin_headers, params={"search": "analyst"}
    )
    assert [u["user_id"] for u in resp.json()["data"]["users"]] == [
        str(seed_user.user_id)
    ]


@pytest.mark.asyncio
async def test_get_user_includes_usage_and_is_audited(
    test_client, db_session, seed_user, admin_user, admin_headers, job_factory,
    investigation_factory,
):
    await job_factory(seed_user.user_id)
    await job_factory(seed_user.user_id)
    await investigation_factory(seed_user.user_id)

    resp = await test_client.get(
        f"/api/v1/admin/users/{seed_user.user_id}", headers=admin_headers
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["email"] == seed_user.email
    assert data["usage"] == {"jobs": 2, "investigations": 1, "reports": 0}

    entries = await _actions(db_session, "view_user_details")
    assert len(entries) == 1
    assert entries[0].actor_id == admin_user.user_id
    assert entries[0].resource_id == str(seed_user.user_id)


@pytest.mark.asyncio
async def test_get_unknown_user(test_client, admin_headers):
    resp = await test_client.get(f"/api/v1/admin/users/{uuid4()}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_suspension_applies_to_next_request(
    test_client, db_session, seed_user, auth_headers, admin_headers
):
    assert (
        await test_client.get("/api/v1/iam/users/me", headers=auth_headers)
    ).status_code == 200

    resp = await test_client.patch(
        f"/api/v1/admin/users/{seed_user.user_id}",
        headers=admin_headers,
        json={"is_suspended": True, "suspension_reason": "abuse of scanners"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["is_suspended"] is True
    assert data["suspension_reason"] == "abuse of scanners"

    resp = await test_client.get("/api/v1/iam/users/me", headers=auth_headers)
    assert resp.status_code == 403

    entries = await _actions(db_session, "update_user")
    assert entries[0].metadata_attributes["is_suspended"] is True

    resp = await test_client.patch(
        f"/api/v1/admin/users/{seed_user.user_id}",
        headers=admin_headers,
        json={"is_suspended": False},
    )
    data = resp.json()["data"]
    assert data["is_suspended"] is False
    assert data["suspension_reason"] is None
    assert (
        await test_client.get("/api/v1/iam/users/me", headers=auth_headers)
    ).status_code == 200


@pytest.mark.asyncio
async def test_promotion_applies_to_next_request(
    test_client, seed_user, auth_headers, admin_headers
):
    resp = await test_client.patch(
        f"/api/v1/admin/users/{seed_user.user_id}",
        headers=admin_headers,
        json={"role": "admin"},
    )
    assert resp.json()["data"]["role"] == "admin"

    resp = await test_client.get("/api/v1/admin/users", headers=auth_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body", [{"is_suspended": True}, {"role": "user"}, {"role": "pro"}]
)
async def test_admin_cannot_lock_themselves_out(
    test_client, db_session, admin_user, admin_headers, body
):
    resp = await test_client.patch(
        f"/api/v1/admin/users/{admin_user.user_id}", headers=admin_headers, json=body
    )
    assert resp.status_code == 400
    assert await _actions(db_session, "update_user") == []

    resp = await test_client.get("/api/v1/admin/users", headers=admin_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_admin_can_rename_themselves(test_client, admin_user, admin_headers):
    resp = await test_client.patch(
        f"/api/v1/admin/users/{admin_user.user_id}",
        headers=admin_headers,
        json={"full_name": "The Boss", "role": "admin"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["full_name"] == "The Boss"


@pytest.mark.asyncio
async def test_delete_user_cascades(
    test_client, db_session, seed_user, admin_headers, job_factory
):
    job = await job_factory(seed_user.user_id)

    resp = await test_client.delete(
        f"/api/v1/admin/users/{seed_user.user_id}", headers=admin_headers
    )
    assert resp.status_code == 200

    resp = await test_client.get(
        f"/api/v1/admin/users/{seed_user.user_id}", headers=admin_headers
    )
    assert resp.status_code == 404

    remaining = await db_session.execute(select(Job.job_id).where(Job.job_id == job.job_id))
    assert remaining.scalar_one_or_none() is None

    entries = await _actions(db_session, "delete_user")
    assert entries[0].metadata_attributes == {"email": seed_user.email}


@pytest.mark.asyncio
async def test_admin_cannot_delete_themselves(test_client, admin_user, admin_headers):
    resp = await test_client.delete(
        f"/api/v1/admin/users/{admin_user.user_id}", headers=admin_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_audit_log_listing(
    test_client, seed_user, admin_user, auth_headers, admin_headers
):
    await test_client.post(
        "/api/v1/investigations", headers=auth_headers, json={"name": "Case"}
    )
    await test_client.get(
        f"/api/v1/admin/users/{seed_user.user_id}", headers=admin_headers
    )

    resp = await test_client.get("/api/v1/admin/audit-logs", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 2

    resp = await test_client.get(
        "/api/v1/admin/audit-logs",
        headers=admin_headers,
        params={"action": "investigation_created"},
    )
    entries = resp.json()["data"]["audit_logs"]
    assert len(entries) == 1
    assert entries[0]["actor_id"] == str(seed_user.user_id)
    assert entries[0]["resource_type"] == "investigation"
    assert entries[0]["metadata"] == {"name": "Case"}

    resp = await test_client.get(
        "/api/v1/admin/audit-logs",
        headers=admin_headers,
        params={"actor_id": str(admin_user.user_id)},
    )
    assert [e["action"] for e in resp.json()["data"]["audit_logs"]] == [
        "view_user_details"
    ]


async def _break_audit_table(db_session):
    await db_session.execute(text("DROP TABLE audit_logs"))
    await db_session.commit()


@pytest.mark.asyncio
async def test_failed_audit_write_keeps_the_update(
    test_client, db_session, seed_user, admin_headers
):
    await _break_audit_table(db_session)

    resp = await test_client.patch(
        f"/api/v1/admin/users/{seed_user.user_id}",
        headers=admin_headers,
        json={"full_name": "Renamed"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["full_name"] == "Renamed"

    result = await db_session.execute(
        select(Profile.full_name).where(Profile.user_id == seed_user.user_id)
    )
    assert result.scalar_one() == "Renamed"


@pytest.mark.asyncio
async def test_record_audit_returns_none_and_leaves_loaded_rows_usable(
    db_session, seed_user
):
    await _break_audit_table(db_session)

    entry = await record_audit(db_session, seed_user.user_id, "job_created", "job", uuid4())

    assert entry is None
    # still loaded: no lazy refresh needed after the failed write
    assert seed_user.email == "analyst@example.com"
    assert seed_user.full_name == "Analyst"
