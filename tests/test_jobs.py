"""Job creation, dispatch, listing and retry tests."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from osintdesk.models.audit import AuditLog
from osintdesk.models.jobs import Job


@pytest.mark.asyncio
async def test_create_job_dispatches_to_worker(
    test_client, seed_user, auth_headers, mock_celery
):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={
            "tool_name": "sherlock",
            "input_data": {"username": "johndoe"},
            "priority": 3,
        },
    )
    assert resp.status_code == 201, resp.text
    job = resp.json()["data"]
    assert job["status"] == "pending"
    assert job["progress"] == 0
    assert job["priority"] == 3
    assert job["input_data"] == {"username": "johndoe", "timeout": 60}
    assert job["user_id"] == str(seed_user.user_id)

    assert len(mock_celery) == 1
    task = mock_celery[0]
    assert task["name"] == "osint_tools.run_tool"
    assert task["queue"] == "osint_tools"
    assert task["priority"] == 3
    assert task["kwargs"]["job_id"] == job["job_id"]
    assert task["kwargs"]["tool_name"] == "sherlock"
    assert task["kwargs"]["user_id"] == str(seed_user.user_id)


@pytest.mark.asyncio
async def test_create_job_writes_audit_entry(
    test_client, db_session, seed_user, auth_headers, mock_celery
):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers={**auth_headers, "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        json={"tool_name": "holehe", "input_data": {"email": "john@example.com"}},
    )
    assert resp.status_code == 201

    entry = (
        await db_session.execute(
            select(AuditLog).where(AuditLog.action == "job_created")
        )
    ).scalar_one()
    assert entry.actor_id == seed_user.user_id
    assert entry.resource_id == resp.json()["data"]["job_id"]
    assert entry.ip_address == "203.0.113.9"
    assert entry.metadata_attributes == {"tool_name": "holehe"}


@pytest.mark.asyncio
async def test_create_job_invalid_input_writes_nothing(
    test_client, db_session, auth_headers, mock_celery
):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={"tool_name": "theharvester", "input_data": {"domain": "nope"}},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert mock_celery == []
    count = (await db_session.execute(select(func.count(Job.job_id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_create_job_unknown_tool(test_client, auth_headers, mock_celery):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={"tool_name": "nmap", "input_data": {}},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_job_priority_out_of_range(test_client, auth_headers, mock_celery):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={
            "tool_name": "sherlock",
            "input_data": {"username": "johndoe"},
            "priority": 11,
        },
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_dispatch_failure_removes_job(
    test_client, db_session, auth_headers, broken_celery
):
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={"tool_name": "sherlock", "input_data": {"username": "johndoe"}},
    )
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "INTERNAL"
    count = (await db_session.execute(select(func.count(Job.job_id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_create_job_in_investigation_links_item(
    test_client, seed_user, auth_headers, mock_celery, investigation_factory
):
    investigation = await investigation_factory(seed_user.user_id)
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={
            "tool_name": "sherlock",
            "input_data": {"username": "johndoe"},
            "investigation_id": str(investigation.investigation_id),
        },
    )
    assert resp.status_code == 201
    job = resp.json()["data"]
    assert job["investigation_id"] == str(investigation.investigation_id)

    detail = await test_client.get(
        f"/api/v1/investigations/{investigation.investigation_id}",
        headers=auth_headers,
    )
    items = detail.json()["data"]["items"]
    assert [i["job_id"] for i in items] == [job["job_id"]]


@pytest.mark.asyncio
async def test_create_job_in_foreign_investigation_is_404(
    test_client, other_user, auth_headers, mock_celery, investigation_factory
):
    investigation = await investigation_factory(other_user.user_id)
    resp = await test_client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json={
            "tool_name": "sherlock",
            "input_data": {"username": "johndoe"},
            "investigation_id": str(investigation.investigation_id),
        },
    )
    assert resp.status_code == 404
    assert mock_celery == []


@pytest.mark.asyncio
async def test_get_job_is_owner_scoped(
    test_client, seed_user, other_user, auth_headers, other_headers, job_factory
):
    job = await job_factory(seed_user.user_id)

    resp = await test_client.get(f"/api/v1/jobs/{job.job_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["job_id"] == str(job.job_id)

    resp = await test_client.get(f"/api/v1/jobs/{job.job_id}", headers=other_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_job_malformed_id(test_client, auth_headers):
    resp = await test_client.get("/api/v1/jobs/not-a-uuid", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["details"] == ["job_id: must be a valid UUID"]


@pytest.mark.asyncio
async def test_list_jobs_filters_and_paginates(
    test_client, seed_user, other_user, auth_headers, job_factory
):
    await job_factory(seed_user.user_id, status="completed", output_data={"ok": 1})
    await job_factory(seed_user.user_id, status="failed", error_message="boom")
    await job_factory(seed_user.user_id, tool_name="holehe",
                      input_data={"email": "a@example.com"})
    await job_factory(other_user.user_id)

    resp = await test_client.get("/api/v1/jobs", headers=auth_headers)
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 3
    assert len(data["jobs"]) == 3

    resp = await test_client.get(
        "/api/v1/jobs", headers=auth_headers, params={"status": "failed"}
    )
    jobs = resp.json()["data"]["jobs"]
    assert [j["status"] for j in jobs] == ["failed"]

    resp = await test_client.get(
        "/api/v1/jobs", headers=auth_headers, params={"tool_name": "holehe"}
    )
    assert resp.json()["data"]["pagination"]["total"] == 1

    resp = await test_client.get(
        "/api/v1/jobs", headers=auth_headers, params={"limit": 2, "offset": 0}
    )
    pagination = resp.json()["data"]["pagination"]
    assert pagination == {"total": 3, "limit": 2, "offset": 0, "has_more": True}


@pytest.mark.asyncio
async def test_list_jobs_rejects_unknown_status(test_client, auth_headers):
    resp = await test_client.get(
        "/api/v1/jobs", headers=auth_headers, params={"status": "cancelled"}
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_retry_failed_job_creates_new_job(
    test_client, db_session, seed_user, auth_headers, mock_celery, job_factory
):
    failed = await job_factory(
        seed_user.user_id, status="failed", error_message="timeout", priority=4
    )

    resp = await test_client.post(
        f"/api/v1/jobs/{failed.job_id}/retry", headers=auth_headers
    )
    assert resp.status_code == 201, resp.text
    retried = resp.json()["data"]
    assert retried["job_id"] != str(failed.job_id)
    assert retried["status"] == "pending"
    assert retried["tool_name"] == failed.tool_name
    assert retried["input_data"] == failed.input_data
    assert retried["priority"] == 4
    assert len(mock_celery) == 1

    original = await test_client.get(
        f"/api/v1/jobs/{failed.job_id}", headers=auth_headers
    )
    assert original.json()["data"]["status"] == "failed"

    entry = (
        await db_session.execute(
            select(AuditLog).where(AuditLog.action == "job_retried")
        )
    ).scalar_one()
    assert entry.metadata_attributes["original_job_id"] == str(failed.job_id)


@pytest.mark.asyncio
async def test_retry_keeps_investigation_link(
    test_client, seed_user, auth_headers, mock_celery, job_factory,
    investigation_factory, item_factory,
):
    investigation = await investigation_factory(seed_user.user_id)
    failed = await job_factory(
        seed_user.user_id,
        status="failed",
        error_message="timeout",
        investigation_id=investigation.investigation_id,
    )
    await item_factory(investigation.investigation_id, failed.job_id)

    resp = await test_client.post(
        f"/api/v1/jobs/{failed.job_id}/retry", headers=auth_headers
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["investigation_id"] == str(
        investigation.investigation_id
    )

    detail = await test_client.get(
        f"/api/v1/investigations/{investigation.investigation_id}",
        headers=auth_headers,
    )
    assert detail.json()["data"]["stats"]["total_items"] == 2


@pytest.mark.asyncio
async def test_retry_non_failed_job_is_rejected(
    test_client, seed_user, auth_headers, mock_celery, job_factory
):
    job = await job_factory(seed_user.user_id, status="running")
    resp = await test_client.post(f"/api/v1/jobs/{job.job_id}/retry", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATE"
    assert mock_celery == []


@pytest.mark.asyncio
async def test_retry_unknown_job(test_client, auth_headers, mock_celery):
    resp = await test_client.post(f"/api/v1/jobs/{uuid4()}/retry", headers=auth_headers)
    assert resp.status_code == 404
