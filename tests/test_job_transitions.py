"""Worker callback tests for the job status state machine."""

from uuid import uuid4

import pytest
from sqlalchemy import Update, select

from osintdesk.core.errors import ConflictError, InvalidStateError
from osintdesk.core.jobs import transition_job
from osintdesk.models.enums import JobStatus
from osintdesk.models.jobs import Job


async def _transition(client, headers, job_id, **body):
    return await client.post(
        f"/api/v1/internal/jobs/{job_id}/transition", headers=headers, json=body
    )


@pytest.mark.asyncio
async def test_full_lifecycle(test_client, worker_headers, seed_user, job_factory):
    job = await job_factory(seed_user.user_id)

    resp = await _transition(
        test_client, worker_headers, job.job_id, status="running", progress=10
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "running"
    assert data["progress"] == 10
    assert data["started_at"] is not None
    started_at = data["started_at"]

    resp = await _transition(
        test_client, worker_headers, job.job_id, status="running", progress=60
    )
    data = resp.json()["data"]
    assert data["progress"] == 60
    assert data["started_at"] == started_at

    resp = await _transition(
        test_client,
        worker_headers,
        job.job_id,
        status="completed",
        output_data={"accounts": ["github", "reddit"]},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["progress"] == 100
    assert data["output_data"] == {"accounts": ["github", "reddit"]}
    assert data["completed_at"] is not None
    assert data["error_message"] is None


@pytest.mark.asyncio
async def test_progress_cannot_decrease(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id, status="running", progress=50)
    resp = await _transition(
        test_client, worker_headers, job.job_id, status="running", progress=20
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_progress_out_of_range(test_client, worker_headers, seed_user, job_factory):
    job = await job_factory(seed_user.user_id, status="running")
    resp = await _transition(
        test_client, worker_headers, job.job_id, status="running", progress=101
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_completed_requires_output(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id, status="running")
    resp = await _transition(test_client, worker_headers, job.job_id, status="completed")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_pending_cannot_jump_to_completed(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id)
    resp = await _transition(
        test_client, worker_headers, job.job_id, status="completed", output_data={}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_pending_can_fail(test_client, worker_headers, seed_user, job_factory):
    job = await job_factory(seed_user.user_id)
    resp = await _transition(
        test_client,
        worker_headers,
        job.job_id,
        status="failed",
        error_message="tool binary missing",
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "failed"
    assert data["error_message"] == "tool binary missing"
    assert data["completed_at"] is not None


@pytest.mark.asyncio
async def test_failed_freezes_progress(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id, status="running", progress=40)
    resp = await _transition(
        test_client, worker_headers, job.job_id, status="failed", error_message="killed"
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["progress"] == 40


@pytest.mark.asyncio
async def test_failed_requires_error_message(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id, status="running")
    resp = await _transition(test_client, worker_headers, job.job_id, status="failed")
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("terminal", ["completed", "failed"])
async def test_terminal_jobs_conflict(
    test_client, worker_headers, seed_user, job_factory, terminal
):
    job = await job_factory(
        seed_user.user_id,
        status=terminal,
        output_data={"done": True},
        error_message="boom" if terminal == "failed" else None,
    )
    resp = await _transition(
        test_client, worker_headers, job.job_id, status="running", progress=10
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_unknown_job(test_client, worker_headers, db_session):
    resp = await _transition(test_client, worker_headers, uuid4(), status="running")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unknown_status_rejected(
    test_client, worker_headers, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id)
    resp = await _transition(test_client, worker_headers, job.job_id, status="paused")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_transition_job_service(db_session, seed_user, job_factory):
    job = await job_factory(seed_user.user_id)

    job = await transition_job(db_session, job.job_id, JobStatus.RUNNING, progress=5)
    assert job.status == "running"

    with pytest.raises(InvalidStateError):
        await transition_job(db_session, job.job_id, JobStatus.PENDING)

    job = await transition_job(
        db_session, job.job_id, JobStatus.COMPLETED, output={"hits": 0}
    )
    assert job.progress == 100

    with pytest.raises(ConflictError):
        await transition_job(
            db_session, job.job_id, JobStatus.FAILED, error_message="late failure"
        )


def _is_update(statement, *args):
    return isinstance(statement, Update)


@pytest.mark.asyncio
async def test_stale_progress_update_loses(
    db_session, interleaved, seed_user, job_factory
):
    """A writer that read progress 30 cannot overwrite a newer 50 with 40."""
    job = await job_factory(seed_user.user_id, status="running", progress=30)

    async def faster_writer():
        await transition_job(db_session, job.job_id, JobStatus.RUNNING, progress=50)

    racing = interleaved("execute", faster_writer, when=_is_update)
    with pytest.raises(ConflictError):
        await transition_job(racing, job.job_id, JobStatus.RUNNING, progress=40)

    result = await db_session.execute(
        select(Job).where(Job.job_id == job.job_id).execution_options(populate_existing=True)
    )
    final = result.scalar_one()
    assert final.status == "running"
    assert final.progress == 50


@pytest.mark.asyncio
async def test_status_race_has_one_winner(
    db_session, interleaved, seed_user, job_factory
):
    job = await job_factory(seed_user.user_id)

    async def failing_writer():
        await transition_job(
            db_session, job.job_id, JobStatus.FAILED, error_message="tool crashed"
        )

    racing = interleaved("execute", failing_writer, when=_is_update)
    with pytest.raises(ConflictError):
        await transition_job(racing, job.job_id, JobStatus.RUNNING, progress=10)

    result = await db_session.execute(
        select(Job).where(Job.job_id == job.job_id).execution_options(populate_existing=True)
    )
    final = result.scalar_one()
    assert final.status == "failed"
    assert final.progress == 0
    assert final.started_at is None
