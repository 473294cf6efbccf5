import logging

from celery import Celery

from osintdesk.config import settings

logger = logging.getLogger(__name__)

RUN_TOOL_TASK = "osint_tools.run_tool"


def _build_broker_url() -> str:
    if settings.celery_broker_url:
        return settings.celery_broker_url
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"


def _build_result_backend() -> str:
    if settings.celery_result_backend:
        return settings.celery_result_backend
    return _build_broker_url()


celery_app = Celery(
    "osintdesk",
    broker=_build_broker_url(),
    backend=_build_result_backend(),
)

celery_app.conf.update(
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={RUN_TOOL_TASK: {"queue": settings.tool_queue_name}},
)


def get_celery_app() -> Celery:
    return celery_app


def dispatch_tool_job(job) -> str:
    """
    Hand a pending job to the external tool worker.

    The worker reports back through ``POST /api/v1/internal/jobs/{id}/transition``.
    Returns the Celery task id.
    """
    result = get_celery_app().send_task(
        RUN_TOOL_TASK,
        kwargs={
            "job_id": str(job.job_id),
            "tool_name": job.tool_name,
            "input_data": job.input_data,
            "user_id": str(job.user_id),
        },
        queue=settings.tool_queue_name,
        priority=job.priority,
    )
    logger.info(f"Dispatched job {job.job_id} ({job.tool_name}) as task {result.id}")
    return result.id


def ping_workers(timeout: float | None = None) -> dict:
    """
    Broadcast a ping and collect worker replies, keyed by worker hostname.

    Blocks for up to ``timeout`` seconds; call it from a thread in async code.
    """
    if timeout is None:
        timeout = settings.worker_ping_timeout_seconds
    return get_celery_app().control.inspect(timeout=timeout).ping() or {}
