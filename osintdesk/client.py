"""Client-side helpers for callers of the osintdesk API."""

import asyncio
import logging
import time
from typing import Any

import httpx

from osintdesk.config import settings

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "failed"})


class JobWaitTimeout(Exception):
    """The job did not reach a terminal state in time. The job itself keeps running."""

    def __init__(self, job_id: str, last_status: str | None, waited: float):
        self.job_id = job_id
        self.last_status = last_status
        self.waited = waited
        super().__init__(
            f"Job {job_id} still {last_status or 'unknown'} after {waited:.0f}s"
        )


class JobPoller:
    """Poll ``GET /api/v1/jobs/{id}`` until the job completes or fails.

    Usage:
        poller = JobPoller("http://localhost:8000", access_token=token)
        job = await poller.wait_for_job(job_id)
        if job["status"] == "failed":
            print(job["error_message"])
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        interval: float | None = None,
        timeout: float | None = None,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep=asyncio.sleep,
        clock=time.monotonic,
    ):
        """Initialize the poller.

        Args:
            base_url: API base URL (e.g., http://osintdesk:8000)
            access_token: Bearer JWT of the job's owner
            interval: Seconds between polls (default: settings, 2s)
            timeout: Seconds before giving up (default: settings, 5 minutes)
            request_timeout: Per-request HTTP timeout in seconds
            transport: Optional httpx transport, e.g. for tests
        """
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.interval = (
            settings.job_poll_interval_seconds if interval is None else interval
        )
        self.timeout = settings.job_poll_timeout_seconds if timeout is None else timeout
        self.request_timeout = request_timeout
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.request_timeout, transport=self._transport
        )

    async def get_job(self, client: httpx.AsyncClient, job_id: str) -> dict[str, Any]:
        response = await client.get(
            f"{self.base_url}/api/v1/jobs/{job_id}", headers=self._headers()
        )
        response.raise_for_status()
        return response.json()["data"]

    async def wait_for_job(self, job_id: str) -> dict[str, Any]:
        """Return the job once it is completed or failed.

        Raises:
            JobWaitTimeout: the job was still pending or running at the deadline.
            httpx.HTTPStatusError: the API answered with an error status.
        """
        started = self._clock()
        last_status = None
        async with self._get_client() as client:
            while True:
                job = await self.get_job(client, job_id)
                last_status = job.get("status")
                if last_status in TERMINAL_STATUSES:
                    return job

                waited = self._clock() - started
                if waited >= self.timeout:
                    logger.warning(f"Gave up waiting for job {job_id} ({last_status})")
                    raise JobWaitTimeout(job_id, last_status, waited)

                logger.debug(f"Job {job_id} is {last_status}, polling again")
                await self._sleep(self.interval)
