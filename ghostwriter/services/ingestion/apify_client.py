"""
Apify job service.

Runs the LinkedIn scraping actors through the Apify REST API:

    trigger       POST /acts/{actor}/runs
    poll_status   GET  /actor-runs/{run_id}
    fetch_result  GET  /datasets/{dataset_id}/items

`wait_for_completion` polls at a fixed interval until the run finishes or
the deadline passes; it never waits forever.
"""

import asyncio
from typing import Any, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ghostwriter.core.config import Settings
from ghostwriter.core.exceptions import JobFailedError, JobTimeoutError, UpstreamServiceError
from ghostwriter.services.ingestion.schemas import (
    APIFY_STATUS_MAP,
    ActorKind,
    ApifyRun,
    JobState,
    JobStatus,
)

logger = structlog.get_logger(__name__)

SERVICE_NAME = "apify"


class ApifyJobService:
    """Trigger, poll and collect Apify actor runs."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.base_url = settings.apify_base_url.rstrip("/")
        self.token = settings.apify_api_token
        self.transport = transport
        self.actors = {
            ActorKind.PROFILE: settings.apify_profile_actor,
            ActorKind.POSTS: settings.apify_posts_actor,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.settings.apify_request_timeout,
            params={"token": self.token},
            transport=self.transport,
        )

    def _run_input(self, kind: ActorKind, target_url: str) -> dict[str, Any]:
        if kind == ActorKind.PROFILE:
            return {"includeEmail": False, "username": target_url}
        return {
            "deepScrape": True,
            "limitPerSource": self.settings.apify_posts_limit,
            "rawData": False,
            "urls": [target_url],
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Issue a request, retrying transport errors. Non-2xx responses raise."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=1, max=5),
            reraise=True,
        ):
            with attempt:
                async with self._client() as client:
                    response = await client.request(method, path, **kwargs)

        if response.is_error:
            raise UpstreamServiceError(
                SERVICE_NAME,
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
            )
        return response.json()

    async def trigger(self, kind: ActorKind, target_url: str) -> str:
        """Start an actor run. Returns the run id."""
        actor = self.actors[kind]
        payload = await self._request("POST", f"/acts/{actor}/runs", json=self._run_input(kind, target_url))
        run = ApifyRun.model_validate(payload.get("data") or {})
        logger.info("Scrape job triggered", actor=actor, kind=kind.value, job_id=run.id)
        return run.id

    async def poll_status(self, job_id: str) -> JobState:
        payload = await self._request("GET", f"/actor-runs/{job_id}")
        run = ApifyRun.model_validate(payload.get("data") or {})
        return JobState(
            job_id=run.id,
            status=APIFY_STATUS_MAP.get(run.status, JobStatus.RUNNING),
            raw_status=run.status,
            result_location=run.default_dataset_id,
        )

    async def fetch_result(self, result_location: Optional[str]) -> list[dict[str, Any]]:
        """Dataset items of a finished run. A run without a dataset has no records."""
        if not result_location:
            return []
        items = await self._request("GET", f"/datasets/{result_location}/items")
        if not isinstance(items, list):
            raise UpstreamServiceError(SERVICE_NAME, f"Dataset {result_location} did not return a list")
        return [item for item in items if isinstance(item, dict)]

    async def wait_for_completion(
        self,
        job_id: str,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> JobState:
        """
        Poll until the run succeeds.

        Raises:
            JobFailedError: if the run ends in FAILED, ABORTED or TIMED-OUT
            JobTimeoutError: if the run is still going at the deadline
        """
        interval = self.settings.scrape_poll_interval_seconds if poll_interval is None else poll_interval
        limit = self.settings.scrape_timeout_seconds if timeout is None else timeout

        loop = asyncio.get_running_loop()
        deadline = loop.time() + limit

        while True:
            state = await self.poll_status(job_id)
            if state.status == JobStatus.SUCCEEDED:
                return state
            if state.status == JobStatus.FAILED:
                raise JobFailedError(job_id, state.raw_status)
            if loop.time() >= deadline:
                raise JobTimeoutError(job_id, limit)
            await asyncio.sleep(interval)

    async def run(self, kind: ActorKind, target_url: str) -> list[dict[str, Any]]:
        """Trigger an actor, wait for it and return its records."""
        job_id = await self.trigger(kind, target_url)
        state = await self.wait_for_completion(job_id)
        records = await self.fetch_result(state.result_location)
        logger.info("Scrape job completed", kind=kind.value, job_id=job_id, records=len(records))
        return records
