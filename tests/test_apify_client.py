"""
Apify job service tests against a mocked transport.
"""

import httpx
import pytest

from ghostwriter.core.exceptions import JobFailedError, JobTimeoutError, UpstreamServiceError
from ghostwriter.services.ingestion.apify_client import ApifyJobService
from ghostwriter.services.ingestion.schemas import ActorKind, JobStatus, parse_post_item, parse_profile_item
from tests.conftest import sample_post_items, sample_profile_item

PROFILE_URL = "https://www.linkedin.com/in/jane-doe"


class ApifyStub:
    """Serves actor runs whose status advances one step per poll."""

    def __init__(self, statuses: list[str], items: list[dict]):
        self.statuses = list(statuses)
        self.items = items
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/runs"):
            return httpx.Response(201, json={"data": {"id": "run-1", "status": "READY"}})
        if path.endswith("/actor-runs/run-1"):
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json={"data": {"id": "run-1", "status": status, "defaultDatasetId": "ds-1"}})
        if path.endswith("/datasets/ds-1/items"):
            return httpx.Response(200, json=self.items)
        return httpx.Response(404, json={"error": "not found"})


def _service(settings, stub) -> ApifyJobService:
    configured = settings.model_copy(update={"apify_api_token": "secret-token"})
    return ApifyJobService(configured, transport=httpx.MockTransport(stub))


@pytest.mark.asyncio
async def test_run_polls_until_success_and_fetches_items(settings):
    stub = ApifyStub(["RUNNING", "RUNNING", "SUCCEEDED"], [sample_profile_item(), "junk"])
    service = _service(settings, stub)

    records = await service.run(ActorKind.PROFILE, PROFILE_URL)

    assert records == [sample_profile_item()]
    trigger = stub.requests[0]
    assert trigger.url.path == "/v2/acts/apimaestro~linkedin-profile-detail/runs"
    assert trigger.url.params["token"] == "secret-token"
    assert sum(1 for r in stub.requests if "actor-runs" in r.url.path) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["FAILED", "ABORTED", "TIMED-OUT"])
async def test_failed_runs_raise(settings, status):
    service = _service(settings, ApifyStub([status], []))

    with pytest.raises(JobFailedError):
        await service.run(ActorKind.POSTS, PROFILE_URL)


@pytest.mark.asyncio
async def test_poll_loop_has_a_deadline(settings):
    service = _service(settings, ApifyStub(["RUNNING"], []))

    with pytest.raises(JobTimeoutError):
        await service.wait_for_completion("run-1", poll_interval=0.01, timeout=0.05)


@pytest.mark.asyncio
async def test_poll_status_maps_states(settings):
    service = _service(settings, ApifyStub(["RUNNING"], []))

    state = await service.poll_status("run-1")

    assert state.status == JobStatus.RUNNING
    assert state.result_location == "ds-1"


@pytest.mark.asyncio
async def test_http_errors_surface_as_upstream_failures(settings):
    service = _service(settings, ApifyStub(["RUNNING"], []))

    with pytest.raises(UpstreamServiceError):
        await service.poll_status("missing-run")


@pytest.mark.asyncio
async def test_fetch_without_dataset_is_empty(settings):
    service = _service(settings, ApifyStub(["SUCCEEDED"], []))
    assert await service.fetch_result(None) == []


def test_parse_profile_item():
    profile = parse_profile_item(sample_profile_item())
    assert profile.headline == "VP Engineering at Acme"
    assert profile.about == "I build engineering teams that ship."
    assert profile.location == "Berlin, Germany"
    assert profile.experience_json == [{"title": "VP Engineering", "company": "Acme"}]


def test_parse_post_item_cleans_text_and_tolerates_bad_counts():
    raw = {
        "text": "Hiring!  https://jobs.example.com/?utm_source=li ",
        "numLikes": "12",
        "numComments": None,
        "numShares": -3,
        "postedAtISO": "2024-05-01T10:00:00.000Z",
    }

    post = parse_post_item(raw)

    assert post.raw_text == raw["text"]
    assert post.text == "Hiring!"
    assert (post.likes_count, post.comments_count, post.shares_count) == (12, 0, 0)
    assert post.impressions_count is None
    assert post.posted_at.year == 2024


def test_parse_post_item_with_missing_fields():
    post = parse_post_item({})
    assert post.text is None
    assert post.likes_count == 0
    assert post.posted_at is None


def test_sample_items_parse():
    assert len([parse_post_item(item) for item in sample_post_items(4)]) == 4
