"""测试：ReferenceDataClient 缓存与刷新"""

import asyncio
from collections import Counter

import httpx
import pytest

from leadflow.domain.exceptions import SerializationError, TransportError
from leadflow.infrastructure.http.api_client import ApiClient
from leadflow.infrastructure.http.reference_data_client import ReferenceDataClient

REFERENCE_DATA = {
    "/api/v1/amocrm/fields": [
        {"id": 501, "name": "City", "type": "text", "created_at": "2024-01-01T00:00:00Z"},
    ],
    "/api/v1/amocrm/pipelines": [
        {
            "id": 7,
            "name": "Sales",
            "statuses": [{"id": 142, "name": "Qualified"}, {"id": 143, "name": "Lost"}],
        },
    ],
    "/api/v1/dialer/schedulers": [{"id": "scheduler-1", "name": "Business hours"}],
    "/api/v1/dialer/campaigns": [{"id": "campaign-1", "name": "Spring"}],
    "/api/v1/dialer/buckets": [
        {"id": "bucket-1", "campaign_id": "campaign-1", "name": "Hot"},
        {"id": "bucket-2", "campaign_id": "campaign-2", "name": "Cold", "extra": True},
    ],
}


class CountingBackend:
    def __init__(self, data: dict | None = None):
        self.data = data or REFERENCE_DATA
        self.hits: Counter[str] = Counter()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.hits[request.url.path] += 1
        return httpx.Response(200, json=self.data[request.url.path])


class SlowBackend(CountingBackend):
    """响应前让出事件循环，使并发请求真正重叠"""

    def __init__(self, data: dict | None = None, failures: int = 0):
        super().__init__(data)
        self.failures = failures

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.hits[request.url.path] += 1
        await asyncio.sleep(0.01)
        if self.failures:
            self.failures -= 1
            return httpx.Response(503)
        return httpx.Response(200, json=self.data[request.url.path])


def make_reference_client(backend) -> ReferenceDataClient:
    client = ApiClient("http://backend.test", token="t", transport=httpx.MockTransport(backend))
    return ReferenceDataClient(client)


class TestCaching:
    @pytest.mark.asyncio
    async def test_results_are_cached(self):
        backend = CountingBackend()
        reference = make_reference_client(backend)

        first = await reference.fields()
        second = await reference.fields()

        assert first is second
        assert first[0].id == 501
        assert backend.hits["/api/v1/amocrm/fields"] == 1

    @pytest.mark.asyncio
    async def test_load_all_fetches_every_endpoint_once(self):
        backend = CountingBackend()
        reference = make_reference_client(backend)

        await reference.load_all()
        await reference.schedulers()

        assert set(backend.hits) == set(REFERENCE_DATA)
        assert all(count == 1 for count in backend.hits.values())

    @pytest.mark.asyncio
    async def test_concurrent_first_access_shares_one_request(self):
        """测试：同一数据集的并发首次访问只发送一次 GET"""
        backend = SlowBackend()
        reference = make_reference_client(backend)

        results = await asyncio.gather(*(reference.pipelines() for _ in range(4)))

        assert backend.hits["/api/v1/amocrm/pipelines"] == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_failed_request_is_retried_on_next_access(self):
        backend = SlowBackend(failures=1)
        reference = make_reference_client(backend)

        with pytest.raises(TransportError):
            await reference.campaigns()
        campaigns = await reference.campaigns()

        assert [campaign.id for campaign in campaigns] == ["campaign-1"]
        assert backend.hits["/api/v1/dialer/campaigns"] == 2

    @pytest.mark.asyncio
    async def test_refresh_single_dataset(self):
        backend = CountingBackend()
        reference = make_reference_client(backend)
        await reference.load_all()

        await reference.refresh("buckets")

        assert backend.hits["/api/v1/dialer/buckets"] == 2
        assert backend.hits["/api/v1/dialer/campaigns"] == 1

    @pytest.mark.asyncio
    async def test_refresh_unknown_dataset_should_fail(self):
        reference = make_reference_client(CountingBackend())

        with pytest.raises(ValueError):
            await reference.refresh("users")

    @pytest.mark.asyncio
    async def test_clear_forces_reload(self):
        backend = CountingBackend()
        reference = make_reference_client(backend)
        await reference.campaigns()

        reference.clear()
        await reference.campaigns()

        assert backend.hits["/api/v1/dialer/campaigns"] == 2


class TestQueries:
    @pytest.mark.asyncio
    async def test_buckets_filtered_by_campaign(self):
        reference = make_reference_client(CountingBackend())

        buckets = await reference.buckets(campaign_id="campaign-1")

        assert [b.id for b in buckets] == ["bucket-1"]

    @pytest.mark.asyncio
    async def test_statuses_of_pipeline(self):
        reference = make_reference_client(CountingBackend())

        statuses = await reference.statuses(7)
        missing = await reference.statuses(99)

        assert [s.name for s in statuses] == ["Qualified", "Lost"]
        assert missing == []

    @pytest.mark.asyncio
    async def test_malformed_payload_should_fail(self):
        backend = CountingBackend({"/api/v1/amocrm/fields": [{"name": "no id"}]})
        reference = make_reference_client(backend)

        with pytest.raises(SerializationError):
            await reference.fields()
