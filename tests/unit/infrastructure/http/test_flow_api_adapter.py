"""测试：HttpFlowPersistenceAdapter

验收标准：
- 未保存的流程用 POST 创建，已保存的用 PUT 整体更新
- 复制：名称加 " (copy)"、未启用、新 ID
"""

import json

import httpx
import pytest

from leadflow.domain.entities.flow import Flow
from leadflow.domain.exceptions import NotFoundError
from leadflow.infrastructure.http.api_client import ApiClient
from leadflow.infrastructure.http.flow_api_adapter import HttpFlowPersistenceAdapter


class FakeFlowBackend:
    """内存中的 /api/v1/flows"""

    def __init__(self):
        self.flows: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        parts = request.url.path.rstrip("/").split("/")
        flow_id = parts[4] if len(parts) > 4 else None

        if request.method == "GET" and flow_id is None:
            return httpx.Response(200, json=list(self.flows.values()))
        if request.method == "POST":
            body = json.loads(request.content)
            body.update(
                id=f"flow-{len(self.flows) + 1}",
                created_at="2024-05-01T10:00:00Z",
                updated_at="2024-05-01T10:00:00Z",
            )
            self.flows[body["id"]] = body
            return httpx.Response(201, json=body)
        if flow_id not in self.flows:
            return httpx.Response(404, json={"detail": "Flow not found"})
        if request.method == "GET":
            return httpx.Response(200, json=self.flows[flow_id])
        if request.method == "PUT":
            body = json.loads(request.content)
            body.update(
                id=flow_id,
                created_at=self.flows[flow_id]["created_at"],
                updated_at="2024-05-02T10:00:00Z",
            )
            self.flows[flow_id] = body
            return httpx.Response(200, json=body)
        if request.method == "DELETE":
            del self.flows[flow_id]
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def backend() -> FakeFlowBackend:
    return FakeFlowBackend()


@pytest.fixture
def adapter(backend: FakeFlowBackend) -> HttpFlowPersistenceAdapter:
    client = ApiClient("http://backend.test", token="t", transport=httpx.MockTransport(backend))
    return HttpFlowPersistenceAdapter(client)


class TestSave:
    @pytest.mark.asyncio
    async def test_unsaved_flow_is_created_with_post(self, adapter, backend, branching_flow):
        saved = await adapter.save(branching_flow)

        assert backend.requests == [("POST", "/api/v1/flows")]
        assert saved.id == "flow-1"
        assert saved.created_at is not None
        assert saved.graph == branching_flow.graph

    @pytest.mark.asyncio
    async def test_persisted_flow_is_updated_with_put(self, adapter, backend, branching_flow):
        saved = await adapter.save(branching_flow)
        saved.graph.delete_node("action_1")

        updated = await adapter.save(saved)

        assert backend.requests[-1] == ("PUT", "/api/v1/flows/flow-1")
        assert "action_1" not in updated.graph.nodes
        assert updated.updated_at > updated.created_at

    @pytest.mark.asyncio
    async def test_update_of_missing_flow_is_not_found(self, adapter, template_flow):
        ghost = Flow(id="ghost", name="ghost", graph=template_flow.graph)

        with pytest.raises(NotFoundError) as exc_info:
            await adapter.save(ghost)

        assert exc_info.value.entity_id == "ghost"


class TestQueries:
    @pytest.mark.asyncio
    async def test_load_list_and_delete(self, adapter, branching_flow, template_flow):
        first = await adapter.save(branching_flow)
        await adapter.save(template_flow)

        loaded = await adapter.load(first.id)
        summaries = await adapter.list()
        await adapter.delete(first.id)

        assert loaded.graph == branching_flow.graph
        assert [s.name for s in summaries] == [branching_flow.name, template_flow.name]
        with pytest.raises(NotFoundError):
            await adapter.load(first.id)

    @pytest.mark.asyncio
    async def test_duplicate_creates_inactive_copy(self, adapter, backend, branching_flow):
        branching_flow.is_active = True
        original = await adapter.save(branching_flow)

        copy_id = await adapter.duplicate(original.id)

        copy = await adapter.load(copy_id)
        assert copy_id != original.id
        assert copy.name == "Qualified leads to dialer (copy)"
        assert copy.is_active is False
        assert copy.graph == original.graph
        assert backend.flows[original.id]["is_active"] is True
