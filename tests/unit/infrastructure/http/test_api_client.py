"""测试：ApiClient 认证重试与错误映射

使用 httpx.MockTransport 模拟后端，不发起真实网络请求。
"""

import asyncio

import httpx
import pytest

from leadflow.domain.exceptions import (
    AuthError,
    DomainError,
    NotFoundError,
    SerializationError,
    StructuralError,
    TransportError,
)
from leadflow.domain.services.graph_validator import ViolationKind
from leadflow.infrastructure.http.api_client import ApiClient

BASE_URL = "http://backend.test"
REFRESH_PATH = "/api/v1/auth/refresh"


class FakeAuthBackend:
    """只接受 valid_token 的后端；刷新接口延迟返回，便于并发请求汇合"""

    def __init__(self, valid_token: str = "fresh", refresh_status: int = 200):
        self.valid_token = valid_token
        self.refresh_status = refresh_status
        self.refresh_calls = 0
        self.seen_tokens: list[str | None] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == REFRESH_PATH:
            self.refresh_calls += 1
            await asyncio.sleep(0.01)
            if self.refresh_status != 200:
                return httpx.Response(self.refresh_status)
            return httpx.Response(200, json={"token": self.valid_token})

        auth = request.headers.get("Authorization")
        self.seen_tokens.append(auth)
        if auth != f"Bearer {self.valid_token}":
            return httpx.Response(401, json={"detail": "token expired"})
        return httpx.Response(200, json={"path": request.url.path})


def make_client(handler, **kwargs) -> ApiClient:
    kwargs.setdefault("token", "stale")
    return ApiClient(
        BASE_URL,
        transport=httpx.MockTransport(handler),
        refresh_path=REFRESH_PATH,
        **kwargs,
    )


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_bearer_token_is_attached(self):
        backend = FakeAuthBackend(valid_token="stale")

        async with make_client(backend) as client:
            body = await client.request("GET", "/api/v1/flows")

        assert body == {"path": "/api/v1/flows"}
        assert backend.seen_tokens == ["Bearer stale"]
        assert backend.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_401_refreshes_and_retries_once(self):
        backend = FakeAuthBackend()

        async with make_client(backend) as client:
            body = await client.request("GET", "/api/v1/flows/f1")

            assert client.tokens.token == "fresh"

        assert body == {"path": "/api/v1/flows/f1"}
        assert backend.seen_tokens == ["Bearer stale", "Bearer fresh"]
        assert backend.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_401s_trigger_single_refresh(self):
        """测试：三个并发请求同时 401，只刷新一次，各自重试一次后成功"""
        backend = FakeAuthBackend()

        async with make_client(backend) as client:
            results = await asyncio.gather(
                client.request("GET", "/api/v1/flows"),
                client.request("GET", "/api/v1/flows/f1"),
                client.request("GET", "/api/v1/flows/f2"),
            )

        assert [r["path"] for r in results] == [
            "/api/v1/flows",
            "/api/v1/flows/f1",
            "/api/v1/flows/f2",
        ]
        assert backend.refresh_calls == 1
        assert backend.seen_tokens.count("Bearer stale") == 3
        assert backend.seen_tokens.count("Bearer fresh") == 3

    @pytest.mark.asyncio
    async def test_refresh_failure_fails_all_requests_and_expires_session_once(self):
        backend = FakeAuthBackend(refresh_status=401)
        expired: list[bool] = []

        async with make_client(backend, on_session_expired=lambda: expired.append(True)) as client:
            results = await asyncio.gather(
                *(client.request("GET", f"/api/v1/flows/f{i}") for i in range(3)),
                return_exceptions=True,
            )

            assert client.tokens.token is None

        assert all(isinstance(result, AuthError) for result in results)
        assert backend.refresh_calls == 1
        assert expired == [True]

    @pytest.mark.asyncio
    async def test_second_401_after_refresh_is_auth_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == REFRESH_PATH:
                return httpx.Response(200, json={"token": "fresh"})
            return httpx.Response(401)

        async with make_client(handler) as client:
            with pytest.raises(AuthError):
                await client.request("GET", "/api/v1/flows")


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_404_maps_to_not_found_with_entity(self):
        async with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.request("GET", "/api/v1/flows/f9", entity=("Flow", "f9"))

        assert exc_info.value.entity_type == "Flow"
        assert exc_info.value.entity_id == "f9"

    @pytest.mark.asyncio
    async def test_5xx_maps_to_retryable_transport_error(self):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("GET", "/api/v1/flows")

        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_maps_to_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow backend", request=request)

        async with make_client(handler, timeout=0.5) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("PUT", "/api/v1/flows/f1", json={})

        assert "0.5" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error_maps_to_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.request("GET", "/api/v1/flows")

    @pytest.mark.asyncio
    async def test_422_with_violations_maps_to_structural_error(self):
        body = {
            "detail": "flow has structural violations",
            "violations": [
                {"kind": "BadBranching", "message": "missing false branch", "node_id": "condition_1"},
                {"kind": "NoEnd", "message": "no end node"},
            ],
        }

        async with make_client(lambda request: httpx.Response(422, json=body)) as client:
            with pytest.raises(StructuralError) as exc_info:
                await client.request("PUT", "/api/v1/flows/f1", json={})

        violations = exc_info.value.violations
        assert [v.kind for v in violations] == [ViolationKind.BAD_BRANCHING, ViolationKind.NO_END]
        assert violations[0].node_id == "condition_1"

    @pytest.mark.asyncio
    async def test_nested_detail_violations_are_understood(self):
        body = {"detail": {"message": "rejected", "violations": [{"kind": "NoStart", "message": ""}]}}

        async with make_client(lambda request: httpx.Response(400, json=body)) as client:
            with pytest.raises(StructuralError):
                await client.request("POST", "/api/v1/flows", json={})

    @pytest.mark.asyncio
    async def test_400_without_violations_is_plain_domain_error(self):
        async with make_client(
            lambda request: httpx.Response(400, json={"detail": "name must not be empty"})
        ) as client:
            with pytest.raises(DomainError) as exc_info:
                await client.request("POST", "/api/v1/flows", json={})

        assert not isinstance(exc_info.value, StructuralError)
        assert "name must not be empty" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_204_returns_none(self):
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client.request("DELETE", "/api/v1/flows/f1") is None

    @pytest.mark.asyncio
    async def test_invalid_json_maps_to_serialization_error(self):
        async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(SerializationError):
                await client.request("GET", "/api/v1/flows")
