"""ApiClient - 与后端通信的 HTTP 客户端

职责：
- 为每个请求附加 Bearer 令牌
- 固定超时（Settings.request_timeout）
- 401 时通过 TokenRefresher 单飞刷新并重试一次
- 把 HTTP 层的失败转换为领域异常

错误映射：
- 超时 / 网络错误 / 5xx → TransportError（可重试）
- 404 → NotFoundError
- 400 / 422 且响应带 violations → StructuralError，否则 → DomainError
- 刷新失败或重试后仍然 401 → AuthError
- 响应不是合法 JSON → SerializationError
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from leadflow.config import settings
from leadflow.domain.exceptions import (
    AuthError,
    DomainError,
    NotFoundError,
    SerializationError,
    StructuralError,
    TransportError,
)
from leadflow.domain.services.graph_validator import Violation
from leadflow.infrastructure.http.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)


class ApiClient:
    """后端 API 客户端

    使用示例：
        async with ApiClient(token=saved_token, on_session_expired=logout) as client:
            flows = await client.request("GET", "/api/v1/flows")

    参数：
        base_url: 后端地址（默认 Settings.api_base_url）
        token: 初始访问令牌
        timeout: 单个请求超时秒数（默认 Settings.request_timeout）
        on_session_expired: 刷新失败时的回调
        transport: 自定义 httpx 传输层（测试时使用 MockTransport / ASGITransport）
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        on_session_expired: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        refresh_path: str | None = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.refresh_path = refresh_path or settings.auth_refresh_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )
        self.tokens = TokenRefresher(
            self._call_refresh,
            token=token,
            on_session_expired=on_session_expired,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        entity: tuple[str, str] | None = None,
    ) -> Any:
        """发送请求并返回解析后的 JSON（204 返回 None）

        参数：
            method: HTTP 方法
            path: 相对路径（如 /api/v1/flows）
            json: 请求体
            params: 查询参数
            entity: (实体类型, 实体 ID)，用于 404 时构造 NotFoundError
        """
        method = method.upper()
        token = self.tokens.token
        response = await self._send(method, path, token, json=json, params=params)

        if response.status_code == 401:
            logger.debug(f"收到 401，等待令牌刷新: {method} {path}")
            new_token = await self.tokens.refresh(token)
            response = await self._send(method, path, new_token, json=json, params=params)
            if response.status_code == 401:
                raise AuthError(f"刷新令牌后仍然未授权: {method} {path}")

        return self._handle_response(method, path, response, entity)

    async def _send(
        self,
        method: str,
        path: str,
        token: str | None,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            return await self._client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.TimeoutException as exc:
            logger.warning(f"请求超时: {method} {path} ({self.timeout}s)")
            raise TransportError(f"请求超时（{self.timeout}s）: {method} {path}") from exc
        except httpx.TransportError as exc:
            logger.warning(f"网络错误: {method} {path}: {exc}")
            raise TransportError(f"网络错误: {method} {path}: {exc}") from exc

    def _handle_response(
        self,
        method: str,
        path: str,
        response: httpx.Response,
        entity: tuple[str, str] | None,
    ) -> Any:
        status = response.status_code
        if status >= 500:
            raise TransportError(
                f"服务端错误 {status}: {method} {path}",
                status_code=status,
            )
        if status == 404:
            entity_type, entity_id = entity or ("Resource", path)
            raise NotFoundError(entity_type=entity_type, entity_id=entity_id)
        if status >= 400:
            raise self._client_error(response)
        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SerializationError(f"响应不是合法的 JSON: {method} {path}") from exc

    @staticmethod
    def _client_error(response: httpx.Response) -> DomainError:
        try:
            body = response.json()
        except ValueError:
            return DomainError(f"请求被拒绝 ({response.status_code}): {response.text[:200]}")

        detail = body.get("detail") if isinstance(body, dict) else None
        raw_violations = body.get("violations") if isinstance(body, dict) else None
        if raw_violations is None and isinstance(detail, dict):
            raw_violations = detail.get("violations")
            detail = detail.get("message", detail)
        if isinstance(raw_violations, list) and raw_violations:
            try:
                return StructuralError([Violation.from_dict(item) for item in raw_violations])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"无法解析后端返回的 violations: {raw_violations!r}")
        return DomainError(f"请求被拒绝 ({response.status_code}): {detail or body}")

    async def _call_refresh(self, current_token: str | None) -> str:
        """POST refresh_path → {"token": ...}"""
        headers = {"Authorization": f"Bearer {current_token}"} if current_token else {}
        try:
            response = await self._client.post(self.refresh_path, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthError(f"刷新请求失败: {exc}") from exc
        if response.status_code != 200:
            raise AuthError(f"刷新请求被拒绝: {response.status_code}")
        try:
            token = response.json().get("token")
        except (ValueError, AttributeError) as exc:
            raise AuthError("刷新响应格式错误") from exc
        if not token:
            raise AuthError("刷新响应缺少 token")
        return str(token)


__all__ = ["ApiClient"]
