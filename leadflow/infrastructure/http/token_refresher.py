"""TokenRefresher - 单飞（single-flight）令牌刷新

业务场景：
- 多个请求同时收到 401 时，只发起一次刷新请求
- 刷新期间到达的 401 等待同一个刷新任务，拿到新令牌后各自重试一次
- 刷新失败：所有等待者都收到 AuthError，令牌被清空，会话过期回调只执行一次
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from leadflow.domain.exceptions import AuthError

logger = logging.getLogger(__name__)

RefreshCall = Callable[[str | None], Awaitable[str]]


class TokenRefresher:
    """令牌持有者 + 单飞刷新

    参数：
        refresh_call: 执行一次刷新的协程函数，参数为当前令牌，返回新令牌
        token: 初始令牌
        on_session_expired: 刷新失败时的回调（例如跳转登录页、销毁会话）
    """

    def __init__(
        self,
        refresh_call: RefreshCall,
        *,
        token: str | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ):
        self._refresh_call = refresh_call
        self._token = token
        self._on_session_expired = on_session_expired
        self._task: asyncio.Task[str] | None = None
        self._expired = False
        self.refresh_count = 0

    @property
    def token(self) -> str | None:
        return self._token

    @token.setter
    def token(self, value: str | None) -> None:
        self._token = value
        self._expired = False

    @property
    def is_refreshing(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self, stale_token: str | None) -> str:
        """获取一个比 stale_token 更新的令牌

        参数：
            stale_token: 收到 401 的那次请求使用的令牌

        返回：
            新令牌

        抛出：
            AuthError: 刷新失败
        """
        if self._expired and not self.is_refreshing:
            # 会话已过期，等待重新登录设置新令牌
            raise AuthError("会话已过期，请重新登录")

        if not self.is_refreshing and self._token and self._token != stale_token:
            # 401 到达前刷新已经完成
            return self._token

        if not self.is_refreshing:
            self._task = asyncio.create_task(self._run_refresh())

        try:
            return await asyncio.shield(self._task)
        except AuthError:
            raise
        except Exception as exc:
            raise AuthError(f"令牌刷新失败: {exc}") from exc

    async def _run_refresh(self) -> str:
        self.refresh_count += 1
        logger.info("访问令牌已过期，开始刷新")
        try:
            token = await self._refresh_call(self._token)
        except Exception as exc:
            logger.warning(f"令牌刷新失败，会话结束: {exc}")
            self._token = None
            self._expired = True
            if self._on_session_expired is not None:
                try:
                    self._on_session_expired()
                except Exception:
                    logger.exception("会话过期回调执行失败")
            raise AuthError(f"令牌刷新失败: {exc}") from exc

        self._token = token
        logger.info("访问令牌刷新成功")
        return token


__all__ = ["TokenRefresher"]
