"""测试：TokenRefresher 单飞刷新"""

import asyncio

import pytest

from leadflow.domain.exceptions import AuthError
from leadflow.infrastructure.http.token_refresher import TokenRefresher


class FakeRefreshCall:
    def __init__(self, new_token: str = "fresh", error: Exception | None = None):
        self.new_token = new_token
        self.error = error
        self.calls: list[str | None] = []

    async def __call__(self, current: str | None) -> str:
        self.calls.append(current)
        await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return self.new_token


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_call(self):
        """测试：并发的 5 个刷新请求只触发一次刷新，全部拿到新令牌"""
        refresh_call = FakeRefreshCall()
        refresher = TokenRefresher(refresh_call, token="stale")

        tokens = await asyncio.gather(*(refresher.refresh("stale") for _ in range(5)))

        assert tokens == ["fresh"] * 5
        assert refresh_call.calls == ["stale"]
        assert refresher.refresh_count == 1
        assert refresher.token == "fresh"
        assert refresher.is_refreshing is False

    @pytest.mark.asyncio
    async def test_late_401_reuses_completed_refresh(self):
        refresh_call = FakeRefreshCall()
        refresher = TokenRefresher(refresh_call, token="stale")
        await refresher.refresh("stale")

        token = await refresher.refresh("stale")

        assert token == "fresh"
        assert len(refresh_call.calls) == 1

    @pytest.mark.asyncio
    async def test_current_token_rejected_triggers_new_refresh(self):
        refresh_call = FakeRefreshCall()
        refresher = TokenRefresher(refresh_call, token="stale")
        await refresher.refresh("stale")

        await refresher.refresh("fresh")

        assert len(refresh_call.calls) == 2


class TestRefreshFailure:
    @pytest.mark.asyncio
    async def test_failure_fails_all_waiters_and_expires_once(self):
        """测试：刷新失败时所有等待者收到 AuthError，过期回调只执行一次"""
        expired: list[bool] = []
        refresh_call = FakeRefreshCall(error=ConnectionError("refresh endpoint down"))
        refresher = TokenRefresher(
            refresh_call, token="stale", on_session_expired=lambda: expired.append(True)
        )

        results = await asyncio.gather(
            *(refresher.refresh("stale") for _ in range(3)), return_exceptions=True
        )

        assert all(isinstance(result, AuthError) for result in results)
        assert expired == [True]
        assert refresher.token is None
        assert len(refresh_call.calls) == 1

    @pytest.mark.asyncio
    async def test_failing_expiry_callback_still_raises_auth_error(self, caplog):
        def broken_callback() -> None:
            raise RuntimeError("logout failed")

        refresher = TokenRefresher(
            FakeRefreshCall(error=AuthError("rejected")),
            token="stale",
            on_session_expired=broken_callback,
        )

        with pytest.raises(AuthError):
            await refresher.refresh("stale")

        assert "logout failed" in caplog.text

    @pytest.mark.asyncio
    async def test_late_401_after_failed_refresh_does_not_refresh_again(self):
        """测试：刷新失败后迟到的 401 直接失败，不再刷新，也不再触发过期回调"""
        expired: list[bool] = []
        refresh_call = FakeRefreshCall(error=ConnectionError("refresh endpoint down"))
        refresher = TokenRefresher(
            refresh_call, token="stale", on_session_expired=lambda: expired.append(True)
        )
        with pytest.raises(AuthError):
            await refresher.refresh("stale")

        with pytest.raises(AuthError):
            await refresher.refresh("stale")

        assert refresh_call.calls == ["stale"]
        assert expired == [True]

    @pytest.mark.asyncio
    async def test_new_login_token_allows_refresh_again(self):
        refresh_call = FakeRefreshCall(error=ConnectionError("refresh endpoint down"))
        refresher = TokenRefresher(refresh_call, token="stale")
        with pytest.raises(AuthError):
            await refresher.refresh("stale")

        refresher.token = "relogin"
        refresh_call.error = None
        token = await refresher.refresh("relogin")

        assert token == "fresh"
        assert refresh_call.calls == ["stale", "relogin"]
