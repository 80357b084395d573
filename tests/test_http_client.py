"""
Tests for the GitHub HTTP Transport

Tests for error classification and retry with backoff.
"""

import httpx
import pytest

from app.config import GitHubAppConfig, RetryPolicy
from app.services.http_client import (
    GitHubAPIError,
    GitHubHTTPClient,
    GitHubNetworkError,
    GitHubRateLimitError,
    GitHubTimeoutError,
    is_retryable,
    retry_with_backoff,
)

POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, rate_limit_delay=5.0)


class ScriptedCall:
    """Zero-argument coroutine factory that raises or returns in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def rate_limited() -> GitHubRateLimitError:
    return GitHubRateLimitError(httpx.Response(429, text="slow down"))


def server_error(status: int = 500) -> GitHubAPIError:
    return GitHubAPIError(f"GitHub API error: {status}", status_code=status)


class TestIsRetryable:
    """Tests for the retry predicate."""

    @pytest.mark.parametrize("exc", [
        GitHubNetworkError("connection reset"),
        GitHubTimeoutError("timed out"),
        httpx.ConnectError("refused"),
        rate_limited(),
        server_error(500),
        server_error(503),
    ])
    def test_retryable(self, exc):
        """Test failures that are retried."""
        assert is_retryable(exc)

    @pytest.mark.parametrize("exc", [
        server_error(400),
        server_error(401),
        server_error(404),
        ValueError("bug"),
        KeyError("token"),
    ])
    def test_not_retryable(self, exc):
        """Test failures that propagate immediately."""
        assert not is_retryable(exc)


class TestRetryWithBackoff:
    """Tests for the bounded retry loop."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self, sleeper):
        """Test that a successful call is not retried."""
        call = ScriptedCall("ok")

        assert await retry_with_backoff(call, POLICY, sleep=sleeper) == "ok"
        assert call.calls == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_two_server_errors_then_success(self, sleeper):
        """Test exactly two backoff sleeps before the third attempt succeeds."""
        call = ScriptedCall(server_error(500), server_error(502), {"token": "x"})

        assert await retry_with_backoff(call, POLICY, sleep=sleeper) == {"token": "x"}
        assert call.calls == 3
        assert sleeper.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, sleeper):
        """Test that a 400 raises on the first attempt."""
        call = ScriptedCall(server_error(400), "never")

        with pytest.raises(GitHubAPIError) as exc_info:
            await retry_with_backoff(call, POLICY, sleep=sleeper)

        assert exc_info.value.status_code == 400
        assert call.calls == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_rate_limit_backoff_is_linear(self, sleeper):
        """Test that 429 waits grow by the rate-limit step each attempt."""
        call = ScriptedCall(rate_limited(), rate_limited(), "ok")

        assert await retry_with_backoff(call, POLICY, sleep=sleeper) == "ok"
        assert sleeper.delays == [5.0, 10.0]

    @pytest.mark.asyncio
    async def test_ceiling_reraises_last_error(self, sleeper):
        """Test that the last error surfaces once attempts are exhausted."""
        call = ScriptedCall(server_error(500), server_error(502), server_error(503), "never")

        with pytest.raises(GitHubAPIError) as exc_info:
            await retry_with_backoff(call, POLICY, sleep=sleeper)

        assert exc_info.value.status_code == 503
        assert call.calls == 3
        assert len(sleeper.delays) == 2

    @pytest.mark.asyncio
    async def test_network_errors_retried(self, sleeper):
        """Test that transport failures are retried with exponential backoff."""
        call = ScriptedCall(GitHubNetworkError("reset"), GitHubTimeoutError("slow"), "ok")

        assert await retry_with_backoff(call, POLICY, sleep=sleeper) == "ok"
        assert sleeper.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_plain_callable_returning_coroutine(self, sleeper):
        """Test that a lambda returning a coroutine is awaited and retried."""
        call = ScriptedCall(server_error(503), {"total_count": 1})

        result = await retry_with_backoff(lambda: call(), POLICY, sleep=sleeper)

        assert result == {"total_count": 1}
        assert call.calls == 2
        assert sleeper.delays == [1.0]

    @pytest.mark.asyncio
    async def test_single_attempt_policy(self, sleeper):
        """Test that max_attempts=1 disables retries."""
        call = ScriptedCall(server_error(500), "ok")

        with pytest.raises(GitHubAPIError):
            await retry_with_backoff(call, RetryPolicy(max_attempts=1), sleep=sleeper)
        assert call.calls == 1


class TestGitHubHTTPClient:
    """Tests for request sending and response classification."""

    @pytest.fixture
    def config(self):
        return GitHubAppConfig(app_id="1", private_key="unused", user_agent="CodeCraft-Test")

    def client_for(self, config, handler) -> GitHubHTTPClient:
        return GitHubHTTPClient(config, transport=httpx.MockTransport(handler))

    def test_build_headers(self, config):
        """Test the headers sent with every GitHub call."""
        headers = GitHubHTTPClient(config).build_headers("tok")

        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert headers["User-Agent"] == "CodeCraft-Test"

    @pytest.mark.asyncio
    async def test_fetch_json_success(self, config):
        """Test decoding of a successful response."""
        client = self.client_for(config, lambda request: httpx.Response(200, json={"ok": True}))
        assert await client.fetch_json("GET", "https://api.github.com/x") == {"ok": True}

    @pytest.mark.asyncio
    async def test_fetch_json_rate_limit(self, config):
        """Test that 429 raises with the response attached."""
        client = self.client_for(
            config,
            lambda request: httpx.Response(429, headers={"x-ratelimit-reset": "1700000000"}, text="limit"),
        )

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await client.fetch_json("GET", "https://api.github.com/x")

        assert exc_info.value.status_code == 429
        assert exc_info.value.response.headers["x-ratelimit-reset"] == "1700000000"

    @pytest.mark.asyncio
    async def test_fetch_json_error_embeds_status_and_body(self, config):
        """Test that non-2xx errors carry status and body."""
        client = self.client_for(config, lambda request: httpx.Response(404, text='{"message":"Not Found"}'))

        with pytest.raises(GitHubAPIError) as exc_info:
            await client.fetch_json("GET", "https://api.github.com/x")

        assert exc_info.value.status_code == 404
        assert "404" in str(exc_info.value)
        assert "Not Found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_has_no_status(self, config):
        """Test that a timeout becomes GitHubTimeoutError."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GitHubTimeoutError) as exc_info:
            await self.client_for(config, handler).fetch_with_timeout("GET", "https://api.github.com/x")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_connection_failure(self, config):
        """Test that a connection failure becomes GitHubNetworkError."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GitHubNetworkError):
            await self.client_for(config, handler).fetch_with_timeout("GET", "https://api.github.com/x")
