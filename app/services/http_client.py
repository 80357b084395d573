"""
GitHub HTTP Transport Module

This module wraps every outbound GitHub call with a timeout, client-side
throttling, error classification and retry with backoff.

Design Decisions:
- Use httpx for async HTTP requests with a fixed per-call timeout
- Timeouts and transport failures get their own exception types (no HTTP status)
- HTTP 429 is raised with the raw response attached so retry logic can branch on it
- Retry is an explicit bounded loop (tenacity) with an injectable sleep
- Backoff is linear for rate limits and exponential otherwise, without jitter
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from aiolimiter import AsyncLimiter
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from app.config import GitHubAppConfig, RetryPolicy
from app.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GitHubRateLimitError(GitHubAPIError):
    """Exception raised when GitHub answers 429; carries the raw response."""
    def __init__(self, response: httpx.Response):
        super().__init__(
            f"GitHub rate limit exceeded: {response.status_code}",
            status_code=response.status_code,
            response_body=response.text,
        )
        self.response = response


class GitHubNetworkError(GitHubAPIError):
    """The request never produced an HTTP response."""
    pass


class GitHubTimeoutError(GitHubAPIError):
    """The request was aborted after the configured timeout."""
    pass


def is_retryable(exc: BaseException) -> bool:
    """
    Decide whether a failed GitHub call should be attempted again.

    Retried: network-level failures (no HTTP status), 429 and any 5xx.
    Everything else, including 4xx and programming errors, propagates.
    """
    if isinstance(exc, (GitHubNetworkError, GitHubTimeoutError, httpx.TransportError)):
        return True
    status = getattr(exc, "status_code", None)
    if status is None:
        return False
    return status == 429 or status >= 500


class wait_github_backoff(wait_base):
    """Linear backoff for 429, exponential doubling for everything else."""

    def __init__(self, policy: RetryPolicy):
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        attempt = retry_state.attempt_number
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if getattr(exc, "status_code", None) == 429:
            return self.policy.rate_limit_delay * attempt
        return self.policy.base_delay * (2 ** (attempt - 1))


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying GitHub request",
        attempt=retry_state.attempt_number,
        delay=retry_state.next_action.sleep if retry_state.next_action else 0,
        status_code=getattr(exc, "status_code", None),
        error=str(exc),
    )


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Run *fn* until it succeeds, fails with a non-retryable error, or the
    attempt ceiling is reached.

    Args:
        fn: Zero-argument coroutine factory; called afresh on every attempt
        policy: Attempt ceiling and backoff delays
        sleep: Awaitable sleep, replaced in tests to keep timing deterministic

    Returns:
        Whatever *fn* returns on its first successful attempt

    Raises:
        The last exception raised by *fn*
    """
    policy = policy or RetryPolicy()

    # tenacity awaits only coroutine functions, not callables returning awaitables
    async def _attempt() -> T:
        return await fn()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_github_backoff(policy),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(_attempt)


class GitHubHTTPClient:
    """
    Thin async transport for the GitHub REST API.

    Usage:
        http = GitHubHTTPClient(config)
        data = await http.fetch_json("GET", url, headers=http.build_headers(token))
    """

    def __init__(
        self,
        config: GitHubAppConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: GitHub App configuration (timeout, user agent, rate limit)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.config = config
        self._transport = transport

        # GitHub allows 5000 requests/hour for an installation
        self._rate_limiter = AsyncLimiter(
            max_rate=config.rate_limit,
            time_period=3600
        )

    def build_headers(self, bearer_token: str) -> Dict[str, str]:
        """Get authenticated headers for API requests."""
        return {
            "Authorization": f"Bearer {bearer_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self.config.user_agent,
        }

    async def fetch_with_timeout(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request, aborting after the configured timeout.

        Raises:
            GitHubTimeoutError: The timeout elapsed
            GitHubNetworkError: Connection-level failure
        """
        async with self._rate_limiter:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
                try:
                    return await client.request(method, url, **kwargs)
                except httpx.TimeoutException as e:
                    logger.warning("GitHub request timed out", method=method, url=url, timeout=self.config.timeout)
                    raise GitHubTimeoutError(
                        f"GitHub request timed out after {self.config.timeout}s: {method} {url}"
                    ) from e
                except httpx.TransportError as e:
                    logger.warning("GitHub request failed", method=method, url=url, error=str(e))
                    raise GitHubNetworkError(f"GitHub request failed: {e}") from e

    async def fetch_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            GitHubRateLimitError: HTTP 429, with the response attached
            GitHubAPIError: Any other non-2xx status, status and body embedded
        """
        response = await self.fetch_with_timeout(method, url, **kwargs)

        if response.status_code == 429:
            logger.warning(
                "GitHub API rate limit hit",
                url=url,
                reset_at=response.headers.get("x-ratelimit-reset"),
            )
            raise GitHubRateLimitError(response)

        if not response.is_success:
            error_body = response.text
            logger.error(
                "GitHub API error",
                status_code=response.status_code,
                url=url,
                error=error_body[:500]  # Limit error length
            )
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} - {error_body}",
                status_code=response.status_code,
                response_body=error_body
            )

        return response.json()
