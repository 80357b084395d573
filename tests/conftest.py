"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from app.config import GitHubAppConfig, RetryPolicy, Settings
from app.main import create_app
from app.services.github_client import GitHubClient
from app.services.http_client import GitHubHTTPClient
from app.storage import InMemoryStore

APP_ID = "123456"
CLERK_ID = "user_2abcDEF"
OTHER_CLERK_ID = "user_9zyxWVU"


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class GitHubMock:
    """
    Scriptable GitHub API served through httpx.MockTransport.

    Responses are queued per (method, path); the last queued response is
    reused once the queue runs dry.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._routes: Dict[tuple, List[Any]] = {}

    def add(self, method: str, path: str, *responses: Any) -> None:
        self._routes.setdefault((method, path), []).extend(responses)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "Not Found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    """PKCS#1 PEM, the format GitHub hands out for App keys."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key) -> str:
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def github_config(private_key_pem) -> GitHubAppConfig:
    return GitHubAppConfig(
        app_id=APP_ID,
        private_key=private_key_pem,
        retry=RetryPolicy(max_attempts=3, base_delay=1.0, rate_limit_delay=5.0),
    )


@pytest.fixture
def settings(private_key_pem) -> Settings:
    return Settings(
        _env_file=None,
        github_app_id=APP_ID,
        github_private_key=private_key_pem,
        log_json_format=False,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def github_mock() -> GitHubMock:
    return GitHubMock()


@pytest.fixture
def github_client(github_config, github_mock, sleeper) -> GitHubClient:
    http = GitHubHTTPClient(github_config, transport=github_mock.transport)
    return GitHubClient(github_config, http=http, sleep=sleeper)


@pytest.fixture
def client(settings, store, github_client) -> Generator[TestClient, None, None]:
    """Create a test client for synchronous tests."""
    app = create_app(settings=settings, store=store, github=github_client)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clerk_id() -> str:
    return CLERK_ID


@pytest.fixture
def other_clerk_id() -> str:
    return OTHER_CLERK_ID


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"X-Clerk-User-Id": CLERK_ID}


@pytest.fixture
def make_review_data() -> Callable[..., Dict[str, Any]]:
    """Build a review payload in wire format (camelCase)."""

    def _make(
        critical: int = 1,
        major: int = 2,
        minor: int = 3,
        score: Optional[float] = 82,
        with_sentry: bool = False,
    ) -> Dict[str, Any]:
        issues = []
        for severity, count in (("critical", critical), ("major", major), ("minor", minor)):
            for n in range(count):
                issue = {
                    "id": f"{severity}-{n}",
                    "file": f"src/{severity}_{n}.ts",
                    "line": 10 + n,
                    "severity": severity,
                    "category": "security" if severity == "critical" else "style",
                    "title": f"{severity.title()} issue {n}",
                    "description": "Something worth fixing",
                }
                if n % 2 == 0:
                    issue["suggestion"] = "Refactor this block"
                issues.append(issue)

        summary = {
            "totalIssues": critical + major + minor,
            "criticalIssues": critical,
            "majorIssues": major,
            "minorIssues": minor,
        }
        if score is not None:
            summary["codeQualityScore"] = score

        data = {
            "summary": summary,
            "issues": issues,
            "analysisTimestamp": 1718000000000,
            "toolsUsed": ["coderabbit"],
        }
        if with_sentry:
            data["toolsUsed"].append("sentry")
            data["sentryErrors"] = [{
                "id": "sentry-1",
                "title": "TypeError: cannot read property 'id' of undefined",
                "level": "error",
                "count": 42,
                "firstSeen": "2024-06-01T10:00:00Z",
                "lastSeen": "2024-06-09T08:30:00Z",
            }]
        return data

    return _make


@pytest.fixture
def installation_payload() -> Dict[str, Any]:
    return {
        "installationId": 987654,
        "accountLogin": "octo-org",
        "accountId": 4242,
        "accountType": "Organization",
        "repositorySelection": "selected",
        "permissions": {"contents": "read", "metadata": "read", "pull_requests": "write"},
        "appSlug": "codecraft-reviewer",
        "targetType": "Organization",
    }


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_718_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    """Freeze now_ms() in every service module that reads it."""
    fake = FakeClock()
    for module in (
        "app.services.users",
        "app.services.reviews",
        "app.services.saved_reviews",
        "app.services.installations",
        "app.services.dashboard",
    ):
        monkeypatch.setattr(f"{module}.now_ms", fake)
    return fake
