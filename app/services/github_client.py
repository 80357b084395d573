"""
GitHub API Client Module

This module provides the client the dashboard uses to read from GitHub on
behalf of an App installation.

Design Decisions:
- Authenticate every call with a freshly minted installation token
- Route every call through the shared retry/backoff transport
- Return GitHub's repository objects unmodified
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from app.config import GitHubAppConfig
from app.logging_config import get_logger
from app.services.github_auth import GitHubAppAuth
from app.services.http_client import GitHubHTTPClient, SleepFunc, retry_with_backoff

logger = get_logger(__name__)


class GitHubClient:
    """
    Async GitHub API client for App installations.

    Usage:
        client = GitHubClient(config)
        page = await client.list_installation_repositories(123, per_page=30, page=1)
    """

    def __init__(
        self,
        config: GitHubAppConfig,
        http: Optional[GitHubHTTPClient] = None,
        auth: Optional[GitHubAppAuth] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.config = config
        self.http = http or GitHubHTTPClient(config)
        self.auth = auth or GitHubAppAuth(config, http=self.http, sleep=sleep)
        self._sleep = sleep

    async def list_installation_repositories(
        self,
        installation_id: int,
        per_page: int = 30,
        page: int = 1,
    ) -> Dict[str, Any]:
        """
        List one page of repositories accessible to an installation.

        Args:
            installation_id: GitHub App installation ID
            per_page: Page size (GitHub caps this at 100)
            page: 1-based page number

        Returns:
            Dict with "repositories" (GitHub objects) and "total_count"
        """
        token = await self.auth.create_installation_access_token(installation_id)
        url = f"{self.config.api_base}/installation/repositories"
        headers = self.http.build_headers(token)
        params = {"per_page": per_page, "page": page}

        async def _list_page() -> Dict[str, Any]:
            return await self.http.fetch_json("GET", url, headers=headers, params=params)

        data = await retry_with_backoff(
            _list_page,
            self.config.retry,
            sleep=self._sleep,
        )

        repositories = data.get("repositories", [])
        logger.info(
            "Fetched installation repositories",
            installation_id=installation_id,
            page=page,
            count=len(repositories),
        )
        return {
            "repositories": repositories,
            "total_count": data.get("total_count", len(repositories)),
        }


def create_github_client(
    config: GitHubAppConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GitHubClient:
    """Create a GitHub client sharing one transport between auth and API calls."""
    return GitHubClient(config, http=GitHubHTTPClient(config, transport=transport))
