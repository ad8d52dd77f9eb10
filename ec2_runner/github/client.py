"""Async HTTP client for the repository-scoped GitHub Actions runner API."""

from __future__ import annotations

from typing import Any

from ec2_runner.constants import GITHUB_API_URL, GITHUB_API_VERSION, GITHUB_SERVER_URL
from ec2_runner.infra.http import BearerAuth, HttpClient

from .types import RegistrationTokenResponse, RunnersListResponse


class GitHubClient:
    """Thin wrapper over the three runner endpoints the lifecycle needs."""

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        api_url: str = GITHUB_API_URL,
        server_url: str = GITHUB_SERVER_URL,
        timeout: float = 30,
    ) -> None:
        owner, sep, repo = repository.partition("/")
        if not sep or not owner or not repo:
            raise ValueError(f"Repository must be 'owner/repo', got {repository!r}")
        self.owner = owner
        self.repo = repo
        self._server_url = server_url.rstrip("/")
        self._http = HttpClient(
            api_url,
            BearerAuth(token),
            timeout=timeout,
            default_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
        )

    @property
    def repository_url(self) -> str:
        return f"{self._server_url}/{self.owner}/{self.repo}"

    @property
    def _runners_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/actions/runners"

    async def create_registration_token(self) -> RegistrationTokenResponse:
        return await self._http.request("POST", f"{self._runners_path}/registration-token")

    async def list_runners(self, *, page: int, per_page: int) -> RunnersListResponse:
        return await self._http.request(
            "GET", self._runners_path, params={"per_page": per_page, "page": page},
        )

    async def delete_runner(self, runner_id: int) -> None:
        await self._http.request("DELETE", f"{self._runners_path}/{runner_id}")

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
