"""
GitHub REST client and repository import.

The client is a thin httpx wrapper: 404 → RemoteNotFoundError, any other
failure → ProviderError. File bodies come back base64-encoded; use
decode_content() to get text.
"""

import base64
import logging
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    ConfigurationError,
    ProviderError,
    RemoteNotFoundError,
    RepositoryImportError,
)
from ..models import GithubRepo
from . import storage

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubClient:
    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        if not self.token:
            raise ConfigurationError(
                "GitHub token not configured",
                detail="Set GITHUB_TOKEN or connect a GitHub account.",
            )

        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        try:
            resp = await self._client.get(f"{self.base_url}{path}", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError("GitHub request failed", detail=str(e)) from e

        if resp.status_code == 404:
            raise RemoteNotFoundError(f"GitHub resource not found: {path}")
        if resp.status_code >= 400:
            logger.error("GitHub API error %d on %s: %s", resp.status_code, path, resp.text[:300])
            raise ProviderError(f"GitHub API returned {resp.status_code}", detail=resp.text[:300])
        return resp.json()

    async def list_repositories(
        self,
        visibility: str = "all",
        sort: str = "updated",
        per_page: int = 30,
    ) -> list[dict]:
        """Repositories of the authenticated user."""
        data = await self._get(
            "/user/repos",
            params={"visibility": visibility, "sort": sort, "per_page": per_page},
        )
        return data if isinstance(data, list) else []

    async def get_content(self, owner: str, repo: str, path: str = "") -> Any:
        """A directory listing (list of entries) or a single file (dict with base64 content)."""
        return await self._get(f"/repos/{owner}/{repo}/contents/{path}")

    async def get_readme(self, owner: str, repo: str) -> dict:
        return await self._get(f"/repos/{owner}/{repo}/readme")


def decode_content(payload: dict) -> str:
    """Decode the base64 'content' field of a GitHub file payload."""
    raw = payload.get("content") or ""
    return base64.b64decode(raw).decode("utf-8", errors="replace")


async def import_repositories(
    db: AsyncSession,
    github: GitHubClient,
    user_id: str,
) -> list[GithubRepo]:
    """
    Store the user's private repositories as GithubRepo records.
    Returns the saved records. Any failure → RepositoryImportError.
    """
    try:
        repos = await github.list_repositories(visibility="private", sort="updated", per_page=50)

        saved = []
        for repo in repos:
            if not repo.get("private"):
                continue
            record = await storage.create_github_repo(
                db,
                user_id=user_id,
                repo_name=repo["full_name"],
                description=repo.get("description") or "",
                language=repo.get("language") or "Unknown",
                stars=repo.get("stargazers_count") or 0,
            )
            saved.append(record)

        logger.info("Imported %d repositories for user %s", len(saved), user_id)
        return saved

    except Exception as e:
        logger.error("GitHub import failed for user %s: %s", user_id, e)
        raise RepositoryImportError(detail=str(e)) from e
