"""
Forge repository metadata fetchers (GitHub, GitLab).

All fetchers return None when the repository is unavailable. The
GitHub client watches the x-ratelimit-* headers and sleeps until the
quota resets once the remaining budget drops below the low-water mark.
"""

from typing import Mapping, Optional
from urllib.parse import quote
import asyncio
import logging
import time
import httpx
from pydantic import ValidationError

from core.config import settings
from schemas.sources import UpstreamInfo, UpstreamMeta
from pipeline.extractors.http_utils import get_json

logger = logging.getLogger(__name__)

README_MAX_BYTES = 5 * 1024


def compute_quota_wait(
    headers: Mapping[str, str],
    low_water: int = settings.GITHUB_RATE_LIMIT_LOW_WATER,
    fallback_seconds: float = settings.GITHUB_RATE_LIMIT_FALLBACK_SECONDS,
    now: Optional[float] = None
) -> Optional[float]:
    """
    Seconds to sleep before the next GitHub request, or None.

    A missing or malformed reset header falls back to fallback_seconds.
    The wait is never shorter than one second.
    """
    remaining = headers.get("x-ratelimit-remaining")
    if remaining is None:
        return None
    try:
        if int(remaining) >= low_water:
            return None
    except ValueError:
        return None

    now = time.time() if now is None else now
    try:
        wait = int(headers["x-ratelimit-reset"]) - now + 1
    except (KeyError, TypeError, ValueError):
        wait = fallback_seconds

    return max(wait, 1.0)


class ForgeClient:
    """
    Repository stats and README fetcher.

    Attributes:
        github_token: Optional token raising the GitHub quota
        github_api_base: GitHub REST API root
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        github_token: Optional[str] = settings.GITHUB_TOKEN,
        github_api_base: str = settings.GITHUB_API_BASE,
        low_water: int = settings.GITHUB_RATE_LIMIT_LOW_WATER,
        fallback_seconds: float = settings.GITHUB_RATE_LIMIT_FALLBACK_SECONDS
    ):
        self.client = client
        self.github_token = github_token
        self.github_api_base = github_api_base.rstrip("/")
        self.low_water = low_water
        self.fallback_seconds = fallback_seconds

    def _github_headers(self, accept: str = "application/vnd.github.v3+json"):
        headers = {"Accept": accept}
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    async def _respect_quota(self, response: httpx.Response) -> None:
        wait = compute_quota_wait(response.headers, self.low_water, self.fallback_seconds)
        if wait is not None:
            logger.info(f"GitHub rate limit low, sleeping {wait:.0f}s")
            await asyncio.sleep(wait)

    async def _github_get(self, path: str, accept: str = "application/vnd.github.v3+json") -> Optional[httpx.Response]:
        url = f"{self.github_api_base}{path}"
        try:
            response = await self.client.get(url, headers=self._github_headers(accept))
        except httpx.HTTPError as e:
            logger.warning(f"GitHub request {url} failed: {e}")
            return None

        await self._respect_quota(response)

        if not response.is_success:
            logger.debug(f"GitHub request {url} returned HTTP {response.status_code}")
            return None
        return response

    async def fetch_github_stats(self, owner: str, repo: str) -> Optional[UpstreamMeta]:
        response = await self._github_get(f"/repos/{owner}/{repo}")
        if response is None:
            return None

        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        try:
            return UpstreamMeta(
                stars=data.get("stargazers_count"),
                forks=data.get("forks_count"),
                language=data.get("language"),
                description=data.get("description"),
                topics=data.get("topics"),
            )
        except ValidationError as e:
            logger.warning(f"Malformed GitHub payload for {owner}/{repo}: {e}")
            return None

    async def fetch_gitlab_stats(self, host: str, project_path: str) -> Optional[UpstreamMeta]:
        url = f"https://{host}/api/v4/projects/{quote(project_path, safe='')}"
        data = await get_json(self.client, url)
        if not isinstance(data, dict):
            return None

        try:
            return UpstreamMeta(
                stars=data.get("star_count"),
                forks=data.get("forks_count"),
                language=None,
                description=data.get("description"),
                topics=data.get("topics"),
            )
        except ValidationError as e:
            logger.warning(f"Malformed GitLab payload for {project_path}: {e}")
            return None

    async def fetch_stats(self, upstream: UpstreamInfo) -> Optional[UpstreamMeta]:
        """Dispatch on provider"""
        if upstream.provider == "github":
            return await self.fetch_github_stats(upstream.owner, upstream.repo)
        if upstream.provider == "gitlab":
            return await self.fetch_gitlab_stats(upstream.host, f"{upstream.owner}/{upstream.repo}")
        return None

    async def fetch_github_readme(self, owner: str, repo: str) -> Optional[str]:
        """Raw README text, cut to README_MAX_BYTES"""
        response = await self._github_get(
            f"/repos/{owner}/{repo}/readme",
            accept="application/vnd.github.raw",
        )
        if response is None:
            return None

        return response.content[:README_MAX_BYTES].decode("utf-8", errors="ignore")
