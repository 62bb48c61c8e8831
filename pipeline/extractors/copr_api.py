"""
COPR build service client: project listing, packages, builds and the
database dump index.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
from datetime import datetime
import asyncio
import logging
import re
import httpx

from core.config import settings
from core.exceptions import DumpUnavailableError, SourceError
from schemas.sources import CoprProjectRecord, CoprPackageRecord
from pipeline.extractors.http_utils import get_json

logger = logging.getLogger(__name__)

PAGE_LIMIT = 100
DUMP_LINK_REGEX = re.compile(r'href="(copr_db-[^"]+\.gz)"')


def parse_copr_project(item: Dict[str, Any], web_base: str = settings.COPR_WEB_BASE) -> CoprProjectRecord:
    """Convert a /project/list item to a CoprProjectRecord"""
    full_name = item.get("full_name") or f"{item['ownername']}/{item['name']}"
    return CoprProjectRecord(
        copr_id=item["id"],
        owner=item["ownername"],
        name=item["name"],
        full_name=full_name,
        description=item.get("description"),
        instructions=item.get("instructions"),
        homepage=item.get("homepage"),
        chroots=list((item.get("chroot_repos") or {}).keys()),
        repo_url=item.get("repo_url") or f"{web_base.rstrip('/')}/coprs/{full_name}/",
    )


class CoprClient:
    """
    Thin async client over the COPR API v3.

    Listing failures end pagination early; per-project lookups return
    empty results rather than raising. Dump lookups raise
    DumpUnavailableError since the dump job cannot proceed without them.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base: str = settings.COPR_API_BASE,
        web_base: str = settings.COPR_WEB_BASE
    ):
        self.client = client
        self.api_base = api_base.rstrip("/")
        self.web_base = web_base

    async def list_projects(self, offset: int = 0, limit: int = PAGE_LIMIT) -> Optional[List[CoprProjectRecord]]:
        """One page of projects, or None if the page could not be fetched"""
        data = await get_json(
            self.client,
            f"{self.api_base}/project/list",
            params={"limit": limit, "offset": offset},
        )
        if not isinstance(data, dict):
            return None

        records = []
        for item in data.get("items", []):
            try:
                records.append(parse_copr_project(item, self.web_base))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed project at offset {offset}: {e}")
        return records

    async def iter_project_pages(
        self,
        limit: int = PAGE_LIMIT,
        page_delay: float = settings.COPR_PAGE_DELAY
    ) -> AsyncIterator[List[CoprProjectRecord]]:
        """
        Yield pages until a short or failed page.

        Raises:
            SourceError: The first page could not be fetched
        """
        offset = 0
        while True:
            page = await self.list_projects(offset=offset, limit=limit)
            if page is None:
                if offset == 0:
                    raise SourceError("COPR project listing unavailable", context={"url": f"{self.api_base}/project/list"})
                logger.error(f"COPR project listing failed at offset {offset}")
                return
            if not page:
                return

            yield page

            if len(page) < limit:
                return
            offset += limit
            await asyncio.sleep(page_delay)

    async def list_packages(self, owner: str, project: str) -> List[CoprPackageRecord]:
        data = await get_json(
            self.client,
            f"{self.api_base}/package/list",
            params={"ownername": owner, "projectname": project, "limit": PAGE_LIMIT},
        )
        if not isinstance(data, dict):
            return []

        packages = []
        for item in data.get("items", []):
            if not item.get("name"):
                continue
            source_dict = item.get("source_dict") or {}
            packages.append(CoprPackageRecord(
                name=item["name"],
                source_type=item.get("source_type"),
                clone_url=source_dict.get("clone_url"),
            ))
        return packages

    async def latest_build_at(self, owner: str, project: str) -> Optional[datetime]:
        """Submission time of the newest build, or None"""
        data = await get_json(
            self.client,
            f"{self.api_base}/build/list",
            params={
                "ownername": owner,
                "projectname": project,
                "limit": 1,
                "order": "id",
                "order_type": "DESC",
            },
        )
        if not isinstance(data, dict) or not data.get("items"):
            return None

        submitted_on = data["items"][0].get("submitted_on")
        try:
            return datetime.utcfromtimestamp(int(submitted_on))
        except (TypeError, ValueError, OverflowError, OSError):
            return None

    async def find_latest_dump_url(self, index_url: str = settings.COPR_DUMP_INDEX_URL) -> str:
        """Newest copr_db-*.gz linked from the dump index"""
        try:
            response = await self.client.get(index_url)
        except httpx.HTTPError as e:
            raise DumpUnavailableError(
                "Failed to fetch dump index",
                context={"url": index_url},
                original_exception=e
            )

        if not response.is_success:
            raise DumpUnavailableError(
                "Failed to fetch dump index",
                context={"url": index_url, "status_code": response.status_code}
            )

        matches = DUMP_LINK_REGEX.findall(response.text)
        if not matches:
            raise DumpUnavailableError("No dump files found", context={"url": index_url})

        base = index_url if index_url.endswith("/") else f"{index_url}/"
        return f"{base}{matches[-1]}"

    async def download_dump(self, url: str, dest_path: str) -> int:
        """
        Stream the dump to disk without buffering it in memory.

        Returns:
            Number of bytes written
        """
        written = 0
        try:
            async with self.client.stream("GET", url) as response:
                if not response.is_success:
                    raise DumpUnavailableError(
                        "Failed to download dump",
                        context={"url": url, "status_code": response.status_code}
                    )
                with open(dest_path, "wb") as handle:
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as e:
            raise DumpUnavailableError(
                "Failed to download dump",
                context={"url": url},
                original_exception=e
            )

        logger.info(f"Dump saved to {dest_path} ({written / 1024 / 1024:.1f} MB)")
        return written
