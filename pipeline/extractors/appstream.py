"""
Third-party category index built from distribution AppStream metadata.

Sources are tried in order and the first source to list a package wins.
Each source's parsed entries are cached as JSON on local storage; a cache
file younger than the freshness window is used as is, and a stale cache
is used when the remote source cannot be reached.

Formats:
    xml: AppStream collection XML (Flathub, openSUSE via repomd.xml)
    yaml: DEP-11 multi-document YAML (Debian, Ubuntu)
"""

from typing import Dict, List, Optional, Union
from pathlib import Path
import asyncio
import gzip
import io
import json
import logging
import re
import time
import zlib
import xml.etree.ElementTree as ET
import httpx
import yaml

from core.config import settings
from core.exceptions import SourceError
from schemas.sources import AppStreamEntry

logger = logging.getLogger(__name__)

SOURCES: List[Dict[str, Union[str, bool]]] = [
    {
        "name": "flathub",
        "url": "https://dl.flathub.org/repo/appstream/x86_64/appstream.xml.gz",
        "format": "xml",
    },
    {
        "name": "opensuse",
        "url": "https://download.opensuse.org/tumbleweed/repo/oss/repodata/repomd.xml",
        "format": "xml",
        "repomd": True,
    },
    {
        "name": "debian",
        "url": "https://deb.debian.org/debian/dists/sid/main/dep11/Components-amd64.yml.gz",
        "format": "yaml",
    },
    {
        "name": "ubuntu",
        "url": "https://archive.ubuntu.com/ubuntu/dists/noble/universe/dep11/Components-amd64.yml.gz",
        "format": "yaml",
    },
]

DESKTOP_TYPES = ("desktop", "desktop-application")
REPOMD_APPDATA_REGEX = re.compile(r'<data type="appdata">[\s\S]*?<location href="([^"]+)"')

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


# ============================================================================
# Parsers
# ============================================================================

def _package_name_from_id(component_id: Optional[str]) -> Optional[str]:
    # "org.mozilla.firefox.desktop" -> "firefox"
    if not component_id:
        return None
    cleaned = component_id.strip()
    if cleaned.endswith(".desktop"):
        cleaned = cleaned[: -len(".desktop")]
    return cleaned.split(".")[-1] or None


def parse_appstream_xml(content: Union[str, bytes]) -> List[AppStreamEntry]:
    """
    Parse an AppStream collection XML document.

    Keeps desktop components that list categories. pkgname is preferred;
    Flatpak components have none, so the last segment of the component
    id is used instead.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    entries: List[AppStreamEntry] = []

    for _, elem in ET.iterparse(io.BytesIO(content), events=("end",)):
        if elem.tag != "component":
            continue

        if elem.get("type") in DESKTOP_TYPES:
            categories_elem = elem.find("categories")
            categories = []
            if categories_elem is not None:
                categories = [
                    c.text.strip() for c in categories_elem.findall("category")
                    if c.text and c.text.strip()
                ]

            package_name = (elem.findtext("pkgname") or "").strip() or _package_name_from_id(elem.findtext("id"))
            if categories and package_name:
                entries.append(AppStreamEntry(package_name=package_name, categories=categories))

        elem.clear()

    return entries


def parse_appstream_yaml(content: str) -> List[AppStreamEntry]:
    """Parse a DEP-11 multi-document YAML file"""
    entries: List[AppStreamEntry] = []

    for doc in yaml.load_all(content, Loader=_YamlLoader):
        if not isinstance(doc, dict):
            continue
        if doc.get("Type") != "desktop-application":
            continue

        package_name = doc.get("Package")
        categories = doc.get("Categories")
        if not package_name or not isinstance(categories, list) or not categories:
            continue

        entries.append(AppStreamEntry(
            package_name=str(package_name),
            categories=[str(c) for c in categories],
        ))

    return entries


def resolve_repomd_location(repomd_url: str, repomd_xml: str) -> str:
    """URL of the appdata file referenced by a repomd.xml"""
    match = REPOMD_APPDATA_REGEX.search(repomd_xml)
    if not match:
        raise SourceError("No appdata entry found in repomd.xml", context={"url": repomd_url})
    base = re.sub(r"repodata/repomd\.xml$", "", repomd_url)
    return base + match.group(1)


def merge_entries(index: Dict[str, List[str]], entries: List[AppStreamEntry]) -> int:
    """Add entries whose package is not yet indexed; returns the number added"""
    added = 0
    for entry in entries:
        if entry.package_name not in index:
            index[entry.package_name] = entry.categories
            added += 1
    return added


# ============================================================================
# Downloader with local cache
# ============================================================================

class AppStreamIndexLoader:
    """
    Download, parse and cache every AppStream source.

    Attributes:
        cache_dir: Directory holding one <source>.json per source
        max_age_days: Freshness window of a cache file (by mtime)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache_dir: str = settings.APPSTREAM_CACHE_DIR,
        max_age_days: float = settings.APPSTREAM_MAX_AGE_DAYS,
        sources: Optional[List[Dict[str, Union[str, bool]]]] = None
    ):
        self.client = client
        self.cache_dir = Path(cache_dir)
        self.max_age_seconds = max_age_days * 86400
        self.sources = sources if sources is not None else SOURCES

    def cache_path(self, source_name: str) -> Path:
        return self.cache_dir / f"{source_name}.json"

    def is_cache_fresh(self, path: Path) -> bool:
        if not path.exists():
            return False
        return time.time() - path.stat().st_mtime < self.max_age_seconds

    def read_cache(self, path: Path) -> List[AppStreamEntry]:
        with open(path, "r", encoding="utf-8") as handle:
            return [AppStreamEntry(**item) for item in json.load(handle)]

    def write_cache(self, path: Path, entries: List[AppStreamEntry]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump([e.model_dump() for e in entries], handle)

    async def _get(self, url: str) -> httpx.Response:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise SourceError("AppStream request failed", context={"url": url}, original_exception=e)
        if not response.is_success:
            raise SourceError(
                "AppStream request failed",
                context={"url": url, "status_code": response.status_code}
            )
        return response

    async def download_source(self, source: Dict[str, Union[str, bool]]) -> List[AppStreamEntry]:
        """Fetch and parse one source"""
        url = str(source["url"])
        if source.get("repomd"):
            repomd = await self._get(url)
            url = resolve_repomd_location(url, repomd.text)

        response = await self._get(url)
        data = response.content
        if url.endswith(".gz") or data[:2] == b"\x1f\x8b":
            data = await asyncio.to_thread(gzip.decompress, data)

        if source["format"] == "xml":
            return await asyncio.to_thread(parse_appstream_xml, data)
        return await asyncio.to_thread(parse_appstream_yaml, data.decode("utf-8", errors="replace"))

    async def load_source(self, source: Dict[str, Union[str, bool]]) -> Optional[List[AppStreamEntry]]:
        """Entries for one source, from fresh cache, download or stale cache"""
        name = str(source["name"])
        path = self.cache_path(name)

        if self.is_cache_fresh(path):
            logger.info(f"AppStream {name}: using cached data")
            return await asyncio.to_thread(self.read_cache, path)

        logger.info(f"AppStream {name}: downloading...")
        try:
            entries = await self.download_source(source)
        except (SourceError, OSError, EOFError, zlib.error, ET.ParseError, yaml.YAMLError) as e:
            logger.warning(f"AppStream {name}: FAILED - {e}")
            if path.exists():
                entries = await asyncio.to_thread(self.read_cache, path)
                logger.info(f"AppStream {name}: using stale cache ({len(entries)} entries)")
                return entries
            return None

        await asyncio.to_thread(self.write_cache, path, entries)
        logger.info(f"AppStream {name}: {len(entries)} entries cached")
        return entries

    async def load_index(self) -> Dict[str, List[str]]:
        """Merged package name -> FreeDesktop categories mapping"""
        index: Dict[str, List[str]] = {}
        for source in self.sources:
            entries = await self.load_source(source)
            if entries:
                merge_entries(index, entries)

        logger.info(f"Total unique packages in AppStream index: {len(index)}")
        return index
