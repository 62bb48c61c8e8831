"""
Fedora Discussion (Discourse) thread lookups
"""

from typing import Optional
from urllib.parse import urlparse
import logging
import httpx
from pydantic import ValidationError

from core.config import settings
from schemas.sources import DiscourseStats, DiscourseTopicInfo
from pipeline.extractors.http_utils import get_json

logger = logging.getLogger(__name__)


class DiscourseClient:
    """
    Discovers the comment thread embedded on a project page and reads
    its engagement counters. Both lookups return None on any failure.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = settings.DISCOURSE_BASE_URL,
        copr_web_base: str = settings.COPR_WEB_BASE
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.copr_host = urlparse(copr_web_base).netloc or copr_web_base

    def embed_url(self, owner: str, name: str) -> str:
        return f"{self.copr_host}/coprs/{owner}/{name}"

    async def find_topic_by_embed_url(self, owner: str, name: str) -> Optional[DiscourseTopicInfo]:
        data = await get_json(
            self.client,
            f"{self.base_url}/search.json",
            params={"q": self.embed_url(owner, name)},
        )
        topics = (data or {}).get("topics") if isinstance(data, dict) else None
        if not topics:
            return None

        topic = topics[0] if isinstance(topics, list) else None
        if not isinstance(topic, dict):
            logger.warning(f"Malformed search result for {owner}/{name}: {topic!r}")
            return None

        try:
            return DiscourseTopicInfo(
                topic_id=topic["id"],
                slug=topic.get("slug"),
                likes=topic.get("like_count"),
                views=topic.get("views"),
                replies=topic.get("reply_count"),
            )
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Malformed search result for {owner}/{name}: {e}")
            return None

    async def fetch_topic_stats(self, topic_id: int) -> Optional[DiscourseStats]:
        data = await get_json(self.client, f"{self.base_url}/t/{topic_id}.json")
        if not isinstance(data, dict):
            return None

        try:
            return DiscourseStats(
                likes=data.get("like_count"),
                views=data.get("views"),
                replies=data.get("reply_count"),
            )
        except ValidationError as e:
            logger.warning(f"Malformed stats for topic {topic_id}: {e}")
            return None
