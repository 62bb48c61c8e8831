"""
Shared HTTP helpers for the metadata fetchers
"""

from typing import Any, Dict, Optional
import logging
import httpx

logger = logging.getLogger(__name__)


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None
) -> Optional[Any]:
    """
    GET a JSON document.

    Returns None for network errors, non-2xx responses and malformed
    JSON, so callers can treat the item as unavailable.
    """
    try:
        response = await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as e:
        logger.warning(f"Request to {url} failed: {e}")
        return None

    if not response.is_success:
        logger.debug(f"Request to {url} returned HTTP {response.status_code}")
        return None

    try:
        return response.json()
    except ValueError as e:
        logger.warning(f"Malformed JSON from {url}: {e}")
        return None
