"""
Generative category classifier backed by an OpenAI-compatible
chat completions endpoint.

The request restricts the answer to the known slug enumeration through
a JSON schema response format. A slug outside the enumeration is coerced
to the fallback slug with low confidence; every transport or payload
problem is raised as ClassifierError for the caller to absorb.
"""

from typing import Dict, Any, Optional
import json
import logging
import httpx

from core.exceptions import ClassifierError, RateLimitError
from models.base import ClassificationSource
from schemas.classification import Classification, ClassificationInput
from pipeline.transformers.category_mapping import CATEGORIES, VALID_SLUGS, FALLBACK_SLUG

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = ["high", "medium", "low"]

SYSTEM_PROMPT = (
    "You are a Linux package classifier. Given a COPR package's metadata, "
    "classify it into exactly ONE category. Respond with JSON matching this schema: "
    '{"category": "<slug>", "confidence": "high"|"medium"|"low"}\n\n'
    "Categories:\n"
    + "\n".join(f"- {c['slug']}: {c['name']}" for c in CATEGORIES)
)

RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "classification",
        "schema": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "enum": VALID_SLUGS},
                "confidence": {"type": "string", "enum": CONFIDENCE_LEVELS},
            },
            "required": ["category", "confidence"],
        },
    },
}


def build_classification_prompt(item: ClassificationInput) -> str:
    """User message listing the item's metadata, one field per line"""
    lines = [f"Name: {item.full_name}"]
    if item.description:
        lines.append(f"Description: {item.description}")
    if item.upstream_language:
        lines.append(f"Language: {item.upstream_language}")
    if item.upstream_topics:
        lines.append(f"Topics: {', '.join(item.upstream_topics)}")
    if item.homepage:
        lines.append(f"Homepage: {item.homepage}")
    return "\n".join(lines)


def completions_url(api_url: str) -> str:
    """Normalize a base URL or full endpoint URL to the completions endpoint"""
    base = api_url.rstrip("/")
    if base.endswith("/chat/completions"):
        base = base[: -len("/chat/completions")]
    return f"{base}/chat/completions"


class LlmClassifier:
    """
    Classify one item per request.

    Attributes:
        api_url: Endpoint base URL (with or without /chat/completions)
        api_key: Bearer token
        model: Model name sent with each request
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        api_key: str,
        model: str,
        timeout: Optional[float] = None
    ):
        self.client = client
        self.url = completions_url(api_url)
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def _payload(self, item: ClassificationInput) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_classification_prompt(item)},
            ],
            "response_format": RESPONSE_FORMAT,
        }

    async def classify(self, item: ClassificationInput) -> Classification:
        """
        Classify one item.

        Raises:
            RateLimitError: Endpoint answered 429
            ClassifierError: Timeout, non-2xx or malformed payload
        """
        context = {"item": item.full_name}

        try:
            response = await self.client.post(
                self.url,
                json=self._payload(item),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as e:
            raise ClassifierError(
                "Classifier request failed",
                context=context,
                original_exception=e
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Classifier rate limit exceeded",
                context={**context, "status_code": 429},
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if response.status_code >= 400:
            raise ClassifierError(
                f"Classifier returned HTTP {response.status_code}",
                context={**context, "status_code": response.status_code}
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
            parsed = json.loads(content)
            slug = parsed["category"]
            confidence = parsed.get("confidence", "low")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassifierError(
                "Malformed classifier response",
                context=context,
                original_exception=e
            )

        if slug not in VALID_SLUGS:
            logger.warning(f"Classifier returned unknown slug '{slug}' for {item.full_name}")
            slug, confidence = FALLBACK_SLUG, "low"
        elif confidence not in CONFIDENCE_LEVELS:
            confidence = "low"

        return Classification(tier=ClassificationSource.LLM, slug=slug, confidence=confidence)
