"""
Unit tests for the classification tier chain and the generative classifier
"""

import asyncio
import json
import pytest
import httpx
from pydantic import ValidationError
from models.base import ClassificationSource
from schemas.classification import Classification, ClassificationInput
from core.exceptions import ClassifierError, RateLimitError
from pipeline.transformers.classifier import (
    AppStreamTier,
    HeuristicTier,
    ClassifierChain,
    build_classifier_chain,
    FALLBACK,
)
from pipeline.transformers.llm_classifier import (
    LlmClassifier,
    build_classification_prompt,
    completions_url,
)


def make_input(**kwargs):
    defaults = {"project_id": 1, "owner": "someone", "name": "zzz"}
    defaults.update(kwargs)
    return ClassificationInput(**defaults)


def completion(content):
    return {"choices": [{"message": {"content": json.dumps(content)}}]}


class FakeLlm:
    """Records concurrency and answers with a fixed slug"""

    def __init__(self, slug="science", fail_names=(), cancel_names=()):
        self.slug = slug
        self.fail_names = set(fail_names)
        self.cancel_names = set(cancel_names)
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def classify(self, item):
        self.calls.append(item.name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if item.name in self.fail_names:
                raise ClassifierError("boom")
            if item.name in self.cancel_names:
                raise asyncio.CancelledError()
            return Classification(tier=ClassificationSource.LLM, slug=self.slug, confidence="medium")
        finally:
            self.in_flight -= 1


class TestAppStreamTier:

    def test_own_name_lookup(self):
        tier = AppStreamTier({"lazygit": ["Development"]})
        result = tier.classify(make_input(name="lazygit"))
        assert result == Classification(tier=ClassificationSource.APPSTREAM, slug="developer-tools", confidence="high")

    def test_sub_package_lookup(self):
        tier = AppStreamTier({"obs-studio": ["AudioVideo"]})
        result = tier.classify(make_input(name="obs", package_names=["obs-studio-libs", "obs-studio"]))
        assert result.slug == "audio-video"

    def test_unmapped_labels_fall_through(self):
        tier = AppStreamTier({"thing": ["GTK"]})
        assert tier.classify(make_input(name="thing")) is None

    def test_candidate_names_deduplicated(self):
        tier = AppStreamTier({})
        names = tier.candidate_names(make_input(name="foo", package_names=["foo", "foo-devel", "foo-devel"]))
        assert names == ["foo", "foo-devel"]


class TestClassifierChain:

    @pytest.mark.asyncio
    async def test_appstream_beats_heuristic(self):
        chain = build_classifier_chain({"mygame": ["Development"]})
        results, failures = await chain.classify_batch([make_input(name="mygame", upstream_topics=["game"])])

        assert results[0].tier == ClassificationSource.APPSTREAM
        assert results[0].slug == "developer-tools"
        assert failures == 0

    @pytest.mark.asyncio
    async def test_heuristic_tier(self):
        chain = build_classifier_chain({})
        results, _ = await chain.classify_batch([make_input(upstream_topics=["game"])])

        assert results[0] == Classification(tier=ClassificationSource.HEURISTIC, slug="games", confidence="medium")

    @pytest.mark.asyncio
    async def test_fallback_without_generative_classifier(self):
        chain = build_classifier_chain({}, llm=None)
        results, failures = await chain.classify_batch([make_input()])

        assert results == [FALLBACK]
        assert results[0].slug == "utilities"
        assert results[0].tier == ClassificationSource.HEURISTIC
        assert results[0].confidence == "low"
        assert failures == 0

    @pytest.mark.asyncio
    async def test_only_unresolved_items_reach_generative_classifier(self):
        llm = FakeLlm()
        chain = build_classifier_chain({"known": ["Game"]}, llm=llm)
        items = [
            make_input(name="known"),
            make_input(name="unknown-a"),
            make_input(name="nerd-fonts"),
            make_input(name="unknown-b"),
        ]

        results, failures = await chain.classify_batch(items)

        assert llm.calls == ["unknown-a", "unknown-b"]
        assert [r.slug for r in results] == ["games", "science", "fonts-themes", "science"]
        assert [r.tier for r in results] == [
            ClassificationSource.APPSTREAM,
            ClassificationSource.LLM,
            ClassificationSource.HEURISTIC,
            ClassificationSource.LLM,
        ]
        assert failures == 0

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        llm = FakeLlm()
        chain = ClassifierChain([HeuristicTier()], llm=llm, concurrency=3)
        items = [make_input(name=f"zzz{i}") for i in range(12)]

        results, _ = await chain.classify_batch(items)

        assert len(llm.calls) == 12
        assert 1 <= llm.max_in_flight <= 3
        assert all(r.tier == ClassificationSource.LLM for r in results)

    @pytest.mark.asyncio
    async def test_failure_isolated_to_item(self):
        llm = FakeLlm(fail_names=["zzz1"])
        chain = ClassifierChain([HeuristicTier()], llm=llm)
        items = [make_input(name="zzz0"), make_input(name="zzz1"), make_input(name="zzz2")]

        results, failures = await chain.classify_batch(items)

        assert failures == 1
        assert results[0].tier == ClassificationSource.LLM
        assert results[1] == FALLBACK
        assert results[2].tier == ClassificationSource.LLM

    @pytest.mark.asyncio
    async def test_cancelled_item_falls_back(self):
        llm = FakeLlm(cancel_names=["zzz1"])
        chain = ClassifierChain([HeuristicTier()], llm=llm)
        items = [make_input(name="zzz0"), make_input(name="zzz1")]

        results, failures = await chain.classify_batch(items)

        assert failures == 1
        assert results[0].tier == ClassificationSource.LLM
        assert results[1] == FALLBACK

    def test_classification_is_frozen(self):
        result = Classification(tier=ClassificationSource.HEURISTIC, slug="games")
        with pytest.raises(ValidationError):
            result.slug = "science"


class TestLlmClassifier:

    def test_completions_url_normalization(self):
        assert completions_url("http://llm:11434/v1") == "http://llm:11434/v1/chat/completions"
        assert completions_url("http://llm:11434/v1/") == "http://llm:11434/v1/chat/completions"
        assert completions_url("http://llm:11434/v1/chat/completions") == "http://llm:11434/v1/chat/completions"

    def test_prompt_contains_metadata(self):
        prompt = build_classification_prompt(make_input(
            owner="atim",
            name="lazygit",
            description="simple terminal UI for git",
            upstream_language="Go",
            upstream_topics=["git", "tui"],
            homepage="https://github.com/jesseduffield/lazygit",
        ))
        assert prompt.splitlines() == [
            "Name: atim/lazygit",
            "Description: simple terminal UI for git",
            "Language: Go",
            "Topics: git, tui",
            "Homepage: https://github.com/jesseduffield/lazygit",
        ]

    def test_prompt_skips_missing_fields(self):
        assert build_classification_prompt(make_input(owner="a", name="b")) == "Name: a/b"

    @pytest.mark.asyncio
    async def test_classify_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion({"category": "games", "confidence": "high"}))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            llm = LlmClassifier(client, "http://llm/v1", "secret", "test-model")
            result = await llm.classify(make_input())

        assert result == Classification(tier=ClassificationSource.LLM, slug="games", confidence="high")
        assert seen["url"] == "http://llm/v1/chat/completions"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["model"] == "test-model"
        assert seen["body"]["response_format"]["type"] == "json_schema"
        assert seen["body"]["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_unknown_slug_coerced(self):
        def handler(request):
            return httpx.Response(200, json=completion({"category": "cooking", "confidence": "high"}))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())

        assert result.slug == "utilities"
        assert result.confidence == "low"
        assert result.tier == ClassificationSource.LLM

    @pytest.mark.asyncio
    async def test_invalid_confidence_becomes_low(self):
        def handler(request):
            return httpx.Response(200, json=completion({"category": "office", "confidence": "certain"}))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())

        assert result.slug == "office"
        assert result.confidence == "low"

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "30"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())

        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ClassifierError) as exc_info:
                await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())

        assert exc_info.value.context["status_code"] == 500

    @pytest.mark.asyncio
    async def test_malformed_content(self):
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": "not json"}}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ClassifierError):
                await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ClassifierError):
                await LlmClassifier(client, "http://llm", "k", "m").classify(make_input())
