"""
Unit tests for the external source clients
"""

import pytest
import httpx
from datetime import datetime
from unittest.mock import AsyncMock, patch
from core.exceptions import DumpUnavailableError, SourceError
from schemas.sources import UpstreamInfo
from pipeline.extractors.copr_api import CoprClient, parse_copr_project
from pipeline.extractors.forge import ForgeClient, compute_quota_wait, README_MAX_BYTES
from pipeline.extractors.discourse import DiscourseClient
from pipeline.extractors.http_utils import get_json

API = "https://copr.test/api_3"
WEB = "https://copr.test"


def project_item(copr_id, name, owner="atim"):
    return {
        "id": copr_id,
        "ownername": owner,
        "name": name,
        "full_name": f"{owner}/{name}",
        "description": f"{name} description",
        "homepage": None,
        "instructions": None,
        "chroot_repos": {"fedora-40-x86_64": "https://x", "fedora-41-x86_64": "https://y"},
    }


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGetJson:

    @pytest.mark.asyncio
    async def test_failures_return_none(self):
        def handler(request):
            if request.url.path == "/404":
                return httpx.Response(404)
            if request.url.path == "/bad":
                return httpx.Response(200, text="{not json")
            raise httpx.ReadTimeout("slow", request=request)

        async with mock_client(handler) as client:
            assert await get_json(client, "https://x.test/404") is None
            assert await get_json(client, "https://x.test/bad") is None
            assert await get_json(client, "https://x.test/timeout") is None


class TestCoprClient:

    def test_parse_project(self):
        record = parse_copr_project(project_item(7, "lazygit"), WEB)

        assert record.copr_id == 7
        assert record.full_name == "atim/lazygit"
        assert record.chroots == ["fedora-40-x86_64", "fedora-41-x86_64"]
        assert record.repo_url == "https://copr.test/coprs/atim/lazygit/"

    @pytest.mark.asyncio
    async def test_paginates_until_short_page(self):
        offsets = []

        def handler(request):
            offset = int(request.url.params["offset"])
            offsets.append(offset)
            count = 2 if offset < 4 else 1
            items = [project_item(offset + i, f"p{offset + i}") for i in range(count)]
            return httpx.Response(200, json={"items": items})

        with patch("pipeline.extractors.copr_api.asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with mock_client(handler) as client:
                copr = CoprClient(client, API, WEB)
                pages = [page async for page in copr.iter_project_pages(limit=2, page_delay=0.5)]

        assert offsets == [0, 2, 4]
        assert [len(p) for p in pages] == [2, 2, 1]
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_first_page_failure_raises(self):
        def handler(request):
            return httpx.Response(502)

        async with mock_client(handler) as client:
            copr = CoprClient(client, API, WEB)
            with pytest.raises(SourceError):
                async for _ in copr.iter_project_pages(limit=2, page_delay=0):
                    pass

    @pytest.mark.asyncio
    async def test_later_page_failure_stops(self):
        def handler(request):
            if request.url.params["offset"] == "0":
                return httpx.Response(200, json={"items": [project_item(1, "a"), project_item(2, "b")]})
            return httpx.Response(500)

        with patch("pipeline.extractors.copr_api.asyncio.sleep", new_callable=AsyncMock):
            async with mock_client(handler) as client:
                copr = CoprClient(client, API, WEB)
                pages = [page async for page in copr.iter_project_pages(limit=2)]

        assert len(pages) == 1

    @pytest.mark.asyncio
    async def test_list_packages(self):
        def handler(request):
            assert request.url.params["ownername"] == "atim"
            assert request.url.params["projectname"] == "lazygit"
            return httpx.Response(200, json={"items": [
                {"name": "lazygit", "source_type": "scm",
                 "source_dict": {"clone_url": "https://github.com/jesseduffield/lazygit.git"}},
                {"name": "", "source_dict": {}},
                {"name": "lazygit-doc", "source_type": "upload", "source_dict": None},
            ]})

        async with mock_client(handler) as client:
            packages = await CoprClient(client, API, WEB).list_packages("atim", "lazygit")

        assert [p.name for p in packages] == ["lazygit", "lazygit-doc"]
        assert packages[0].clone_url == "https://github.com/jesseduffield/lazygit.git"
        assert packages[1].clone_url is None

    @pytest.mark.asyncio
    async def test_latest_build_at(self):
        def handler(request):
            assert request.url.params["order_type"] == "DESC"
            return httpx.Response(200, json={"items": [{"id": 9, "submitted_on": 1700000000}]})

        async with mock_client(handler) as client:
            result = await CoprClient(client, API, WEB).latest_build_at("atim", "lazygit")

        assert result == datetime(2023, 11, 14, 22, 13, 20)

    @pytest.mark.asyncio
    async def test_latest_build_at_without_builds(self):
        def handler(request):
            return httpx.Response(200, json={"items": []})

        async with mock_client(handler) as client:
            assert await CoprClient(client, API, WEB).latest_build_at("atim", "empty") is None

    @pytest.mark.asyncio
    async def test_find_latest_dump_url(self):
        index = (
            '<a href="copr_db-2025-01-01.gz">old</a>\n'
            '<a href="copr_db-2025-01-02.gz">new</a>\n'
        )

        def handler(request):
            return httpx.Response(200, text=index)

        async with mock_client(handler) as client:
            url = await CoprClient(client, API, WEB).find_latest_dump_url("https://copr.test/db_dumps")

        assert url == "https://copr.test/db_dumps/copr_db-2025-01-02.gz"

    @pytest.mark.asyncio
    async def test_find_latest_dump_url_without_links(self):
        def handler(request):
            return httpx.Response(200, text="<html>empty</html>")

        async with mock_client(handler) as client:
            with pytest.raises(DumpUnavailableError):
                await CoprClient(client, API, WEB).find_latest_dump_url("https://copr.test/db_dumps/")

    @pytest.mark.asyncio
    async def test_download_dump(self, tmp_path):
        payload = b"x" * 4096

        def handler(request):
            return httpx.Response(200, content=payload)

        dest = tmp_path / "dump.gz"
        async with mock_client(handler) as client:
            written = await CoprClient(client, API, WEB).download_dump("https://copr.test/d.gz", str(dest))

        assert written == len(payload)
        assert dest.read_bytes() == payload

    @pytest.mark.asyncio
    async def test_download_dump_http_error(self, tmp_path):
        def handler(request):
            return httpx.Response(404)

        async with mock_client(handler) as client:
            with pytest.raises(DumpUnavailableError):
                await CoprClient(client, API, WEB).download_dump("https://copr.test/d.gz", str(tmp_path / "d.gz"))


class TestComputeQuotaWait:

    def test_no_headers(self):
        assert compute_quota_wait({}, low_water=10, fallback_seconds=60) is None

    def test_budget_above_low_water(self):
        headers = {"x-ratelimit-remaining": "10", "x-ratelimit-reset": "2000"}
        assert compute_quota_wait(headers, low_water=10, fallback_seconds=60, now=1000) is None

    def test_waits_until_reset(self):
        headers = {"x-ratelimit-remaining": "3", "x-ratelimit-reset": "1100"}
        assert compute_quota_wait(headers, low_water=10, fallback_seconds=60, now=1000) == 101

    def test_reset_in_the_past(self):
        headers = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "900"}
        assert compute_quota_wait(headers, low_water=10, fallback_seconds=60, now=1000) == 1.0

    def test_malformed_reset_uses_fallback(self):
        headers = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "soon"}
        assert compute_quota_wait(headers, low_water=10, fallback_seconds=60, now=1000) == 60

    def test_missing_reset_uses_fallback(self):
        headers = {"x-ratelimit-remaining": "0"}
        assert compute_quota_wait(headers, low_water=10, fallback_seconds=45, now=1000) == 45


class TestForgeClient:

    @pytest.mark.asyncio
    async def test_github_stats(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "stargazers_count": 450,
                "forks_count": 12,
                "language": "Go",
                "description": "simple terminal UI",
                "topics": ["git", "tui"],
            })

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token="tok", github_api_base="https://gh.test")
            meta = await forge.fetch_stats(UpstreamInfo(
                provider="github", host="github.com", owner="jesseduffield", repo="lazygit",
                url="https://github.com/jesseduffield/lazygit",
            ))

        assert seen == {"path": "/repos/jesseduffield/lazygit", "auth": "Bearer tok"}
        assert meta.stars == 450
        assert meta.language == "Go"
        assert meta.topics == ["git", "tui"]

    @pytest.mark.asyncio
    async def test_github_missing_repo(self):
        def handler(request):
            return httpx.Response(404)

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            assert await forge.fetch_github_stats("gone", "repo") is None

    @pytest.mark.asyncio
    async def test_github_malformed_payload(self):
        def handler(request):
            return httpx.Response(200, json={"stargazers_count": "lots", "forks_count": 1})

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            assert await forge.fetch_github_stats("jesseduffield", "lazygit") is None

    @pytest.mark.asyncio
    async def test_gitlab_malformed_payload(self):
        def handler(request):
            return httpx.Response(200, json={"star_count": {"n": 3}})

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            assert await forge.fetch_gitlab_stats("gitlab.gnome.org", "GNOME/gitg") is None

    @pytest.mark.asyncio
    async def test_sleeps_when_quota_low(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"stargazers_count": 1},
                headers={"x-ratelimit-remaining": "2", "x-ratelimit-reset": "not-a-number"},
            )

        with patch("pipeline.extractors.forge.asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with mock_client(handler) as client:
                forge = ForgeClient(
                    client, github_token=None, github_api_base="https://gh.test",
                    low_water=10, fallback_seconds=60
                )
                meta = await forge.fetch_github_stats("a", "b")

        assert meta.stars == 1
        sleep.assert_awaited_once_with(60)

    @pytest.mark.asyncio
    async def test_gitlab_stats(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"star_count": 33, "forks_count": 4, "topics": None})

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            meta = await forge.fetch_stats(UpstreamInfo(
                provider="gitlab", host="gitlab.gnome.org", owner="GNOME", repo="gitg",
                url="https://gitlab.gnome.org/GNOME/gitg",
            ))

        assert seen["url"] == "https://gitlab.gnome.org/api/v4/projects/GNOME%2Fgitg"
        assert meta.stars == 33
        assert meta.language is None
        assert meta.topics == []

    @pytest.mark.asyncio
    async def test_readme_truncated(self):
        body = ("#" * (README_MAX_BYTES + 500)).encode("utf-8")

        def handler(request):
            assert request.headers["Accept"] == "application/vnd.github.raw"
            return httpx.Response(200, content=body)

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            readme = await forge.fetch_github_readme("a", "b")

        assert len(readme) == README_MAX_BYTES

    @pytest.mark.asyncio
    async def test_readme_missing(self):
        def handler(request):
            return httpx.Response(404)

        async with mock_client(handler) as client:
            forge = ForgeClient(client, github_token=None, github_api_base="https://gh.test")
            assert await forge.fetch_github_readme("a", "b") is None


class TestDiscourseClient:

    def test_embed_url(self):
        discourse = DiscourseClient(None, "https://discuss.test", "https://copr.fedorainfracloud.org")
        assert discourse.embed_url("atim", "lazygit") == "copr.fedorainfracloud.org/coprs/atim/lazygit"

    @pytest.mark.asyncio
    async def test_find_topic(self):
        def handler(request):
            assert request.url.path == "/search.json"
            assert request.url.params["q"] == "copr.test/coprs/atim/lazygit"
            return httpx.Response(200, json={"topics": [
                {"id": 42, "slug": "atim-lazygit", "like_count": 3, "views": 245, "reply_count": None}
            ]})

        async with mock_client(handler) as client:
            topic = await DiscourseClient(client, "https://discuss.test", WEB).find_topic_by_embed_url("atim", "lazygit")

        assert topic.topic_id == 42
        assert (topic.likes, topic.views, topic.replies) == (3, 245, 0)

    @pytest.mark.asyncio
    async def test_find_topic_no_results(self):
        def handler(request):
            return httpx.Response(200, json={"posts": []})

        async with mock_client(handler) as client:
            assert await DiscourseClient(client, "https://discuss.test", WEB).find_topic_by_embed_url("a", "b") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"topics": [123]},
        {"topics": ["atim-lazygit"]},
        {"topics": {"id": 42}},
        {"topics": [{"slug": "no-id"}]},
        {"topics": [{"id": "forty-two"}]},
    ])
    async def test_find_topic_malformed_hit(self, payload):
        def handler(request):
            return httpx.Response(200, json=payload)

        async with mock_client(handler) as client:
            discourse = DiscourseClient(client, "https://discuss.test", WEB)
            assert await discourse.find_topic_by_embed_url("atim", "lazygit") is None

    @pytest.mark.asyncio
    async def test_fetch_topic_stats_malformed(self):
        def handler(request):
            return httpx.Response(200, json={"like_count": "many", "views": 1})

        async with mock_client(handler) as client:
            assert await DiscourseClient(client, "https://discuss.test", WEB).fetch_topic_stats(42) is None

    @pytest.mark.asyncio
    async def test_fetch_topic_stats(self):
        def handler(request):
            assert request.url.path == "/t/42.json"
            return httpx.Response(200, json={"like_count": 5, "views": 300, "reply_count": 2})

        async with mock_client(handler) as client:
            stats = await DiscourseClient(client, "https://discuss.test", WEB).fetch_topic_stats(42)

        assert (stats.likes, stats.views, stats.replies) == (5, 300, 2)
