"""
Tests for the Remote Recipe Index client.

HTTP is served by httpx.MockTransport; no network access is made.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from catalog.fetchers.remote_index import (
    HealthStatus,
    RemoteIndexClient,
    ensure_recipe_extension,
    extract_recipe_filenames,
)


class TestExtractRecipeFilenames:
    """Tolerant scrape of the directory listing."""

    def test_extracts_and_strips_directories(self):
        html = """
        <a href="/recipes/mocha.brewpadrecipe">mocha.brewpadrecipe</a>
        <a href="https://host/recipes/sub/iced_latte.brewpadrecipe">iced latte</a>
        <a href="/recipes/notes.txt">notes</a>
        """

        assert extract_recipe_filenames(html) == [
            "mocha.brewpadrecipe",
            "iced_latte.brewpadrecipe",
        ]

    def test_deduplicates_keeping_first_order(self):
        text = "b.brewpadrecipe a.brewpadrecipe b.brewpadrecipe"

        assert extract_recipe_filenames(text) == ["b.brewpadrecipe", "a.brewpadrecipe"]

    def test_plain_text_and_json_listings(self):
        assert extract_recipe_filenames('["chai-latte.brewpadrecipe"]') == [
            "chai-latte.brewpadrecipe"
        ]

    def test_bare_extension_is_ignored(self):
        assert extract_recipe_filenames("/recipes/.brewpadrecipe") == []

    def test_empty_listing(self):
        assert extract_recipe_filenames("") == []

    def test_ensure_recipe_extension(self):
        assert ensure_recipe_extension("mocha") == "mocha.brewpadrecipe"
        assert ensure_recipe_extension("mocha.brewpadrecipe") == "mocha.brewpadrecipe"


class TestFetchListing:
    @pytest.mark.asyncio
    async def test_listing_success(self, remote_server, recipe_payload):
        remote_server.add("mocha.brewpadrecipe", recipe_payload("Mocha"))
        remote_server.add("chai.brewpadrecipe", recipe_payload("Chai"))

        async with remote_server.client_factory()() as client:
            result = await client.fetch_listing()

        assert result.success
        assert result.status_code == 200
        assert sorted(result.names) == ["chai.brewpadrecipe", "mocha.brewpadrecipe"]

    @pytest.mark.asyncio
    async def test_listing_http_error(self, remote_server):
        remote_server.listing_status = 503

        async with remote_server.client_factory()() as client:
            result = await client.fetch_listing()

        assert not result.success
        assert result.names == []
        assert result.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_listing_unreachable(self, remote_server):
        remote_server.unreachable = True

        async with remote_server.client_factory()() as client:
            result = await client.fetch_listing()

        assert not result.success
        assert "Connection refused" in result.error

    @pytest.mark.asyncio
    async def test_listing_not_utf8(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"\xff\xfe\xfa"))

        async with RemoteIndexClient(transport=transport) as client:
            result = await client.fetch_listing()

        assert not result.success
        assert result.error == "Undecodable listing"

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if len(calls) == 1:
                return httpx.Response(502)
            return httpx.Response(200, text="mocha.brewpadrecipe")

        client = RemoteIndexClient(transport=httpx.MockTransport(handler), max_retries=1)
        with patch("catalog.fetchers.remote_index.asyncio.sleep", new_callable=AsyncMock):
            async with client:
                result = await client.fetch_listing()

        assert result.success
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with RemoteIndexClient(
            transport=httpx.MockTransport(handler), max_retries=3
        ) as client:
            result = await client.fetch_listing()

        assert not result.success
        assert len(calls) == 1


class TestDownloadOne:
    @pytest.mark.asyncio
    async def test_download_appends_extension(self, remote_server, recipe_payload):
        remote_server.add("mocha.brewpadrecipe", recipe_payload("Mocha"))

        async with remote_server.client_factory()() as client:
            result = await client.download_one("mocha")

        assert result.success
        assert result.name == "mocha.brewpadrecipe"
        assert b'"Mocha"' in result.content
        assert remote_server.requests == ["/recipes/mocha.brewpadrecipe"]

    @pytest.mark.asyncio
    async def test_download_missing_file(self, remote_server):
        async with remote_server.client_factory()() as client:
            result = await client.download_one("gone.brewpadrecipe")

        assert not result.success
        assert result.status_code == 404
        assert result.content == b""

    @pytest.mark.asyncio
    async def test_oversized_download_is_discarded(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"x" * 2048))

        async with RemoteIndexClient(transport=transport, max_file_size=1024) as client:
            result = await client.download_one("big")

        assert not result.success
        assert result.content == b""
        assert "exceeds" in result.error

    @pytest.mark.asyncio
    async def test_download_network_error(self, remote_server):
        remote_server.unreachable = True

        async with remote_server.client_factory()() as client:
            result = await client.download_one("mocha")

        assert not result.success
        assert result.error


class TestCheckHealth:
    @pytest.mark.asyncio
    async def test_reachable(self, remote_server):
        async with remote_server.client_factory()() as client:
            status = await client.check_health()

        assert status.reachable
        assert status.message == "Status: 200"
        assert not status.show_error

    @pytest.mark.asyncio
    async def test_non_2xx_shows_error(self, remote_server):
        remote_server.health_status = 502

        async with remote_server.client_factory()() as client:
            status = await client.check_health()

        assert not status.reachable
        assert status.message == "Status: 502"
        assert status.show_error

    @pytest.mark.asyncio
    async def test_unreachable(self, remote_server):
        remote_server.unreachable = True

        async with remote_server.client_factory()() as client:
            status = await client.check_health()

        assert status.show_error
        assert status.message.startswith("Error: ")

    def test_default_message(self):
        assert HealthStatus(reachable=False).message == "No response"
