# Test-suite for the HTTP entry point
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from site_mapper.engine import SitemapService
from site_mapper.server import SITEMAP_ROUTE, create_app

from stubs import StubFetcher, StubJudge, StubSynthesizer, make_page


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}{SITEMAP_ROUTE}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def api_url(basic_config, example_homepage, unused_tcp_port: int) -> AsyncIterator[str]:
    fetcher = StubFetcher([example_homepage, make_page("https://example.com/about", "About")])
    service = SitemapService(basic_config, fetcher=fetcher, judge=StubJudge(), synthesizer=StubSynthesizer())
    async for url in _serve_app(create_app(basic_config, service=service), unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_sitemap_ok(api_url: str):
    async with ClientSession() as session:
        async with session.get(api_url, params={"url": "example.com", "depth": "2"}) as resp:
            assert resp.status == 200
            body = await resp.json()

    assert body["title"] == "Example"
    assert body["url"] == "example.com"
    assert body["pagesExplored"] == 2
    assert body["sitemap"].startswith("Example")
    assert body["linksToExplore"][0]["url"] == "https://example.com/about"
    assert "debugInfo" not in body


@pytest.mark.asyncio()
async def test_debug_and_explore_flags(api_url: str):
    async with ClientSession() as session:
        async with session.get(api_url, params={"url": "example.com", "debug": "true", "explore": "false"}) as resp:
            assert resp.status == 200
            body = await resp.json()

    assert body["pagesExplored"] == 1
    assert "linksToExplore" not in body
    assert body["debugInfo"]["depthReached"] == 1


@pytest.mark.asyncio()
async def test_unreachable_site_is_still_a_success(api_url: str):
    async with ClientSession() as session:
        async with session.get(api_url, params={"url": "unknown.example.org"}) as resp:
            assert resp.status == 200
            body = await resp.json()

    assert body["pagesExplored"] == 0
    assert body["title"] == "unknown.example.org"
    assert "Could not fetch" in body["error"]


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "params,message",
    [
        ({}, "URL parameter is required"),
        ({"url": "  "}, "URL parameter is required"),
        ({"url": "example.com", "depth": "deep"}, "invalid literal"),
        ({"url": "example.com", "depth": "9"}, "Invalid depth"),
        ({"url": "example.com", "debug": "maybe"}, "not a boolean"),
    ],
)
async def test_bad_requests(api_url: str, params, message):
    async with ClientSession() as session:
        async with session.get(api_url, params=params) as resp:
            assert resp.status == 400
            body = await resp.json()

    assert message in body["error"]
