# site_mapper/crawler/fetcher.py
"""
Fetcher module: turns a URL into a PageRecord (title + outbound links).

Never raises for network or content problems: every such outcome is a
:class:`FetchFailure` wrapping :class:`NetworkFailure` or
:class:`MalformedResponse`.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Protocol, Sequence, Union

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mapper.config import MapperConfig
from site_mapper.crawler.models import FetchFailure, PageRecord
from site_mapper.errors import MalformedResponse, NetworkFailure
from site_mapper.logger import get_logger
from site_mapper.parser.html_parser import parse_html, parse_reader_links
from site_mapper.utils import ensure_scheme, normalize_url

__all__ = ["FetchOutcome", "PageSource", "PageFetcher"]

log = get_logger("fetcher")

FetchOutcome = Union[PageRecord, FetchFailure]

_RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
_HTML_TYPES = ("text/html", "application/xhtml+xml")


class PageSource(Protocol):
    """Anything the crawler can fetch pages from."""

    async def fetch(self, url: str) -> FetchOutcome: ...


class _Retryable(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"retryable status {status}")
        self.status = status


class PageFetcher:
    """Fetches pages over an injected aiohttp session, with retry/backoff and a per-request timeout."""

    def __init__(
        self,
        session: ClientSession,
        config: MapperConfig,
        retry_status: Sequence[int] = _RETRY_STATUS,
        backoff_base: float = 0.5,
    ) -> None:
        self.session = session
        self.config = config
        self._retry_status = retry_status
        self._backoff_base = backoff_base
        self._timeout = ClientTimeout(total=config.fetch_timeout)

    async def fetch(self, url: str) -> FetchOutcome:
        """
        Fetch *url* (scheme optional) and extract its title and links.

        Returns PageRecord on success, FetchFailure otherwise.
        """
        full_url = ensure_scheme(url)
        attempts = 0
        while True:
            try:
                if self.config.fetch_mode == "reader":
                    return await self._fetch_reader(full_url)
                return await self._fetch_html(full_url)
            except (NetworkFailure, MalformedResponse) as exc:
                log.warning("Fetch failed %s: %s", full_url, exc.reason)
                return FetchFailure(full_url, exc)
            except asyncio.TimeoutError:
                # no retry on timeout, the budget is better spent elsewhere
                log.warning("Fetch timed out %s after %.1fs", full_url, self.config.fetch_timeout)
                return FetchFailure(full_url, NetworkFailure(full_url, "timeout"))
            except ValueError as exc:
                # aiohttp.InvalidURL is a ValueError as well; retrying cannot help
                log.warning("Fetch rejected %s: %s", full_url, exc)
                return FetchFailure(full_url, NetworkFailure(full_url, f"invalid url: {exc}"))
            except (_Retryable, ClientError) as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    status = exc.status if isinstance(exc, _Retryable) else None
                    log.warning("Fetch failed %s after %d attempt(s): %s", full_url, attempts, exc)
                    return FetchFailure(full_url, NetworkFailure(full_url, str(exc) or type(exc).__name__, status))
                backoff = min(10.0, self._backoff_base * 2 ** (attempts - 1))
                log.debug("Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, full_url, backoff)
                await asyncio.sleep(backoff)

    async def _fetch_html(self, url: str) -> PageRecord:
        headers = {"User-Agent": self.config.user_agent, "Accept": "text/html,application/xhtml+xml"}
        async with self.session.get(url, headers=headers, timeout=self._timeout, allow_redirects=True) as resp:
            self._check_status(url, resp.status)
            mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
            if mime and mime not in _HTML_TYPES:
                raise MalformedResponse(url, f"unsupported content type {mime!r}")
            try:
                html = await resp.text(errors="replace")
            except (UnicodeDecodeError, LookupError) as exc:
                raise MalformedResponse(url, f"undecodable body: {exc}") from exc
            final_url = str(resp.url)
        title, links = parse_html(html, final_url)
        log.debug("Fetched %s: %r with %d links", url, title, len(links))
        moved = final_url if normalize_url(final_url) != normalize_url(url) else None
        return PageRecord(url=url, title=title, links=tuple(links), final_url=moved)

    async def _fetch_reader(self, url: str) -> PageRecord:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-With-Links-Summary": "all",
            "User-Agent": self.config.user_agent,
        }
        if self.config.reader_api_key:
            headers["Authorization"] = f"Bearer {self.config.reader_api_key}"
        async with self.session.post(
            self.config.reader_url, json={"url": url}, headers=headers, timeout=self._timeout
        ) as resp:
            self._check_status(url, resp.status)
            body = await resp.text(errors="replace")
        payload = self._decode_reader(url, body)
        title = payload.get("title")
        links = parse_reader_links(url, payload.get("links") or {})
        return PageRecord(url=url, title=title if isinstance(title, str) else "", links=tuple(links))

    @staticmethod
    def _decode_reader(url: str, body: str) -> dict[str, Any]:
        try:
            data: Any = json.loads(body)
        except json.JSONDecodeError as exc:
            raise MalformedResponse(url, f"invalid JSON: {exc.msg}") from exc
        inner: Optional[Any] = data.get("data") if isinstance(data, dict) else None
        if not isinstance(inner, dict):
            raise MalformedResponse(url, "missing 'data' object")
        return inner

    def _check_status(self, url: str, status: int) -> None:
        if status in self._retry_status:
            raise _Retryable(status)
        if not 200 <= status < 300:
            raise NetworkFailure(url, f"HTTP {status}", status)
