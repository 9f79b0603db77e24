# === FILE: site_mapper/crawler/crawler.py ===
"""
Depth-bounded breadth-first crawl orchestrator.

States: INIT -> FETCH_ROOT -> (EXPAND_FRONTIER -> FETCH_NEXT_FRONTIER)* -> DONE.

The orchestrator is the only place that decides whether the crawl goes on.
Fetch failures and judgment failures are recorded and skipped; a failed
homepage is replaced by a placeholder so a degenerate result still comes out.
State lives on the instance, so a caller that cancels :meth:`crawl` (e.g.
on budget exhaustion) can still read the pages gathered so far.
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import List, Optional, Sequence

from site_mapper.crawler.fetcher import PageSource
from site_mapper.crawler.models import CrawlState, FetchFailure, PageRecord, RawLink, Selection
from site_mapper.crawler.policy import ExplorationPolicy
from site_mapper.crawler.registry import LinkRegistry
from site_mapper.errors import NetworkFailure
from site_mapper.logger import get_logger
from site_mapper.utils import ensure_scheme, normalize_url, resolve_link

__all__ = ("CrawlPhase", "SitemapCrawler")


class CrawlPhase(str, Enum):
    INIT = "init"
    FETCH_ROOT = "fetch_root"
    EXPAND_FRONTIER = "expand_frontier"
    FETCH_NEXT_FRONTIER = "fetch_next_frontier"
    DONE = "done"


class SitemapCrawler:
    """Runs one crawl; create a new instance per invocation."""

    def __init__(self, fetcher: PageSource, policy: Optional[ExplorationPolicy], max_depth: int = 2) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.fetcher = fetcher
        self.policy = policy
        self.max_depth = max_depth
        self.registry = LinkRegistry()
        self.state = CrawlState(root_url="", max_depth=max_depth)
        self.phase = CrawlPhase.INIT
        self.logger = get_logger("crawler")

    async def crawl(self, root_url: str, explore: bool = True) -> CrawlState:
        self.logger.info("Crawl start: %s (max depth %d)", root_url, self.max_depth)
        start = time.monotonic()

        self._enter(CrawlPhase.INIT)
        root = ensure_scheme(root_url)
        root_key = normalize_url(root)
        self.state = CrawlState(root_url=root, max_depth=self.max_depth)
        self.state.visited.add(root_key)
        self.state.explored.add(root_key)

        self._enter(CrawlPhase.FETCH_ROOT)
        homepage = await self._fetch_root(root, root_url.strip())
        self.state.homepage = homepage
        self.state.pages.append(homepage)
        self.state.frontier = [homepage]
        self.state.depth = 1
        self._register(self.state.frontier)

        can_expand = explore and self.policy is not None
        while can_expand and self.state.frontier and self.state.depth < self.max_depth:
            self._enter(CrawlPhase.EXPAND_FRONTIER)
            queued = await self._expand(self.state.frontier)
            if not queued:
                self.state.frontier = []
                break

            self._enter(CrawlPhase.FETCH_NEXT_FRONTIER)
            fetched = await self._fetch_level(queued)
            self.state.depth += 1
            self._register(fetched)
            self.state.pages.extend(fetched)
            self.state.frontier = fetched

        self._enter(CrawlPhase.DONE)
        duration = time.monotonic() - start
        self.logger.info(
            "Crawl done: %d pages, %d unique links, depth %d in %.2f s (%d failures)",
            len(self.pages_explored()),
            len(self.registry),
            self.state.depth,
            duration,
            len(self.state.failures),
        )
        return self.state

    def pages_explored(self) -> List[PageRecord]:
        """Pages actually fetched (the homepage placeholder does not count)."""
        if self.state.root_failed:
            return self.state.pages[1:]
        return list(self.state.pages)

    # --------------------------------------------------------------------- #
    # phases                                                                 #
    # --------------------------------------------------------------------- #

    def _enter(self, phase: CrawlPhase) -> None:
        self.phase = phase
        self.logger.debug("Phase -> %s (depth %d)", phase.value, self.state.depth)

    def _as_failure(self, url: str, outcome: object) -> FetchFailure:
        if isinstance(outcome, FetchFailure):
            return outcome
        self.logger.error("Fetcher broke its contract for %s: %r", url, outcome)
        return FetchFailure(url, NetworkFailure(url, repr(outcome)))

    async def _fetch_root(self, root: str, requested: str) -> PageRecord:
        try:
            outcome: object = await self.fetcher.fetch(root)
        except Exception as exc:
            outcome = exc
        if isinstance(outcome, PageRecord):
            self._mark_landing(outcome)
            # keep the root URL as the page identity even if the fetcher redirected
            return PageRecord(url=root, title=outcome.title, links=outcome.links, final_url=outcome.final_url)
        failure = self._as_failure(root, outcome)
        self.state.failures.append(failure)
        self.state.root_failed = True
        self.logger.warning("Homepage unavailable (%s), continuing with a placeholder", failure.error.reason)
        return PageRecord.placeholder(root, title=requested or root)

    def _mark_landing(self, page: PageRecord) -> bool:
        """Record where a redirected fetch landed; False if that page was already reached."""
        if not page.final_url:
            return True
        key = normalize_url(page.final_url)
        if key in self.state.visited:
            self.logger.info("Skipping %s: redirects to already visited %s", page.url, page.final_url)
            return False
        self.state.visited.add(key)
        self.state.explored.add(key)
        return True

    def _outbound(self, page: PageRecord) -> List[RawLink]:
        return [(text, resolve_link(page.url, url)) for text, url in page.links]

    def _register(self, pages: Sequence[PageRecord]) -> None:
        # sequential, in frontier order: index assignment stays deterministic
        home = self.state.homepage
        for page in pages:
            self.registry.register(page.url, self._outbound(page), homepage=page is home)

    async def _expand(self, frontier: Sequence[PageRecord]) -> List[Selection]:
        explored = frozenset(self.state.explored)
        results = await asyncio.gather(
            *(
                self.policy.select(  # type: ignore[union-attr]
                    page,
                    self.registry.resolve(url for _, url in self._outbound(page)),
                    explored,
                    depth=self.state.depth,
                )
                for page in frontier
            ),
            return_exceptions=True,
        )

        queued: List[Selection] = []
        for page, result in zip(frontier, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.error("Exploration of %s failed: %r", page.url, result)
                continue
            for selection in result:
                key = selection.link.key
                if key in self.state.visited:
                    continue
                # visited: never queued twice; explored: siblings and later depths skip it
                self.state.visited.add(key)
                self.state.explored.add(key)
                queued.append(selection)

        self.state.selections.extend(queued)
        self.state.levels.append(
            {
                "depth": self.state.depth,
                "pages": [p.url for p in frontier],
                "queued": [s.link.url for s in queued],
            }
        )
        self.logger.info("Depth %d: queued %d links from %d pages", self.state.depth, len(queued), len(frontier))
        return queued

    async def _fetch_level(self, queued: Sequence[Selection]) -> List[PageRecord]:
        outcomes = await asyncio.gather(
            *(self.fetcher.fetch(s.link.url) for s in queued),
            return_exceptions=True,
        )
        fetched: List[PageRecord] = []
        duplicates = 0
        for selection, outcome in zip(queued, outcomes):
            if isinstance(outcome, PageRecord):
                if self._mark_landing(outcome):
                    fetched.append(outcome)
                else:
                    duplicates += 1
                continue
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            self.state.failures.append(self._as_failure(selection.link.url, outcome))

        if self.state.levels:
            self.state.levels[-1]["fetched"] = len(fetched)
            self.state.levels[-1]["failed"] = len(queued) - len(fetched) - duplicates
            self.state.levels[-1]["redirected"] = duplicates
        return fetched
