# File: site_mapper/engine.py
"""site_mapper.engine: request-level orchestration: budget, crawl, synthesis and the response shape."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

from aiohttp import ClientSession
from pydantic import BaseModel, ConfigDict, Field, field_validator

from site_mapper.config import MapperConfig
from site_mapper.crawler.crawler import SitemapCrawler
from site_mapper.crawler.fetcher import PageFetcher, PageSource
from site_mapper.crawler.models import LinkRecord, PageRecord, SitemapResult
from site_mapper.crawler.policy import ExplorationPolicy
from site_mapper.errors import JudgmentCallFailure
from site_mapper.llm import LLMClient, OpenAILinkJudge, OpenAISitemapSynthesizer
from site_mapper.llm.judge import LinkJudge
from site_mapper.llm.synthesizer import SitemapSynthesizer, fallback_outline
from site_mapper.logger import get_logger

__all__ = ["SitemapRequest", "SitemapResponse", "SitemapService", "generate_sitemap"]

log = get_logger("engine")


class SitemapRequest(BaseModel):
    """Parameters of one sitemap read request."""
    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1)
    depth: Optional[int] = Field(None, ge=1, le=5, description="Crawl levels; config default when omitted.")
    debug: bool = False
    explore: bool = True

    @field_validator("url")
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be blank")
        return v


class SitemapResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sitemap: str
    title: str
    url: str
    pages_explored: int = Field(0, alias="pagesExplored")
    description: Optional[str] = None
    links_to_explore: Optional[List[Dict[str, Any]]] = Field(None, alias="linksToExplore")
    debug_info: Optional[Dict[str, Any]] = Field(None, alias="debugInfo")
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SitemapService:
    """Facade for the CLI, the HTTP handler and tests.

    Every collaborator can be injected; missing ones are built from the
    configuration (aiohttp fetcher, OpenAI-backed judge and synthesizer).
    """

    def __init__(
        self,
        config: MapperConfig,
        *,
        fetcher: Optional[PageSource] = None,
        judge: Optional[LinkJudge] = None,
        synthesizer: Optional[SitemapSynthesizer] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        if judge is None or synthesizer is None:
            client = LLMClient.from_config(config)
            judge = judge or OpenAILinkJudge(client)
            synthesizer = synthesizer or OpenAISitemapSynthesizer(client)
        self.judge = judge
        self.synthesizer = synthesizer

    async def generate(self, request: SitemapRequest) -> SitemapResponse:
        log.info("Sitemap requested for %s", request.url)
        if self.fetcher is not None:
            return await self._run(request, self.fetcher)
        async with ClientSession(headers={"User-Agent": self.config.user_agent}) as session:
            return await self._run(request, PageFetcher(session, self.config))

    async def _run(self, request: SitemapRequest, fetcher: PageSource) -> SitemapResponse:
        started = time.monotonic()
        deadline = started + self.config.budget
        depth = request.depth or self.config.max_depth
        policy = ExplorationPolicy(self.judge, self.config.max_links_per_page, self.config.social_domains)
        crawler = SitemapCrawler(fetcher, policy, max_depth=depth)

        errors: List[str] = []
        crawl_budget = self.config.budget - self.config.synthesis_reserve
        try:
            await asyncio.wait_for(crawler.crawl(request.url, explore=request.explore), timeout=crawl_budget)
        except asyncio.TimeoutError:
            log.warning("Crawl budget of %gs exhausted, continuing with partial results", crawl_budget)
            errors.append(f"Crawl stopped after {crawl_budget:g}s; results are partial")
        except Exception as exc:
            log.exception("Crawl aborted for %s", request.url)
            errors.append(f"Crawl failed: {exc}")

        state = crawler.state
        homepage = state.homepage or PageRecord.placeholder(state.root_url or request.url, title=request.url)
        if state.root_failed and state.failures:
            errors.insert(0, f"Could not fetch {request.url}: {state.failures[0].error.reason}")

        links = crawler.registry.to_list()
        pages = list(state.pages) or [homepage]
        result = await self._synthesize(homepage, links, pages, len(crawler.pages_explored()), deadline)
        if result.error:
            errors.append(result.error)

        response = SitemapResponse(
            sitemap=result.hierarchy_text,
            title=result.title,
            url=request.url,
            pages_explored=result.pages_explored,
            description=result.description or None,
            error="; ".join(errors) or None,
        )
        if request.explore:
            response.links_to_explore = [s.to_dict() for s in state.selections]
        if request.debug:
            response.debug_info = self._debug_info(crawler, links, depth, time.monotonic() - started)
        log.info(
            "Sitemap for %s ready: %d pages, %d links%s",
            request.url,
            result.pages_explored,
            len(links),
            " (with errors)" if errors else "",
        )
        return response

    async def _synthesize(
        self,
        homepage: PageRecord,
        links: List[LinkRecord],
        pages: List[PageRecord],
        pages_explored: int,
        deadline: float,
    ) -> SitemapResult:
        title = homepage.title or homepage.url
        if not links:
            # nothing to organise; skip the external call
            outline = fallback_outline(homepage, links, "no links found", self.config.social_domains)
            return SitemapResult(title, outline, pages_explored)

        remaining = max(1.0, deadline - time.monotonic())
        try:
            draft = await asyncio.wait_for(self.synthesizer.synthesize(homepage, links, pages), timeout=remaining)
        except asyncio.TimeoutError:
            reason = f"timed out after {remaining:.0f}s"
        except JudgmentCallFailure as exc:
            reason = str(exc)
        except Exception as exc:
            log.exception("Synthesizer crashed")
            reason = repr(exc)
        else:
            return SitemapResult(title, draft.sitemap, pages_explored, draft.description)

        log.warning("Sitemap synthesis failed for %s: %s", homepage.url, reason)
        outline = fallback_outline(homepage, links, reason, self.config.social_domains)
        return SitemapResult(title, outline, pages_explored, error=f"Sitemap synthesis failed: {reason}")

    def _debug_info(
        self, crawler: SitemapCrawler, links: List[LinkRecord], depth: int, elapsed: float
    ) -> Dict[str, Any]:
        state = crawler.state
        return {
            "maxDepth": depth,
            "depthReached": state.depth,
            "phase": crawler.phase.value,
            "elapsed": round(elapsed, 3),
            "levels": state.levels,
            "pages": [p.to_dict() for p in state.pages],
            "failures": [f.to_dict() for f in state.failures],
            "links": [link.to_dict() for link in links],
            "config": self.config.public_dict(),
        }


async def generate_sitemap(
    request: SitemapRequest,
    config: MapperConfig,
    **collaborators: Any,
) -> SitemapResponse:
    """Module-level entry point used by the CLI."""
    return await SitemapService(config, **collaborators).generate(request)
