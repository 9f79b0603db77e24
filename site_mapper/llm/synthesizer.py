"""Hierarchy synthesis: turn the crawl catalog into a tab-indented outline."""

from __future__ import annotations

import json
from typing import Collection, Dict, List, Optional, Protocol, Sequence

from site_mapper.crawler.models import LinkRecord, PageRecord
from site_mapper.llm.client import LLMClient
from site_mapper.llm.schemas import SitemapDraft, parse_model
from site_mapper.logger import get_logger
from site_mapper.utils import (
    DEFAULT_SOCIAL_DOMAINS,
    extract_domain,
    is_mail_link,
    is_social_link,
    normalize_url,
)

__all__ = ["SitemapSynthesizer", "OpenAISitemapSynthesizer", "build_sitemap_prompt", "fallback_outline", "site_name"]

log = get_logger("llm.synthesizer")

_SYSTEM = (
    "You are a website information architect. You organise crawled links into a "
    "clean hierarchy. Answer with a single JSON object."
)

_INSTRUCTIONS = """\
Create a sitemap for the website below from the pages that were crawled.
Group related links and organise them into a logical hierarchy.

Homepage title: {title}
Homepage URL: {url}
Pages crawled: {page_count}
Unique links found: {link_count}

Return JSON with two keys:
- "description": a short explanation of the site's purpose, main sections and content types.
- "sitemap": a hierarchical outline, one node per line, each nesting level indented by one tab.

Outline example:
{title} (Homepage)
\tAbout
\t\tTeam
\t\tMission
\tServices
\t\tBranding
\t\tStrategy
\tBlog
\t\tPost A
\t\tPost B
\tContact

Guidelines:
1. The root node is the site name.
2. Decide which links are main sections and which are individual pages; group pages under sections.
3. Links found on the homepage are most likely the main navigation.
4. Ignore social media links and email addresses.
5. List individual articles, posts and case studies under their sections.
6. Merge near-duplicate pages (same page under different URLs) into one node.

Pages crawled:
{pages}

Unique links with the pages they were found on:
{links}
"""


class SitemapSynthesizer(Protocol):
    """External hierarchy synthesis. Raises JudgmentCallFailure on any failure."""

    async def synthesize(
        self,
        homepage: PageRecord,
        links: Sequence[LinkRecord],
        pages: Sequence[PageRecord],
    ) -> SitemapDraft: ...


def site_name(homepage: PageRecord) -> str:
    title = (homepage.title or "").strip()
    if title and normalize_url(title) != normalize_url(homepage.url):
        return title
    return extract_domain(homepage.url) or homepage.url


def build_sitemap_prompt(homepage: PageRecord, links: Sequence[LinkRecord], pages: Sequence[PageRecord]) -> str:
    titles: Dict[str, str] = {p.url: p.title or p.url for p in pages}
    pages_summary = "\n".join(f"Page: {p.title or p.url} ({p.url}) - {len(p.links)} links found" for p in pages)
    enhanced = []
    for link in links:
        found_on = []
        for page_url in link.source_pages:
            label = titles.get(page_url, page_url)
            found_on.append(f"{label} (Homepage)" if page_url == homepage.url else label)
        enhanced.append(
            {
                "text": link.display_text,
                "url": link.url,
                "foundOn": ", ".join(found_on),
                "isOnHomepage": link.on_homepage,
            }
        )
    return _INSTRUCTIONS.format(
        title=site_name(homepage),
        url=homepage.url,
        page_count=len(pages),
        link_count=len(links),
        pages=pages_summary,
        links=json.dumps(enhanced, ensure_ascii=False, indent=2),
    )


class OpenAISitemapSynthesizer:
    def __init__(self, client: LLMClient, max_tokens: int = 3000) -> None:
        self.client = client
        self.max_tokens = max_tokens

    async def synthesize(
        self,
        homepage: PageRecord,
        links: Sequence[LinkRecord],
        pages: Sequence[PageRecord],
    ) -> SitemapDraft:
        prompt = build_sitemap_prompt(homepage, links, pages)
        text = await self.client.complete_json(
            [{"role": "system", "content": _SYSTEM}, {"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )
        draft = parse_model(text, SitemapDraft)
        log.debug("Synthesized outline of %d lines", draft.sitemap.count("\n") + 1)
        return draft


def fallback_outline(
    homepage: PageRecord,
    links: Sequence[LinkRecord],
    reason: Optional[str] = None,
    social_domains: Collection[str] = DEFAULT_SOCIAL_DOMAINS,
) -> str:
    """Deterministic outline used when synthesis is unavailable.

    Root node, an error marker, then the homepage links (social and mail
    links excluded) as a flat first level.
    """
    lines: List[str] = [f"{site_name(homepage)} (Homepage)"]
    if reason:
        lines.append(f"\t[sitemap synthesis unavailable: {reason}]")
    home_key = normalize_url(homepage.url)
    for link in links:
        if not link.on_homepage or link.key == home_key:
            continue
        if is_mail_link(link.url) or is_social_link(link.url, social_domains):
            continue
        lines.append(f"\t{link.display_text or link.url}")
    return "\n".join(lines)
