"""Link relevance judgment: which candidates of a page are worth fetching next."""

from __future__ import annotations

import json
from typing import Collection, Optional, Protocol, Sequence

from site_mapper.crawler.models import LinkRecord, PageRecord
from site_mapper.llm.client import LLMClient
from site_mapper.llm.schemas import LinkJudgement, parse_model
from site_mapper.logger import get_logger

__all__ = ["LinkJudge", "OpenAILinkJudge", "build_link_prompt"]

log = get_logger("llm.judge")

_SYSTEM = (
    "You are a website information architect. You pick the links that best reveal "
    "a site's structure. Answer with a single JSON object."
)

_INSTRUCTIONS = """\
Decide which links of the current page should be explored to build a more complete sitemap.

Current page title: {title}
Current page URL: {url}
Pages already explored or queued: {explored}

Select at most {limit} links.

Guidelines:
- Prefer links leading to main sections, categories or important content.
- Prefer content links mentioning articles, posts, case studies or projects.
- On an insights or blog page, pick individual articles, a diverse sample of them.
- Skip social media, email and login links, and anything already explored.

Reply with JSON shaped like:
{{"reasoning": "<overall strategy>", "links": [{{"index": <candidate index>, "reason": "<why>"}}]}}
Only use indices from the candidate list.

Candidates:
{candidates}
"""


class LinkJudge(Protocol):
    """External relevance judgment. Raises JudgmentCallFailure on any failure."""

    async def select_links(
        self,
        page: PageRecord,
        candidates: Sequence[LinkRecord],
        explored: Collection[str],
        limit: int,
    ) -> LinkJudgement: ...


def build_link_prompt(
    page: PageRecord, candidates: Sequence[LinkRecord], explored: Collection[str], limit: int
) -> str:
    payload = [{"index": c.index, "text": c.display_text, "url": c.url} for c in candidates]
    return _INSTRUCTIONS.format(
        title=page.title or "(untitled)",
        url=page.url,
        explored=", ".join(sorted(explored)) or "none",
        limit=limit,
        candidates=json.dumps(payload, ensure_ascii=False, indent=2),
    )


class OpenAILinkJudge:
    def __init__(self, client: LLMClient, max_tokens: int = 800, temperature: Optional[float] = None) -> None:
        self.client = client
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def select_links(
        self,
        page: PageRecord,
        candidates: Sequence[LinkRecord],
        explored: Collection[str],
        limit: int,
    ) -> LinkJudgement:
        prompt = build_link_prompt(page, candidates, explored, limit)
        text = await self.client.complete_json(
            [{"role": "system", "content": _SYSTEM}, {"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        judgement = parse_model(text, LinkJudgement)
        log.debug("Judge picked %d of %d links on %s", len(judgement.links), len(candidates), page.url)
        return judgement
