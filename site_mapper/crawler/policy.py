# site_mapper/crawler/policy.py
"""
Exploration policy: pick at most N links of a page to fetch next.

Cheap deterministic filters run first; the judge is only consulted when
something survives them. Nothing here raises: a failed or nonsensical
judgment yields an empty selection for that page.
"""
from __future__ import annotations

from typing import Collection, Dict, List, Sequence

from site_mapper.crawler.models import LinkRecord, PageRecord, Selection
from site_mapper.errors import ContractViolation, JudgmentCallFailure
from site_mapper.llm.judge import LinkJudge
from site_mapper.logger import get_logger
from site_mapper.utils import (
    DEFAULT_SOCIAL_DOMAINS,
    is_hash_anchor,
    is_mail_link,
    is_meaningless_text,
    is_social_link,
)

__all__ = ["ExplorationPolicy"]

log = get_logger("policy")


def _offered(by_index: Dict[int, LinkRecord], index: int, page_url: str) -> LinkRecord:
    try:
        return by_index[index]
    except KeyError:
        raise ContractViolation(f"index {index} was not offered on {page_url}") from None


class ExplorationPolicy:
    """Bounded next-hop selection for one page."""

    def __init__(
        self,
        judge: LinkJudge,
        limit: int = 5,
        social_domains: Collection[str] = DEFAULT_SOCIAL_DOMAINS,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.judge = judge
        self.limit = limit
        self.social_domains = tuple(social_domains)

    def filter_candidates(
        self, page: PageRecord, links: Sequence[LinkRecord], explored: Collection[str]
    ) -> List[LinkRecord]:
        """Local filtering; keeps page order."""
        candidates: List[LinkRecord] = []
        for link in links:
            url = (link.url or "").strip()
            if not url or not link.key:
                continue
            if is_mail_link(url):
                continue
            if is_social_link(url, self.social_domains):
                continue
            if is_meaningless_text(link.display_text):
                continue
            if is_hash_anchor(url, page.url):
                continue
            if link.key in explored:
                continue
            candidates.append(link)
        return candidates

    async def select(
        self,
        page: PageRecord,
        links: Sequence[LinkRecord],
        explored: Collection[str],
        depth: int = 0,
    ) -> List[Selection]:
        candidates = self.filter_candidates(page, links, explored)
        if not candidates:
            log.debug("No candidates left on %s after filtering %d links", page.url, len(links))
            return []

        try:
            judgement = await self.judge.select_links(page, candidates, explored, self.limit)
        except JudgmentCallFailure as exc:
            log.warning("Link judgment failed for %s: %s", page.url, exc)
            return []

        by_index: Dict[int, LinkRecord] = {c.index: c for c in candidates}
        chosen: List[Selection] = []
        taken: set[int] = set()
        for choice in judgement.links:
            if len(chosen) >= self.limit:
                log.debug("Judge returned %d links for %s, keeping %d", len(judgement.links), page.url, self.limit)
                break
            try:
                link = _offered(by_index, choice.index, page.url)
            except ContractViolation as exc:
                log.warning("Dropping judged link: %s", exc)
                continue
            if choice.index in taken:
                continue
            taken.add(choice.index)
            chosen.append(Selection(link=link, reason=choice.reason, source_page=page.url, depth=depth))
        log.info("Selected %d/%d candidate links on %s", len(chosen), len(candidates), page.url)
        return chosen
