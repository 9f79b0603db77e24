"""site_mapper.llm: judgment capabilities (link relevance, hierarchy synthesis) behind small protocols."""

from site_mapper.llm.client import LLMClient
from site_mapper.llm.judge import LinkJudge, OpenAILinkJudge
from site_mapper.llm.schemas import LinkChoice, LinkJudgement, SitemapDraft
from site_mapper.llm.synthesizer import OpenAISitemapSynthesizer, SitemapSynthesizer, fallback_outline

__all__ = [
    "LLMClient",
    "LinkJudge",
    "OpenAILinkJudge",
    "LinkChoice",
    "LinkJudgement",
    "SitemapDraft",
    "SitemapSynthesizer",
    "OpenAISitemapSynthesizer",
    "fallback_outline",
]
