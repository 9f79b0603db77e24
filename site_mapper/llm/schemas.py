"""Response shapes expected from the judgment capability, validated with pydantic."""

from __future__ import annotations

import re
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from site_mapper.errors import JudgmentCallFailure

__all__ = ["LinkChoice", "LinkJudgement", "SitemapDraft", "parse_model"]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

ModelT = TypeVar("ModelT", bound=BaseModel)


class LinkChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int
    reason: Optional[str] = None


class LinkJudgement(BaseModel):
    """Indices of candidates worth exploring, with the overall strategy."""
    model_config = ConfigDict(extra="ignore")

    reasoning: str = ""
    links: List[LinkChoice] = Field(default_factory=list)


class SitemapDraft(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str = ""
    sitemap: str = Field(..., min_length=1)

    @field_validator("sitemap")
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("sitemap is blank")
        return v.strip("\n")


def parse_model(text: str, model: Type[ModelT]) -> ModelT:
    """Validate a JSON completion against *model*; any mismatch is a JudgmentCallFailure."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return model.model_validate_json(cleaned)
    except ValidationError as exc:
        raise JudgmentCallFailure(
            f"{model.__name__} rejected: {exc.error_count()} validation error(s)"
        ) from exc
