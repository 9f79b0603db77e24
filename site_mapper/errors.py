"""Exception hierarchy shared by the fetcher, the exploration policy and the LLM adapters."""

from __future__ import annotations

__all__ = [
    "SiteMapperError",
    "NetworkFailure",
    "MalformedResponse",
    "JudgmentCallFailure",
    "ContractViolation",
]


class SiteMapperError(Exception):
    """Base class for all recoverable SiteMapper failures."""


class NetworkFailure(SiteMapperError):
    """Page unreachable, timed out or answered with a non-success status."""

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class MalformedResponse(SiteMapperError):
    """Body could not be parsed or lacks the expected fields."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class JudgmentCallFailure(SiteMapperError):
    """The external judgment capability errored or returned invalid data."""


class ContractViolation(SiteMapperError):
    """A judgment result referenced something outside what was offered."""
