# site_mapper/crawler/models.py
"""
Data models for the SiteMapper crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from site_mapper.errors import MalformedResponse, NetworkFailure

# (anchor text, target url) in document order
RawLink = Tuple[str, str]


@dataclass(slots=True, frozen=True)
class PageRecord:
    """A successfully fetched page: its URL, title and outbound links."""

    url: str
    title: str
    links: Tuple[RawLink, ...] = ()
    # where the request ended up after redirects; None when it did not move
    final_url: Optional[str] = None

    @classmethod
    def placeholder(cls, url: str, title: Optional[str] = None) -> PageRecord:
        """Stand-in for a homepage that could not be fetched."""
        return cls(url=url, title=title or url, links=())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url, "title": self.title, "links": len(self.links)}
        if self.final_url:
            data["finalUrl"] = self.final_url
        return data


@dataclass(slots=True, frozen=True)
class FetchFailure:
    """Typed failure returned by the fetcher instead of raising."""

    url: str
    error: Union[NetworkFailure, MalformedResponse]

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "kind": self.kind, "reason": self.error.reason}


@dataclass(slots=True)
class LinkRecord:
    """One unique link of the crawl, keyed by its normalized URL."""

    index: int
    display_text: str
    url: str
    key: str
    # insertion-ordered set of page URLs that referenced the link
    source_pages: Dict[str, None] = field(default_factory=dict)
    on_homepage: bool = False

    def add_source(self, page_url: str) -> None:
        self.source_pages.setdefault(page_url, None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "text": self.display_text,
            "url": self.url,
            "sourcePages": list(self.source_pages),
            "isOnHomepage": self.on_homepage,
        }


@dataclass(slots=True, frozen=True)
class Selection:
    """A link the exploration policy wants fetched next."""

    link: LinkRecord
    reason: Optional[str] = None
    source_page: str = ""
    depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.link.url,
            "text": self.link.display_text,
            "reason": self.reason,
            "sourcePage": self.source_page,
            "depth": self.depth,
        }


@dataclass(slots=True)
class CrawlState:
    """Mutable bookkeeping of a single crawl invocation."""

    root_url: str
    max_depth: int
    frontier: List[PageRecord] = field(default_factory=list)
    visited: Set[str] = field(default_factory=set)
    explored: Set[str] = field(default_factory=set)
    depth: int = 0
    pages: List[PageRecord] = field(default_factory=list)
    selections: List[Selection] = field(default_factory=list)
    failures: List[FetchFailure] = field(default_factory=list)
    levels: List[Dict[str, Any]] = field(default_factory=list)
    homepage: Optional[PageRecord] = None
    root_failed: bool = False


@dataclass(slots=True, frozen=True)
class SitemapResult:
    """Outcome of synthesis: the outline plus its headline numbers."""

    title: str
    hierarchy_text: str
    pages_explored: int
    description: str = ""
    error: Optional[str] = None
