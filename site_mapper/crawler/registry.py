# site_mapper/crawler/registry.py
"""
Crawl-wide link catalog.

Every link is keyed by :func:`site_mapper.utils.normalize_url`; the first
sighting fixes its index, later sightings only add source pages or a longer
anchor text.
"""
from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from site_mapper.crawler.models import LinkRecord, RawLink
from site_mapper.logger import get_logger
from site_mapper.utils import normalize_url

__all__ = ["LinkRegistry"]

log = get_logger("registry")


class LinkRegistry:
    """Deduplicates links by normalized URL and hands out monotonic indices."""

    def __init__(self) -> None:
        self._records: Dict[str, LinkRecord] = {}
        self._next_index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and normalize_url(url) in self._records

    def register(self, page_url: str, raw_links: Iterable[RawLink], homepage: bool = False) -> List[LinkRecord]:
        """Upsert *raw_links* seen on *page_url*.

        Returns the records touched, in page order, without repeats.
        """
        touched: Dict[str, LinkRecord] = {}
        with self._lock:
            for text, url in raw_links:
                key = normalize_url(url)
                if not key:
                    continue
                record = self._upsert(key, page_url, text or "", url, homepage)
                touched.setdefault(key, record)
        log.debug("Registered %d links from %s (%d unique overall)", len(touched), page_url, len(self._records))
        return list(touched.values())

    def _upsert(self, key: str, page_url: str, text: str, url: str, homepage: bool) -> LinkRecord:
        record = self._records.get(key)
        if record is None:
            record = LinkRecord(index=self._next_index, display_text=text.strip(), url=url, key=key)
            self._next_index += 1
            self._records[key] = record
        elif len(text.strip()) > len(record.display_text):
            record.display_text = text.strip()
        record.add_source(page_url)
        if homepage:
            record.on_homepage = True
        return record

    def get(self, url: str) -> Optional[LinkRecord]:
        return self._records.get(normalize_url(url))

    def resolve(self, urls: Iterable[str]) -> List[LinkRecord]:
        """Records for *urls* in the given order, skipping unknown and repeated keys."""
        seen: set[str] = set()
        out: List[LinkRecord] = []
        for url in urls:
            key = normalize_url(url)
            record = self._records.get(key)
            if record is None or key in seen:
                continue
            seen.add(key)
            out.append(record)
        return out

    def to_list(self) -> List[LinkRecord]:
        # dict preserves insertion order, which equals index order
        with self._lock:
            return list(self._records.values())
