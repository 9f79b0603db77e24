# === FILE: site_mapper/parser/html_parser.py ===
"""HTML and reader-payload parsing for SiteMapper.

Both functions produce the same thing: a page title and an ordered list of
``(anchor text, absolute url)`` pairs, already cleaned of entries the link
registry must never see:

* empty targets;
* anchor text containing ``{`` or ``}`` (template leftovers such as
  ``{{ item.title }}``).
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Iterable, List, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.crawler.models import RawLink
from site_mapper.utils import resolve_link

__all__: Sequence[str] = ("parse_html", "parse_reader_links", "clean_links")


def _anchor_text(tag: Tag) -> str:
    text = tag.get_text(" ", strip=True)
    if not text:
        # icon links: fall back to aria-label / title / img alt
        text = str(tag.get("aria-label") or tag.get("title") or "")
        img = tag.find("img")
        if not text and isinstance(img, Tag):
            text = str(img.get("alt") or "")
    return " ".join(text.split())


def clean_links(page_url: str, links: Iterable[Tuple[Any, Any]]) -> List[RawLink]:
    """Drop unusable entries and resolve relative targets against *page_url*."""
    cleaned: List[RawLink] = []
    for text, target in links:
        if not isinstance(target, str) or not target.strip():
            continue
        text = text if isinstance(text, str) else ""
        if "{" in text or "}" in text:
            continue
        cleaned.append((text.strip(), resolve_link(page_url, target)))
    return cleaned


def parse_html(html: str, page_url: str) -> Tuple[str, List[RawLink]]:
    """Return ``(title, links)`` extracted from *html* in document order."""
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""

    raw: List[Tuple[str, str]] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href = tag.get("href")
        if not isinstance(href, str):
            continue
        raw.append((_anchor_text(tag), href))
    return title, clean_links(page_url, raw)


def parse_reader_links(page_url: str, links: Any) -> List[RawLink]:
    """Flatten the reader service ``links`` summary.

    The summary maps anchor text to a target; a target may itself be a
    ``[text, url]`` pair whose non-blank text wins over the key.
    """
    pairs: List[Tuple[Any, Any]] = []
    if isinstance(links, dict):
        items: Iterable[Tuple[Any, Any]] = links.items()
    elif isinstance(links, list):
        # some reader versions emit a list of [text, url] pairs
        items = ((None, entry) for entry in links)
    else:
        return []
    for text, target in items:
        if isinstance(target, (list, tuple)):
            inner_text = target[0] if len(target) > 0 else None
            url = target[1] if len(target) > 1 else ""
            if isinstance(inner_text, str) and inner_text.strip():
                text = inner_text
            target = url
        pairs.append((text, target))
    return clean_links(page_url, pairs)
