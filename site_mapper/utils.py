# File: site_mapper/utils.py
"""site_mapper.utils: URL identity helpers and link classification used by the crawler."""

from __future__ import annotations

import re
from typing import Collection, Optional, Sequence
from urllib.parse import urldefrag, urljoin, urlparse

from site_mapper.logger import get_logger

__all__: Sequence[str] = (
    "DEFAULT_SOCIAL_DOMAINS",
    "normalize_url",
    "ensure_scheme",
    "resolve_link",
    "extract_domain",
    "is_mail_link",
    "is_social_link",
    "is_hash_anchor",
    "is_meaningless_text",
)

log = get_logger("utils")

DEFAULT_SOCIAL_DOMAINS: tuple[str, ...] = (
    "facebook.com",
    "fb.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "linkedin.com",
    "youtube.com",
    "youtu.be",
    "vimeo.com",
    "tiktok.com",
    "pinterest.com",
    "threads.net",
    "t.me",
    "wa.me",
    "whatsapp.com",
)

_SCHEME_RE = re.compile(r"^https?://")
_NON_PAGE_SCHEMES = ("mailto:", "tel:", "javascript:", "sms:")


def normalize_url(url: Optional[str]) -> str:
    """Return the comparison key for *url*.

    Lowercase, drop ``http(s)://``, trailing ``/``, ``www.`` and any ``#fragment``.
    Never raises; anything that is not a string normalizes to ``""``.
    """
    if not isinstance(url, str):
        return ""
    previous, normalized = None, url
    # each pass only shortens the string; repeat until stable so that
    # inputs like "a.com/#top" or "http://www.http://a.com" are idempotent
    while normalized != previous:
        previous = normalized
        normalized = _normalize_once(normalized)
    return normalized


def _normalize_once(url: str) -> str:
    normalized = url.strip().lower()
    normalized = _SCHEME_RE.sub("", normalized)
    normalized = normalized.rstrip("/")
    if normalized.startswith("www."):
        normalized = normalized[4:]
    return normalized.split("#", 1)[0]


def ensure_scheme(url: str, default: str = "https") -> str:
    """Prepend *default* scheme when *url* has none."""
    url = url.strip()
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"{default}://{url.lstrip('/')}"


def resolve_link(page_url: str, href: str) -> str:
    """Resolve *href* against *page_url*; non-page schemes are returned untouched."""
    href = href.strip()
    if not href or href.lower().startswith(_NON_PAGE_SCHEMES):
        return href
    try:
        return urljoin(ensure_scheme(page_url), href)
    except ValueError as exc:
        log.debug("Cannot resolve %r against %s: %s", href, page_url, exc)
        return href


def extract_domain(url: str) -> str:
    """Return the host of *url* without ``www.``; scheme-less input is accepted."""
    try:
        host = urlparse(ensure_scheme(url)).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def is_mail_link(url: str) -> bool:
    return url.strip().lower().startswith(_NON_PAGE_SCHEMES)


def is_social_link(url: str, social_domains: Collection[str] = DEFAULT_SOCIAL_DOMAINS) -> bool:
    """True when *url* points at a known social or video-hosting domain (subdomains included)."""
    host = extract_domain(url)
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in social_domains)


def is_hash_anchor(url: str, page_url: str) -> bool:
    """True for ``#section`` links and links back to *page_url* that only differ by fragment."""
    raw = url.strip()
    if raw.startswith("#"):
        return True
    base, fragment = urldefrag(raw)
    if not fragment and not raw.endswith("#"):
        return False
    return normalize_url(base) == normalize_url(page_url)


def is_meaningless_text(text: Optional[str]) -> bool:
    """Blank or purely numeric anchor text (pagination, counters)."""
    stripped = (text or "").strip()
    return not stripped or stripped.replace(" ", "").isdigit()

