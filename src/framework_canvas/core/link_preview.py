"""link preview fetching.

pulls title/description/image/favicon out of a page's meta tags. results
are cached per url in an explicit PreviewCache owned by the fetcher.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from html import unescape
from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx

from .models import LinkPreview

logger = logging.getLogger(__name__)


# --- configuration ---

DEFAULT_TIMEOUT = 10.0  # seconds
USER_AGENT = "Mozilla/5.0 (compatible; LinkPreviewBot/1.0)"


class LinkPreviewError(Exception):
    """the preview could not be fetched or the url is unusable."""


class PreviewCache:
    """url -> preview, kept for the life of the session.

    unbounded; swap for an lru if sessions get long.
    """

    def __init__(self):
        self._entries: dict[str, LinkPreview] = {}

    def get(self, url: str) -> Optional[LinkPreview]:
        return self._entries.get(url)

    def set(self, url: str, preview: LinkPreview) -> None:
        self._entries[url] = preview

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# an attribute value in either quote style; the other quote may appear inside
_VALUE = r"""(?:"([^"]*)"|'([^']*)')"""


def _value(match: re.Match) -> Optional[str]:
    value = match.group(1) if match.group(1) is not None else match.group(2)
    value = unescape(value).strip()
    return value or None


def _meta(html: str, name: str) -> Optional[str]:
    """open graph first, then twitter cards, then plain meta. attribute order varies."""
    for attr, key in (("property", f"og:{name}"), ("name", f"twitter:{name}"), ("name", name)):
        for pattern in (
            rf"<meta[^>]*\b{attr}=[\"']{re.escape(key)}[\"'][^>]*\bcontent={_VALUE}",
            rf"<meta[^>]*\bcontent={_VALUE}[^>]*\b{attr}=[\"']{re.escape(key)}[\"']",
        ):
            match = re.search(pattern, html, re.IGNORECASE)
            if match:
                value = _value(match)
                if value:
                    return value
    return None


def _favicon(html: str) -> Optional[str]:
    for pattern in (
        rf"<link[^>]*\brel=[\"'](?:shortcut )?icon[\"'][^>]*\bhref={_VALUE}",
        rf"<link[^>]*\bhref={_VALUE}[^>]*\brel=[\"'](?:shortcut )?icon[\"']",
    ):
        match = re.search(pattern, html, re.IGNORECASE)
        if match:
            return _value(match)
    return None


def _absolute(url: str, ref: str) -> str:
    if ref.startswith("http"):
        return ref
    return urljoin(url, ref)


def parse_preview(url: str, html: str) -> LinkPreview:
    """build a preview from a page's html."""
    title = _meta(html, "title")
    if not title:
        match = re.search(r"<title[^>]*>([^<]+)</title>", html, re.IGNORECASE)
        title = (unescape(match.group(1)).strip() or None) if match else None

    image = _meta(html, "image")
    favicon = _favicon(html)
    host = urlparse(url).hostname

    return LinkPreview(
        title=title,
        description=_meta(html, "description"),
        image=_absolute(url, image) if image else None,
        favicon=_absolute(url, favicon) if favicon else urljoin(url, "/favicon.ico"),
        site_name=_meta(html, "site_name") or host,
        fetched_at=datetime.now(timezone.utc).isoformat(),
    )


class LinkPreviewFetcher:
    """fetch and cache link previews. failures raise LinkPreviewError, never retried."""

    def __init__(
        self,
        cache: Optional[PreviewCache] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else PreviewCache()
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> LinkPreview:
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise LinkPreviewError(f"unsupported url: {url}")

        logger.debug("fetching preview for %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LinkPreviewError(f"failed to fetch url: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("link preview for %s failed: %s", url, e)
            raise LinkPreviewError(f"failed to fetch url: {e}") from e

        preview = parse_preview(url, response.text)
        self.cache.set(url, preview)
        return preview
