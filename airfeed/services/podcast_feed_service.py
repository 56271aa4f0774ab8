"""Live podcast feed fetching.

Fetches an RSS feed over HTTP and normalizes its entries into ``FeedItem``
values for the feed merger. Nothing here is persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import feedparser  # type: ignore[import-untyped]
import httpx

from airfeed.config import settings

logger = logging.getLogger(__name__)

_RSS_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=5.0, pool=5.0)


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One entry of a live feed, as needed by the feed merger."""

    guid: str
    title: Optional[str]
    author_email: Optional[str]
    author_name: Optional[str]
    description: Optional[str]
    pub_date: Optional[datetime]
    link: Optional[str]
    enclosure_url: Optional[str]


FeedFetcher = Callable[[str], Awaitable[list[FeedItem]]]


async def fetch_podcast_feed(url: str) -> list[FeedItem]:
    """Fetch and parse a podcast RSS feed.

    HTTP failures are not swallowed: ``httpx.HTTPError`` propagates to the
    caller.

    Args:
        url: RSS feed URL to fetch

    Returns:
        Feed items in feed order
    """
    async with httpx.AsyncClient(
        headers={"User-Agent": settings.feed_user_agent},
        timeout=_RSS_TIMEOUT,
        follow_redirects=True,
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
        content = response.content

    return await parse_podcast_feed(content, source=url)


async def parse_podcast_feed(content: bytes | str, *, source: str = "") -> list[FeedItem]:
    """Parse raw feed content into feed items (parsing runs in a thread)."""
    feed = await asyncio.to_thread(feedparser.parse, content)

    if feed.bozo:
        logger.warning(f"Feed parse warning for {source}: {feed.bozo_exception}")

    return [_entry_to_feed_item(entry) for entry in feed.entries]


def _entry_to_feed_item(entry: dict[str, Any]) -> FeedItem:
    enclosure_url = _extract_enclosure_url(entry)
    author_detail = entry.get("author_detail") or {}
    return FeedItem(
        guid=entry.get("id") or entry.get("link") or enclosure_url or "",
        title=entry.get("title"),
        author_email=author_detail.get("email"),
        author_name=author_detail.get("name") or entry.get("author"),
        description=entry.get("summary", entry.get("description")),
        pub_date=_parse_published_date(entry),
        link=entry.get("link"),
        enclosure_url=enclosure_url,
    )


def _extract_enclosure_url(entry: dict[str, Any]) -> Optional[str]:
    """Return the URL of the first enclosure that has one.

    Args:
        entry: feedparser entry dict

    Returns:
        Enclosure URL if found, None otherwise
    """
    for enclosure in entry.get("enclosures", []):
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return href
    return None


def _parse_published_date(entry: dict[str, Any]) -> Optional[datetime]:
    """Parse the published date of an entry as an aware UTC datetime.

    Args:
        entry: feedparser entry dict

    Returns:
        Parsed datetime, or None when the entry carries no usable date
    """
    published_parsed = entry.get("published_parsed")
    if published_parsed:
        try:
            return datetime(*published_parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            pass

    published = entry.get("published", entry.get("pubDate", ""))
    if published:
        try:
            parsed = parsedate_to_datetime(published)
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
        except (TypeError, ValueError):
            pass

    return None
