"""Unit tests for live feed parsing."""

from datetime import UTC, datetime, timedelta

import pytest

from airfeed.services.podcast_feed_service import parse_podcast_feed

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Weekly Show</title>
    <link>https://show.example.com</link>
    <item>
      <title>First</title>
      <guid>urn:weekly:1</guid>
      <link>https://show.example.com/1</link>
      <author>host@example.com (The Host)</author>
      <description>Opening episode</description>
      <pubDate>Tue, 03 Feb 2026 10:00:00 +0100</pubDate>
      <enclosure url="https://cdn.example.com/1.mp3" length="1024" type="audio/mpeg"/>
    </item>
    <item>
      <title>Show notes only</title>
      <link>https://show.example.com/notes</link>
    </item>
  </channel>
</rss>
"""


@pytest.mark.asyncio
class TestParsePodcastFeed:
    """Tests for parse_podcast_feed."""

    async def test_parses_media_item(self) -> None:
        items = await parse_podcast_feed(RSS, source="test")

        first = items[0]
        assert first.guid == "urn:weekly:1"
        assert first.title == "First"
        assert first.link == "https://show.example.com/1"
        assert first.author_email == "host@example.com"
        assert first.description == "Opening episode"
        assert first.enclosure_url == "https://cdn.example.com/1.mp3"

    async def test_pub_date_is_utc(self) -> None:
        items = await parse_podcast_feed(RSS)

        assert items[0].pub_date == datetime(2026, 2, 3, 9, 0, 0, tzinfo=UTC)
        assert items[0].pub_date.utcoffset() == timedelta(0)

    async def test_item_without_guid_or_enclosure(self) -> None:
        """The link stands in for a missing guid; the enclosure stays empty."""
        items = await parse_podcast_feed(RSS)

        assert len(items) == 2
        assert items[1].guid == "https://show.example.com/notes"
        assert items[1].enclosure_url is None
        assert items[1].pub_date is None

    async def test_empty_content(self) -> None:
        assert await parse_podcast_feed(b"") == []
