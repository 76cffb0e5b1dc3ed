"""RSS/Atom feed adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import feedparser
import httpx

from ..textutil import clean_summary
from .base import BaseHTTPAdapter, FetchParseError
from .models import RSSData, RSSItem

logger = logging.getLogger(__name__)

MAX_ITEMS = 5


class RSSAdapter(BaseHTTPAdapter):
    """Fetch a feed and keep its first few items, in upstream order."""

    def __init__(
        self,
        name: str,
        url: str,
        *,
        max_items: int = MAX_ITEMS,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(name, client=client, timeout=timeout)
        self.url = url
        self.max_items = max_items

    async def _fetch(self) -> RSSData:
        client = await self._get_client()
        logger.debug("Fetching feed %s from %s", self.name, self.url)
        response = await client.get(self.url)
        self._ensure_ok(response)

        # feedparser is synchronous and can be slow on large feeds
        parsed = await asyncio.to_thread(feedparser.parse, response.content)
        if parsed.bozo and not parsed.entries:
            raise FetchParseError(f"failed to decode RSS: {parsed.get('bozo_exception')}")

        items = [self._to_item(entry) for entry in parsed.entries[: self.max_items]]
        logger.debug("Feed %s: %d of %d items kept", self.name, len(items), len(parsed.entries))
        return RSSData(feed_name=self.name, items=items)

    @staticmethod
    def _to_item(entry: Any) -> RSSItem:
        title = entry.get("title", "")
        return RSSItem(
            title=title,
            link=entry.get("link", ""),
            pub_date=entry.get("published", ""),
            summary=clean_summary(entry.get("summary", ""), title),
        )
