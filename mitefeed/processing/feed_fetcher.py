"""
Feed Fetcher
============

Async HTTP side of MiteFeed: plain fetches, feed auto-discovery and
conditional-GET polling of known subscriptions.

Every call is an independent unit of work. Nothing is retried, throttled or
cached here; callers own timeouts beyond the configured default, retries and
cancellation.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin

import aiohttp
import certifi
from bs4 import BeautifulSoup

from ..config.settings import MiteFeedSettings, get_settings
from ..ingestion.feed_parser import find_feed_title
from ..ingestion.xml_tree import parse_xml
from ..models import NOT_MODIFIED, FeedLookupEntry, FetchResponse, Subscription
from ..utils.exceptions import ErrorCode, FeedNetworkError, FetchError, MalformedDocumentError
from ..utils.logging import get_logger_for_component


FEED_MIMES = ("application/rss+xml", "application/atom+xml")

# Discovery messages for the statuses a user can act on
DISCOVERY_MESSAGES: Dict[int, str] = {
    401: "Feed requires authentication.",
    403: "Feed request was forbidden.",
    404: "No feed was found at the provided address.",
    429: "Feed throttled or under rate limit. Wait and try again.",
}


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def discovery_error_message(status: int) -> str:
    """Display-ready message for a failed discovery request."""
    return DISCOVERY_MESSAGES.get(
        status, f"Could not fetch feed because URL returned code {status}"
    )


def _attribute_text(value: Union[str, List[str], None]) -> str:
    # bs4 splits multi-valued attributes such as rel into lists
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


class FeedFetcher:
    """Fetches, discovers and polls feeds over HTTP."""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[int] = None,
        settings: Optional[MiteFeedSettings] = None,
    ):
        """Initialize feed fetcher.

        Args:
            user_agent: Identification header value (default from config)
            timeout: Total request timeout in seconds (default from config)
            settings: Settings to read defaults from (default: global settings)
        """
        settings = settings or get_settings()
        self.user_agent = user_agent or settings.http.user_agent
        self.timeout = timeout or settings.http.request_timeout
        self.verify_ssl = settings.http.verify_ssl
        self.logger = get_logger_for_component("feed_fetcher")

        # SSL context for secure requests
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context if self.verify_ssl else False,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {"User-Agent": self.user_agent}

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    @asynccontextmanager
    async def _session_scope(self, session: Optional[aiohttp.ClientSession]):
        if session is not None:
            yield session
        else:
            async with self.get_session() as own_session:
                yield own_session

    async def _get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> FetchResponse:
        """Send a GET request and decode the whole response.

        Raises:
            FeedNetworkError: On connection failures and timeouts
        """
        request_headers = {"User-Agent": self.user_agent}
        request_headers.update(headers or {})

        try:
            async with self._session_scope(session) as active_session:
                async with active_session.get(url, headers=request_headers) as response:
                    data = await response.text(errors="replace")
                    return FetchResponse(
                        status=response.status,
                        headers={k.lower(): v for k, v in response.headers.items()},
                        data=data,
                        url=str(response.url),
                    )

        except asyncio.TimeoutError as e:
            self.logger.warning(f"Request to {url} timed out after {self.timeout}s")
            raise FeedNetworkError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
                user_message="The feed took too long to respond.",
            ) from e

        except aiohttp.ClientError as e:
            self.logger.warning(f"Request to {url} failed: {e}")
            raise FeedNetworkError(f"Failed to fetch {url}: {e}", feed_url=url) from e

    async def fetch_url(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> FetchResponse:
        """GET ``url``.

        Args:
            url: Address to fetch
            session: Existing aiohttp session to reuse (optional)

        Returns:
            The decoded response, with lower-cased header names and the final URL

        Raises:
            FetchError: If the response status is not 2xx
            FeedNetworkError: On connection failures and timeouts
        """
        self.logger.debug(f"Fetching URL: {url}")
        response = await self._get(url, session=session)

        if not _is_success(response.status):
            self.logger.warning(f"Fetch of {url} failed with HTTP {response.status}")
            raise FetchError(response.status, feed_url=url)

        self.logger.info(
            f"Fetched {url} (HTTP {response.status}, {len(response.data)} chars)"
        )
        return response

    async def find_feeds(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> List[FeedLookupEntry]:
        """Perform feed auto-discovery on ``url``.

        - If ``url`` serves a feed, returns a single entry carrying the parsed
          document and the response headers. A body that is not XML gives an
          entry with an empty title and no document.
        - If ``url`` serves an HTML page, returns one entry per alternate link
          in the page head that points to an RSS or Atom feed.

        Raises:
            FetchError: With a display-ready message if the status is not 2xx
            FeedNetworkError: On connection failures and timeouts
        """
        self.logger.info(f"Discovering feeds at {url}")
        response = await self._get(url, session=session)

        if not _is_success(response.status):
            self.logger.warning(f"Discovery at {url} failed with HTTP {response.status}")
            raise FetchError(
                response.status, discovery_error_message(response.status), feed_url=url
            )

        # Servers are trusted not to send feeds as text/html
        content_type = response.headers.get("content-type", "")
        if not content_type.lower().startswith("text/html"):
            try:
                document = parse_xml(response.data)
            except MalformedDocumentError as e:
                # Still one entry; subscribing refetches and reports the parse failure
                self.logger.warning(f"{url} is neither HTML nor XML: {e}")
                document = None
            entry = FeedLookupEntry(
                title=find_feed_title(document) if document is not None else "",
                url=response.url,
                subscribe=False,
                document=document,
                headers=response.headers,
            )
            self.logger.info(f"{url} is a feed: '{entry.title}'")
            return [entry]

        entries = self._find_alternate_links(response.data, response.url)
        self.logger.info(f"Found {len(entries)} feed links on {response.url}")
        return entries

    def _find_alternate_links(self, html: str, page_url: str) -> List[FeedLookupEntry]:
        """Collect feed ``<link rel="alternate">`` elements from an HTML page's head."""
        soup = BeautifulSoup(html, "lxml")
        head = soup.head
        if head is None:
            return []

        # Relative hrefs resolve against the first <base> in the document; the
        # injected one only applies when the page declares none of its own.
        head.append(soup.new_tag("base", href=page_url))
        base = soup.find("base", href=True)
        base_url = urljoin(page_url, base["href"])

        entries = []
        for link in head.find_all("link", recursive=False):
            if _attribute_text(link.get("rel")) != "alternate":
                continue
            if not _attribute_text(link.get("type")).startswith(FEED_MIMES):
                continue
            href = link.get("href")
            if href is None:
                continue

            entries.append(
                FeedLookupEntry(
                    title=_attribute_text(link.get("title")).strip(),
                    url=urljoin(base_url, href.strip()),
                    subscribe=False,
                )
            )

        return entries

    async def poll_feed(
        self,
        subscription: Subscription,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Conditionally re-fetch a subscription's feed.

        Sends the validators stored from the previous fetch so that an
        unchanged feed costs a 304 instead of a full download.

        Returns:
            ``NOT_MODIFIED`` on HTTP 304, otherwise the new ``FetchResponse``

        Raises:
            FetchError: If the status is neither 304 nor 2xx
            FeedNetworkError: On connection failures and timeouts
        """
        headers = {
            "If-Modified-Since": subscription.last_fetch.last_modified,
            "If-None-Match": subscription.last_fetch.etag,
        }

        self.logger.debug(f"Polling {subscription.url}")
        response = await self._get(subscription.url, headers=headers, session=session)

        if response.status == 304:
            self.logger.debug(f"{subscription.url} not modified")
            return NOT_MODIFIED

        if not _is_success(response.status):
            self.logger.warning(
                f"Poll of {subscription.url} failed with HTTP {response.status}"
            )
            raise FetchError(response.status, feed_url=subscription.url)

        self.logger.info(f"{subscription.url} has new content")
        return response


# Convenience functions for quick access
async def fetch_url(url: str) -> FetchResponse:
    """Quick function to GET a single URL."""
    return await FeedFetcher().fetch_url(url)


async def find_feeds(url: str) -> List[FeedLookupEntry]:
    """Quick function to run feed auto-discovery on a URL."""
    return await FeedFetcher().find_feeds(url)


async def poll_feed(subscription: Subscription):
    """Quick function to poll one subscription."""
    return await FeedFetcher().poll_feed(subscription)
