"""
Unit Tests for Feed Fetcher
===========================

Tests for fetching, auto-discovery and conditional polling with faked
aiohttp sessions.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from mitefeed.ingestion.xml_tree import XmlDocument
from mitefeed.models import NOT_MODIFIED, FetchResponse, LastFetch, Subscription
from mitefeed.processing.feed_fetcher import (
    FeedFetcher,
    discovery_error_message,
    fetch_url,
    find_feeds,
)
from mitefeed.utils.exceptions import (
    ErrorCode,
    FeedNetworkError,
    FetchError,
)


class TestFeedFetcherInit:
    """Test fetcher configuration."""

    def test_defaults_from_settings(self, test_settings):
        fetcher = FeedFetcher(settings=test_settings)

        assert fetcher.user_agent == "mitefeed-tests/1.0"
        assert fetcher.timeout == test_settings.http.request_timeout
        assert fetcher.verify_ssl is True

    def test_explicit_overrides(self, test_settings):
        fetcher = FeedFetcher(user_agent="custom/2.0", timeout=5, settings=test_settings)

        assert fetcher.user_agent == "custom/2.0"
        assert fetcher.timeout == 5


class TestFetchUrl:
    """Test plain fetches."""

    @pytest.mark.asyncio
    async def test_success(self, fetcher, mock_response_factory, mock_session_factory):
        response = mock_response_factory(
            status=200,
            body="<rss/>",
            headers={"Content-Type": "application/rss+xml", "ETag": '"v1"'},
            url="https://example.com/final.xml",
        )
        session = mock_session_factory(response)

        result = await fetcher.fetch_url("https://example.com/feed", session=session)

        assert isinstance(result, FetchResponse)
        assert result.status == 200
        assert result.data == "<rss/>"
        assert result.url == "https://example.com/final.xml"
        assert result.headers == {"content-type": "application/rss+xml", "etag": '"v1"'}
        assert result.etag == '"v1"'
        assert result.last_modified == ""

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, fetcher, mock_response_factory, mock_session_factory):
        session = mock_session_factory(mock_response_factory())

        await fetcher.fetch_url("https://example.com/", session=session)

        headers = session.get.call_args.kwargs["headers"]
        assert headers["User-Agent"] == fetcher.user_agent

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [301, 404, 500])
    async def test_non_success_raises_fetch_error(
        self, fetcher, mock_response_factory, mock_session_factory, status
    ):
        session = mock_session_factory(mock_response_factory(status=status))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_url("https://example.com/", session=session)

        error = exc_info.value
        assert error.status == status
        assert error.context["status"] == status
        assert error.context["feed_url"] == "https://example.com/"
        assert error.user_message == f"Could not fetch URL due to code {status}"

    @pytest.mark.asyncio
    async def test_connection_error(self, fetcher):
        session = MagicMock()
        session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(FeedNetworkError) as exc_info:
            await fetcher.fetch_url("https://example.com/", session=session)

        assert exc_info.value.error_code == ErrorCode.FEED_NETWORK_ERROR
        assert exc_info.value.recoverable

    @pytest.mark.asyncio
    async def test_timeout(self, fetcher):
        session = MagicMock()
        session.get = MagicMock(side_effect=asyncio.TimeoutError())

        with pytest.raises(FeedNetworkError) as exc_info:
            await fetcher.fetch_url("https://example.com/", session=session)

        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT


class TestFindFeeds:
    """Test feed auto-discovery."""

    @pytest.mark.asyncio
    async def test_html_page_with_alternate_link(
        self, fetcher, mock_response_factory, mock_session_factory, sample_html_page
    ):
        response = mock_response_factory(
            body=sample_html_page,
            headers={"Content-Type": "text/html; charset=utf-8"},
            url="https://ex.com/page",
        )
        session = mock_session_factory(response)

        entries = await fetcher.find_feeds("https://ex.com/page", session=session)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.title == "Example"
        assert entry.url == "https://ex.com/feed.xml"
        assert entry.subscribe is False
        assert entry.document is None
        assert entry.headers is None

    @pytest.mark.asyncio
    async def test_relative_links_use_final_url(
        self, fetcher, mock_response_factory, mock_session_factory
    ):
        html = (
            "<html><head>"
            '<link rel="alternate" type="application/atom+xml" href="atom.xml">'
            "</head></html>"
        )
        response = mock_response_factory(
            body=html,
            headers={"content-type": "text/html"},
            url="https://www.ex.com/blog/",
        )
        session = mock_session_factory(response)

        entries = await fetcher.find_feeds("http://ex.com/blog", session=session)

        assert [entry.url for entry in entries] == ["https://www.ex.com/blog/atom.xml"]
        assert entries[0].title == ""

    @pytest.mark.asyncio
    async def test_page_base_element_wins(
        self, fetcher, mock_response_factory, mock_session_factory
    ):
        html = (
            '<html><head><base href="https://cdn.ex.com/sub/">'
            '<link rel="alternate" type="application/rss+xml" href="feed.xml" title="CDN">'
            "</head></html>"
        )
        session = mock_session_factory(
            mock_response_factory(body=html, headers={"content-type": "text/html"}, url="https://ex.com/")
        )

        entries = await fetcher.find_feeds("https://ex.com/", session=session)

        assert [entry.url for entry in entries] == ["https://cdn.ex.com/sub/feed.xml"]

    @pytest.mark.asyncio
    async def test_filters_links(self, fetcher, mock_response_factory, mock_session_factory):
        html = """<html><head>
            <link rel="alternate" type="application/rss+xml" href="/rss" title="RSS">
            <link rel="alternate" type="application/atom+xml; charset=utf-8" href="/atom" title="Atom">
            <link rel="alternate" type="text/html" href="/fr" hreflang="fr">
            <link rel="stylesheet" type="application/rss+xml" href="/wrong-rel">
            <link rel="alternate" type="application/rss+xml" title="No href">
        </head><body>
            <link rel="alternate" type="application/rss+xml" href="/in-body">
        </body></html>"""
        session = mock_session_factory(
            mock_response_factory(body=html, headers={"content-type": "text/html"}, url="https://ex.com/")
        )

        entries = await fetcher.find_feeds("https://ex.com/", session=session)

        assert [(entry.title, entry.url) for entry in entries] == [
            ("RSS", "https://ex.com/rss"),
            ("Atom", "https://ex.com/atom"),
        ]

    @pytest.mark.asyncio
    async def test_page_without_feeds(self, fetcher, mock_response_factory, mock_session_factory):
        session = mock_session_factory(
            mock_response_factory(
                body="<html><head><title>x</title></head></html>",
                headers={"content-type": "text/html"},
                url="https://ex.com/",
            )
        )

        assert await fetcher.find_feeds("https://ex.com/", session=session) == []

    @pytest.mark.asyncio
    async def test_direct_feed_response(
        self, fetcher, mock_response_factory, mock_session_factory, sample_rss_feed
    ):
        response = mock_response_factory(
            body=sample_rss_feed,
            headers={"Content-Type": "application/rss+xml", "Last-Modified": "Thu, 05 Sep 2024 10:00:00 GMT"},
            url="https://example.com/feed.xml",
        )
        session = mock_session_factory(response)

        entries = await fetcher.find_feeds("https://example.com/feed", session=session)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.title == "Example Blog"
        assert entry.url == "https://example.com/feed.xml"
        assert entry.subscribe is False
        assert isinstance(entry.document, XmlDocument)
        assert entry.headers["last-modified"] == "Thu, 05 Sep 2024 10:00:00 GMT"

    @pytest.mark.asyncio
    async def test_missing_content_type_is_treated_as_feed(
        self, fetcher, mock_response_factory, mock_session_factory, sample_atom_feed
    ):
        session = mock_session_factory(
            mock_response_factory(body=sample_atom_feed, url="https://example.org/atom.xml")
        )

        entries = await fetcher.find_feeds("https://example.org/atom.xml", session=session)

        assert entries[0].title == "Example Atom"

    @pytest.mark.asyncio
    async def test_unrecognized_xml_has_empty_title(
        self, fetcher, mock_response_factory, mock_session_factory
    ):
        session = mock_session_factory(
            mock_response_factory(body="<data><title>x</title></data>", headers={"content-type": "text/xml"})
        )

        entries = await fetcher.find_feeds("https://example.com/data.xml", session=session)

        assert entries[0].title == ""
        assert entries[0].document is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "just some words"])
    async def test_non_xml_body_gives_one_untitled_entry(
        self, fetcher, mock_response_factory, mock_session_factory, body
    ):
        session = mock_session_factory(
            mock_response_factory(
                body=body, headers={"content-type": "text/plain"}, url="https://example.com/notes"
            )
        )

        entries = await fetcher.find_feeds("https://example.com/notes", session=session)

        assert len(entries) == 1
        assert entries[0].title == ""
        assert entries[0].url == "https://example.com/notes"
        assert entries[0].document is None
        assert entries[0].subscribe is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, message, code",
        [
            (401, "Feed requires authentication.", ErrorCode.FEED_AUTH_REQUIRED),
            (403, "Feed request was forbidden.", ErrorCode.FEED_ACCESS_DENIED),
            (404, "No feed was found at the provided address.", ErrorCode.FEED_NOT_FOUND),
            (429, "Feed throttled or under rate limit. Wait and try again.", ErrorCode.FEED_RATE_LIMITED),
            (502, "Could not fetch feed because URL returned code 502", ErrorCode.FEED_HTTP_ERROR),
        ],
    )
    async def test_status_messages(
        self, fetcher, mock_response_factory, mock_session_factory, status, message, code
    ):
        session = mock_session_factory(mock_response_factory(status=status))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.find_feeds("https://example.com/", session=session)

        assert exc_info.value.status == status
        assert exc_info.value.user_message == message
        assert exc_info.value.error_code == code

    def test_discovery_error_message(self):
        assert discovery_error_message(418) == "Could not fetch feed because URL returned code 418"


class TestPollFeed:
    """Test conditional polling."""

    def _subscription(self, **last_fetch):
        return Subscription(
            id="sub-1",
            title="Example",
            url="https://example.com/feed.xml",
            read_from="example_sub.xml",
            last_fetch=LastFetch(**last_fetch),
        )

    @pytest.mark.asyncio
    async def test_sends_validators(self, fetcher, mock_response_factory, mock_session_factory):
        session = mock_session_factory(mock_response_factory(status=304))
        subscription = self._subscription(etag='"v1"', last_modified="Thu, 05 Sep 2024 10:00:00 GMT")

        await fetcher.poll_feed(subscription, session=session)

        args, kwargs = session.get.call_args
        assert args == ("https://example.com/feed.xml",)
        assert kwargs["headers"]["If-None-Match"] == '"v1"'
        assert kwargs["headers"]["If-Modified-Since"] == "Thu, 05 Sep 2024 10:00:00 GMT"
        assert kwargs["headers"]["User-Agent"] == fetcher.user_agent

    @pytest.mark.asyncio
    async def test_never_fetched_sends_empty_validators(
        self, fetcher, mock_response_factory, mock_session_factory
    ):
        session = mock_session_factory(mock_response_factory(status=304))

        await fetcher.poll_feed(self._subscription(), session=session)

        headers = session.get.call_args.kwargs["headers"]
        assert headers["If-None-Match"] == ""
        assert headers["If-Modified-Since"] == ""

    @pytest.mark.asyncio
    async def test_not_modified(self, fetcher, mock_response_factory, mock_session_factory):
        session = mock_session_factory(mock_response_factory(status=304))

        result = await fetcher.poll_feed(self._subscription(etag='"v1"'), session=session)

        assert result is NOT_MODIFIED
        assert not result

    @pytest.mark.asyncio
    async def test_modified(self, fetcher, mock_response_factory, mock_session_factory, sample_rss_feed):
        session = mock_session_factory(
            mock_response_factory(status=200, body=sample_rss_feed, headers={"ETag": '"v2"'})
        )

        result = await fetcher.poll_feed(self._subscription(etag='"v1"'), session=session)

        assert isinstance(result, FetchResponse)
        assert result.data == sample_rss_feed
        assert result.etag == '"v2"'

    @pytest.mark.asyncio
    async def test_error_status(self, fetcher, mock_response_factory, mock_session_factory):
        session = mock_session_factory(mock_response_factory(status=410))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.poll_feed(self._subscription(), session=session)

        assert exc_info.value.status == 410


class TestConvenienceFunctions:
    """Test module-level helpers."""

    @pytest.mark.asyncio
    @patch("mitefeed.processing.feed_fetcher.FeedFetcher.fetch_url", new_callable=AsyncMock)
    async def test_fetch_url(self, mock_fetch):
        mock_fetch.return_value = FetchResponse(status=200, headers={}, data="", url="https://ex.com/")

        result = await fetch_url("https://ex.com/")

        assert result.status == 200
        mock_fetch.assert_awaited_once_with("https://ex.com/")

    @pytest.mark.asyncio
    @patch("mitefeed.processing.feed_fetcher.FeedFetcher.find_feeds", new_callable=AsyncMock)
    async def test_find_feeds(self, mock_find):
        mock_find.return_value = []

        assert await find_feeds("https://ex.com/") == []
        mock_find.assert_awaited_once_with("https://ex.com/")
