"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for MiteFeed tests.

- Sample RSS 2.0, Atom, RDF and HTML documents
- Fake aiohttp sessions serving canned responses
- In-memory and temporary-directory subscription repositories
"""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["MITEFEED_DEBUG"] = "true"
os.environ["MITEFEED_HTTP__USER_AGENT"] = "mitefeed-tests/1.0"


# ============================================================================
# Sample Documents
# ============================================================================

SAMPLE_RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:atom="http://www.w3.org/2005/Atom">
    <channel>
        <title>Example Blog</title>
        <link>https://example.com/</link>
        <description>Posts about examples</description>
        <atom:link href="https://example.com/feed.xml" rel="self" type="application/rss+xml"/>
        <image>
            <url>https://example.com/logo.png</url>
            <title>Example Blog</title>
        </image>
        <item>
            <title>First Post</title>
            <link>https://example.com/first</link>
            <description>Short synopsis</description>
            <content:encoded><![CDATA[<p>Full <b>content</b> of the first post</p>]]></content:encoded>
            <pubDate>Thu, 05 Sep 2024 10:00:00 GMT</pubDate>
            <dc:creator>Jane Doe</dc:creator>
            <author>jane@example.com (Jane Doe)</author>
            <category>Python</category>
            <category>Feeds</category>
            <enclosure url="https://example.com/first.jpg" type="image/jpeg" length="1234"/>
        </item>
        <item>
            <title>Second Post</title>
            <link>https://example.com/second</link>
            <description>Only a description</description>
            <media:content url="https://example.com/second.png" medium="image"/>
        </item>
    </channel>
</rss>"""

SAMPLE_ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Example Atom</title>
    <subtitle>Not the description</subtitle>
    <summary>Atom feed for tests</summary>
    <link rel="self" href="https://example.org/atom.xml"/>
    <link rel="alternate" href="https://example.org/"/>
    <icon>https://example.org/icon.png</icon>
    <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
    <updated>2024-09-05T10:00:00Z</updated>
    <entry>
        <title>Atom Entry</title>
        <link href="https://example.org/entry"/>
        <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
        <published>2024-09-05T10:00:00Z</published>
        <summary>Entry summary</summary>
        <content type="html">Entry content</content>
        <author>
            <name>John Smith</name>
        </author>
        <category term="python" name="Python"/>
        <category term="no-name"/>
    </entry>
</feed>"""

SAMPLE_RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/">
    <channel rdf:about="https://example.net/">
        <title>RDF Feed</title>
        <link>https://example.net/</link>
    </channel>
</rdf:RDF>"""

SAMPLE_HTML_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Example Page</title>
    <link rel="stylesheet" href="/style.css">
    <link rel="alternate" type="application/rss+xml" href="/feed.xml" title="Example">
</head>
<body><p>Hello</p></body>
</html>"""


@pytest.fixture
def sample_rss_feed():
    return SAMPLE_RSS_FEED


@pytest.fixture
def sample_atom_feed():
    return SAMPLE_ATOM_FEED


@pytest.fixture
def sample_rdf_feed():
    return SAMPLE_RDF_FEED


@pytest.fixture
def sample_html_page():
    return SAMPLE_HTML_PAGE


# ============================================================================
# HTTP Fixtures
# ============================================================================


def build_mock_response(status=200, body="", headers=None, url="https://example.com/"):
    """Create a fake aiohttp response."""
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.url = url
    response.text = AsyncMock(return_value=body)
    return response


def build_mock_session(*responses):
    """Create a fake aiohttp session whose get() serves ``responses`` in order."""
    context_managers = []
    for response in responses:
        context_manager = MagicMock()
        context_manager.__aenter__ = AsyncMock(return_value=response)
        context_manager.__aexit__ = AsyncMock(return_value=False)
        context_managers.append(context_manager)

    session = MagicMock()
    session.get = MagicMock(side_effect=context_managers)
    return session


@pytest.fixture
def mock_response_factory():
    """Factory for fake aiohttp responses."""
    return build_mock_response


@pytest.fixture
def mock_session_factory():
    """Factory for fake aiohttp sessions."""
    return build_mock_session


@pytest.fixture
def test_settings():
    """Settings with test defaults, independent of the global instance."""
    from mitefeed.config.settings import MiteFeedSettings

    return MiteFeedSettings()


@pytest.fixture
def fetcher(test_settings):
    from mitefeed.processing.feed_fetcher import FeedFetcher

    return FeedFetcher(settings=test_settings)


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def memory_repository():
    """Empty in-memory subscription repository."""
    from mitefeed.storage.subscription_repository import InMemorySubscriptionRepository

    return InMemorySubscriptionRepository()


@pytest.fixture
def json_repository(tmp_path):
    """JSON subscription repository rooted in a temporary directory."""
    from mitefeed.config.settings import StorageSettings
    from mitefeed.storage.subscription_repository import JsonSubscriptionRepository

    repository = JsonSubscriptionRepository(StorageSettings(data_dir=str(tmp_path / "data")))
    repository.ensure_layout()
    return repository


@pytest.fixture
def sample_subscription():
    from mitefeed.models import LastFetch, Subscription

    return Subscription(
        id="0f8fad5b-d9cb-469f-a165-70867728950e",
        title="Example Blog",
        url="https://example.com/feed.xml",
        read_from="example-blog_0f8fad5b.xml",
        last_fetch=LastFetch(etag='"abc123"', last_modified="Thu, 05 Sep 2024 10:00:00 GMT"),
    )
