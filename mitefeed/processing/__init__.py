"""
MiteFeed Processing Module
=========================

Network side of feed ingestion: fetching, auto-discovery and polling.
"""

from .feed_fetcher import FeedFetcher, fetch_url, find_feeds, poll_feed

__all__ = [
    "FeedFetcher",
    "fetch_url",
    "find_feeds",
    "poll_feed",
]
