"""
MiteFeed - Lightweight Feed Reader Core
======================================

RSS 2.0 / Atom parsing, feed auto-discovery and conditional polling.

Main Components:
- Ingestion: XML access, format detection and parsing into a canonical Feed
- Processing: async HTTP fetching, discovery and polling with aiohttp
- Storage: subscription and feed content repositories
- Services: subscribe / refresh / unsubscribe workflow
"""

__version__ = "1.0.0"
__author__ = "MiteFeed Development Team"
__description__ = "Feed parsing, auto-discovery and polling"

# Core imports for easy access
from .config.settings import get_settings
from .ingestion.feed_parser import parse_feed
from .models import NOT_MODIFIED, Feed, FeedLookupEntry, Item, Subscription
from .utils.exceptions import MiteFeedError
from .utils.logging import configure_application_logging, get_logger_for_component

__all__ = [
    "get_settings",
    "parse_feed",
    "Feed",
    "Item",
    "Subscription",
    "FeedLookupEntry",
    "NOT_MODIFIED",
    "MiteFeedError",
    "configure_application_logging",
    "get_logger_for_component",
]
