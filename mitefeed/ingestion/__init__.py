"""
MiteFeed Ingestion Module
========================

Feed document parsing and normalization.

This module handles:
- XML tree access and format detection
- RSS 2.0 and Atom parsing into the canonical Feed model
- Presentation helpers for item dates and content
"""

from .feed_parser import parse_feed, parse_rss_feed, parse_atom_feed, find_feed_title
from .format_detector import FeedFormat, detect_format
from .xml_tree import XmlDocument, XmlNode, parse_xml

__all__ = [
    "parse_feed",
    "parse_rss_feed",
    "parse_atom_feed",
    "find_feed_title",
    "FeedFormat",
    "detect_format",
    "XmlDocument",
    "XmlNode",
    "parse_xml",
]
