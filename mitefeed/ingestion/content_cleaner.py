"""
Content Helpers
===============

Presentation helpers for parsed feed items: human-readable dates and HTML
fragments whose links and images work outside the feed's own site.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
# Lenient handlers for the date dialects the RFC parsers reject; pinned in
# pyproject.toml because the entry point is private.
from feedparser.datetimes import _parse_date as _parse_date_lenient

from ..utils.logging import get_logger_for_component


logger = get_logger_for_component("content_cleaner")


def parse_date(date_string: Optional[str]) -> Optional[datetime]:
    """Parse an RSS (RFC 822) or Atom (RFC 3339) date into an aware UTC datetime.

    Returns None when the string is empty or in no format feedparser knows.
    """
    if not date_string:
        return None

    value = date_string.strip()
    parsed = _parse_rfc822(value) or _parse_rfc3339(value)
    if parsed is not None:
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    lenient = _parse_date_lenient(value)
    if not lenient:
        return None

    try:
        return datetime(*lenient[:6], tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None


def _parse_rfc822(value: str) -> Optional[datetime]:
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def _parse_rfc3339(value: str) -> Optional[datetime]:
    if value[-1:] in ("Z", "z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def format_date(date_string: str) -> str:
    """Format a raw feed date as e.g. ``Thursday, September 5, 2024``.

    Dates that cannot be parsed are returned unchanged.
    """
    parsed = parse_date(date_string)
    if parsed is None:
        logger.debug(f"Unparseable date left as-is: {date_string!r}")
        return date_string

    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def absolutify(html: str, base_url: str) -> str:
    """Make links and images in an HTML fragment absolute and open links in a new tab.

    Args:
        html: Item summary or content markup
        base_url: URL relative references resolve against; falsy to skip resolving

    Returns:
        Rewritten HTML fragment
    """
    soup = BeautifulSoup(html, "html.parser")

    for anchor in soup.find_all("a"):
        if base_url and anchor.has_attr("href"):
            anchor["href"] = urljoin(base_url, anchor["href"])

        if anchor.get("target") != "_blank":
            anchor["target"] = "_blank"
            anchor["rel"] = "noopener noreferrer"

    if base_url:
        for image in soup.find_all("img"):
            if image.has_attr("src"):
                image["src"] = urljoin(base_url, image["src"])

    return str(soup)
