"""
Feed Parser
===========

Turns RSS 2.0 and Atom documents into the canonical ``Feed`` model.

Parsing is all-or-nothing: either a complete ``Feed`` comes back or an
exception is raised. Missing optional elements degrade to ``None`` or empty
lists; only elements a format requires (the RSS item ``link``) are fatal.
"""

from typing import List, Optional, Union

from ..models import Feed, Item
from ..utils.exceptions import (
    StructuralError,
    UnknownFormatError,
    UnsupportedFormatError,
)
from ..utils.logging import get_logger_for_component
from .format_detector import FeedFormat, detect_format
from .resolvers import resolve_authors, resolve_image, resolve_rss_content
from .xml_tree import ATOM_NS, XmlDocument, XmlNode, parse_xml


logger = get_logger_for_component("feed_parser")


def _text_or_empty(node: XmlNode, name: str) -> str:
    return node.child_text(name) or ""


def parse_feed(source: Union[str, bytes, XmlDocument]) -> Feed:
    """Parse a feed from XML text or an already parsed document.

    Raises:
        MalformedDocumentError: If ``source`` is not XML at all
        UnsupportedFormatError: For RSS 1.0 (RDF) documents
        UnknownFormatError: When no known feed root is found
        StructuralError: When a required element is missing
    """
    document = source if isinstance(source, XmlDocument) else parse_xml(source)
    feed_format = detect_format(document)

    if feed_format is FeedFormat.RSS2:
        return parse_rss_feed(document)
    if feed_format is FeedFormat.ATOM:
        return parse_atom_feed(document)
    if feed_format is FeedFormat.RDF:
        raise UnsupportedFormatError()

    raise UnknownFormatError(
        context={"root": document.root.name, "namespace": document.root.namespace}
    )


def find_feed_title(document: XmlDocument) -> str:
    """Best-effort feed title; ``""`` for unrecognized documents."""
    feed_format = detect_format(document)
    root = document.root

    if feed_format is FeedFormat.RSS2:
        title = root.find_path("channel", "title")
        return title.text.strip() if title is not None else ""
    if feed_format is FeedFormat.ATOM:
        return _text_or_empty(root, "title")
    return ""


# RSS 2.0


def _rss_categories(item: XmlNode) -> List[str]:
    categories = (node.text.strip() for node in item.iter_children("category"))
    return [category for category in categories if category]


def parse_rss_item(item: XmlNode, position: int = 0) -> Item:
    """Build an ``Item`` from an RSS ``<item>``.

    Raises:
        StructuralError: If the item has no ``<link>``
    """
    link = item.find_child("link")
    if link is None:
        raise StructuralError(
            f"RSS item {position} has no link element",
            field_name="link",
            context={"item_index": position, "item_title": item.child_text("title")},
        )

    summary, content = resolve_rss_content(item)

    return Item(
        title=_text_or_empty(item, "title"),
        link=link.text.strip(),
        image=resolve_image(item),
        published=item.child_text("pubDate"),
        authors=resolve_authors(item),
        categories=_rss_categories(item),
        summary=summary,
        content=content,
    )


def parse_rss_feed(document: XmlDocument) -> Feed:
    """Parse an RSS 2.0 document already classified as such."""
    channel = document.root.find_child("channel")
    if channel is None:
        raise StructuralError("RSS document has no top-level channel", field_name="channel")

    image_url = channel.find_path("image", "url")
    image = image_url.text.strip() if image_url is not None else ""

    items = [
        parse_rss_item(item, position)
        for position, item in enumerate(channel.iter_children("item"))
    ]

    feed = Feed(
        title=_text_or_empty(channel, "title"),
        link=_text_or_empty(channel, "link"),
        image=image or None,
        description=channel.child_text("description"),
        items=items,
    )
    logger.debug(f"Parsed RSS feed '{feed.title}' with {len(items)} items")
    return feed


# Atom


def _atom_feed_link(feed: XmlNode) -> str:
    for link in feed.find_children("link", ATOM_NS):
        if link.get("rel") in (None, "alternate"):
            return link.get("href") or ""
    return ""


def _atom_categories(entry: XmlNode) -> List[str]:
    names = (node.get("name") for node in entry.iter_children("category"))
    return [name.strip() for name in names if name and name.strip()]


def _atom_entry_link(entry: XmlNode) -> str:
    link: Optional[XmlNode] = entry.find_child("link")
    if link is None:
        return ""
    return (link.get("href") or "").strip()


def parse_atom_entry(entry: XmlNode) -> Item:
    """Build an ``Item`` from an Atom ``<entry>``."""
    return Item(
        title=_text_or_empty(entry, "title"),
        link=_atom_entry_link(entry),
        image=resolve_image(entry),
        summary=entry.child_text("summary"),
        content=entry.child_text("content"),
        published=entry.child_text("published"),
        authors=resolve_authors(entry),
        categories=_atom_categories(entry),
    )


def parse_atom_feed(document: XmlDocument) -> Feed:
    """Parse an Atom document already classified as such."""
    root = document.root
    items = [parse_atom_entry(entry) for entry in root.iter_children("entry")]

    feed = Feed(
        title=_text_or_empty(root, "title"),
        link=_atom_feed_link(root),
        # Atom feeds without an icon get "" rather than None
        image=_text_or_empty(root, "icon"),
        description=root.child_text("summary"),
        items=items,
    )
    logger.debug(f"Parsed Atom feed '{feed.title}' with {len(items)} items")
    return feed
