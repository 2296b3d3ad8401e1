"""
Field Resolvers
==============

Feeds describe the same logical field in several competing ways (RSS core
elements, Dublin Core, Media RSS, the content module, Atom persons). Each
resolver below reconciles one such field for a single RSS item or Atom entry.
"""

from typing import Callable, List, Optional, Tuple

from .xml_tree import ATOM_NS, CONTENT_NS, DC_NS, MEDIA_RSS_NS, XmlNode


IMAGE_MIMES = frozenset(
    {
        "image/apng",
        "image/avif",
        "image/bmp",
        "image/gif",
        "image/vnd.microsoft.icon",
        "image/jpeg",
        "image/png",
        "image/svg+xml",
        "image/tiff",
        "image/webp",
    }
)


def _trimmed(node: Optional[XmlNode]) -> Optional[str]:
    if node is None:
        return None
    return node.text.strip() or None


# Content


def resolve_rss_content(item: XmlNode) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(summary, content)`` for an RSS item.

    When ``content:encoded`` is present it is the full content and
    ``description`` becomes the synopsis. Otherwise ``description`` is taken
    as the full content and there is no separate summary.
    """
    description = item.find_child("description")
    encoded = item.find_child("encoded")

    if encoded is not None and encoded.namespace == CONTENT_NS:
        return _trimmed(description), _trimmed(encoded)

    return None, _trimmed(description)


# Authors


def dublin_core_creators(item: XmlNode) -> List[str]:
    """Text of every ``dc:creator`` child."""
    creators = (_trimmed(node) for node in item.find_children("creator", DC_NS))
    return [creator for creator in creators if creator]


def author_direct_texts(item: XmlNode) -> List[str]:
    """Own text of every ``author`` child, nested person elements excluded."""
    texts = (node.direct_text for node in item.find_children("author"))
    return [text for text in texts if text]


def atom_author_names(item: XmlNode) -> List[str]:
    """``name`` of every Atom ``author`` person construct."""
    names = (
        _trimmed(node.find_child("name"))
        for node in item.find_children("author", ATOM_NS)
    )
    return [name for name in names if name]


AUTHOR_SOURCES: Tuple[Callable[[XmlNode], List[str]], ...] = (
    dublin_core_creators,
    author_direct_texts,
    atom_author_names,
)


def resolve_authors(item: XmlNode) -> List[str]:
    """Concatenate every author source in order.

    The sources overlap on purpose: an Atom author written as
    ``<author>Jane<name>Jane Doe</name></author>`` yields both strings.
    Nothing is deduplicated.
    """
    authors: List[str] = []
    for source in AUTHOR_SOURCES:
        authors.extend(source(item))
    return authors


# Images


def _is_image_mime(mime: Optional[str]) -> bool:
    return bool(mime) and mime.strip().lower() in IMAGE_MIMES


def _url(node: XmlNode) -> Optional[str]:
    return (node.get("url") or "").strip() or None


def resolve_image(item: XmlNode) -> Optional[str]:
    """Return the item's image URL from an enclosure or Media RSS content."""
    enclosure = item.find_child("enclosure")
    if enclosure is not None and _is_image_mime(enclosure.get("type")):
        return _url(enclosure)

    media = item.find_child("content")
    if media is not None and media.namespace == MEDIA_RSS_NS:
        medium = media.get("medium")
        if (medium and medium.lower() == "image") or _is_image_mime(media.get("type")):
            return _url(media)

    return None
