"""
Feed Format Detection
====================

Classifies a parsed XML document as one of the feed dialects MiteFeed knows
about. Detection happens once per document; callers dispatch on the result.
"""

from enum import Enum

from .xml_tree import ATOM_NS, RSS1_NS, XmlDocument, XmlNode


class FeedFormat(str, Enum):
    """Feed dialects recognized by the detector."""
    RSS2 = "rss2"
    ATOM = "atom"
    RDF = "rdf"  # RSS 1.0, recognized but unsupported
    UNKNOWN = "unknown"


def _is_rss2(root: XmlNode) -> bool:
    return (
        root.name == "rss"
        and root.has_attribute("version")
        and root.has_descendant("channel")
    )


def _is_atom(root: XmlNode) -> bool:
    return root.name == "feed" and root.namespace == ATOM_NS


def _is_rdf(root: XmlNode) -> bool:
    return root.default_namespace == RSS1_NS


def detect_format(document: XmlDocument) -> FeedFormat:
    """Classify ``document``; RSS 2.0 wins over Atom, Atom over RDF."""
    root = document.root

    if _is_rss2(root):
        return FeedFormat.RSS2
    if _is_atom(root):
        return FeedFormat.ATOM
    if _is_rdf(root):
        return FeedFormat.RDF
    return FeedFormat.UNKNOWN
