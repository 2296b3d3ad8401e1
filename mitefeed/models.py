"""
MiteFeed Data Models
===================

Canonical feed model produced by the parsers, plus the values exchanged with
the network layer and the subscription store.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .ingestion.xml_tree import XmlDocument


class Item(BaseModel):
    """A single RSS item or Atom entry."""
    title: str = Field(default="", description="Item title")
    link: str = Field(default="", description="Item permalink")
    image: Optional[str] = Field(default=None, description="Image URL from an enclosure or Media RSS")
    published: Optional[str] = Field(default=None, description="Raw, unparsed publication date")
    authors: List[str] = Field(default_factory=list, description="Authors in source order, not deduplicated")
    categories: List[str] = Field(default_factory=list, description="Categories in source order, not deduplicated")
    summary: Optional[str] = Field(default=None, description="Synopsis")
    content: Optional[str] = Field(default=None, description="Full content")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"Item({self.title[:50]})"


class Feed(BaseModel):
    """Canonical, format-independent view of a feed document."""
    title: str = Field(default="", description="Feed title")
    link: str = Field(default="", description="Website the feed belongs to")
    image: Optional[str] = Field(default=None, description="Feed image or icon URL")
    description: Optional[str] = Field(default=None, description="Feed description")
    items: List[Item] = Field(default_factory=list, description="Items in document order")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"Feed({self.title[:50]}, {len(self.items)} items)"


class LastFetch(BaseModel):
    """Caching validators from the last successful fetch of a subscription."""
    last_modified: str = Field(default="", alias="Last-Modified")
    etag: str = Field(default="", alias="ETag")

    model_config = ConfigDict(populate_by_name=True)


class Subscription(BaseModel):
    """A followed feed as stored by the subscription repository."""
    id: str = Field(..., description="UUID identifying the subscription")
    title: str = Field(default="", description="Feed title at subscription time")
    url: str = Field(..., min_length=1, description="Feed URL")
    read_from: str = Field(..., alias="readFrom", description="File name of the stored feed document")
    last_fetch: LastFetch = Field(default_factory=LastFetch, alias="lastFetch")

    model_config = ConfigDict(populate_by_name=True)

    def __str__(self) -> str:
        return f"Subscription({self.title}:{self.url})"


class ReaderSettings(BaseModel):
    """Reader preferences persisted next to the subscriptions."""
    sidebar_width: str = Field(default="12rem", alias="sidebarWidth")
    show_sidebar: bool = Field(default=True, alias="showSidebar")

    model_config = ConfigDict(populate_by_name=True)


@dataclass
class FetchResponse:
    """Decoded HTTP response."""

    status: int
    headers: Dict[str, str]
    data: str
    url: str

    @property
    def etag(self) -> str:
        return self.headers.get("etag", "")

    @property
    def last_modified(self) -> str:
        return self.headers.get("last-modified", "")


@dataclass
class FeedLookupEntry:
    """Candidate feed found by auto-discovery."""

    title: str
    url: str
    subscribe: bool = False
    document: Optional["XmlDocument"] = None
    headers: Optional[Dict[str, str]] = None


class _NotModified:
    """Poll outcome for a feed whose content has not changed (HTTP 304)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_MODIFIED"

    def __bool__(self) -> bool:
        return False


NOT_MODIFIED = _NotModified()
