"""
Subscription Service
====================

Orchestrates discovery results, the fetcher, the parser and a subscription
repository into the subscribe / read / refresh / unsubscribe workflow shared
by the CLI and embedding applications.
"""

import asyncio
import re
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..ingestion.feed_parser import parse_feed
from ..ingestion.xml_tree import XmlDocument
from ..models import NOT_MODIFIED, Feed, FeedLookupEntry, LastFetch, Subscription
from ..processing.feed_fetcher import FeedFetcher
from ..storage.subscription_repository import SubscriptionRepository
from ..utils.exceptions import MalformedDocumentError, MiteFeedError
from ..utils.logging import PerformanceLogger, get_logger_for_component


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9]")


def content_file_name(title: str, subscription_id: str) -> str:
    """Storage file name for a subscription's feed document."""
    normalized = _UNSAFE_FILENAME_CHARS.sub("-", title.lower())
    return f"{normalized}_{subscription_id.split('-')[0]}.xml"


def _require_well_formed(document: XmlDocument, url: str) -> XmlDocument:
    """Reject documents lxml could only read by recovering, such as truncated downloads."""
    if document.recovered:
        raise MalformedDocumentError(
            "Refusing to store a document that is not well-formed: "
            + "; ".join(document.recovery_errors[:3]),
            feed_url=url,
            user_message="The feed is not well-formed XML. It may have been cut off in transit.",
        )
    return document


def _last_fetch_from_headers(headers: Optional[Dict[str, str]]) -> LastFetch:
    headers = headers or {}
    return LastFetch(
        etag=headers.get("etag", ""),
        last_modified=headers.get("last-modified", ""),
    )


@dataclass
class RefreshResult:
    """Outcome of refreshing one subscription."""
    subscription: Subscription
    feed: Optional[Feed] = None
    error_message: Optional[str] = None

    @property
    def status(self) -> str:
        if self.error_message is not None:
            return "failed"
        return "updated" if self.feed is not None else "unchanged"


class SubscriptionService:
    """Service for managing feed subscriptions."""

    def __init__(
        self,
        repository: SubscriptionRepository,
        fetcher: Optional[FeedFetcher] = None,
    ):
        """Initialize subscription service.

        Args:
            repository: Where subscriptions and feed documents are stored
            fetcher: HTTP fetcher (default: one built from global settings)
        """
        self.repository = repository
        self.fetcher = fetcher or FeedFetcher()
        self.logger = get_logger_for_component("subscription_service")

    async def add_subscription_from_lookup(self, entry: FeedLookupEntry) -> str:
        """Subscribe to a discovered feed.

        Entries found through HTML discovery carry no document yet; those are
        fetched first and the entry is updated with the final URL, parsed
        document and response headers.

        Returns:
            Id of the new subscription
        """
        if entry.document is None:
            response = await self.fetcher.fetch_url(entry.url)
            entry.url = response.url
            entry.document = XmlDocument.parse(response.data)
            entry.headers = response.headers

        _require_well_formed(entry.document, entry.url)

        subscription_id = str(uuid.uuid4())
        file_name = content_file_name(entry.title, subscription_id)

        subscription = Subscription(
            id=subscription_id,
            title=entry.title,
            url=entry.url,
            read_from=file_name,
            last_fetch=_last_fetch_from_headers(entry.headers),
        )

        # A subscription is only stored once its document is
        self.repository.write_content(file_name, entry.document.serialize())
        try:
            self.repository.add_subscription(subscription)
        except MiteFeedError:
            self.repository.remove_content(file_name)
            raise

        self.logger.info(f"Subscribed to {entry.url} as {subscription_id}")
        return subscription_id

    def load_feed_content(self, subscription: Subscription) -> Feed:
        """Parse the stored document of a subscription."""
        return parse_feed(self.repository.read_content(subscription.read_from))

    def remove_subscription(self, subscription: Subscription) -> None:
        """Delete a subscription and then its stored document.

        Raises:
            SubscriptionNotFoundError: If the subscription is not stored
        """
        self.repository.remove_subscription(subscription.id)
        self.repository.remove_content(subscription.read_from)
        self.logger.info(f"Removed subscription {subscription.id} ({subscription.url})")

    async def refresh_subscription(
        self, subscription: Subscription, session=None
    ) -> Optional[Feed]:
        """Poll one subscription and store new content.

        Returns:
            The re-parsed feed, or None if the server reported it unchanged
        """
        result = await self.fetcher.poll_feed(subscription, session=session)
        if result is NOT_MODIFIED:
            return None

        # Parse before storing so a broken response never replaces good content
        feed = parse_feed(
            _require_well_formed(XmlDocument.parse(result.data), subscription.url)
        )

        self.repository.write_content(subscription.read_from, result.data)
        self.repository.update_subscription(
            subscription.model_copy(
                update={"last_fetch": _last_fetch_from_headers(result.headers)}
            )
        )

        self.logger.info(
            f"Refreshed {subscription.url}: {len(feed.items)} items"
        )
        return feed

    async def _refresh_one(self, subscription: Subscription, session) -> RefreshResult:
        try:
            feed = await self.refresh_subscription(subscription, session=session)
            return RefreshResult(subscription=subscription, feed=feed)
        except MiteFeedError as e:
            logger = get_logger_for_component(
                "subscription_service",
                feed_url=subscription.url,
                subscription_id=subscription.id,
            )
            logger.warning(f"Refresh failed: {e}", extra={"error_code": e.error_code})
            return RefreshResult(subscription=subscription, error_message=e.user_message)

    async def refresh_all(self) -> List[RefreshResult]:
        """Refresh every stored subscription concurrently.

        Returns:
            One result per subscription, in stored order
        """
        subscriptions = self.repository.list_subscriptions()
        if not subscriptions:
            return []

        self.logger.info(f"Refreshing {len(subscriptions)} subscriptions")

        with PerformanceLogger(self.logger, "refresh_all", subscription_count=len(subscriptions)):
            async with self.fetcher.get_session() as session:
                results = await asyncio.gather(
                    *(self._refresh_one(subscription, session) for subscription in subscriptions)
                )

        updated = sum(1 for r in results if r.status == "updated")
        failed = sum(1 for r in results if r.status == "failed")
        self.logger.info(
            f"Refresh complete: {updated} updated, {failed} failed, "
            f"{len(results) - updated - failed} unchanged"
        )
        return list(results)
