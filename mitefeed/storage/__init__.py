"""
MiteFeed Storage Layer
=====================

Repository pattern implementations for subscriptions and stored feed content.
"""

from .subscription_repository import (
    InMemorySubscriptionRepository,
    JsonSubscriptionRepository,
    SubscriptionRepository,
)

__all__ = [
    "SubscriptionRepository",
    "InMemorySubscriptionRepository",
    "JsonSubscriptionRepository",
]
