"""
MiteFeed Services
================

Application workflows built on the ingestion, processing and storage layers.
"""

from .subscription_service import RefreshResult, SubscriptionService, content_file_name

__all__ = ["SubscriptionService", "RefreshResult", "content_file_name"]
