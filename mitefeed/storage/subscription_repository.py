"""
Subscription Repository
=======================

Repository pattern implementation for subscriptions, their stored feed
documents and the reader settings.

Two backends share one interface:
- ``InMemorySubscriptionRepository`` for tests and embedders
- ``JsonSubscriptionRepository`` for the on-disk layout::

    <data_dir>/feeds.json        subscription list
    <data_dir>/config.json       reader settings
    <data_dir>/contents/*.xml    raw feed documents
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..config.settings import StorageSettings
from ..models import ReaderSettings, Subscription
from ..utils.exceptions import StorageError, SubscriptionNotFoundError
from ..utils.logging import get_logger_for_component


class SubscriptionRepository(ABC):
    """Interface for subscription and feed content storage."""

    @abstractmethod
    def list_subscriptions(self) -> List[Subscription]:
        """Return all subscriptions in insertion order."""

    @abstractmethod
    def set_subscriptions(self, subscriptions: List[Subscription]) -> None:
        """Replace the stored subscription list."""

    @abstractmethod
    def read_content(self, name: str) -> str:
        """Return the stored feed document called ``name``."""

    @abstractmethod
    def write_content(self, name: str, text: str) -> None:
        """Store a feed document under ``name``, replacing any previous one."""

    @abstractmethod
    def remove_content(self, name: str) -> None:
        """Delete the stored feed document called ``name``."""

    @abstractmethod
    def get_settings(self) -> ReaderSettings:
        """Return reader settings, defaults filled in."""

    @abstractmethod
    def set_settings(self, settings: ReaderSettings) -> None:
        """Persist reader settings."""

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """Get subscription by id, or None."""
        for subscription in self.list_subscriptions():
            if subscription.id == subscription_id:
                return subscription
        return None

    def add_subscription(self, subscription: Subscription) -> None:
        """Append a subscription to the stored list."""
        subscriptions = self.list_subscriptions()
        subscriptions.append(subscription)
        self.set_subscriptions(subscriptions)

    def update_subscription(self, subscription: Subscription) -> None:
        """Replace the stored subscription that has the same id.

        Raises:
            SubscriptionNotFoundError: If no subscription has that id
        """
        subscriptions = self.list_subscriptions()
        for index, stored in enumerate(subscriptions):
            if stored.id == subscription.id:
                subscriptions[index] = subscription
                self.set_subscriptions(subscriptions)
                return
        raise SubscriptionNotFoundError(subscription.id)

    def remove_subscription(self, subscription_id: str) -> Subscription:
        """Remove a subscription record and return it.

        Raises:
            SubscriptionNotFoundError: If no subscription has that id
        """
        subscriptions = self.list_subscriptions()
        for index, stored in enumerate(subscriptions):
            if stored.id == subscription_id:
                del subscriptions[index]
                self.set_subscriptions(subscriptions)
                return stored
        raise SubscriptionNotFoundError(subscription_id)


class InMemorySubscriptionRepository(SubscriptionRepository):
    """Dict-backed repository."""

    def __init__(self, subscriptions: Optional[List[Subscription]] = None):
        self._subscriptions: List[Subscription] = list(subscriptions or [])
        self._contents: Dict[str, str] = {}
        self._settings = ReaderSettings()

    def list_subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def set_subscriptions(self, subscriptions: List[Subscription]) -> None:
        self._subscriptions = list(subscriptions)

    def read_content(self, name: str) -> str:
        try:
            return self._contents[name]
        except KeyError:
            raise StorageError(f"No stored content named {name}", path=name)

    def write_content(self, name: str, text: str) -> None:
        self._contents[name] = text

    def remove_content(self, name: str) -> None:
        if self._contents.pop(name, None) is None:
            raise StorageError(f"No stored content named {name}", path=name)

    def get_settings(self) -> ReaderSettings:
        return self._settings.model_copy()

    def set_settings(self, settings: ReaderSettings) -> None:
        self._settings = settings.model_copy()


class JsonSubscriptionRepository(SubscriptionRepository):
    """Repository storing everything as files under a data directory."""

    def __init__(self, storage: StorageSettings):
        """Initialize JSON repository.

        Args:
            storage: Storage section of the application settings
        """
        self.data_dir = Path(storage.data_dir)
        self.subscriptions_path = self.data_dir / storage.subscriptions_file
        self.settings_path = self.data_dir / storage.settings_file
        self.contents_dir = self.data_dir / storage.contents_dir
        self.logger = get_logger_for_component("subscription_repository")

    def ensure_layout(self) -> None:
        """Create the data directory, contents directory and empty files if missing."""
        try:
            self.contents_dir.mkdir(parents=True, exist_ok=True)
            if not self.subscriptions_path.exists():
                self.subscriptions_path.write_text("[]", encoding="utf-8")
                self.logger.info(f"Created {self.subscriptions_path}")
            if not self.settings_path.exists():
                self.settings_path.write_text("{}", encoding="utf-8")
                self.logger.info(f"Created {self.settings_path}")
        except OSError as e:
            raise StorageError(
                f"Failed to prepare data directory: {e}", path=str(self.data_dir)
            ) from e

    def _read_json(self, path: Path):
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read {path.name}: {e}", path=str(path)) from e

    def _write_json(self, path: Path, data) -> None:
        try:
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            self.logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write {path.name}: {e}", path=str(path)) from e

    def _content_path(self, name: str) -> Path:
        # Content names are bare file names; anything else would escape contents/
        if not name or Path(name).name != name:
            raise StorageError(f"Invalid content name: {name!r}", path=name)
        return self.contents_dir / name

    def list_subscriptions(self) -> List[Subscription]:
        data = self._read_json(self.subscriptions_path)
        try:
            return [Subscription.model_validate(entry) for entry in data]
        except (TypeError, ValidationError) as e:
            raise StorageError(
                f"Invalid subscription data: {e}", path=str(self.subscriptions_path)
            ) from e

    def set_subscriptions(self, subscriptions: List[Subscription]) -> None:
        self._write_json(
            self.subscriptions_path,
            [subscription.model_dump(by_alias=True) for subscription in subscriptions],
        )
        self.logger.debug(f"Stored {len(subscriptions)} subscriptions")

    def read_content(self, name: str) -> str:
        path = self._content_path(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read content {name}: {e}", path=str(path)) from e

    def write_content(self, name: str, text: str) -> None:
        path = self._content_path(name)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write content {name}: {e}", path=str(path)) from e

    def remove_content(self, name: str) -> None:
        path = self._content_path(name)
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to remove content {name}: {e}", path=str(path)) from e

    def get_settings(self) -> ReaderSettings:
        stored = self._read_json(self.settings_path)
        if not isinstance(stored, dict):
            raise StorageError("Settings file must hold a JSON object", path=str(self.settings_path))

        # Stored keys override defaults
        merged = ReaderSettings().model_dump(by_alias=True)
        merged.update(stored)
        try:
            return ReaderSettings.model_validate(merged)
        except ValidationError as e:
            raise StorageError(f"Invalid settings: {e}", path=str(self.settings_path)) from e

    def set_settings(self, settings: ReaderSettings) -> None:
        self._write_json(self.settings_path, settings.model_dump(by_alias=True))
