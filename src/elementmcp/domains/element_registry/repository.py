"""Repository for the Element Registry Context.

The registry is persisted as a unit: every save writes the entire
current state under one fixed key (last writer wins), never a partial
patch, so interleaved saves cannot lose updates to other records.

Storage failures are logged and absorbed here. The in-memory registry
stays authoritative for the session; the next successful save
reconciles storage.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from elementmcp.adapters.storage_adapter import KeyValueStore, PersistenceError
from elementmcp.domains.element_registry.aggregates import ElementRegistry
from elementmcp.domains.shared import now_ms

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "web_llm_elements"


@runtime_checkable
class ElementRegistryRepository(Protocol):
    """Repository protocol for the ElementRegistry aggregate."""

    async def load(self) -> ElementRegistry:
        """Read the persisted registry; an absent record is an empty registry."""
        ...

    async def save(self, registry: ElementRegistry) -> bool:
        """Persist the whole registry.

        Returns:
            True if the write succeeded, False if it failed and was logged
        """
        ...


class KeyValueRegistryRepository:
    """ElementRegistryRepository backed by a KeyValueStore.

    A payload that cannot be read at all leaves the repository read-only:
    saves are refused until a later load() succeeds, so stored records
    are never replaced by an empty registry. A readable payload with bad
    records is copied to `<storage_key>.backup` before it is overwritten.

    Args:
        store: Storage backend
        storage_key: Fixed key the registry record lives under
    """

    def __init__(self, store: KeyValueStore, storage_key: str = DEFAULT_STORAGE_KEY) -> None:
        self.store = store
        self.storage_key = storage_key
        self.failed_saves = 0
        self.writable = True

    @property
    def backup_key(self) -> str:
        return f"{self.storage_key}.backup"

    async def load(self) -> ElementRegistry:
        try:
            payload = await self.store.get(self.storage_key)
        except PersistenceError as e:
            logger.error(f"Error loading stored elements, saves are disabled: {e}")
            self.writable = False
            return ElementRegistry()

        try:
            registry = ElementRegistry.from_payload(payload)
        except TypeError as e:
            logger.error(f"Stored elements under '{self.storage_key}' are unreadable: {e}")
            self.writable = await self._back_up(payload)
            return ElementRegistry()

        self.writable = True
        if registry.skipped:
            for problem in registry.skipped:
                logger.warning(f"Skipped stored element record: {problem}")
            self.writable = await self._back_up(payload)

        logger.info(f"Loaded {len(registry)} stored elements")
        return registry

    async def save(self, registry: ElementRegistry) -> bool:
        if not self.writable:
            self.failed_saves += 1
            logger.error(
                f"Not saving elements: stored data under '{self.storage_key}' could not be "
                "loaded and would be overwritten"
            )
            return False
        try:
            await self.store.set(self.storage_key, registry.to_payload(now_ms()))
        except PersistenceError as e:
            self.failed_saves += 1
            logger.error(f"Error saving elements: {e}")
            return False
        logger.debug(f"Saved {len(registry)} elements to '{self.storage_key}'")
        return True

    async def _back_up(self, payload: object) -> bool:
        try:
            await self.store.set(self.backup_key, payload)
        except PersistenceError as e:
            logger.error(f"Could not back up stored elements to '{self.backup_key}': {e}")
            return False
        logger.warning(f"Original stored elements copied to '{self.backup_key}'")
        return True
