"""Dependency Injection Container for element-mcp.

This container wires together the bounded contexts:
- Selector Context: synthesizer and element data extractor per page
- Picker Context: the single picker session bound to the loaded page
- Element Registry Context: the persisted registry service

Usage:
    from elementmcp.container import get_container

    container = get_container()
    await container.load_page("<button id='save'>Save</button>")
    service = await container.get_registry_service()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple

from elementmcp.models.config_models import ElementMcpConfig, load_config

if TYPE_CHECKING:
    from elementmcp.adapters import HtmlDocument, KeyValueStore, SoupMutationWatcher
    from elementmcp.domains.element_registry import (
        ElementRegistryRepository,
        ElementRegistryService,
    )
    from elementmcp.domains.picker import PickerOptions, PickerSession
    from elementmcp.domains.selector import ElementDataExtractor, SelectorSynthesizer

logger = logging.getLogger(__name__)

# Singleton container instance
_container: Optional["ServiceContainer"] = None


@dataclass
class ServiceContainer:
    """Simple dependency injection container for element services.

    Attributes:
        config: Runtime configuration
        outbox: Messages the picker emitted to its host, oldest first

    Page-scoped services (replaced on every load_page):
        - HTML document and mutation watcher
        - Selector synthesizer and extractor
        - Picker session
    """

    config: ElementMcpConfig = field(default_factory=load_config)
    outbox: List[Dict[str, Any]] = field(default_factory=list)

    # Shared services (singletons)
    _store: Optional["KeyValueStore"] = field(default=None, repr=False)
    _repository: Optional["ElementRegistryRepository"] = field(default=None, repr=False)
    _registry_service: Optional["ElementRegistryService"] = field(default=None, repr=False)

    # Page-scoped services
    _document: Optional["HtmlDocument"] = field(default=None, repr=False)
    _watcher: Optional["SoupMutationWatcher"] = field(default=None, repr=False)
    _extractor: Optional["ElementDataExtractor"] = field(default=None, repr=False)
    _picker: Optional["PickerSession"] = field(default=None, repr=False)

    @property
    def store(self) -> "KeyValueStore":
        """Get the key-value store the registry persists to."""
        if self._store is None:
            from elementmcp.adapters import InMemoryKeyValueStore, JsonFileKeyValueStore

            if self.config.in_memory:
                self._store = InMemoryKeyValueStore()
            else:
                self._store = JsonFileKeyValueStore(self.config.storage_dir)
        return self._store

    @property
    def repository(self) -> "ElementRegistryRepository":
        """Get the registry repository."""
        if self._repository is None:
            from elementmcp.domains.element_registry import KeyValueRegistryRepository

            self._repository = KeyValueRegistryRepository(self.store, self.config.storage_key)
        return self._repository

    async def get_registry_service(self) -> "ElementRegistryService":
        """Get the registry service, loading it from storage on first use."""
        if self._registry_service is None:
            from elementmcp.domains.element_registry import ElementRegistryService

            service = ElementRegistryService(
                self.repository,
                tie_break=self.config.tie_break,
                max_pending_mutations=self.config.max_pending_mutations,
                track_changes_default=self.config.track_changes_default,
            )
            await service.ensure_loaded()
            if self._document is not None:
                service.attach_page(self._document, self._watcher)
            self._registry_service = service
        return self._registry_service

    # -- page ----------------------------------------------------------

    @property
    def document(self) -> Optional["HtmlDocument"]:
        return self._document

    @property
    def watcher(self) -> Optional["SoupMutationWatcher"]:
        return self._watcher

    def require_document(self) -> "HtmlDocument":
        if self._document is None:
            raise RuntimeError("No page loaded. Call load_page first.")
        return self._document

    async def load_page(
        self,
        html: str,
        url: str = "about:blank",
        viewport: Optional[Tuple[float, float]] = None,
        layout: Optional[Mapping[str, Sequence[float]]] = None,
    ) -> Dict[str, Any]:
        """Replace the current page and rebind page-scoped services.

        Args:
            html: Page markup
            url: Page URL, reported as the frame origin
            viewport: (width, height); defaults from config
            layout: CSS selector -> [x, y, width, height] geometry pins

        Returns:
            Counts of elements pinned by layout and watches resumed
        """
        from elementmcp.adapters import HtmlDocument, Rect, SoupMutationWatcher

        if self._picker is not None and self._picker.is_active:
            self._picker.stop(reason="page_unloaded")
        self._picker = None
        self._extractor = None

        if viewport is None:
            viewport = (float(self.config.viewport_width), float(self.config.viewport_height))
        document = HtmlDocument(html, url=url, viewport=viewport)

        pinned = 0
        for selector, geometry in (layout or {}).items():
            if len(geometry) != 4:
                raise ValueError(
                    f"Layout for '{selector}' must be [x, y, width, height], got {list(geometry)}"
                )
            rect = Rect(*(float(v) for v in geometry))
            for element in document.query_selector_all(selector):
                document.set_layout(element, rect)
                pinned += 1

        self._document = document
        self._watcher = SoupMutationWatcher(document)

        resumed = 0
        if self._registry_service is not None:
            resumed = self._registry_service.attach_page(document, self._watcher)
        logger.info(f"Loaded page {url} ({pinned} layout pins, {resumed} watches resumed)")
        return {"layout_pins": pinned, "tracking_resumed": resumed}

    def get_synthesizer(self) -> "SelectorSynthesizer":
        return self.get_extractor().synthesizer

    def get_extractor(self) -> "ElementDataExtractor":
        if self._extractor is None:
            from elementmcp.domains.selector import ElementDataExtractor

            self._extractor = ElementDataExtractor(self.require_document())
        return self._extractor

    # -- picker --------------------------------------------------------

    @property
    def picker(self) -> Optional["PickerSession"]:
        return self._picker

    def get_picker(self, options: Optional["PickerOptions"] = None) -> "PickerSession":
        """Get the picker for the current page.

        Options apply when the session is created or while it is idle;
        an active session keeps the options it was started with.
        """
        if self._picker is None:
            from elementmcp.domains.picker import PickerSession

            self._picker = PickerSession(
                self.require_document(),
                self.get_extractor(),
                on_select=self.outbox.append,
                options=options or self.config.picker_options(),
            )
        elif options is not None and not self._picker.is_active:
            self._picker.options = options
        return self._picker

    def drain_outbox(self) -> List[Dict[str, Any]]:
        messages, self.outbox = self.outbox, []
        return messages


def get_container() -> ServiceContainer:
    """Get the singleton service container.

    Returns:
        The shared ServiceContainer instance
    """
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container(config: Optional[ElementMcpConfig] = None) -> ServiceContainer:
    """Reset the container (for testing).

    Replaces the singleton with a fresh container built from config, or
    from the environment when config is None.
    """
    global _container
    _container = ServiceContainer(config=config) if config is not None else ServiceContainer()
    return _container
