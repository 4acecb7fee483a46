"""Host Capability Adapters - Anti-Corruption Layer.

The element core depends only on the protocols in dom_adapter and
storage_adapter. Concrete implementations:

    HtmlDocument / SoupMutationWatcher: static HTML via BeautifulSoup
    InMemoryKeyValueStore / JsonFileKeyValueStore: registry persistence

Usage:
    from elementmcp.adapters import HtmlDocument, SoupMutationWatcher

    document = HtmlDocument("<button id='save'>Save</button>")
    watcher = SoupMutationWatcher(document)
"""

from .dom_adapter import (
    DomElement,
    DomEvent,
    ElementLocator,
    MutationNotice,
    MutationWatcher,
    Rect,
    ShadowRoot,
    WatchHandle,
)
from .soup_adapter import HtmlDocument, SoupElement, SoupMutationWatcher, SoupShadowRoot
from .storage_adapter import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    PersistenceError,
)

__all__ = [
    # Protocols
    "DomElement",
    "ElementLocator",
    "MutationWatcher",
    "ShadowRoot",
    "WatchHandle",
    "KeyValueStore",
    # Value types
    "DomEvent",
    "MutationNotice",
    "Rect",
    # Implementations
    "HtmlDocument",
    "SoupElement",
    "SoupMutationWatcher",
    "SoupShadowRoot",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Errors
    "PersistenceError",
]
