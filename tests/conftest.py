"""Pytest configuration for the element-mcp test suite."""

from __future__ import annotations

import pytest

from elementmcp.adapters import HtmlDocument, InMemoryKeyValueStore, SoupMutationWatcher
from elementmcp.domains.element_registry import KeyValueRegistryRepository
from elementmcp.domains.selector import ElementDataExtractor, SelectorSynthesizer
from elementmcp.models import MEMORY_STORAGE, ElementMcpConfig

SHOP_PAGE = """
<html>
<head><title>Shop</title></head>
<body>
  <nav id="main-nav" class="nav-bar">
    <a href="/home" class="nav-link">Home</a>
    <a href="/cart" class="nav-link">Cart</a>
  </nav>
  <form id="login" name="login">
    <input type="email" name="email" placeholder="Email" class="form-control mt-2"
           style="left: 20px; top: 40px; width: 200px; height: 24px" required>
    <input type="password" name="password" class="form-control">
    <input type="submit" value="Sign in" class="btn btn-primary">
  </form>
  <button id="ember482" class="btn">Submit</button>
  <button class="btn">Cancel</button>
  <ul id="items">
    <li>One</li>
    <li>Two</li>
    <li>Three</li>
  </ul>
  <div class="card" id="promo-card" data-campaign="spring">Limited offer today</div>
</body>
</html>
"""


@pytest.fixture
def memory_config() -> ElementMcpConfig:
    """Configuration that keeps the registry in memory."""
    return ElementMcpConfig(storage_dir=MEMORY_STORAGE)


@pytest.fixture
def shop_document() -> HtmlDocument:
    return HtmlDocument(SHOP_PAGE, url="https://shop.example.com/cart")


@pytest.fixture
def watcher(shop_document) -> SoupMutationWatcher:
    return SoupMutationWatcher(shop_document)


@pytest.fixture
def synthesizer(shop_document) -> SelectorSynthesizer:
    return SelectorSynthesizer(shop_document)


@pytest.fixture
def extractor(shop_document) -> ElementDataExtractor:
    return ElementDataExtractor(shop_document)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store) -> KeyValueRegistryRepository:
    return KeyValueRegistryRepository(store)
