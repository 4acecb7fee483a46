"""Element Registry Service.

The service is the only mutation surface of the element registry. It
hydrates the ElementRegistry aggregate from its repository, persists
the whole registry after every mutating operation, keeps live mutation
watches for tracked elements, and re-anchors lost selectors through
the selector synthesizer.

Query operations (find_by_name, get_element, get_all_elements,
process_references) are synchronous reads of the in-memory registry.
Mutating operations are coroutines because they persist.

Usage:
    service = await ElementRegistryService.create(repository)
    service.attach_page(document, SoupMutationWatcher(document))

    added = await service.add_element(snapshot)
    await service.rename_element(added["name"], "checkout")
    result = await service.verify_element("checkout")
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Dict, List, Optional, Tuple, Union

from elementmcp.adapters.dom_adapter import (
    DomElement,
    ElementLocator,
    MutationNotice,
    MutationWatcher,
    WatchHandle,
)
from elementmcp.domains.element_registry.aggregates import ElementRegistry
from elementmcp.domains.element_registry.entities import CapturedElement, ReferencedElement
from elementmcp.domains.element_registry.repository import ElementRegistryRepository
from elementmcp.domains.element_registry.tracking import MutationQueue, summarize
from elementmcp.domains.element_registry.value_objects import (
    REFERENCE_PATTERN,
    ElementId,
    FingerprintTieBreak,
    PageNotAttachedError,
    VerificationOutcome,
    VerificationResult,
)
from elementmcp.domains.selector.policy import DEFAULT_POLICY, SelectorPolicy
from elementmcp.domains.selector.services import (
    SelectorSynthesizer,
    find_fingerprint_candidates,
    resolve_selector,
)
from elementmcp.domains.selector.value_objects import ElementSnapshot
from elementmcp.domains.shared import now_ms

logger = logging.getLogger(__name__)


class ElementRegistryService:
    """Named registry of captured elements.

    Args:
        repository: Where the registry is loaded from and saved to
        policy: Selector heuristics used when re-anchoring
        tie_break: How several fingerprint candidates are treated
        max_pending_mutations: Per-element bound of the mutation queue
        track_changes_default: Tracking for records that do not request it
    """

    def __init__(
        self,
        repository: ElementRegistryRepository,
        *,
        policy: SelectorPolicy = DEFAULT_POLICY,
        tie_break: FingerprintTieBreak = FingerprintTieBreak.STRICT,
        max_pending_mutations: int = 50,
        track_changes_default: bool = False,
    ) -> None:
        self.repository = repository
        self.policy = policy
        self.tie_break = tie_break
        self.track_changes_default = track_changes_default
        self.registry = ElementRegistry()
        self.mutation_queue = MutationQueue(max_pending_mutations)
        self.locator: Optional[ElementLocator] = None
        self.watcher: Optional[MutationWatcher] = None
        self.synthesizer: Optional[SelectorSynthesizer] = None
        self._watches: Dict[ElementId, WatchHandle] = {}
        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._flush_scheduled = False
        self._flush_task: Optional[asyncio.Task] = None

    @classmethod
    async def create(
        cls, repository: ElementRegistryRepository, **kwargs: Any
    ) -> "ElementRegistryService":
        """Construct the service and hydrate it from storage."""
        service = cls(repository, **kwargs)
        await service.load()
        return service

    # -- lifecycle -----------------------------------------------------

    async def load(self) -> int:
        """(Re)load the registry from storage, replacing in-memory state."""
        async with self._load_lock:
            self._detach_all_watches()
            self.registry = await self.repository.load()
            self._loaded = True
        if self.locator is not None:
            self.resume_tracking()
        return len(self.registry)

    async def ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if not self._loaded:
                self.registry = await self.repository.load()
                self._loaded = True

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def attach_page(
        self, locator: ElementLocator, watcher: Optional[MutationWatcher] = None
    ) -> int:
        """Bind the service to a live document.

        Returns:
            Number of mutation watches resumed for tracked records
        """
        self._detach_all_watches()
        self.locator = locator
        self.watcher = watcher
        self.synthesizer = SelectorSynthesizer(locator, self.policy)
        return self.resume_tracking()

    def detach_page(self) -> None:
        self._detach_all_watches()
        self.locator = None
        self.watcher = None
        self.synthesizer = None

    # -- queries -------------------------------------------------------

    def find_by_name(self, name: str) -> Optional[str]:
        """Resolve a default id or custom name to the record's current key."""
        return self.registry.find(name)

    def get_element(self, name: str) -> Optional[CapturedElement]:
        return self.registry.get(name)

    def get_all_elements(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": record.name,
                "element_id": record.element_id.value,
                "display_name": record.custom_name or record.name,
                "summary_name": record.summary_name,
                "data": record.to_dict(),
            }
            for record in self.registry
        ]

    def process_references(self, text: str) -> List[ReferencedElement]:
        """Find `@name` tokens in text and resolve them, leaving text untouched."""
        found: List[ReferencedElement] = []
        seen = set()
        for token in REFERENCE_PATTERN.findall(text or ""):
            if token in seen:
                continue
            seen.add(token)
            record = self.registry.get(token)
            if record is not None:
                found.append(ReferencedElement(reference=token, name=record.name, element=record))
        return found

    # -- commands ------------------------------------------------------

    async def add_element(
        self,
        snapshot: Union[ElementSnapshot, Dict[str, Any]],
        track_changes: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Assign the next default name to a captured element and store it.

        Returns:
            {"name": assigned name, "data": stored record}
        """
        await self.ensure_loaded()
        if isinstance(snapshot, dict):
            snapshot = ElementSnapshot.from_dict(snapshot)
        if track_changes is None:
            track_changes = snapshot.track_changes or self.track_changes_default

        record = self.registry.add(snapshot, now_ms(), track_changes=track_changes)
        if track_changes:
            self._attach_watch(record)
        await self._persist()
        logger.info(f"Element added with ID: {record.name} (next counter: {self.registry.counter})")
        return {"name": record.name, "data": record.to_dict()}

    async def rename_element(self, old_name: str, new_name: str) -> CapturedElement:
        """Re-key a record; see ElementRegistry.rename for the error cases."""
        await self.ensure_loaded()
        record = self.registry.rename(old_name, new_name)
        await self._persist()
        logger.info(f"Element '{old_name}' renamed to '{record.name}'")
        return record

    async def delete_element(self, name: str) -> CapturedElement:
        """Remove a record and its mutation watch.

        Raises:
            ElementNotFoundError: If no record has that name
        """
        await self.ensure_loaded()
        record = self.registry.require(name)
        self._detach_watch(record.element_id)
        self.mutation_queue.discard(record.element_id)
        self.registry.remove(name)
        await self._persist()
        logger.info(f"Element '{record.name}' deleted successfully")
        return record

    async def clear(self) -> int:
        """Remove every record.

        Returns:
            Number of records removed
        """
        await self.ensure_loaded()
        self._detach_all_watches()
        self.mutation_queue.drain()
        count = self.registry.clear()
        await self._persist()
        logger.info(f"All stored elements cleared ({count})")
        return count

    async def verify_element(
        self, name: str, tie_break: Optional[FingerprintTieBreak] = None
    ) -> VerificationResult:
        """Check a record against the attached page, repairing its selectors.

        Order: primary selector, fallbacks (a hit is promoted to primary),
        then content-fingerprint re-anchoring with freshly synthesized
        selectors. is_valid and last_verified are updated either way.

        Raises:
            ElementNotFoundError: If no record has that name
            PageNotAttachedError: If no page is attached
        """
        await self.ensure_loaded()
        record = self.registry.require(name)
        locator = self._require_page("verify an element")
        previous = record.selector
        candidates = 0

        outcome = VerificationOutcome.PRIMARY_MATCH
        element = resolve_selector(locator, record.selector)
        if element is None:
            logger.debug(f"Primary selector missed for '{record.name}': {record.selector}")
            element = self._try_fallbacks(record)
            outcome = VerificationOutcome.FALLBACK_MATCH
        if element is None:
            outcome, element, candidates = self._reanchor(record, tie_break or self.tie_break)

        result = VerificationResult(
            name=record.name,
            outcome=outcome,
            selector=record.selector,
            previous_selector=previous,
            fingerprint_candidates=candidates,
        )
        self.registry.record_verification(record, result, now_ms())
        if element is not None and record.track_changes:
            self._detach_watch(record.element_id)
            self._attach_watch(record, element)
        await self._persist()
        logger.info(f"Verified '{record.name}': {outcome.value}")
        return result

    async def set_tracking(self, name: str, enabled: bool) -> CapturedElement:
        """Turn live mutation tracking on or off for one record."""
        await self.ensure_loaded()
        record = self.registry.require(name)
        record.track_changes = enabled
        if enabled:
            if record.element_id not in self._watches:
                self._attach_watch(record)
        else:
            self._detach_watch(record.element_id)
            self.mutation_queue.discard(record.element_id)
        await self._persist()
        return record

    def resume_tracking(self) -> int:
        """Attach watches for tracked records that are not watched yet.

        Returns:
            Number of watches attached
        """
        attached = 0
        for record in self.registry:
            if record.track_changes and record.element_id not in self._watches:
                if self._attach_watch(record):
                    attached += 1
        return attached

    async def flush_mutations(self) -> int:
        """Apply queued mutation summaries and persist once.

        Returns:
            Number of records updated
        """
        self._flush_scheduled = False
        pending = self.mutation_queue.drain()
        if not pending:
            return 0
        now = now_ms()
        updated = 0
        for element_id, summaries in pending.items():
            if self.registry.apply_mutations(element_id, summaries, now) is not None:
                updated += 1
        if updated:
            await self._persist()
            logger.debug(f"Flushed mutations for {updated} element(s)")
        return updated

    def is_tracking(self, name: str) -> bool:
        record = self.registry.get(name)
        return record is not None and record.element_id in self._watches

    def pull_events(self) -> List[object]:
        return self.registry.pull_events()

    # -- internals -----------------------------------------------------

    async def _persist(self) -> bool:
        return await self.repository.save(self.registry)

    def _require_page(self, operation: str) -> ElementLocator:
        if self.locator is None:
            raise PageNotAttachedError(operation)
        return self.locator

    def _try_fallbacks(self, record: CapturedElement) -> Optional[DomElement]:
        for index, selector in enumerate(record.fallback_selectors):
            element = resolve_selector(self.locator, selector)
            if element is None:
                continue
            remaining = record.fallback_selectors[:index] + record.fallback_selectors[index + 1:]
            record.fallback_selectors = remaining + [record.selector]
            record.selector = selector
            logger.info(f"Promoted fallback selector for '{record.name}': {selector}")
            return element
        return None

    def _reanchor(
        self, record: CapturedElement, tie_break: FingerprintTieBreak
    ) -> Tuple[VerificationOutcome, Optional[DomElement], int]:
        fingerprint = record.content_fingerprint
        if fingerprint is None:
            return VerificationOutcome.SELECTOR_MISS, None, 0

        candidates = find_fingerprint_candidates(self.locator, fingerprint)
        if not candidates:
            logger.info(f"No fingerprint candidates for '{record.name}'")
            return VerificationOutcome.AMBIGUOUS_FINGERPRINT, None, 0
        if len(candidates) > 1 and tie_break is FingerprintTieBreak.STRICT:
            logger.info(
                f"Fingerprint for '{record.name}' matches {len(candidates)} elements; "
                "not re-anchoring"
            )
            return VerificationOutcome.AMBIGUOUS_FINGERPRINT, None, len(candidates)

        element = candidates[0]
        selectors = self.synthesizer.generate_selectors(element)
        record.selector = selectors.primary
        record.fallback_selectors = list(selectors.fallbacks)
        logger.info(f"Re-anchored '{record.name}' to {selectors.primary}")
        return VerificationOutcome.REANCHORED, element, len(candidates)

    def _attach_watch(
        self, record: CapturedElement, element: Optional[DomElement] = None
    ) -> bool:
        if self.watcher is None or self.locator is None:
            return False
        if element is None:
            element = resolve_selector(self.locator, record.selector)
        if element is None:
            logger.debug(f"Cannot track '{record.name}': {record.selector} not found")
            return False
        handle = self.watcher.observe(
            element,
            partial(self._on_mutations, record.element_id),
            attributes=True,
            character_data=True,
            child_list=True,
            subtree=True,
        )
        self._watches[record.element_id] = handle
        return True

    def _detach_watch(self, element_id: ElementId) -> None:
        handle = self._watches.pop(element_id, None)
        if handle is not None:
            handle.disconnect()

    def _detach_all_watches(self) -> None:
        for element_id in list(self._watches):
            self._detach_watch(element_id)

    def _on_mutations(self, element_id: ElementId, notices: List[MutationNotice]) -> None:
        self.mutation_queue.enqueue(element_id, (summarize(n) for n in notices))
        self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; mutations stay queued until flush_mutations()")
            return
        self._flush_scheduled = True
        self._flush_task = loop.create_task(self.flush_mutations())
