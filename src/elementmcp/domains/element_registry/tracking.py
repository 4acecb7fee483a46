"""Mutation work queue for tracked elements.

Watcher callbacks only enqueue. Notifications that arrive for the same
element before the next flush are coalesced into one record update,
and one flush persists the registry once for all of them. Each element
has a bounded queue; when it is full the oldest pending summary is
dropped.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from elementmcp.adapters.dom_adapter import MutationNotice
from elementmcp.domains.element_registry.value_objects import ElementId, MutationSummary

logger = logging.getLogger(__name__)


def summarize(notice: MutationNotice) -> MutationSummary:
    return MutationSummary(
        type=notice.type,
        attribute_name=notice.attribute_name,
        old_value=notice.old_value,
    )


class MutationQueue:
    """Bounded per-element queue of pending mutation summaries.

    Args:
        max_pending: Maximum summaries held per element between flushes
    """

    def __init__(self, max_pending: int = 50) -> None:
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")
        self.max_pending = max_pending
        self.dropped = 0
        self._pending: Dict[ElementId, Deque[MutationSummary]] = {}

    def enqueue(self, element_id: ElementId, summaries: Iterable[MutationSummary]) -> None:
        queue = self._pending.setdefault(element_id, deque())
        for summary in summaries:
            if len(queue) >= self.max_pending:
                dropped = queue.popleft()
                self.dropped += 1
                logger.warning(
                    f"Mutation queue full for element {element_id}; "
                    f"dropped pending '{dropped.type}' change"
                )
            queue.append(summary)

    def drain(self) -> Dict[ElementId, List[MutationSummary]]:
        """Remove and return everything pending, grouped by element."""
        pending = {eid: list(queue) for eid, queue in self._pending.items() if queue}
        self._pending.clear()
        return pending

    def discard(self, element_id: ElementId) -> None:
        self._pending.pop(element_id, None)

    def pending_count(self, element_id: Optional[ElementId] = None) -> int:
        if element_id is not None:
            return len(self._pending.get(element_id, ()))
        return sum(len(queue) for queue in self._pending.values())

    def __len__(self) -> int:
        return self.pending_count()
