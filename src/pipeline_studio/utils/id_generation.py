"""
Identifier generation for connections, graph nodes and graph edges.

Two strategies are available:
- uuid4: random ids ("conn-3f2a..."), unique without coordination
- counter: monotonic per prefix ("conn-1", "conn-2", ...), deterministic

Ids are never derived from collection sizes, so deleting an entity can not
cause the next generated id to collide with a surviving one.
"""

import itertools
import threading
import uuid
from typing import Dict, Iterator

from ..config_constants import IdStrategy


class IdGenerator:
    """
    Prefix-scoped id generator.

    Usage:
        ids = IdGenerator(IdStrategy.COUNTER)
        ids.new_id("conn")   # "conn-1"
        ids.new_id("table")  # "table-1"
        ids.new_id("conn")   # "conn-2"
    """

    def __init__(self, strategy: IdStrategy = IdStrategy.UUID4):
        self.strategy = strategy
        self._counters: Dict[str, Iterator[int]] = {}
        self._lock = threading.Lock()

    def new_id(self, prefix: str) -> str:
        if self.strategy == IdStrategy.COUNTER:
            with self._lock:
                counter = self._counters.setdefault(prefix, itertools.count(1))
                return f"{prefix}-{next(counter)}"
        return f"{prefix}-{uuid.uuid4().hex}"

    def reserve(self, prefix: str, existing_id: str) -> None:
        """
        Advance the counter for ``prefix`` past an id that already exists.

        Used after importing a graph so newly generated counter ids do not
        collide with imported ones. No-op for the uuid4 strategy.
        """
        if self.strategy != IdStrategy.COUNTER:
            return
        head, _, tail = existing_id.rpartition("-")
        if head != prefix or not tail.isdigit():
            return
        with self._lock:
            counter = self._counters.get(prefix)
            current = next(counter) - 1 if counter else 0
            self._counters[prefix] = itertools.count(max(current, int(tail)) + 1)
