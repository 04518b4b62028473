from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .models import Project


@dataclass(order=True)
class PendingEntry:
    sort_key: int
    sequence: int
    project: Project = field(compare=False)

    @property
    def priority(self) -> int:
        return -self.sort_key


class PendingQueue:
    """Max-priority queue of projects waiting to be staffed.

    Priority is computed from the project and the day passed to ``push``, so a
    project re-inserted later is ranked by how urgent it is at that point.
    Entries with equal priority come out in insertion order.
    """

    def __init__(self, sequence: Optional[Iterator[int]] = None) -> None:
        self._heap: List[PendingEntry] = []
        self._sequence = sequence if sequence is not None else itertools.count()

    def push(self, project: Project, day: int) -> PendingEntry:
        entry = PendingEntry(-project.priority_on(day), next(self._sequence), project)
        heapq.heappush(self._heap, entry)
        return entry

    def pop(self) -> Optional[PendingEntry]:
        if not self._heap:
            return None
        return heapq.heappop(self._heap)

    def absorb(self, other: PendingQueue) -> None:
        """Move every entry of ``other`` into this queue, keeping its priority."""
        while other._heap:
            heapq.heappush(self._heap, heapq.heappop(other._heap))

    def projects(self) -> List[Project]:
        return [entry.project for entry in sorted(self._heap)]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
