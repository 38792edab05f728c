"""Ancestor chain construction over a relationship table.

Each class's one-hop parent pointer is expanded into its full ancestor chain.
The walk keeps a set of the classes already on the chain, so it stops as soon
as a class repeats and terminates even when the table contains cycles.

Usage:
    builder = HierarchyBuilder()
    chains = builder.build_chains(table)
    chains["pkg.Derived"].classes  # ("pkg.Derived", "pkg.Base")
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .relationship_table import RelationshipTable

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics


class AnalysisTimeoutError(TimeoutError):
    """Raised when chain building exceeds its wall-clock budget."""


class WalkState(Enum):
    """Terminal state of an ancestor walk."""

    PARENT_MISSING = "parent_missing"  # reached a class with no known parent
    CYCLE_CLOSED = "cycle_closed"  # reached a class already on the chain


@dataclass(frozen=True)
class AncestorChain:
    """
    Ordered ancestors of ``classes[0]``, starting with the class itself.

    When ``state`` is CYCLE_CLOSED the last element repeats an earlier one.
    That does not mean ``classes[0]`` is on the cycle: ``A -> B -> C -> B``
    closes on ``B``.
    """

    classes: Tuple[str, ...]
    state: WalkState

    @property
    def start(self) -> str:
        return self.classes[0]

    @property
    def closes_cycle(self) -> bool:
        return self.state is WalkState.CYCLE_CLOSED

    def __len__(self) -> int:
        return len(self.classes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.classes)

    def __getitem__(self, index):
        return self.classes[index]

    def render(self, separator: str = " -> ") -> str:
        return separator.join(self.classes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.start,
            "classes": list(self.classes),
            "state": self.state.value,
            "closes_cycle": self.closes_cycle,
        }


class HierarchyBuilder:
    """
    Builds ancestor chains for every class of a relationship table.

    Chains only read the shared table, so they can be computed on a thread
    pool with no locking. Small tables are walked in the calling thread;
    the pool is used once the table reaches ``parallel_threshold`` entries.
    """

    DEFAULT_PARALLEL_THRESHOLD = 2048
    BATCH_SIZE = 512

    def __init__(self, max_workers: Optional[int] = None,
                 parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD):
        self.max_workers = max_workers or os.cpu_count() or 1
        self.parallel_threshold = parallel_threshold

    def build_chain(self, table: RelationshipTable, class_name: str) -> AncestorChain:
        """Walk parent links from ``class_name`` until a root or a repeat."""
        chain = [class_name]
        seen = {class_name}
        current = class_name

        while True:
            parent = table.get(current)
            if parent is None:
                return AncestorChain(tuple(chain), WalkState.PARENT_MISSING)

            chain.append(parent)
            if parent in seen:
                return AncestorChain(tuple(chain), WalkState.CYCLE_CLOSED)

            seen.add(parent)
            current = parent

    def _build_batch(self, table: RelationshipTable, names: List[str]) -> List[AncestorChain]:
        return [self.build_chain(table, name) for name in names]

    def build_chains(self, table: RelationshipTable,
                     timeout: Optional[float] = None) -> Dict[str, AncestorChain]:
        """
        Compute the ancestor chain of every class in ``table``.

        Args:
            table: Relationship table to expand
            timeout: Optional wall-clock budget in seconds. It is checked between
                batches of BATCH_SIZE classes, so a single batch always runs
                to completion.

        Returns:
            Dictionary of class name -> AncestorChain, in table order

        Raises:
            AnalysisTimeoutError: the budget ran out before all chains were built
        """
        names = list(table)
        batches = [
            names[i:i + self.BATCH_SIZE] for i in range(0, len(names), self.BATCH_SIZE)
        ]
        deadline = time.monotonic() + timeout if timeout is not None else None
        chains: Dict[str, AncestorChain] = {}

        if self.max_workers <= 1 or len(names) < self.parallel_threshold:
            for batch in batches:
                if deadline is not None and time.monotonic() > deadline:
                    raise AnalysisTimeoutError(
                        f"Built {len(chains)} of {len(names)} ancestor chains "
                        f"before the {timeout}s budget ran out"
                    )
                for name in batch:
                    chains[name] = self.build_chain(table, name)
            return chains

        diagnostics.debug(
            f"Building {len(names)} ancestor chains in {len(batches)} batches "
            f"with {self.max_workers} workers"
        )

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            # map() yields results in submission order
            results = executor.map(lambda b: self._build_batch(table, b), batches,
                                   timeout=timeout)
            for batch, batch_chains in zip(batches, results):
                for name, chain in zip(batch, batch_chains):
                    chains[name] = chain
        except FuturesTimeoutError:
            raise AnalysisTimeoutError(
                f"Built {len(chains)} of {len(names)} ancestor chains "
                f"before the {timeout}s budget ran out"
            ) from None
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return chains


def build_chains(table: RelationshipTable) -> Dict[str, AncestorChain]:
    """Compute ancestor chains sequentially with a default builder."""
    return HierarchyBuilder(max_workers=1).build_chains(table)
