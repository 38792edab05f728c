"""Cycle extraction from ancestor chains.

A class is on an inheritance cycle exactly when its own name reappears in its
ancestor chain. The cycle path reported for that class runs from the class to
its first recurrence, which is the shortest loop that proves the cycle.

Every member of a cyclic group is scanned from its own chain, so each member
is reported once with its own rotation of the loop:

    A -> B -> C -> A
    B -> C -> A -> B
    C -> A -> B -> C
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .hierarchy_builder import AncestorChain, HierarchyBuilder
from .relationship_table import RelationshipTable

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics

DEFAULT_SEPARATOR = " -> "


@dataclass(frozen=True)
class CyclePath:
    """Closed loop of parent links; first and last classes are the same."""

    classes: Tuple[str, ...]

    @property
    def origin(self) -> str:
        return self.classes[0]

    @property
    def members(self) -> Tuple[str, ...]:
        """Classes on the loop, without the closing repeat."""
        return self.classes[:-1]

    @property
    def is_self_cycle(self) -> bool:
        return len(self.classes) == 2

    def __len__(self) -> int:
        return len(self.classes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.classes)

    def __getitem__(self, index):
        return self.classes[index]

    def render(self, separator: str = DEFAULT_SEPARATOR) -> str:
        return separator.join(self.classes)

    def to_dict(self, separator: str = DEFAULT_SEPARATOR) -> Dict[str, Any]:
        return {
            "class": self.origin,
            "path": list(self.classes),
            "rendered": self.render(separator),
        }


def extract_cycle(class_name: str, chain: AncestorChain) -> Optional[CyclePath]:
    """
    Return the cycle through ``class_name`` proven by ``chain``, if any.

    Position 0 is the class itself and is not scanned. The earliest
    recurrence closes the shortest loop; later recurrences only repeat it.
    """
    classes = tuple(chain)
    try:
        closing_index = classes.index(class_name, 1)
    except ValueError:
        return None
    return CyclePath(classes[:closing_index + 1])


class CycleReport(Mapping):
    """
    Mapping of class name -> CyclePath for every class on a cycle.

    Classes that are not on a cycle have no entry, so an empty report means
    the analyzed hierarchy is acyclic.
    """

    def __init__(self, paths: Optional[Dict[str, CyclePath]] = None):
        self._paths = MappingProxyType(dict(paths or {}))

    def __getitem__(self, class_name: str) -> CyclePath:
        return self._paths[class_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"CycleReport({[path.render() for path in self._paths.values()]!r})"

    @property
    def has_cycles(self) -> bool:
        return bool(self._paths)

    def paths(self) -> List[CyclePath]:
        return list(self._paths.values())

    def render(self, separator: str = DEFAULT_SEPARATOR) -> List[str]:
        """Human-readable cycle paths in report order."""
        return [path.render(separator) for path in self._paths.values()]

    def groups(self) -> List[Tuple[str, ...]]:
        """
        Distinct cycles, each listed once.

        Rotations of the same loop collapse into one group whose members are
        ordered starting from the first reported member.
        """
        groups = []
        grouped = set()
        for path in self._paths.values():
            if path.origin in grouped:
                continue
            groups.append(path.members)
            grouped.update(path.members)
        return groups

    def to_dict(self, separator: str = DEFAULT_SEPARATOR) -> Dict[str, Any]:
        return {
            "cyclic_class_count": len(self._paths),
            "cycles": [path.to_dict(separator) for path in self._paths.values()],
            "cycle_groups": [list(group) for group in self.groups()],
        }


class CycleDetector:
    """Finds the classes whose ancestor chains loop back to themselves."""

    def detect_cycles(self, chains: Mapping) -> CycleReport:
        """
        Scan each chain for a recurrence of its own starting class.

        Args:
            chains: Mapping of class name -> AncestorChain

        Returns:
            CycleReport with one CyclePath per class on a cycle
        """
        paths: Dict[str, CyclePath] = {}
        for class_name, chain in chains.items():
            path = extract_cycle(class_name, chain)
            if path is not None:
                paths[class_name] = path

        if paths:
            diagnostics.debug(
                f"Found {len(paths)} classes on inheritance cycles "
                f"out of {len(chains)} scanned"
            )
        return CycleReport(paths)

    def detect(self, table: RelationshipTable,
               builder: Optional[HierarchyBuilder] = None) -> CycleReport:
        """Build chains for ``table`` and scan them in one call."""
        builder = builder or HierarchyBuilder(max_workers=1)
        return self.detect_cycles(builder.build_chains(table))


def detect_cycles(chains: Mapping) -> CycleReport:
    """Scan ``chains`` with a default detector."""
    return CycleDetector().detect_cycles(chains)
