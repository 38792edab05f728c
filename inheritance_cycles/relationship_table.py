"""Class to immediate-parent relationship table.

The table is the input boundary of cycle detection: one entry per class
declaration, mapping the fully-qualified class name to the name of its single
class-kind parent, or ``None`` when the class has no class parent (a root
class, or a class whose only bases are interfaces).

Names are validated and normalized here, once, so that the hierarchy walk can
trust its input.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics

# Marks a class without a class-kind parent
NO_PARENT = None

NAME_SEPARATOR = "."


class RelationshipTableError(ValueError):
    """Raised when relationship input violates the table contract."""


def normalize_class_name(name: Any) -> str:
    """
    Normalize a fully-qualified class name.

    Surrounding whitespace is stripped and C++ style ``::`` qualification is
    rewritten to ``.`` so that names coming from different extractors compare
    equal.

    Raises:
        RelationshipTableError: name is not a string, is empty, or has an
            empty qualification segment (``"a..B"``, ``".B"``, ``"B."``)
    """
    if not isinstance(name, str):
        raise RelationshipTableError(
            f"Class name must be a string, got {type(name).__name__}: {name!r}"
        )

    normalized = name.strip().replace("::", NAME_SEPARATOR)
    # A leading "::" means the global namespace
    if name.strip().startswith("::"):
        normalized = normalized[len(NAME_SEPARATOR):]

    if not normalized:
        raise RelationshipTableError(f"Empty class name: {name!r}")

    segments = normalized.split(NAME_SEPARATOR)
    if any(not segment.strip() or segment != segment.strip() for segment in segments):
        raise RelationshipTableError(f"Malformed qualified class name: {name!r}")

    return normalized


def qualify(namespace: str, name: str) -> str:
    """Join a namespace and a simple name; an empty namespace keeps the name."""
    if not namespace:
        return name
    return f"{namespace}{NAME_SEPARATOR}{name}"


def _normalize_entries(
    pairs: Iterable[Tuple[Any, Any]]
) -> Dict[str, Optional[str]]:
    """Normalize ``(name, parent)`` pairs; two parents for one name is an error."""
    entries: Dict[str, Optional[str]] = {}
    for name, parent in pairs:
        key = normalize_class_name(name)
        value = None if parent is None else normalize_class_name(parent)
        if key in entries and entries[key] != value:
            raise RelationshipTableError(
                f"Conflicting parents for {key}: {entries[key]!r} and {value!r}"
            )
        entries[key] = value
    return entries


class RelationshipTable(Mapping):
    """
    Immutable mapping of class name -> immediate parent name (or ``None``).

    Iteration order is insertion order, which is the order classes were
    declared to the table. Construct through ``from_pairs``, ``from_mapping``,
    ``from_records`` or ``load_json``; all of them validate names.
    """

    def __init__(self, parents: Optional[Mapping] = None):
        self._parents = MappingProxyType(_normalize_entries((parents or {}).items()))

    def __getitem__(self, name: str) -> Optional[str]:
        return self._parents[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parents)

    def __len__(self) -> int:
        return len(self._parents)

    def __repr__(self) -> str:
        return f"RelationshipTable({dict(self._parents)!r})"

    def parent_of(self, name: str) -> Optional[str]:
        """Parent of ``name``; ``None`` for root classes and unknown names."""
        return self._parents.get(name)

    def root_classes(self) -> List[str]:
        """Classes declared with no class parent."""
        return [name for name, parent in self._parents.items() if parent is None]

    def external_parents(self) -> List[str]:
        """Parent names that are not themselves keys of the table."""
        external = []
        for parent in self._parents.values():
            if parent is not None and parent not in self._parents and parent not in external:
                external.append(parent)
        return external

    def to_dict(self) -> Dict[str, Optional[str]]:
        return dict(self._parents)

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[Tuple[str, Optional[str]]]
    ) -> "RelationshipTable":
        """
        Build a table from ``(class_name, parent_or_None)`` pairs.

        Raises:
            RelationshipTableError: a class appears twice with different parents
        """
        return cls(_normalize_entries(pairs))

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> "RelationshipTable":
        """Build a table from a ``{class_name: parent_or_None}`` mapping."""
        if not isinstance(mapping, Mapping):
            raise RelationshipTableError(
                f"Expected a mapping of class names, got {type(mapping).__name__}"
            )
        return cls.from_pairs(mapping.items())

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> "RelationshipTable":
        """
        Build a table from extracted class records.

        Records flagged ``is_interface`` are skipped: the table holds classes
        only. When the same class is defined more than once, the first
        definition wins and a conflicting later parent is logged.
        """
        entries: Dict[str, Optional[str]] = {}
        for record in records:
            if getattr(record, "is_interface", False):
                continue
            key = normalize_class_name(record.qualified_name)
            value = None if record.parent is None else normalize_class_name(record.parent)
            if key in entries:
                if entries[key] != value:
                    diagnostics.warning(
                        f"Duplicate definition of {key} at {record.file}:{record.line} "
                        f"declares parent {value!r}, keeping {entries[key]!r}"
                    )
                continue
            entries[key] = value
        return cls(entries)

    @classmethod
    def load_json(cls, path: Union[str, Path]) -> "RelationshipTable":
        """
        Load a relationship snapshot file.

        Expected format::

            {"classes": {"pkg.A": "pkg.B", "pkg.B": null}}

        Raises:
            FileNotFoundError: path does not exist
            RelationshipTableError: the file is not a valid snapshot
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise RelationshipTableError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict) or "classes" not in data:
            raise RelationshipTableError(
                f"Relationship snapshot {path} must be an object with a 'classes' key"
            )

        table = cls.from_mapping(data["classes"])
        diagnostics.debug(f"Loaded {len(table)} class relationships from {path}")
        return table

    def save_json(self, path: Union[str, Path]) -> Path:
        """Write the table in the format read by ``load_json``."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"classes": self.to_dict()}, f, indent=2)
        return path
