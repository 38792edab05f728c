"""Class declaration record produced by source extraction."""

from dataclasses import dataclass, field
from typing import List, Optional

from .relationship_table import qualify


@dataclass
class ClassRecord:
    """A single class or struct definition found in a source file"""
    name: str
    kind: str  # "class" or "struct"
    file: str
    line: int
    column: int
    namespace: str = ""  # Enclosing namespaces/classes joined by "."
    base_classes: List[str] = field(default_factory=list)  # All declared bases, qualified
    parent: Optional[str] = None  # Class-kind parent kept for the relationship table
    is_interface: bool = False  # No data members, only pure virtual methods
    usr: str = ""  # Unified Symbol Resolution - unique identifier

    @property
    def qualified_name(self) -> str:
        return qualify(self.namespace, self.name)

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            "name": self.name,
            "qualified_name": self.qualified_name,
            "kind": self.kind,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "namespace": self.namespace,
            "base_classes": self.base_classes,
            "parent": self.parent,
            "is_interface": self.is_interface,
            "usr": self.usr,
        }
