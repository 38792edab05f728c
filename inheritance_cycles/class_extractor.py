"""
Class relationship extraction from C++ sources using libclang.

Every source file under the project root is parsed on its own and the class
and struct definitions located in that file are turned into ClassRecords.
Each definition is therefore recorded exactly once, whichever translation
units include it.

A class keeps a single class-kind parent for the relationship table: the
first non-interface base in declaration order. Interfaces (no data members,
only pure virtual methods) are recorded but flagged, and never become
parents.
"""

import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .analyzer_config import AnalyzerConfig
from .class_record import ClassRecord
from .relationship_table import RelationshipTableError, normalize_class_name, qualify

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics

try:
    from clang.cindex import (
        CursorKind,
        Diagnostic,
        Index,
        TranslationUnit,
        TranslationUnitLoadError,
    )
except ImportError:
    diagnostics.fatal("clang package not found. Install with: pip install libclang")
    sys.exit(1)


CLASS_KINDS = (CursorKind.CLASS_DECL, CursorKind.STRUCT_DECL)

# Cursor kinds whose names qualify the declarations nested in them
SCOPE_KINDS = (
    CursorKind.NAMESPACE,
    CursorKind.CLASS_DECL,
    CursorKind.STRUCT_DECL,
    CursorKind.CLASS_TEMPLATE,
)

# Cursor kinds that can contain class definitions
CONTAINER_KINDS = SCOPE_KINDS + (CursorKind.LINKAGE_SPEC, CursorKind.UNEXPOSED_DECL)


def _strip_elaboration(type_spelling: str) -> str:
    """Remove a leading 'class '/'struct ' from a type spelling."""
    for prefix in ("class ", "struct "):
        if type_spelling.startswith(prefix):
            return type_spelling[len(prefix):]
    return type_spelling


def _is_anonymous(cursor) -> bool:
    if not cursor.spelling:
        return True
    try:
        return cursor.is_anonymous()
    except AttributeError:
        # Older bindings spell anonymous records "(anonymous ...)"
        return cursor.spelling.startswith("(")


class ClassExtractor:
    """
    Extracts class declarations and their bases from a C++ project.

    Usage:
        extractor = ClassExtractor("/path/to/project")
        records = extractor.extract_project()
        table = RelationshipTable.from_records(records)
    """

    def __init__(self, project_root: str, config: Optional[AnalyzerConfig] = None):
        self.project_root = Path(project_root).resolve()
        self.config = config or AnalyzerConfig(self.project_root)

        self.clang_args = ["-x", "c++"] + self.config.get_clang_args() + [
            "-I", str(self.project_root)
        ]
        self.include_structs = self.config.get_include_structs()
        self.max_workers = self.config.get_max_workers()

        # libclang indexes are not shared between threads
        self._thread_local = threading.local()

        # Files that libclang could not load: path -> error message
        self.parse_errors = {}
        self._errors_lock = threading.Lock()

    def _get_thread_index(self) -> Index:
        """Get or create the libclang Index of the current thread."""
        if not hasattr(self._thread_local, "index"):
            self._thread_local.index = Index.create()
        return self._thread_local.index

    def find_source_files(self) -> List[str]:
        """Find all C++ files under the project root, skipping excluded directories."""
        exclude_dirs = set(self.config.get_exclude_directories())
        extensions = set(self.config.get_source_extensions())
        max_bytes = self.config.get_max_file_size_mb() * 1024 * 1024

        files = []
        for root, dirs, filenames in os.walk(self.project_root):
            dirs[:] = sorted(d for d in dirs if d not in exclude_dirs)
            for filename in sorted(filenames):
                if Path(filename).suffix.lower() not in extensions:
                    continue
                file_path = os.path.join(root, filename)
                try:
                    if os.path.getsize(file_path) > max_bytes:
                        diagnostics.debug(f"Skipping large file: {file_path}")
                        continue
                except OSError as e:
                    diagnostics.warning(f"Cannot stat {file_path}: {e}")
                    continue
                files.append(os.path.normpath(file_path))

        diagnostics.debug(f"Found {len(files)} C++ files under {self.project_root}")
        return files

    def _parse(self, file_path: str) -> Optional[TranslationUnit]:
        index = self._get_thread_index()
        try:
            tu = index.parse(file_path, args=self.clang_args)
        except TranslationUnitLoadError as e:
            diagnostics.error(f"Failed to parse {file_path}: {e}")
            with self._errors_lock:
                self.parse_errors[file_path] = str(e)
            return None

        errors = [d for d in tu.diagnostics if d.severity >= Diagnostic.Error]
        if errors:
            diagnostics.warning(
                f"{len(errors)} parse error(s) in {file_path}, extracting from partial AST. "
                f"First: {errors[0].spelling}"
            )
        return tu

    def extract_file(self, file_path: str) -> List[ClassRecord]:
        """Extract the class definitions located in a single file."""
        file_path = os.path.normpath(os.path.abspath(file_path))
        tu = self._parse(file_path)
        if tu is None:
            return []

        records: List[ClassRecord] = []
        self._process_cursor(tu.cursor, file_path, records)
        diagnostics.debug(f"Extracted {len(records)} classes from {file_path}")
        return records

    def extract_project(self) -> List[ClassRecord]:
        """
        Extract class records from every source file of the project.

        Returns:
            Records in file order, then declaration order within a file
        """
        files = self.find_source_files()
        if not files:
            diagnostics.warning(f"No C++ source files found under {self.project_root}")
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            per_file = list(executor.map(self.extract_file, files))

        records = [record for file_records in per_file for record in file_records]
        diagnostics.info(
            f"Extracted {len(records)} class definitions from {len(files)} files "
            f"({len(self.parse_errors)} failed)"
        )
        return records

    def _process_cursor(self, cursor, file_path: str, records: List[ClassRecord]):
        """Collect class definitions under ``cursor`` that live in ``file_path``."""
        for child in cursor.get_children():
            location_file = child.location.file
            if location_file is None or os.path.normpath(location_file.name) != file_path:
                continue

            try:
                kind = child.kind
            except ValueError as e:
                # Bindings older than the libclang library
                diagnostics.debug(f"Skipping cursor with unknown kind: {e}")
                continue

            if kind in CLASS_KINDS and child.is_definition() and not _is_anonymous(child):
                if kind == CursorKind.CLASS_DECL or self.include_structs:
                    records.append(self._make_record(child, kind))

            if kind in CONTAINER_KINDS:
                self._process_cursor(child, file_path, records)

    def _make_record(self, cursor, kind) -> ClassRecord:
        bases = list(self._iter_bases(cursor))
        class_parents = [name for name, is_interface in bases if not is_interface]

        record = ClassRecord(
            name=cursor.spelling,
            kind="class" if kind == CursorKind.CLASS_DECL else "struct",
            file=cursor.location.file.name,
            line=cursor.location.line,
            column=cursor.location.column,
            namespace=self._namespace_of(cursor),
            base_classes=[name for name, _ in bases],
            parent=class_parents[0] if class_parents else None,
            is_interface=self._is_interface(cursor),
            usr=cursor.get_usr() or "",
        )

        if len(class_parents) > 1:
            diagnostics.warning(
                f"{record.qualified_name} has {len(class_parents)} class bases; "
                f"keeping {class_parents[0]}, ignoring {', '.join(class_parents[1:])}"
            )
        return record

    def _namespace_of(self, cursor) -> str:
        """Enclosing namespaces and classes of ``cursor``, outermost first."""
        parts = []
        parent = cursor.semantic_parent
        while parent is not None and parent.kind != CursorKind.TRANSLATION_UNIT:
            if parent.kind in SCOPE_KINDS and not _is_anonymous(parent):
                parts.append(parent.spelling)
            parent = parent.semantic_parent
        return ".".join(reversed(parts))

    def _iter_bases(self, cursor) -> Iterator[Tuple[str, bool]]:
        """Yield ``(qualified_base_name, is_interface)`` for each base specifier."""
        for child in cursor.get_children():
            if child.kind != CursorKind.CXX_BASE_SPECIFIER:
                continue

            # The canonical type sees through typedefs and using-aliases
            decl = child.type.get_canonical().get_declaration()
            if decl is not None and decl.kind in CLASS_KINDS and not _is_anonymous(decl):
                definition = decl.get_definition()
                target = definition if definition is not None else decl
                is_interface = definition is not None and self._is_interface(definition)
                yield qualify(self._namespace_of(target), target.spelling), is_interface
                continue

            spelling = _strip_elaboration(child.type.spelling)
            try:
                yield normalize_class_name(spelling), False
            except RelationshipTableError:
                diagnostics.debug(f"Ignoring unnamed base '{spelling}' of {cursor.spelling}")

    def _is_interface(self, cursor) -> bool:
        """True for a class with no data members whose methods are all pure virtual."""
        has_pure_method = False
        for child in cursor.get_children():
            if child.kind == CursorKind.FIELD_DECL:
                return False
            if child.kind == CursorKind.CXX_METHOD:
                if not child.is_pure_virtual_method():
                    return False
                has_pure_method = True
        return has_pure_method
