#!/usr/bin/env python3
"""
Per-project inheritance cycle analysis.

Runs the full pipeline for one project snapshot:

    relationships (C++ sources or JSON snapshot)
        -> RelationshipTable
        -> HierarchyBuilder (ancestor chains)
        -> CycleDetector (cycle report)
"""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .analyzer_config import AnalyzerConfig
from .class_extractor import ClassExtractor
from .class_record import ClassRecord
from .cycle_detector import CycleDetector, CycleReport
from .hierarchy_builder import AncestorChain, AnalysisTimeoutError, HierarchyBuilder
from .relationship_table import RelationshipTable, normalize_class_name

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics

__all__ = ["CycleAnalyzer", "AnalysisTimeoutError", "create_analyzer"]


class CycleAnalyzer:
    """
    Detects cyclic inheritance in a single project.

    The relationship table comes from the configured ``relationships_file``
    snapshot when one is set, otherwise from parsing the project's C++
    sources with libclang.
    """

    def __init__(self, project_root: str, config_file: Optional[str] = None):
        """
        Initialize the analyzer.

        Args:
            project_root: Path to project source directory
            config_file: Optional path to a configuration file
        """
        self.project_root = Path(project_root).resolve()
        self.config = AnalyzerConfig(
            self.project_root, Path(config_file).resolve() if config_file else None
        )

        self.builder = HierarchyBuilder(
            max_workers=self.config.get_max_workers(),
            parallel_threshold=self.config.get_parallel_threshold(),
        )
        self.detector = CycleDetector()
        self.separator = self.config.get_path_separator()

        # Results of the last analysis run
        self.table: Optional[RelationshipTable] = None
        self.records: List[ClassRecord] = []
        self.chains: Dict[str, AncestorChain] = {}
        self.report: Optional[CycleReport] = None
        self.source: Optional[str] = None
        self.parse_errors: Dict[str, str] = {}
        self.last_analysis_time = 0.0

        diagnostics.debug(f"CycleAnalyzer initialized for project: {self.project_root}")

    def close(self):
        """Drop the results of the last run."""
        self.table = None
        self.records = []
        self.chains = {}
        self.report = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def is_analyzed(self) -> bool:
        return self.report is not None

    def load_relationships(self) -> RelationshipTable:
        """
        Produce the relationship table of the project.

        Raises:
            FileNotFoundError: the configured snapshot file does not exist
            RelationshipTableError: the snapshot is malformed
        """
        snapshot = self.config.get_relationships_file()
        if snapshot is not None:
            if not snapshot.exists():
                raise FileNotFoundError(f"Relationship snapshot not found: {snapshot}")
            self.source = "relationships_file"
            self.records = []
            self.parse_errors = {}
            return RelationshipTable.load_json(snapshot)

        extractor = ClassExtractor(str(self.project_root), self.config)
        self.records = extractor.extract_project()
        self.parse_errors = dict(extractor.parse_errors)
        self.source = "sources"
        return RelationshipTable.from_records(self.records)

    def analyze(self) -> CycleReport:
        """Load the project's relationships and detect cycles."""
        table = self.load_relationships()
        return self.analyze_table(table, source=self.source)

    def analyze_table(self, table: RelationshipTable, source: str = "inline") -> CycleReport:
        """
        Detect cycles in an already-built relationship table.

        Raises:
            AnalysisTimeoutError: chain building exceeded analysis_timeout_seconds
        """
        start_time = time.time()

        chains = self.builder.build_chains(table, timeout=self.config.get_analysis_timeout())
        report = self.detector.detect_cycles(chains)

        self.table = table
        self.chains = chains
        self.report = report
        self.source = source
        self.last_analysis_time = time.time() - start_time

        if report.has_cycles:
            for group in report.groups():
                cycle = list(group) + [group[0]]
                diagnostics.warning(f"Cyclic inheritance: {self.separator.join(cycle)}")
        diagnostics.info(
            f"Analyzed {len(table)} classes in {self.last_analysis_time:.2f}s: "
            f"{len(report)} on inheritance cycles"
        )
        return report

    def _require_analysis(self):
        if self.report is None:
            raise RuntimeError("Project has not been analyzed yet")

    def get_result(self, class_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Project result for reporting.

        Args:
            class_name: When given, only the cycle through this class is listed
        """
        self._require_analysis()

        result = {
            "project": str(self.project_root),
            "source": self.source,
            "class_count": len(self.table),
        }
        result.update(self.report.to_dict(self.separator))

        if class_name is not None:
            name = normalize_class_name(class_name)
            result["cycles"] = [c for c in result["cycles"] if c["class"] == name]
            result["cycle_groups"] = [g for g in result["cycle_groups"] if name in g]
            result["project_cyclic_class_count"] = result["cyclic_class_count"]
            result["cyclic_class_count"] = len(result["cycles"])

        return result

    def get_ancestor_chain(self, class_name: str) -> Optional[AncestorChain]:
        """Ancestor chain of a class of the analyzed table, or None if unknown."""
        self._require_analysis()
        name = normalize_class_name(class_name)
        return self.chains.get(name)

    def get_class_info(self, class_name: str) -> Optional[Dict[str, Any]]:
        """Extraction record of a class (source analysis only)."""
        name = normalize_class_name(class_name)
        for record in self.records:
            if record.qualified_name == name:
                return record.to_dict()
        return None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "project": str(self.project_root),
            "analyzed": self.is_analyzed,
            "source": self.source,
            "class_count": len(self.table) if self.table is not None else 0,
            "extracted_records": len(self.records),
            "interface_count": sum(1 for r in self.records if r.is_interface),
            "cyclic_class_count": len(self.report) if self.report is not None else 0,
            "parse_errors": len(self.parse_errors),
            "last_analysis_time": round(self.last_analysis_time, 3),
        }


def create_analyzer(project_root: str) -> CycleAnalyzer:
    """Factory function to create a cycle analyzer"""
    return CycleAnalyzer(project_root)
