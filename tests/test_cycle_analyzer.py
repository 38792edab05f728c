"""
Tests for the per-project analysis pipeline.
"""

import pytest

from inheritance_cycles.cycle_analyzer import AnalysisTimeoutError, CycleAnalyzer
from inheritance_cycles.relationship_table import RelationshipTableError
from tests.utils.test_helpers import setup_test_analyzer, temp_config_file


class TestSnapshotProjects:
    """Projects whose relationships come from a JSON snapshot."""

    def test_cycles_reported(self, temp_project_dir):
        analyzer = setup_test_analyzer(
            temp_project_dir,
            relationships={"A": "B", "B": "C", "C": "A", "D": None, "E": "A"},
        )

        result = analyzer.get_result()

        assert result["source"] == "relationships_file"
        assert result["class_count"] == 5
        assert result["cyclic_class_count"] == 3
        assert [c["rendered"] for c in result["cycles"]] == [
            "A -> B -> C -> A",
            "B -> C -> A -> B",
            "C -> A -> B -> C",
        ]
        assert result["cycle_groups"] == [["A", "B", "C"]]

    def test_acyclic_snapshot(self, temp_project_dir):
        analyzer = setup_test_analyzer(temp_project_dir, relationships={"A": "B", "B": None})

        result = analyzer.get_result()

        assert result["cyclic_class_count"] == 0
        assert result["cycles"] == []

    def test_filter_by_class(self, temp_project_dir):
        analyzer = setup_test_analyzer(
            temp_project_dir,
            relationships={"ui::A": "ui::B", "ui::B": "ui::A", "X": "X"},
        )

        result = analyzer.get_result("ui::B")

        assert [c["class"] for c in result["cycles"]] == ["ui.B"]
        assert result["cycle_groups"] == [["ui.A", "ui.B"]]
        assert result["cyclic_class_count"] == 1
        assert result["project_cyclic_class_count"] == 3

    def test_filter_by_class_off_cycle(self, temp_project_dir):
        analyzer = setup_test_analyzer(temp_project_dir, relationships={"A": "A", "T": "A"})
        assert analyzer.get_result("T")["cycles"] == []

    def test_custom_separator(self, temp_project_dir):
        analyzer = setup_test_analyzer(
            temp_project_dir,
            relationships={"A": "A"},
            config={"path_separator": " <- "},
        )
        assert analyzer.get_result()["cycles"][0]["rendered"] == "A <- A"

    def test_ancestor_chain(self, temp_project_dir):
        analyzer = setup_test_analyzer(
            temp_project_dir, relationships={"T": "X", "X": "Y", "Y": "X"}
        )

        chain = analyzer.get_ancestor_chain("T")

        assert list(chain) == ["T", "X", "Y", "X"]
        assert chain.closes_cycle
        assert analyzer.get_ancestor_chain("Missing") is None

    def test_missing_snapshot(self, temp_project_dir):
        temp_config_file(temp_project_dir, {"relationships_file": "absent.json"})
        analyzer = CycleAnalyzer(str(temp_project_dir))

        with pytest.raises(FileNotFoundError):
            analyzer.analyze()
        assert not analyzer.is_analyzed

    def test_malformed_snapshot(self, temp_project_dir):
        (temp_project_dir / "classes.json").write_text('{"nodes": {}}')
        temp_config_file(temp_project_dir, {"relationships_file": "classes.json"})

        with pytest.raises(RelationshipTableError):
            CycleAnalyzer(str(temp_project_dir)).analyze()

    def test_timeout(self, temp_project_dir):
        analyzer = setup_test_analyzer(
            temp_project_dir,
            relationships={"A": "B", "B": "A"},
            config={"analysis_timeout_seconds": -1, "max_workers": 1},
            analyze_immediately=False,
        )

        with pytest.raises(AnalysisTimeoutError):
            analyzer.analyze()

    def test_stats(self, temp_project_dir):
        analyzer = setup_test_analyzer(temp_project_dir, relationships={"A": "A", "B": None})

        stats = analyzer.get_stats()

        assert stats["analyzed"] is True
        assert stats["class_count"] == 2
        assert stats["cyclic_class_count"] == 1
        assert stats["extracted_records"] == 0


class TestAnalyzerLifecycle:

    def test_result_before_analysis(self, temp_project_dir):
        analyzer = CycleAnalyzer(str(temp_project_dir))

        with pytest.raises(RuntimeError):
            analyzer.get_result()
        with pytest.raises(RuntimeError):
            analyzer.get_ancestor_chain("A")

    def test_stats_before_analysis(self, temp_project_dir):
        stats = CycleAnalyzer(str(temp_project_dir)).get_stats()
        assert stats["analyzed"] is False
        assert stats["class_count"] == 0

    def test_context_manager_clears_results(self, temp_project_dir):
        with setup_test_analyzer(temp_project_dir, relationships={"A": "A"}) as analyzer:
            assert analyzer.is_analyzed
        assert not analyzer.is_analyzed

    def test_analyze_inline_table(self, temp_project_dir, four_cycle_table):
        analyzer = CycleAnalyzer(str(temp_project_dir))

        report = analyzer.analyze_table(four_cycle_table)

        assert len(report) == 4
        assert analyzer.get_result()["source"] == "inline"


@pytest.mark.libclang
class TestSourceProjects:
    """Projects analyzed by parsing C++ sources."""

    def test_source_project(self, temp_project_dir, cpp_with_inheritance):
        analyzer = setup_test_analyzer(
            temp_project_dir, source_files={"include/shapes.h": cpp_with_inheritance}
        )

        result = analyzer.get_result()

        assert result["source"] == "sources"
        # Interfaces are not part of the table
        assert result["class_count"] == 5
        assert result["cyclic_class_count"] == 0
        assert list(analyzer.get_ancestor_chain("shapes::detail::Arc")) == [
            "shapes.detail.Arc", "shapes.Circle", "shapes.Shape"
        ]

    def test_class_info(self, temp_project_dir, cpp_with_inheritance):
        analyzer = setup_test_analyzer(
            temp_project_dir, source_files={"include/shapes.h": cpp_with_inheritance}
        )

        info = analyzer.get_class_info("shapes.Drawable")

        assert info["is_interface"] is True
        assert analyzer.get_stats()["interface_count"] == 1
        assert analyzer.get_class_info("Nope") is None

    def test_inconsistent_snapshot_cycle(self, temp_project_dir):
        # Each header extends the other class as it was defined in an older
        # copy of the sources; the first definition of each class wins.
        analyzer = setup_test_analyzer(
            temp_project_dir,
            source_files={
                "include/a.h": '#include "v1/b.h"\nclass A : public B { int a; };\n',
                "include/b.h": '#include "v1/a.h"\nclass B : public A { int b; };\n',
                "include/v1/a.h": "class A { int a; };\n",
                "include/v1/b.h": "class B { int b; };\n",
            },
        )

        result = analyzer.get_result()

        assert result["source"] == "sources"
        assert result["class_count"] == 2
        assert [c["rendered"] for c in result["cycles"]] == [
            "A -> B -> A",
            "B -> A -> B",
        ]
        assert result["cycle_groups"] == [["A", "B"]]
