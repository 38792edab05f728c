"""Unit tests for RelationshipTable and class name normalization."""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from inheritance_cycles.class_record import ClassRecord
from inheritance_cycles.relationship_table import (
    RelationshipTable,
    RelationshipTableError,
    normalize_class_name,
    qualify,
)


class TestNormalizeClassName(unittest.TestCase):
    """Boundary validation of class names."""

    def test_simple_name_unchanged(self):
        self.assertEqual(normalize_class_name("Widget"), "Widget")

    def test_dotted_name_unchanged(self):
        self.assertEqual(normalize_class_name("ui.core.Widget"), "ui.core.Widget")

    def test_cpp_qualification_converted(self):
        self.assertEqual(normalize_class_name("ui::core::Widget"), "ui.core.Widget")

    def test_global_namespace_prefix_dropped(self):
        self.assertEqual(normalize_class_name("::Widget"), "Widget")

    def test_surrounding_whitespace_stripped(self):
        self.assertEqual(normalize_class_name("  ui.Widget\n"), "ui.Widget")

    def test_empty_name_rejected(self):
        with self.assertRaises(RelationshipTableError):
            normalize_class_name("")
        with self.assertRaises(RelationshipTableError):
            normalize_class_name("   ")

    def test_empty_segment_rejected(self):
        for name in ("ui..Widget", ".Widget", "Widget.", "ui. Widget"):
            with self.subTest(name=name):
                with self.assertRaises(RelationshipTableError):
                    normalize_class_name(name)

    def test_non_string_rejected(self):
        with self.assertRaises(RelationshipTableError):
            normalize_class_name(42)

    def test_error_is_value_error(self):
        self.assertTrue(issubclass(RelationshipTableError, ValueError))

    def test_qualify(self):
        self.assertEqual(qualify("", "Widget"), "Widget")
        self.assertEqual(qualify("ui.core", "Widget"), "ui.core.Widget")


class TestRelationshipTable(unittest.TestCase):
    """Mapping behaviour and constructors."""

    def test_from_mapping(self):
        table = RelationshipTable.from_mapping({"A": "B", "B": None})

        self.assertEqual(len(table), 2)
        self.assertEqual(table["A"], "B")
        self.assertIsNone(table["B"])
        self.assertEqual(list(table), ["A", "B"])

    def test_immutable(self):
        table = RelationshipTable.from_mapping({"A": None})
        with self.assertRaises(TypeError):
            table["B"] = None
        with self.assertRaises(TypeError):
            table._parents["B"] = None

    def test_parent_of_unknown_is_none(self):
        table = RelationshipTable.from_mapping({"A": "B"})
        self.assertEqual(table.parent_of("A"), "B")
        self.assertIsNone(table.parent_of("B"))
        self.assertIsNone(table.parent_of("Missing"))

    def test_names_normalized_on_construction(self):
        table = RelationshipTable.from_mapping({"ui::Button": "ui::Widget"})
        self.assertEqual(table.to_dict(), {"ui.Button": "ui.Widget"})

    def test_from_pairs_identical_duplicates_allowed(self):
        table = RelationshipTable.from_pairs([("A", "B"), ("A", "B")])
        self.assertEqual(table.to_dict(), {"A": "B"})

    def test_from_pairs_conflicting_duplicates_rejected(self):
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.from_pairs([("A", "B"), ("A", "C")])

    def test_differently_qualified_duplicates_conflict(self):
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.from_mapping({"ns::A": "B", "ns.A": "C"})

    def test_constructor_rejects_conflicting_normalized_keys(self):
        with self.assertRaises(RelationshipTableError):
            RelationshipTable({"ui::W": "A", "ui.W": None})

    def test_constructor_merges_agreeing_normalized_keys(self):
        table = RelationshipTable({"ui::W": "ui::A", "ui.W": "ui.A"})
        self.assertEqual(table.to_dict(), {"ui.W": "ui.A"})

    def test_from_mapping_rejects_non_mapping(self):
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.from_mapping([("A", "B")])

    def test_malformed_parent_rejected(self):
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.from_mapping({"A": "ns..B"})

    def test_root_classes_and_external_parents(self):
        table = RelationshipTable.from_mapping(
            {"A": "B", "B": None, "C": "std.exception", "D": "std.exception"}
        )
        self.assertEqual(table.root_classes(), ["B"])
        self.assertEqual(table.external_parents(), ["std.exception"])

    def test_equality_with_dict(self):
        table = RelationshipTable.from_mapping({"A": "B"})
        self.assertEqual(table, {"A": "B"})


class TestRelationshipTableFromRecords(unittest.TestCase):
    """Building tables from extracted class records."""

    def _record(self, name, parent=None, namespace="", is_interface=False, line=1):
        return ClassRecord(
            name=name, kind="class", file="shapes.h", line=line, column=1,
            namespace=namespace, parent=parent, is_interface=is_interface,
        )

    def test_every_class_gets_an_entry(self):
        table = RelationshipTable.from_records([
            self._record("Shape", namespace="geo"),
            self._record("Circle", parent="geo.Shape", namespace="geo"),
        ])
        self.assertEqual(table.to_dict(), {"geo.Shape": None, "geo.Circle": "geo.Shape"})

    def test_interfaces_skipped(self):
        table = RelationshipTable.from_records([
            self._record("Drawable", is_interface=True),
            self._record("Circle"),
        ])
        self.assertEqual(list(table), ["Circle"])

    def test_first_definition_wins(self):
        table = RelationshipTable.from_records([
            self._record("Circle", parent="Shape", line=1),
            self._record("Circle", parent="Ellipse", line=20),
        ])
        self.assertEqual(table["Circle"], "Shape")


class TestRelationshipSnapshots(unittest.TestCase):
    """JSON snapshot loading and saving."""

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_load_json(self):
        path = self.test_dir / "classes.json"
        path.write_text(json.dumps({"classes": {"a.A": "a.B", "a.B": None}}))

        table = RelationshipTable.load_json(path)

        self.assertEqual(table.to_dict(), {"a.A": "a.B", "a.B": None})

    def test_save_then_load(self):
        table = RelationshipTable.from_mapping({"A": "B", "B": "A", "C": None})
        path = table.save_json(self.test_dir / "out.json")

        self.assertEqual(RelationshipTable.load_json(path), table)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            RelationshipTable.load_json(self.test_dir / "missing.json")

    def test_invalid_json(self):
        path = self.test_dir / "broken.json"
        path.write_text("{not json")
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.load_json(path)

    def test_missing_classes_key(self):
        path = self.test_dir / "wrong.json"
        path.write_text(json.dumps({"A": "B"}))
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.load_json(path)

    def test_array_rejected(self):
        path = self.test_dir / "array.json"
        path.write_text(json.dumps([["A", "B"]]))
        with self.assertRaises(RelationshipTableError):
            RelationshipTable.load_json(path)


if __name__ == "__main__":
    unittest.main()
