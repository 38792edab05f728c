#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures for the inheritance cycle test suite.
"""

import os
import shutil
import tempfile
from pathlib import Path
import pytest

# Add the project root to the path
import sys
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from inheritance_cycles.relationship_table import RelationshipTable


# ============================================================================
# Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir():
    """
    Create a temporary directory for a single test.

    Yields:
        Path: Path to temporary directory

    Cleanup: Automatically removed after test completes
    """
    temp_path = tempfile.mkdtemp(prefix="test_")
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_project_dir(temp_dir):
    """
    Create a temporary project directory with src/ and include/ subdirectories.
    """
    project_root = temp_dir / "project"
    project_root.mkdir()
    (project_root / "src").mkdir()
    (project_root / "include").mkdir()
    yield project_root


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch):
    """Keep a developer's INHERITANCE_CYCLES_CONFIG out of the tests."""
    monkeypatch.delenv("INHERITANCE_CYCLES_CONFIG", raising=False)


# ============================================================================
# Relationship Table Fixtures
# ============================================================================

@pytest.fixture
def forest_table():
    """Two disjoint trees: A -> B, C -> D."""
    return RelationshipTable.from_mapping({"A": "B", "B": None, "C": "D", "D": None})


@pytest.fixture
def four_cycle_table():
    """A -> B -> C -> D -> A."""
    return RelationshipTable.from_mapping({"A": "B", "B": "C", "C": "D", "D": "A"})


@pytest.fixture
def lasso_table():
    """A tail leading into a cycle: T -> X -> Y -> Z -> X."""
    return RelationshipTable.from_mapping({"T": "X", "X": "Y", "Y": "Z", "Z": "X"})


# ============================================================================
# Sample C++ Code Fixtures
# ============================================================================

@pytest.fixture
def cpp_with_inheritance():
    """
    Return source code with namespaced classes, a struct and an interface.
    """
    return """
#pragma once

namespace shapes {

class Drawable {
public:
    virtual ~Drawable() {}
    virtual void draw() const = 0;
};

class Shape {
public:
    virtual ~Shape() {}
    int id = 0;
};

class Circle : public Drawable, public Shape {
public:
    void draw() const override {}
    double radius = 1.0;
};

struct Point {
    int x, y;
};

namespace detail {
class Arc : public shapes::Circle {
};
}

}  // namespace shapes

class Canvas {
};
"""


# ============================================================================
# Pytest Hooks and Configuration
# ============================================================================

def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers.
    """
    config.addinivalue_line(
        "markers", "libclang: Tests that parse C++ sources with libclang"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )
    config.addinivalue_line(
        "markers", "edge_case: Boundary conditions and edge case tests"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically marks tests based on their file path.
    """
    for item in items:
        test_file = str(item.fspath)
        if "/edge_cases/" in test_file:
            item.add_marker(pytest.mark.edge_case)
