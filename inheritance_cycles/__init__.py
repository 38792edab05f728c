"""Cyclic inheritance detection for C++ class hierarchies."""

__version__ = "0.1.0"
