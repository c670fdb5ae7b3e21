"""Dependency graph between enumerations of one compilation unit.

This package contains:
- DependencyGraph[T]: an immutable directed graph of "depends on" edges
- topological_sort: ordering that puts dependencies before dependents
"""

from ._algorithms import CycleError, topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["CycleError", "DependencyGraph", "topological_sort"]
