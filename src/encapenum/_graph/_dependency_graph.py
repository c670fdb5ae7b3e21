"""Generic dependency graph abstraction."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ._algorithms import topological_sort

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DependencyGraph(Generic[T]):
    """A directed graph of "depends on" relationships.

    successors[a] = (b,) means "a is depended on by b". Adjacency is stored
    as tuples in insertion order so that ordering queries are deterministic.

    Attributes:
        _successors: Mapping from node to nodes that depend on it.

    """

    _successors: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, nodes: Iterable[T], edges: Iterable[tuple[T, T]]) -> DependencyGraph[T]:
        """Build a graph from nodes and ``(dependency, dependent)`` edges.

        Nodes listed in ``nodes`` come first in every ordering tie, in the
        given order; nodes that only appear in edges follow. Repeated edges
        collapse into one.

        Example:
            >>> graph = DependencyGraph.from_edges(["B", "A"], [("A", "B")])
            >>> graph.topological_order()
            ['A', 'B']

        """
        successors: dict[T, list[T]] = {node: [] for node in nodes}

        for src, dst in edges:
            successors.setdefault(src, [])
            successors.setdefault(dst, [])
            if dst not in successors[src]:
                successors[src].append(dst)

        return cls(_successors={k: tuple(v) for k, v in successors.items()})

    def topological_order(self) -> list[T]:
        """Return nodes with dependencies before dependents.

        Raises:
            CycleError: If the graph contains a cycle.

        """
        return topological_sort(self._successors)
