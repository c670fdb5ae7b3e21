"""Graph algorithms for ordering enumerations."""

from collections import defaultdict, deque
from collections.abc import Collection, Hashable, Mapping
from typing import TypeVar

T = TypeVar("T", bound=Hashable)


class CycleError(ValueError):
    """Raised when a graph that must be acyclic contains a cycle.

    Attributes:
        members: Nodes that could not be ordered (every cycle plus anything
            downstream of one), in input order.

    """

    def __init__(self, members: list[object]) -> None:
        self.members = members
        super().__init__(f"Cycle detected in graph among: {', '.join(map(str, members))}")


def topological_sort(successors: Mapping[T, Collection[T]]) -> list[T]:
    """Sort a graph so that every node comes after the nodes it depends on.

    Nodes without a mutual ordering keep the order in which they appear in
    ``successors``, so declaration order survives wherever dependencies allow.

    Args:
        successors: Mapping from node to the nodes that depend on it.
            An entry ``a: [b]`` means "b depends on a".

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If the graph contains a cycle.

    Example:
        >>> topological_sort({"Base": ["Derived"], "Derived": []})
        ['Base', 'Derived']

    """
    indegree: defaultdict[T, int] = defaultdict(int)
    for node, deps in successors.items():
        indegree[node] = indegree.get(node, 0)
        for dep in deps:
            indegree[dep] += 1

    queue = deque(node for node, deg in indegree.items() if deg == 0)
    order: list[T] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for successor in successors.get(node, ()):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                queue.append(successor)

    if len(order) != len(indegree):
        placed = set(order)
        raise CycleError([node for node in indegree if node not in placed])

    return order
