"""Dependency graph of tasks, stored as an adjacency list.

Nodes are task ids; each is mapped to a dense index used by the adjacency
list. An edge ``v -> w`` means the task at index ``v`` runs before the one
at index ``w``.
"""

from __future__ import annotations

from collections import deque


class Graph:
    """A directed graph of tasks with a topological sort."""

    def __init__(self) -> None:
        self.size = 0
        self._index_of: dict[int, int] = {}
        self._id_of: dict[int, int] = {}
        self._adj: list[list[int]] = []
        self._in_degree: list[int] = []

    def set_graph_size(self, size: int) -> None:
        """Set the number of nodes, growing or shrinking the adjacency data."""
        self.size = size
        if len(self._adj) < size:
            self._adj.extend([] for _ in range(size - len(self._adj)))
            self._in_degree.extend([0] * (size - len(self._in_degree)))
        else:
            del self._adj[size:]
            del self._in_degree[size:]

    def add_node(self, node_id: int) -> None:
        """Map ``node_id`` to the next free index."""
        index = len(self._index_of)
        old_index = self._index_of.pop(node_id, None)
        if old_index is not None:
            del self._id_of[old_index]
        displaced = self._id_of.pop(index, None)
        if displaced is not None:
            del self._index_of[displaced]
        self._index_of[node_id] = index
        self._id_of[index] = node_id

    def add_edge(self, v: int, w: int) -> None:
        """Add an edge from index ``v`` to index ``w``: ``v`` runs first."""
        self._adj[v].append(w)
        self._in_degree[w] += 1

    def find_index_by_id(self, node_id: int) -> int | None:
        return self._index_of.get(node_id)

    def find_id_by_index(self, index: int) -> int | None:
        return self._id_of.get(index)

    def topo_sort(self) -> list[int] | None:
        """Return an execution order of node indices, or None if there is a cycle."""
        stack = [index for index, degree in enumerate(self._in_degree) if degree == 0]
        in_degree = list(self._in_degree)
        sequence: list[int] = []

        while stack:
            v = stack.pop()
            sequence.append(v)
            for w in self._adj[v]:
                in_degree[w] -= 1
                if in_degree[w] == 0:
                    stack.append(w)

        return None if len(sequence) < self.size else sequence

    def get_node_out_degree(self, node_id: int) -> int:
        """Number of direct successors of a node; 0 for an unknown id."""
        index = self._index_of.get(node_id)
        return 0 if index is None else len(self._adj[index])

    def get_node_successors(self, node_id: int) -> list[int]:
        """Indices of all direct and indirect successors, the node itself first.

        The nodes come in breadth-first order; an unknown id gives an empty list.
        """
        start = self._index_of.get(node_id)
        if start is None:
            return []
        visited = {start}
        successors = [start]
        queue = deque([start])
        while queue:
            v = queue.popleft()
            for w in self._adj[v]:
                if w not in visited:
                    visited.add(w)
                    successors.append(w)
                    queue.append(w)
        return successors

    def __repr__(self) -> str:
        return f"Graph(size={self.size}, nodes={self._index_of!r}, adj={self._adj!r})"