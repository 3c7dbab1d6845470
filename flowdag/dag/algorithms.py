"""Graph algorithms over a single dag level.

TAG: [DAG] [ALGORITHMS]

These algorithms recompute from scratch what the dag maintains
incrementally, and derive execution-order information for the executor:
- Transitive closure using BFS
- Topological sort using Kahn's algorithm
- Critical path analysis

Time Complexity:
- Transitive closure: O(V * (V + E))
- Topological sort: O(V + E)
- Critical path: O(V + E)

None of them recurse, so chains of any length are supported. Nested dags
are not entered; call the algorithms per dag.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowdag.dag.graph import Dag


class GraphAlgorithms:
    """Collection of graph algorithms for dag analysis.

    TAG: [DAG] [ALGORITHMS]

    Example:
        >>> dag = Dag()
        >>> dag.add_edge("a", "b")
        >>> dag.add_edge("a", "c")
        >>> GraphAlgorithms.topological_sort_levels(dag)
        [['a'], ['b', 'c']]
    """

    @staticmethod
    def compute_closure(dag: Dag) -> dict[str, tuple[set[str], set[str]]]:
        """Compute ancestors and descendants of every vertex using BFS.

        Args:
            dag: The dag to analyze.

        Returns:
            Mapping of vertex id to ``(ancestors, descendants)``.
        """
        successors = {vertex.id: vertex.child_ids for vertex in dag.vertices}
        predecessors = {vertex.id: vertex.dependency_ids for vertex in dag.vertices}

        def reach(start: str, adjacency: dict[str, list[str]]) -> set[str]:
            seen: set[str] = set()
            queue: deque[str] = deque(adjacency[start])
            while queue:
                current = queue.popleft()
                if current in seen:
                    continue
                seen.add(current)
                queue.extend(n for n in adjacency[current] if n not in seen)
            return seen

        return {
            vertex_id: (reach(vertex_id, predecessors), reach(vertex_id, successors))
            for vertex_id in successors
        }

    @staticmethod
    def topological_sort_levels(dag: Dag) -> list[list[str]] | None:
        """Kahn's algorithm for level-based topological sort.

        Vertices within a level keep creation order. Vertices at the same
        level do not depend on each other.

        Args:
            dag: The dag to sort.

        Returns:
            List of levels, each a list of vertex ids. None if not every
            vertex could be placed (the dag contains a cycle).
        """
        in_degree = {vertex.id: vertex.indegree for vertex in dag.vertices}
        order = {vertex.id: vertex.index for vertex in dag.vertices}

        current_level = [vertex_id for vertex_id, degree in in_degree.items() if degree == 0]
        levels: list[list[str]] = []
        placed = 0

        while current_level:
            levels.append(current_level)
            placed += len(current_level)
            next_level: list[str] = []
            for vertex_id in current_level:
                for child_id in dag._vertices[vertex_id]._children:
                    in_degree[child_id] -= 1
                    if in_degree[child_id] == 0:
                        next_level.append(child_id)
            current_level = sorted(next_level, key=order.__getitem__)

        if placed != len(in_degree):
            return None
        return levels

    @staticmethod
    def get_critical_path(dag: Dag) -> tuple[list[str], int]:
        """Find the longest dependency chain with dynamic programming.

        Vertices are processed in reverse topological order, so every child
        is resolved before its parents and path length is not bounded by
        the interpreter's recursion limit. Ties go to the child inserted
        first, then to the vertex created first.

        Args:
            dag: The dag to analyze (must be acyclic).

        Returns:
            Tuple of (path as list of vertex ids, path length).

        Example:
            >>> dag.add_edge("a", "b")
            >>> dag.add_edge("b", "c")
            >>> dag.add_edge("a", "c")
            >>> GraphAlgorithms.get_critical_path(dag)
            (['a', 'b', 'c'], 3)
        """
        levels = GraphAlgorithms.topological_sort_levels(dag) or []

        # Longest path length from each vertex, and the child it continues to
        length: dict[str, int] = {}
        next_hop: dict[str, str | None] = {}

        for level in reversed(levels):
            for vertex_id in level:
                best_length = 1
                best_child: str | None = None
                for child_id in dag._vertices[vertex_id]._children:
                    if length[child_id] + 1 > best_length:
                        best_length = length[child_id] + 1
                        best_child = child_id
                length[vertex_id] = best_length
                next_hop[vertex_id] = best_child

        start: str | None = None
        overall_best_length = 0
        for vertex_id in dag.vertex_ids:
            if length.get(vertex_id, 0) > overall_best_length:
                overall_best_length = length[vertex_id]
                start = vertex_id

        path: list[str] = []
        while start is not None:
            path.append(start)
            start = next_hop[start]

        return path, overall_best_length


__all__ = ["GraphAlgorithms"]
