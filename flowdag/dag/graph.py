"""Workflow dag: an owning arena of vertices plus graph-level bookkeeping.

TAG: [DAG] [GRAPH]

The dag is built incrementally and in any order, so every edge insertion
keeps the exact transitive closure (ancestors/descendants) of all affected
vertices up to date. Cycle checks are then a set membership test instead
of a fresh traversal.

Time Complexity:
- Vertex addition: O(1)
- Edge addition: O(V) closure update
- Cycle / duplicate check: O(1) / O(degree)
- Validation: O(V + E) per nested dag

Space Complexity: O(V^2) worst case for the closure sets.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from flowdag.core.logging import get_logger
from flowdag.dag.algorithms import GraphAlgorithms
from flowdag.dag.exceptions import (
    CyclicDependencyError,
    DuplicateEdgeError,
    DuplicateVertexError,
    RecursiveDependencyError,
)
from flowdag.dag.operations import default_forwarder
from flowdag.dag.vertex import Vertex

if TYPE_CHECKING:
    from flowdag.dag.operations import Forwarder, Operation

logger = get_logger(__name__)

ROOT_DAG_ID = "0"


class Dag:
    """Directed acyclic graph of vertices, possibly nested inside a vertex.

    TAG: [DAG] [GRAPH]

    Example:
        >>> dag = Dag()
        >>> dag.add_vertex("fetch", [create_modifier(fetch)])
        >>> dag.add_edge("fetch", "store")  # "store" is created implicitly
        >>> dag.validate()
        >>> dag.initial_vertex.id, dag.end_vertex.id
        ('fetch', 'store')
    """

    __slots__ = (
        "__weakref__",
        "_edge_count",
        "_end_vertex_id",
        "_execution_flow",
        "_initial_vertex_id",
        "_next_index",
        "_parent_ref",
        "_vertices",
        "id",
    )

    def __init__(self) -> None:
        """Initialize an empty root dag."""
        self.id = ROOT_DAG_ID
        self._vertices: dict[str, Vertex] = {}
        self._parent_ref: weakref.ref[Vertex] | None = None
        self._initial_vertex_id: str | None = None
        self._end_vertex_id: str | None = None
        self._execution_flow = True
        self._next_index = 0
        self._edge_count = 0

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def vertex_count(self) -> int:
        return len(self._vertices)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    @property
    def vertices(self) -> list[Vertex]:
        """All vertices in creation order."""
        return list(self._vertices.values())

    @property
    def vertex_ids(self) -> list[str]:
        return list(self._vertices)

    @property
    def parent_vertex(self) -> Vertex | None:
        """The vertex this dag is nested in, if any."""
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent_vertex is None

    @property
    def initial_vertex(self) -> Vertex | None:
        """The single start vertex, set by a successful validation."""
        return self._lookup(self._initial_vertex_id)

    @property
    def end_vertex(self) -> Vertex | None:
        """The single end vertex, set by a successful validation."""
        return self._lookup(self._end_vertex_id)

    @property
    def is_validated(self) -> bool:
        return self._initial_vertex_id is not None and self._end_vertex_id is not None

    @property
    def execution_flow(self) -> bool:
        """True while no edge of this dag carries an explicit forwarder."""
        return self._execution_flow

    # ==========================================================================
    # Construction
    # ==========================================================================

    def add_vertex(
        self, vertex_id: str, operations: Iterable[Operation] | None = None
    ) -> Vertex:
        """Create a vertex holding ``operations`` in order.

        Args:
            vertex_id: Id unique within this dag.
            operations: Ordered operations for the vertex.

        Returns:
            The new vertex.

        Raises:
            DuplicateVertexError: If ``vertex_id`` already exists in this dag.
        """
        if vertex_id in self._vertices:
            raise DuplicateVertexError(self.id, vertex_id)

        self._next_index += 1
        vertex = Vertex(vertex_id, self._next_index, self, operations)
        self._vertices[vertex_id] = vertex
        logger.debug(
            "Vertex added",
            extra={"context": {"dag_id": self.id, "vertex_id": vertex_id, "index": vertex.index}},
        )
        return vertex

    def add_edge(self, from_id: str, to_id: str) -> None:
        """Add a directed edge ``from_id -> to_id``.

        Unknown ids are created as vertices without operations, but only
        once the edge is known to be acceptable: a rejected edge leaves the
        dag untouched. The new edge gets the identity forwarder.

        Args:
            from_id: Source vertex id.
            to_id: Target vertex id.

        Raises:
            DuplicateEdgeError: If the edge already exists.
            CyclicDependencyError: If the edge would close a cycle.
        """
        if from_id == to_id:
            raise CyclicDependencyError(self.id, from_id, to_id)

        source = self._vertices.get(from_id)
        target = self._vertices.get(to_id)

        if source is not None and target is not None:
            if to_id in source._children or from_id in target._depends_on:
                raise DuplicateEdgeError(self.id, from_id, to_id)
            if to_id in source._ancestors or from_id in target._descendants:
                raise CyclicDependencyError(self.id, from_id, to_id)

        if source is None:
            logger.debug(
                "Implicit vertex created for edge source",
                extra={"context": {"dag_id": self.id, "vertex_id": from_id}},
            )
            source = self.add_vertex(from_id)
        if target is None:
            logger.debug(
                "Implicit vertex created for edge target",
                extra={"context": {"dag_id": self.id, "vertex_id": to_id}},
            )
            target = self.add_vertex(to_id)

        self._connect(source, target, default_forwarder)

    def _connect(self, source: Vertex, target: Vertex, forwarder: Forwarder | None) -> None:
        """Link two vertices and update the closure. No checks are made here."""
        source._children.append(target.id)
        target._depends_on.append(source.id)
        source._outdegree += 1
        target._indegree += 1
        self._edge_count += 1

        # Everything upstream of (and including) source now reaches
        # everything downstream of (and including) target.
        downstream = {target.id, *target._descendants}
        upstream = {source.id, *source._ancestors}
        for vertex_id in upstream:
            self._vertices[vertex_id]._descendants.update(downstream)
        for vertex_id in downstream:
            self._vertices[vertex_id]._ancestors.update(upstream)

        # Recorded directly: the default forwarder does not change execution_flow
        source._forwarders[target.id] = forwarder
        logger.debug(
            "Edge added",
            extra={"context": {"dag_id": self.id, "from": source.id, "to": target.id}},
        )

    def append(self, other: Dag) -> None:
        """Merge the vertices of ``other`` into this dag.

        Each vertex of ``other`` is recreated here with a fresh creation
        index, its operations and capability metadata. Nested graphs move
        under the new vertex. Edges and forwarders are not carried over:
        appended vertices arrive disconnected.

        Args:
            other: The dag whose vertices are merged.

        Raises:
            DuplicateVertexError: If any vertex id already exists here.
            RecursiveDependencyError: If a nested graph of ``other`` contains
                this dag at any depth.

            Nothing is merged when either error is raised.
        """
        for vertex_id in other._vertices:
            if vertex_id in self._vertices:
                raise DuplicateVertexError(self.id, vertex_id)

        lineage = list(self._lineage())
        for source in other._vertices.values():
            for _, nested in source._nested_graphs():
                if any(dag is nested for dag in lineage):
                    raise RecursiveDependencyError(nested.id, source.id)

        for source in list(other._vertices.values()):
            vertex = self.add_vertex(source.id, source._operations)
            vertex._aggregator = source._aggregator
            vertex._sub_aggregator = source._sub_aggregator
            vertex._foreach = source._foreach
            vertex._condition = source._condition
            vertex._dynamic = source._dynamic
            for label, nested in source._nested_graphs():
                if label is None:
                    vertex.attach_sub_graph(nested)
                else:
                    vertex.attach_conditional_graph(label, nested)

        logger.debug(
            "Dag appended",
            extra={"context": {"dag_id": self.id, "vertices": len(other._vertices)}},
        )

    # ==========================================================================
    # Nesting bookkeeping
    # ==========================================================================

    def _adopt(self, vertex: Vertex, dag_id: str) -> None:
        self._parent_ref = weakref.ref(vertex)
        self._rename(dag_id)

    def _detach(self) -> None:
        parent = self.parent_vertex
        if parent is None:
            return
        if parent._sub_graph is self:
            parent._sub_graph = None
        for label, nested in list(parent._conditional_graphs.items()):
            if nested is self:
                del parent._conditional_graphs[label]
        self._parent_ref = None
        self._rename(ROOT_DAG_ID)

    def _lineage(self) -> Iterator[Dag]:
        """Yield this dag, then each enclosing dag up to the root."""
        current: Dag | None = self
        while current is not None:
            yield current
            parent = current.parent_vertex
            current = parent.owning_graph if parent is not None else None

    def _rename(self, dag_id: str) -> None:
        # Ids of nested graphs derive from ours, so they follow.
        self.id = dag_id
        for vertex in self._vertices.values():
            for label, nested in vertex._nested_graphs():
                nested._rename(vertex._nested_id(label))

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate(self) -> None:
        """Validate this dag and every nested dag.

        See ``DagValidator.validate`` for the rules.

        Raises:
            DagError: The first structural error found, at any depth.
        """
        from flowdag.dag.validator import DagValidator

        DagValidator().validate(self)

    # ==========================================================================
    # Queries
    # ==========================================================================

    def get_vertex(self, vertex_id: str) -> Vertex | None:
        return self._vertices.get(vertex_id)

    def has_vertex(self, vertex_id: str) -> bool:
        return vertex_id in self._vertices

    def flattened_ids(self, dynamic_suffix: str = "") -> list[str]:
        """Fully-qualified ids of this dag and its statically known sub-graphs.

        Plain sub-graphs of non-dynamic vertices are expanded recursively.
        Sub-graphs of dynamic vertices and conditional graphs are left out:
        their multiplicity is only known at run time.

        Args:
            dynamic_suffix: Appended as ``-<suffix>`` to every id, naming one
                fan-out instance.

        Returns:
            Ids in creation order, each nested dag following its vertex.
        """
        ids: list[str] = []
        for vertex in self._vertices.values():
            unique_id = vertex.unique_id
            ids.append(f"{unique_id}-{dynamic_suffix}" if dynamic_suffix else unique_id)
            if vertex.dynamic or vertex.sub_graph is None:
                continue
            ids.extend(vertex.sub_graph.flattened_ids(dynamic_suffix))
        return ids

    def topological_levels(self) -> list[list[str]]:
        """Vertex ids grouped by dependency level (level 0 is the start)."""
        return GraphAlgorithms.topological_sort_levels(self) or []

    def walk(self, depth: int = 0) -> Iterator[tuple[Dag, int]]:
        """Yield this dag and every nested dag (plain and conditional) with its depth."""
        yield self, depth
        for vertex in self._vertices.values():
            for _, nested in vertex._nested_graphs():
                yield from nested.walk(depth + 1)

    def _lookup(self, vertex_id: str | None) -> Vertex | None:
        return self._vertices.get(vertex_id) if vertex_id is not None else None

    def __contains__(self, vertex_id: object) -> bool:
        return vertex_id in self._vertices

    def __len__(self) -> int:
        return len(self._vertices)

    def __repr__(self) -> str:
        return f"Dag(id={self.id!r}, vertices={self.vertex_count}, edges={self.edge_count})"


__all__ = ["ROOT_DAG_ID", "Dag"]
