"""Vertex of a workflow dag.

TAG: [DAG] [VERTEX]

A vertex is a unit of work: an ordered list of opaque operations plus
optional branching/aggregation metadata, degree counters, adjacency and
the exact transitive closure of its dependencies.

Vertices are only created through ``Dag.add_vertex`` or implicitly by
``Dag.add_edge``. Relationship fields (children, depends_on, ancestors,
descendants) hold vertex ids, which are keys into the owning dag's vertex
arena; the owning dag itself is held through a weak reference.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterable
from typing import TYPE_CHECKING

from flowdag.core.logging import get_logger
from flowdag.dag.exceptions import NestingConflictError, RecursiveDependencyError

if TYPE_CHECKING:
    from flowdag.dag.graph import Dag
    from flowdag.dag.operations import Aggregator, Condition, ForEach, Forwarder, Operation

logger = get_logger(__name__)


class Vertex:
    """A unit of work inside a Dag.

    TAG: [DAG] [VERTEX]

    Attributes:
        id: Vertex id, unique within the owning dag.
        index: Creation index within the owning dag (starts at 1).

    Example:
        >>> dag = Dag()
        >>> vertex = dag.add_vertex("fetch", [create_modifier(fetch)])
        >>> vertex.set_aggregator(merge_inputs)
        >>> vertex.unique_id
        '0.1.fetch'
    """

    __slots__ = (
        "__weakref__",
        "_aggregator",
        "_ancestors",
        "_children",
        "_condition",
        "_conditional_graphs",
        "_dag_ref",
        "_depends_on",
        "_descendants",
        "_dynamic",
        "_foreach",
        "_forwarders",
        "_indegree",
        "_operations",
        "_outdegree",
        "_sub_aggregator",
        "_sub_graph",
        "id",
        "index",
    )

    def __init__(
        self,
        vertex_id: str,
        index: int,
        dag: Dag,
        operations: Iterable[Operation] | None = None,
    ) -> None:
        self.id = vertex_id
        self.index = index
        self._dag_ref: weakref.ref[Dag] = weakref.ref(dag)
        self._operations: list[Operation] = list(operations or [])

        self._dynamic = False
        self._aggregator: Aggregator | None = None
        self._foreach: ForEach | None = None
        self._condition: Condition | None = None
        self._sub_aggregator: Aggregator | None = None
        self._forwarders: dict[str, Forwarder | None] = {}

        self._sub_graph: Dag | None = None
        self._conditional_graphs: dict[str, Dag] = {}

        self._indegree = 0
        self._outdegree = 0
        self._children: list[str] = []
        self._depends_on: list[str] = []
        self._ancestors: set[str] = set()
        self._descendants: set[str] = set()

    # ==========================================================================
    # Read projections
    # ==========================================================================

    @property
    def owning_graph(self) -> Dag | None:
        """The dag this vertex belongs to (None once that dag is gone)."""
        return self._dag_ref()

    @property
    def unique_id(self) -> str:
        """Fully-qualified id: ``<dag id>.<creation index>.<vertex id>``."""
        return f"{self._require_owner().id}.{self.index}.{self.id}"

    @property
    def operations(self) -> list[Operation]:
        return self._operations

    @property
    def indegree(self) -> int:
        return self._indegree

    @property
    def outdegree(self) -> int:
        return self._outdegree

    @property
    def child_ids(self) -> list[str]:
        return list(self._children)

    @property
    def dependency_ids(self) -> list[str]:
        return list(self._depends_on)

    @property
    def children(self) -> list[Vertex]:
        """Direct successors, in edge insertion order."""
        return self._resolve(self._children)

    @property
    def depends_on(self) -> list[Vertex]:
        """Direct predecessors, in edge insertion order."""
        return self._resolve(self._depends_on)

    @property
    def ancestors(self) -> frozenset[str]:
        """Ids of every vertex this one transitively depends on."""
        return frozenset(self._ancestors)

    @property
    def descendants(self) -> frozenset[str]:
        """Ids of every vertex transitively depending on this one."""
        return frozenset(self._descendants)

    @property
    def dynamic(self) -> bool:
        """True once a foreach or condition function is attached."""
        return self._dynamic

    @property
    def aggregator(self) -> Aggregator | None:
        return self._aggregator

    @property
    def sub_aggregator(self) -> Aggregator | None:
        return self._sub_aggregator

    @property
    def foreach(self) -> ForEach | None:
        return self._foreach

    @property
    def condition(self) -> Condition | None:
        return self._condition

    @property
    def forwarders(self) -> dict[str, Forwarder | None]:
        return dict(self._forwarders)

    def get_forwarder(self, child_id: str) -> Forwarder | None:
        """Forwarder for the edge to ``child_id``; None for control-only edges."""
        return self._forwarders.get(child_id)

    @property
    def sub_graph(self) -> Dag | None:
        return self._sub_graph

    @property
    def conditional_graphs(self) -> dict[str, Dag]:
        return dict(self._conditional_graphs)

    def conditional_graph(self, label: str) -> Dag | None:
        return self._conditional_graphs.get(label)

    # ==========================================================================
    # Capability metadata
    # ==========================================================================

    def add_operation(self, operation: Operation) -> None:
        """Append an operation to the ordered operation list."""
        self._operations.append(operation)

    def set_aggregator(self, aggregator: Aggregator) -> None:
        """Record the function merging multiple named inputs into one."""
        self._aggregator = aggregator

    def set_sub_aggregator(self, aggregator: Aggregator) -> None:
        """Record the function merging foreach/condition outputs into one."""
        self._sub_aggregator = aggregator

    def set_foreach(self, foreach: ForEach) -> None:
        """Record a fan-out function and mark the vertex dynamic."""
        self._foreach = foreach
        self._dynamic = True

    def set_condition(self, condition: Condition) -> None:
        """Record a branch selector and mark the vertex dynamic."""
        self._condition = condition
        self._dynamic = True

    def set_forwarder(self, child_id: str, forwarder: Forwarder | None) -> None:
        """Record the transform applied to data flowing to ``child_id``.

        Passing ``None`` marks the edge as execution-order-only. Any call
        switches the owning dag's ``execution_flow`` to False for good.

        Args:
            child_id: Id of the child vertex the edge points to.
            forwarder: Transform for the edge data, or None.
        """
        self._forwarders[child_id] = forwarder
        owner = self._require_owner()
        if owner._execution_flow:
            logger.debug(
                "Dag switched to data flow",
                extra={"context": {"dag_id": owner.id, "vertex_id": self.id, "child_id": child_id}},
            )
        owner._execution_flow = False

    # ==========================================================================
    # Hierarchical composition
    # ==========================================================================

    def attach_sub_graph(self, dag: Dag) -> None:
        """Nest ``dag`` as this vertex's body.

        Args:
            dag: The dag to nest.

        Raises:
            NestingConflictError: If the vertex already has conditional graphs.
            RecursiveDependencyError: If ``dag`` contains this vertex at any depth.
        """
        if self._conditional_graphs:
            raise NestingConflictError(self.id, "conditional")
        self._check_recursion(dag)

        if self._sub_graph is not None and self._sub_graph is not dag:
            self._sub_graph._detach()
        dag._detach()

        self._sub_graph = dag
        dag._adopt(self, self._nested_id(None))
        logger.debug(
            "Sub-graph attached",
            extra={"context": {"vertex": self.unique_id, "dag_id": dag.id}},
        )

    def attach_conditional_graph(self, label: str, dag: Dag) -> None:
        """Nest ``dag`` as the branch selected by condition ``label``.

        Args:
            label: Condition label the branch is registered under.
            dag: The dag to nest.

        Raises:
            NestingConflictError: If the vertex already has a plain sub-graph.
            RecursiveDependencyError: If ``dag`` contains this vertex at any depth.
        """
        if self._sub_graph is not None:
            raise NestingConflictError(self.id, "sub_graph")
        self._check_recursion(dag)

        previous = self._conditional_graphs.get(label)
        if previous is not None and previous is not dag:
            previous._detach()
        dag._detach()

        self._conditional_graphs[label] = dag
        dag._adopt(self, self._nested_id(label))
        logger.debug(
            "Conditional graph attached",
            extra={"context": {"vertex": self.unique_id, "label": label, "dag_id": dag.id}},
        )

    def _check_recursion(self, dag: Dag) -> None:
        # dag must not enclose this vertex at any depth
        if any(current is dag for current in self._require_owner()._lineage()):
            raise RecursiveDependencyError(dag.id, self.id)

    def _nested_id(self, label: str | None) -> str:
        owner = self._require_owner()
        base = str(self.index) if owner.is_root else f"{owner.id}.{self.index}"
        return base if label is None else f"{base}.{label}"

    def _nested_graphs(self) -> list[tuple[str | None, Dag]]:
        nested: list[tuple[str | None, Dag]] = []
        if self._sub_graph is not None:
            nested.append((None, self._sub_graph))
        nested.extend(self._conditional_graphs.items())
        return nested

    # ==========================================================================
    # Internal helpers
    # ==========================================================================

    def _require_owner(self) -> Dag:
        owner = self._dag_ref()
        if owner is None:
            raise ReferenceError(f"vertex '{self.id}' no longer belongs to a live dag")
        return owner

    def _resolve(self, vertex_ids: list[str]) -> list[Vertex]:
        owner = self._require_owner()
        return [owner._vertices[vertex_id] for vertex_id in vertex_ids]

    def __repr__(self) -> str:
        return (
            f"Vertex(id={self.id!r}, index={self.index}, "
            f"indegree={self._indegree}, outdegree={self._outdegree})"
        )


__all__ = ["Vertex"]
