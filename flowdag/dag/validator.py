"""DAG validation service.

TAG: [DAG] [VALIDATION]

Validation runs once all vertices, edges and nested dags are in place and
before the dag is handed to an executor. A validated dag has exactly one
start vertex and exactly one end vertex, and so do all of its nested dags.
When a dag has several natural end vertices a merge vertex
``end-<dag id>`` is synthesized and every natural end is wired to it with
a control-only edge.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from flowdag.core.logging import get_logger
from flowdag.dag.algorithms import GraphAlgorithms
from flowdag.dag.exceptions import (
    DagError,
    DuplicateVertexError,
    EmptyDagError,
    GraphTooLargeError,
    MultipleStartError,
)
from flowdag.dag.operations import Modifier, blank_modifier
from flowdag.dag.schemas import (
    TopologyLevel,
    TopologyResult,
    ValidationErrorDetail,
    ValidationOptions,
    ValidationResult,
)

if TYPE_CHECKING:
    from flowdag.dag.graph import Dag
    from flowdag.dag.vertex import Vertex

logger = get_logger(__name__)

END_VERTEX_PREFIX = "end-"


class DagValidator:
    """Stateless recursive dag validator.

    TAG: [DAG] [VALIDATION]

    Example:
        >>> validator = DagValidator()
        >>> validator.validate(dag)  # raises on the first error
        >>> result = validator.check(dag)  # records errors instead
        >>> result.is_valid
        True
    """

    def validate(self, dag: Dag) -> None:
        """Validate ``dag`` and, recursively, every dag nested in it.

        Rules, in order, for each dag:
        1. Vertices are scanned in creation order. Zero-indegree vertices
           are start candidates, zero-outdegree vertices end candidates.
        2. A plain sub-graph is validated first. On success its
           ``execution_flow`` replaces this dag's flag (overwrite, not a
           logical combination).
        3. Each conditional graph is validated (flags are not inherited).
        4. More than one start vertex is an error.
        5. Several end vertices get merged into ``end-<dag id>``.

        Start and end are only stored once the whole dag passed.

        Args:
            dag: The dag to validate.

        Raises:
            EmptyDagError: If a dag has no vertices.
            MultipleStartError: If a dag has several start vertices.
            DagError: Any error raised while validating a nested dag,
                unchanged.
        """
        vertices = dag.vertices
        if not vertices:
            raise EmptyDagError(dag.id)

        start_ids: list[str] = []
        end_ids: list[str] = []

        for vertex in vertices:
            if vertex.indegree == 0:
                start_ids.append(vertex.id)
            if vertex.outdegree == 0:
                end_ids.append(vertex.id)

            sub_graph = vertex.sub_graph
            if sub_graph is not None:
                self.validate(sub_graph)
                # Known quirk kept on purpose: the nested flag overwrites ours.
                dag._execution_flow = sub_graph.execution_flow

            for conditional in vertex.conditional_graphs.values():
                self.validate(conditional)

        if len(start_ids) > 1:
            logger.debug(
                "Dag has multiple start vertices",
                extra={"context": {"dag_id": dag.id, "start_vertices": start_ids}},
            )
            raise MultipleStartError(dag.id, start_ids)

        if len(end_ids) > 1:
            end_vertex = self._merge_end_vertices(dag, end_ids)
        else:
            end_vertex = dag._vertices[end_ids[0]]

        dag._initial_vertex_id = start_ids[0]
        dag._end_vertex_id = end_vertex.id
        logger.debug(
            "Dag validated",
            extra={
                "context": {
                    "dag_id": dag.id,
                    "initial_vertex": start_ids[0],
                    "end_vertex": end_vertex.id,
                }
            },
        )

    def _merge_end_vertices(self, dag: Dag, end_ids: list[str]) -> Vertex:
        """Wire every natural end vertex into a synthesized merge vertex."""
        end_id = f"{END_VERTEX_PREFIX}{dag.id}"

        # A merge vertex left by an earlier validation is still an end; reuse it.
        # Any other vertex holding the id is a collision.
        end_vertex = dag.get_vertex(end_id)
        if end_vertex is None:
            end_vertex = dag.add_vertex(end_id, [Modifier(blank_modifier)])
        elif end_id not in end_ids or not self._is_merge_vertex(end_vertex):
            raise DuplicateVertexError(dag.id, end_id)

        for vertex_id in end_ids:
            if vertex_id == end_id:
                continue
            # Control-only edge: no forwarder, execution_flow untouched
            dag._connect(dag._vertices[vertex_id], end_vertex, None)

        logger.debug(
            "Merged end vertices",
            extra={"context": {"dag_id": dag.id, "end_vertex": end_id, "merged": end_ids}},
        )
        return end_vertex

    def check(self, dag: Dag, options: ValidationOptions | None = None) -> ValidationResult:
        """Validate ``dag`` and report the outcome instead of raising.

        Size limits are checked over the whole nesting tree before the
        structural validation. Like ``validate``, a successful check may
        add merge vertices to the dag.

        Args:
            dag: The dag to validate.
            options: Optional report settings.

        Returns:
            ValidationResult with errors, statistics and topology.
        """
        if options is None:
            options = ValidationOptions()

        started = time.perf_counter()
        errors: list[ValidationErrorDetail] = []

        tree = list(dag.walk())
        vertex_count = sum(nested.vertex_count for nested, _ in tree)
        nesting_depth = max(depth for _, depth in tree)

        if vertex_count > options.max_vertices:
            errors.append(self._to_detail(GraphTooLargeError(vertex_count, options.max_vertices)))
        if nesting_depth > options.max_depth:
            errors.append(
                self._to_detail(GraphTooLargeError(nesting_depth, options.max_depth, metric="depth"))
            )

        if not errors:
            try:
                self.validate(dag)
            except DagError as exc:
                errors.append(self._to_detail(exc))

        topology: TopologyResult | None = None
        if options.include_topology and not errors:
            topology = self._generate_topology(dag)

        # Recount: validation may have added merge vertices and edges
        tree = list(dag.walk())
        result = ValidationResult(
            is_valid=not errors,
            dag_id=dag.id,
            validated_at=datetime.now(UTC),
            errors=errors,
            topology=topology,
            vertex_count=sum(nested.vertex_count for nested, _ in tree),
            edge_count=sum(nested.edge_count for nested, _ in tree),
            dag_count=len(tree),
            nesting_depth=nesting_depth,
            execution_flow=dag.execution_flow,
            flattened_ids=dag.flattened_ids() if not errors else [],
            validation_duration_ms=(time.perf_counter() - started) * 1000,
        )
        logger.info(
            f"Dag {dag.id} validation finished: valid={result.is_valid}",
            extra={
                "context": {
                    "dag_id": dag.id,
                    "is_valid": result.is_valid,
                    "errors": [error.code for error in errors],
                }
            },
        )
        return result

    @staticmethod
    def _is_merge_vertex(vertex: Vertex) -> bool:
        operations = vertex.operations
        return (
            len(operations) == 1
            and isinstance(operations[0], Modifier)
            and operations[0].func is blank_modifier
        )

    @staticmethod
    def _to_detail(error: DagError) -> ValidationErrorDetail:
        return ValidationErrorDetail(code=error.kind, message=error.message, details=error.details)

    @staticmethod
    def _generate_topology(dag: Dag) -> TopologyResult:
        """Generate topology analysis of the root dag level."""
        levels = GraphAlgorithms.topological_sort_levels(dag) or []
        critical_path, critical_length = GraphAlgorithms.get_critical_path(dag)
        return TopologyResult(
            execution_order=[
                TopologyLevel(level=i, vertex_ids=level) for i, level in enumerate(levels)
            ],
            total_levels=len(levels),
            max_parallel_vertices=max((len(level) for level in levels), default=0),
            critical_path_length=critical_length,
            critical_path=critical_path,
        )


__all__ = ["END_VERTEX_PREFIX", "DagValidator"]
