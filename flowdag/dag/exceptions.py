"""DAG construction and validation exceptions.

TAG: [DAG] [EXCEPTIONS]

Every error raised while building or validating a graph derives from
DagError and carries a DagErrorKind. Callers branch on the exception
class or on ``error.kind``, never on the message text. All errors are
synchronous and non-retryable: the graph definition must be fixed and
rebuilt.
"""

from enum import Enum
from typing import Any


class DagErrorKind(str, Enum):
    """Machine-readable error kinds.

    TAG: [DAG] [EXCEPTIONS]
    """

    DUPLICATE_VERTEX = "DUPLICATE_VERTEX"
    DUPLICATE_EDGE = "DUPLICATE_EDGE"
    CYCLIC = "CYCLIC"
    MULTIPLE_START = "MULTIPLE_START"
    RECURSIVE_DEPENDENCY = "RECURSIVE_DEPENDENCY"
    EMPTY_DAG = "EMPTY_DAG"
    NESTING_CONFLICT = "NESTING_CONFLICT"
    GRAPH_TOO_LARGE = "GRAPH_TOO_LARGE"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class DagError(Exception):
    """Base exception for DAG construction and validation errors.

    TAG: [DAG] [EXCEPTIONS]

    Attributes:
        message: Human-readable error message.
        kind: Machine-readable error kind.
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        kind: DagErrorKind,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}


class DuplicateVertexError(DagError):
    """Raised when a vertex id already exists in the same dag.

    Attributes:
        dag_id: Id of the dag holding the existing vertex.
        vertex_id: The colliding vertex id.
    """

    def __init__(self, dag_id: str, vertex_id: str) -> None:
        super().__init__(
            message=f"vertex redefined: '{vertex_id}' already exists in dag {dag_id}",
            kind=DagErrorKind.DUPLICATE_VERTEX,
            details={"dag_id": dag_id, "vertex_id": vertex_id},
        )
        self.dag_id = dag_id
        self.vertex_id = vertex_id


class DuplicateEdgeError(DagError):
    """Raised when the same directed edge is added twice.

    Attributes:
        source: Source vertex id.
        target: Target vertex id.
    """

    def __init__(self, dag_id: str, source: str, target: str) -> None:
        super().__init__(
            message=f"edge redefined: {source} -> {target} in dag {dag_id}",
            kind=DagErrorKind.DUPLICATE_EDGE,
            details={"dag_id": dag_id, "source": source, "target": target},
        )
        self.source = source
        self.target = target


class CyclicDependencyError(DagError):
    """Raised when an edge would close a cycle.

    Attributes:
        source: Source vertex id of the rejected edge.
        target: Target vertex id of the rejected edge.
    """

    def __init__(self, dag_id: str, source: str, target: str) -> None:
        super().__init__(
            message=f"dag has cyclic dependency: {source} -> {target} in dag {dag_id}",
            kind=DagErrorKind.CYCLIC,
            details={"dag_id": dag_id, "source": source, "target": target},
        )
        self.source = source
        self.target = target


class MultipleStartError(DagError):
    """Raised when a dag has more than one zero-indegree vertex.

    Attributes:
        dag_id: Id of the offending dag.
        start_vertices: Ids of all zero-indegree vertices, in creation order.
    """

    def __init__(self, dag_id: str, start_vertices: list[str]) -> None:
        super().__init__(
            message=(
                f"only one start vertex is allowed: dag {dag_id} has "
                f"{len(start_vertices)} ({', '.join(start_vertices)})"
            ),
            kind=DagErrorKind.MULTIPLE_START,
            details={"dag_id": dag_id, "start_vertices": start_vertices},
        )
        self.dag_id = dag_id
        self.start_vertices = start_vertices


class RecursiveDependencyError(DagError):
    """Raised when a dag would be nested, directly or transitively, in itself.

    Attributes:
        dag_id: Id of the dag being attached.
        vertex_id: Id of the vertex it was attached to.
    """

    def __init__(self, dag_id: str, vertex_id: str) -> None:
        super().__init__(
            message=f"dag has recursive dependency: dag {dag_id} contains vertex '{vertex_id}'",
            kind=DagErrorKind.RECURSIVE_DEPENDENCY,
            details={"dag_id": dag_id, "vertex_id": vertex_id},
        )
        self.dag_id = dag_id
        self.vertex_id = vertex_id


class EmptyDagError(DagError):
    """Raised when validating a dag that holds no vertices."""

    def __init__(self, dag_id: str) -> None:
        super().__init__(
            message=f"dag {dag_id} has no vertices",
            kind=DagErrorKind.EMPTY_DAG,
            details={"dag_id": dag_id},
        )
        self.dag_id = dag_id


class NestingConflictError(DagError):
    """Raised when a vertex would hold both a sub-graph and conditional graphs.

    Attributes:
        vertex_id: Id of the vertex.
        existing: Kind of nesting already present ("sub_graph" or "conditional").
    """

    def __init__(self, vertex_id: str, existing: str) -> None:
        super().__init__(
            message=f"vertex '{vertex_id}' already has {existing} nesting",
            kind=DagErrorKind.NESTING_CONFLICT,
            details={"vertex_id": vertex_id, "existing": existing},
        )
        self.vertex_id = vertex_id
        self.existing = existing


class GraphTooLargeError(DagError):
    """Raised when a nesting tree exceeds validation size limits.

    Attributes:
        current: Current count.
        limit: Maximum allowed limit.
        metric: Type of metric (vertices, depth).
    """

    def __init__(self, current: int, limit: int, metric: str = "vertices") -> None:
        super().__init__(
            message=f"Graph too large: {current} {metric} (limit: {limit})",
            kind=DagErrorKind.GRAPH_TOO_LARGE,
            details={"current": current, "limit": limit, "metric": metric},
        )
        self.current = current
        self.limit = limit
        self.metric = metric


__all__ = [
    "CyclicDependencyError",
    "DagError",
    "DagErrorKind",
    "DuplicateEdgeError",
    "DuplicateVertexError",
    "EmptyDagError",
    "GraphTooLargeError",
    "MultipleStartError",
    "NestingConflictError",
    "RecursiveDependencyError",
]
