"""Workflow dag construction and validation package.

TAG: [DAG]

Components:
- Dag: owning arena of vertices with incremental closure maintenance
- Vertex: unit of work with capability metadata and nested dags
- GraphAlgorithms: closure recomputation, topological levels, critical path
- DagValidator: recursive structural validation and validation reports
- Exceptions: DagError hierarchy keyed by DagErrorKind

Example:
    >>> from flowdag.dag import Dag
    >>> dag = Dag()
    >>> dag.add_edge("a", "b")
    >>> dag.add_edge("a", "c")
    >>> dag.validate()
    >>> dag.end_vertex.id
    'end-0'
"""

from flowdag.dag.algorithms import GraphAlgorithms
from flowdag.dag.exceptions import (
    CyclicDependencyError,
    DagError,
    DagErrorKind,
    DuplicateEdgeError,
    DuplicateVertexError,
    EmptyDagError,
    GraphTooLargeError,
    MultipleStartError,
    NestingConflictError,
    RecursiveDependencyError,
)
from flowdag.dag.graph import ROOT_DAG_ID, Dag
from flowdag.dag.operations import (
    Aggregator,
    Condition,
    ForEach,
    Forwarder,
    Modifier,
    Operation,
    blank_modifier,
    create_modifier,
    default_forwarder,
)
from flowdag.dag.schemas import (
    TopologyLevel,
    TopologyResult,
    ValidationErrorDetail,
    ValidationOptions,
    ValidationResult,
)
from flowdag.dag.validator import END_VERTEX_PREFIX, DagValidator
from flowdag.dag.vertex import Vertex

__all__ = [
    # Data structures
    "Dag",
    "Vertex",
    "ROOT_DAG_ID",
    "END_VERTEX_PREFIX",
    # Collaborator contracts
    "Aggregator",
    "Condition",
    "ForEach",
    "Forwarder",
    "Modifier",
    "Operation",
    "blank_modifier",
    "create_modifier",
    "default_forwarder",
    # Algorithms
    "GraphAlgorithms",
    # Validator
    "DagValidator",
    "TopologyLevel",
    "TopologyResult",
    "ValidationErrorDetail",
    "ValidationOptions",
    "ValidationResult",
    # Exceptions
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
