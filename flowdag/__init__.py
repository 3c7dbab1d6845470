"""flowdag: graph construction and validation core for workflow definitions.

Build a dag of vertices, nest sub-graphs, attach branching metadata,
validate the shape and hand it to an executor.
"""

__version__ = "0.1.0"

from flowdag.dag import (  # noqa: E402
    Dag,
    DagError,
    DagErrorKind,
    DagValidator,
    Vertex,
    create_modifier,
)

__all__ = [
    "Dag",
    "DagError",
    "DagErrorKind",
    "DagValidator",
    "Vertex",
    "__version__",
    "create_modifier",
]
