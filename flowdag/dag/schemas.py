"""Pydantic schemas for dag validation reports.

TAG: [DAG] [SCHEMAS] [VALIDATION]

Validation reports are the non-raising counterpart of ``Dag.validate``:
every error is recorded with its machine-readable kind.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flowdag.core.config import settings
from flowdag.dag.exceptions import DagErrorKind  # noqa: TC001 - Required at runtime for Pydantic


class BaseSchema(BaseModel):
    """Base schema with common configuration for all report schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )


class ValidationOptions(BaseSchema):
    """Options for a validation report.

    Limits apply to the whole nesting tree, conditional graphs included.
    """

    include_topology: bool = Field(
        default=True,
        description="Include topology analysis of the root dag in results",
    )
    max_vertices: int = Field(
        default_factory=lambda: settings.VALIDATION_MAX_VERTICES,
        ge=1,
        description="Maximum vertices across all nested dags",
    )
    max_depth: int = Field(
        default_factory=lambda: settings.VALIDATION_MAX_DEPTH,
        ge=1,
        description="Maximum nesting depth (the root dag is depth 0)",
    )


class ValidationErrorDetail(BaseSchema):
    """Single blocking validation error."""

    code: DagErrorKind = Field(
        ...,
        description="Machine-readable error kind",
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error context",
    )


class TopologyLevel(BaseSchema):
    """Single level in topological sort.

    Vertices at the same level do not depend on each other.
    """

    level: int = Field(..., ge=0, description="Execution level (0-based)")
    vertex_ids: list[str] = Field(..., description="Vertex ids at this level")


class TopologyResult(BaseSchema):
    """Topological analysis of one dag level."""

    execution_order: list[TopologyLevel] = Field(
        ...,
        description="Vertices grouped by execution level",
    )
    total_levels: int = Field(..., ge=0)
    max_parallel_vertices: int = Field(..., ge=0)
    critical_path_length: int = Field(
        ...,
        ge=0,
        description="Length of the longest dependency chain",
    )
    critical_path: list[str] = Field(default_factory=list)


class ValidationResult(BaseSchema):
    """Complete validation report."""

    is_valid: bool = Field(..., description="Whether the dag passed validation")
    dag_id: str = Field(..., description="Id of the validated dag")
    validated_at: datetime = Field(..., description="Validation timestamp")

    errors: list[ValidationErrorDetail] = Field(default_factory=list)
    topology: TopologyResult | None = Field(
        default=None,
        description="Topology analysis (if requested and valid)",
    )

    # Statistics
    vertex_count: int = Field(default=0, ge=0, description="Vertices across all nested dags")
    edge_count: int = Field(default=0, ge=0, description="Edges across all nested dags")
    dag_count: int = Field(default=1, ge=1, description="Dags in the nesting tree")
    nesting_depth: int = Field(default=0, ge=0)
    execution_flow: bool = Field(default=True)
    flattened_ids: list[str] = Field(default_factory=list)
    validation_duration_ms: float = Field(default=0.0, ge=0.0)


__all__ = [
    "BaseSchema",
    "TopologyLevel",
    "TopologyResult",
    "ValidationErrorDetail",
    "ValidationOptions",
    "ValidationResult",
]
