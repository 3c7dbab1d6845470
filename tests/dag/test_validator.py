"""Tests for recursive dag validation and validation reports.

TAG: [DAG] [VALIDATION] [TEST]
"""

import pytest

from flowdag.dag import (
    Dag,
    DagErrorKind,
    DagValidator,
    DuplicateVertexError,
    EmptyDagError,
    Modifier,
    MultipleStartError,
    ValidationOptions,
    create_modifier,
)


class TestValidateStructure:
    """Tests for single start / single end resolution."""

    def test_chain_validates(self, chain_dag: Dag) -> None:
        """Test that a chain resolves its natural start and end."""
        chain_dag.validate()
        assert chain_dag.is_validated is True
        assert chain_dag.initial_vertex.id == "a"
        assert chain_dag.end_vertex.id == "c"
        assert chain_dag.vertex_count == 3

    def test_single_vertex_is_start_and_end(self, empty_dag: Dag) -> None:
        """Test that a lone vertex is both start and end."""
        empty_dag.add_vertex("only")
        empty_dag.validate()
        assert empty_dag.initial_vertex is empty_dag.end_vertex

    def test_diamond_has_single_end(self, diamond_dag: Dag) -> None:
        """Test that no merge vertex is added when one end exists."""
        diamond_dag.validate()
        assert diamond_dag.end_vertex.id == "d"
        assert "end-0" not in diamond_dag

    def test_empty_dag_raises(self, empty_dag: Dag) -> None:
        """Test that an empty dag cannot be validated."""
        with pytest.raises(EmptyDagError) as exc_info:
            empty_dag.validate()
        assert exc_info.value.kind == DagErrorKind.EMPTY_DAG

    def test_multiple_start_raises(self, empty_dag: Dag) -> None:
        """Test that two disjoint entry points fail validation."""
        empty_dag.add_edge("a", "c")
        empty_dag.add_edge("b", "c")
        with pytest.raises(MultipleStartError) as exc_info:
            empty_dag.validate()
        assert exc_info.value.kind == DagErrorKind.MULTIPLE_START
        assert exc_info.value.start_vertices == ["a", "b"]

    def test_failed_validation_sets_nothing(self, empty_dag: Dag) -> None:
        """Test that start/end stay unset when validation fails."""
        empty_dag.add_vertex("a")
        empty_dag.add_vertex("b")
        with pytest.raises(MultipleStartError):
            empty_dag.validate()
        assert empty_dag.initial_vertex is None
        assert empty_dag.end_vertex is None


class TestEndVertexMerge:
    """Tests for the synthesized end-<dag id> vertex."""

    def test_fork_gets_merge_vertex(self, fork_dag: Dag) -> None:
        """Test that A->B, A->C merges B and C into end-0."""
        fork_dag.validate()

        end = fork_dag.end_vertex
        assert end.id == "end-0"
        assert end.indegree == 2
        assert end.outdegree == 0
        assert [v.id for v in end.depends_on] == ["b", "c"]
        assert fork_dag.initial_vertex.id == "a"

    def test_merge_vertex_carries_blank_modifier(self, fork_dag: Dag) -> None:
        """Test that the merge vertex holds one identity operation."""
        fork_dag.validate()
        operations = fork_dag.end_vertex.operations
        assert len(operations) == 1
        assert isinstance(operations[0], Modifier)
        assert operations[0].execute(b"payload") == b"payload"

    def test_merge_edges_are_control_only(self, fork_dag: Dag) -> None:
        """Test that merge edges carry no forwarder and keep execution_flow."""
        fork_dag.validate()
        for vertex_id in ("b", "c"):
            vertex = fork_dag.get_vertex(vertex_id)
            assert "end-0" in vertex.forwarders
            assert vertex.get_forwarder("end-0") is None
        assert fork_dag.execution_flow is True

    def test_merge_vertex_joins_closure(self, fork_dag: Dag, assert_closure_exact) -> None:
        """Test that the merge vertex is a descendant of every vertex."""
        fork_dag.validate()
        assert_closure_exact(fork_dag)
        assert fork_dag.end_vertex.ancestors == {"a", "b", "c"}

    def test_merge_vertex_uses_nested_dag_id(self, empty_dag: Dag) -> None:
        """Test that a nested dag's merge vertex is named after its own id."""
        nested = Dag()
        nested.add_edge("x", "y")
        nested.add_edge("x", "z")
        empty_dag.add_vertex("host").attach_sub_graph(nested)

        empty_dag.validate()

        assert nested.end_vertex.id == "end-1"

    def test_revalidation_reuses_merge_vertex(self, fork_dag: Dag) -> None:
        """Test that a second validation after new branches reuses end-0."""
        fork_dag.validate()
        fork_dag.add_edge("a", "d")
        fork_dag.validate()
        end = fork_dag.end_vertex
        assert end.id == "end-0"
        assert [v.id for v in end.depends_on] == ["b", "c", "d"]

    def test_merge_vertex_id_collision(self, empty_dag: Dag) -> None:
        """Test that a user vertex named end-0 with children blocks the merge."""
        empty_dag.add_edge("a", "end-0")
        empty_dag.add_edge("end-0", "b")
        empty_dag.add_edge("a", "c")
        with pytest.raises(DuplicateVertexError):
            empty_dag.validate()

    def test_user_end_vertex_with_same_id_is_not_reused(self, empty_dag: Dag) -> None:
        """Test that a user end vertex named end-0 is a collision, not a merge target."""
        empty_dag.add_vertex("a")
        empty_dag.add_vertex("end-0", [create_modifier(bytes.upper)])
        empty_dag.add_edge("a", "end-0")
        empty_dag.add_edge("a", "c")

        with pytest.raises(DuplicateVertexError) as exc_info:
            empty_dag.validate()

        assert exc_info.value.kind == DagErrorKind.DUPLICATE_VERTEX
        assert empty_dag.get_vertex("end-0").indegree == 1
        assert empty_dag.get_vertex("c").outdegree == 0
        assert empty_dag.is_validated is False


class TestNestedValidation:
    """Tests for recursion into nested dags."""

    def test_nested_errors_propagate_unchanged(self, empty_dag: Dag) -> None:
        """Test that a nested MultipleStart error reaches the caller."""
        nested = Dag()
        nested.add_vertex("x")
        nested.add_vertex("y")
        empty_dag.add_vertex("host").attach_sub_graph(nested)

        with pytest.raises(MultipleStartError) as exc_info:
            empty_dag.validate()
        assert exc_info.value.dag_id == "1"

    def test_conditional_graphs_are_validated(self, empty_dag: Dag) -> None:
        """Test that each conditional dag is validated."""
        yes, no = Dag(), Dag()
        yes.add_edge("y1", "y2")
        yes.add_edge("y1", "y3")
        no.add_vertex("n1")
        empty_dag.add_vertex("branch").attach_conditional_graph("yes", yes)
        empty_dag.get_vertex("branch").attach_conditional_graph("no", no)

        empty_dag.validate()

        assert yes.end_vertex.id == "end-1.yes"
        assert no.end_vertex.id == "n1"

    def test_empty_conditional_graph_fails(self, empty_dag: Dag) -> None:
        """Test that an empty conditional dag fails the whole validation."""
        empty_dag.add_vertex("branch").attach_conditional_graph("yes", Dag())
        with pytest.raises(EmptyDagError):
            empty_dag.validate()
        assert empty_dag.is_validated is False


class TestExecutionFlowInheritance:
    """The nested plain sub-graph flag overwrites the parent flag.

    This mirrors long-standing behavior and is kept as a known quirk: a
    data-flow parent can be reset to execution flow by a pure sub-graph.
    """

    def test_data_flow_sub_graph_marks_parent(self, empty_dag: Dag) -> None:
        """Test that a data-flow sub-graph makes the parent data flow."""
        nested = Dag()
        nested.add_edge("x", "y")
        nested.get_vertex("x").set_forwarder("y", lambda d: d[::-1])
        empty_dag.add_vertex("host").attach_sub_graph(nested)

        empty_dag.validate()

        assert empty_dag.execution_flow is False

    def test_pure_sub_graph_overwrites_parent_flag(self, empty_dag: Dag) -> None:
        """Quirk: a pure sub-graph resets a data-flow parent to True."""
        empty_dag.add_edge("host", "next")
        empty_dag.get_vertex("host").set_forwarder("next", None)
        assert empty_dag.execution_flow is False

        nested = Dag()
        nested.add_vertex("x")
        empty_dag.get_vertex("host").attach_sub_graph(nested)
        empty_dag.validate()

        assert empty_dag.execution_flow is True

    def test_conditional_graph_flag_not_inherited(self, empty_dag: Dag) -> None:
        """Test that conditional dags never change the parent flag."""
        branch = Dag()
        branch.add_edge("x", "y")
        branch.get_vertex("x").set_forwarder("y", None)
        empty_dag.add_vertex("host").attach_conditional_graph("yes", branch)

        empty_dag.validate()

        assert branch.execution_flow is False
        assert empty_dag.execution_flow is True


class TestValidationReport:
    """Tests for DagValidator.check."""

    def test_check_valid_dag(self, fork_dag: Dag) -> None:
        """Test a successful report with statistics and topology."""
        result = DagValidator().check(fork_dag)

        assert result.is_valid is True
        assert result.errors == []
        assert result.dag_id == "0"
        assert result.vertex_count == 4
        assert result.edge_count == 4
        assert result.dag_count == 1
        assert result.nesting_depth == 0
        assert result.flattened_ids == ["0.1.a", "0.2.b", "0.3.c", "0.4.end-0"]
        assert result.topology is not None
        assert result.topology.total_levels == 3
        assert result.topology.max_parallel_vertices == 2
        assert result.topology.execution_order[1].vertex_ids == ["b", "c"]
        assert result.topology.critical_path_length == 3

    def test_check_records_error(self, empty_dag: Dag) -> None:
        """Test that a structural error is reported instead of raised."""
        empty_dag.add_vertex("a")
        empty_dag.add_vertex("b")

        result = DagValidator().check(empty_dag)

        assert result.is_valid is False
        assert result.topology is None
        assert len(result.errors) == 1
        assert result.errors[0].code == DagErrorKind.MULTIPLE_START
        assert result.errors[0].details["start_vertices"] == ["a", "b"]

    def test_check_vertex_limit(self, diamond_dag: Dag) -> None:
        """Test that the vertex limit blocks structural validation."""
        result = DagValidator().check(diamond_dag, ValidationOptions(max_vertices=3))

        assert result.is_valid is False
        assert result.errors[0].code == DagErrorKind.GRAPH_TOO_LARGE
        assert result.errors[0].details == {"current": 4, "limit": 3, "metric": "vertices"}
        assert diamond_dag.is_validated is False

    def test_check_depth_limit(self, empty_dag: Dag) -> None:
        """Test that the nesting depth limit is enforced."""
        inner, middle = Dag(), Dag()
        inner.add_vertex("leaf")
        middle.add_vertex("m").attach_sub_graph(inner)
        empty_dag.add_vertex("top").attach_sub_graph(middle)

        result = DagValidator().check(empty_dag, ValidationOptions(max_depth=1))

        assert result.is_valid is False
        assert result.nesting_depth == 2
        assert result.errors[0].details["metric"] == "depth"

    def test_check_without_topology(self, chain_dag: Dag) -> None:
        """Test that topology can be skipped."""
        result = DagValidator().check(chain_dag, ValidationOptions(include_topology=False))
        assert result.is_valid is True
        assert result.topology is None

    def test_check_long_chain(self, empty_dag: Dag) -> None:
        """Test that a 1500-vertex chain is reported, not raised."""
        for i in range(1499):
            empty_dag.add_edge(f"v{i}", f"v{i + 1}")

        result = DagValidator().check(empty_dag)

        assert result.is_valid is True
        assert result.vertex_count == 1500
        assert result.topology is not None
        assert result.topology.total_levels == 1500
        assert result.topology.critical_path_length == 1500
        assert result.topology.critical_path[-1] == "v1499"
