"""pytest configuration and shared dag fixtures.

TAG: [TESTING] [PYTEST] [FIXTURES]
"""

from collections.abc import Callable

import pytest

from flowdag.dag import Dag, GraphAlgorithms


@pytest.fixture
def empty_dag() -> Dag:
    """Create an empty root dag."""
    return Dag()


@pytest.fixture
def chain_dag() -> Dag:
    """Create a chain: a -> b -> c."""
    dag = Dag()
    dag.add_edge("a", "b")
    dag.add_edge("b", "c")
    return dag


@pytest.fixture
def fork_dag() -> Dag:
    """Create a fork with two natural ends: a -> b, a -> c."""
    dag = Dag()
    dag.add_edge("a", "b")
    dag.add_edge("a", "c")
    return dag


@pytest.fixture
def diamond_dag() -> Dag:
    """Create a diamond: a -> b, a -> c, b -> d, c -> d."""
    dag = Dag()
    dag.add_edge("a", "b")
    dag.add_edge("a", "c")
    dag.add_edge("b", "d")
    dag.add_edge("c", "d")
    return dag


@pytest.fixture
def assert_closure_exact() -> Callable[[Dag], None]:
    """Return a checker comparing maintained closure sets to a fresh recomputation."""

    def check(dag: Dag) -> None:
        expected = GraphAlgorithms.compute_closure(dag)
        for vertex in dag.vertices:
            ancestors, descendants = expected[vertex.id]
            assert vertex.ancestors == ancestors, vertex.id
            assert vertex.descendants == descendants, vertex.id

    return check
