"""Collaborator contracts stored on vertices.

TAG: [DAG] [OPERATIONS]

The dag core records these callables but never invokes them; the external
executor does. They are plain callables so that any function, lambda or
callable object fits.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable

# Combines named inputs into one output. Raising signals failure.
Aggregator: TypeAlias = Callable[[Mapping[str, bytes]], bytes]

# Transforms the data flowing along one edge.
Forwarder: TypeAlias = Callable[[bytes], bytes]

# Splits one input into named parallel instances.
ForEach: TypeAlias = Callable[[bytes], Mapping[str, bytes]]

# Selects which conditional sub-graph labels apply.
Condition: TypeAlias = Callable[[bytes], Iterable[str]]


def default_forwarder(data: bytes) -> bytes:
    """Identity forwarder attached to every new edge."""
    return data


@runtime_checkable
class Operation(Protocol):
    """An ordered unit of work attached to a vertex.

    The core only stores and orders operations; anything with an
    ``execute`` method satisfies the contract for the executor.
    """

    def execute(self, data: bytes, options: Mapping[str, Any] | None = None) -> bytes: ...


def blank_modifier(data: bytes) -> bytes:
    """No-op modifier body used by synthesized merge vertices."""
    return data


@dataclass(frozen=True)
class Modifier:
    """Operation wrapping a plain ``bytes -> bytes`` function.

    Attributes:
        func: The wrapped function.
        name: Display name, defaults to the function name.
    """

    func: Callable[[bytes], bytes]
    name: str = field(default="")

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", getattr(self.func, "__name__", "modifier"))

    def execute(self, data: bytes, options: Mapping[str, Any] | None = None) -> bytes:  # noqa: ARG002
        return self.func(data)


def create_modifier(func: Callable[[bytes], bytes]) -> Modifier:
    """Wrap ``func`` as an Operation.

    Example:
        >>> op = create_modifier(lambda data: data.upper())
        >>> op.execute(b"abc")
        b'ABC'
    """
    return Modifier(func=func)


__all__ = [
    "Aggregator",
    "Condition",
    "ForEach",
    "Forwarder",
    "Modifier",
    "Operation",
    "blank_modifier",
    "create_modifier",
    "default_forwarder",
]
