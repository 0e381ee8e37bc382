"""Resource node data structures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar

from stackplan.models.kinds import KindSchema, ResourceKind, schema_for

_T = TypeVar("_T")


@dataclass(frozen=True)
class Reference:
    """A property value pointing at another node's future output.

    ``output=None`` refers to the target kind's primary output.
    """

    node_id: str
    output: str | None = None

    def __str__(self) -> str:
        if self.output is None:
            return f"ref({self.node_id})"
        return f"ref({self.node_id}.{self.output})"


@dataclass(frozen=True)
class OutputToken:
    """Stand-in for an output that only exists once its node is provisioned."""

    node_id: str
    output: str

    def __str__(self) -> str:
        return f"${{{self.node_id}.{self.output}}}"


@dataclass
class ResourceNode:
    """One declared unit of infrastructure.

    ``properties`` may hold literals, References, or lists/tuples/dicts nesting
    either.  ``depends_on`` adds ordering-only dependencies.  ``outputs`` stays
    empty until the node has been provisioned.
    """

    id: str
    kind: ResourceKind
    properties: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    outputs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Resource id must not be empty")
        if not isinstance(self.kind, ResourceKind):
            self.kind = ResourceKind(self.kind)
        self.depends_on = tuple(self.depends_on)

    @property
    def schema(self) -> KindSchema:
        return schema_for(self.kind)

    @property
    def provisioned(self) -> bool:
        return bool(self.outputs)

    def ref(self, output: str | None = None) -> Reference:
        """Return a Reference to *output* of this node (primary output if None)."""
        return Reference(self.id, output)

    def references(self) -> list[Reference]:
        """Every Reference nested anywhere in the property bag, in property order."""
        return list(iter_references(self.properties))


@dataclass(frozen=True)
class StackOutput:
    """A named value exported by the whole topology."""

    name: str
    value: Any
    description: str = ""
    export_name: str = ""


@dataclass
class Topology:
    """Declared nodes, in declaration order, plus the stack outputs."""

    name: str
    nodes: list[ResourceNode] = field(default_factory=list)
    outputs: list[StackOutput] = field(default_factory=list)


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield References found in *value*, descending into lists, tuples and dicts."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def substitute(value: Any, kind: type[_T], replace: Callable[[_T], Any]) -> Any:
    """Rebuild *value* with every instance of *kind* passed through *replace*.

    Used with ``Reference`` while emitting a plan and with ``OutputToken``
    while executing it.  Containers are copied; other values are returned as-is.
    """
    if isinstance(value, kind):
        return replace(value)
    if isinstance(value, dict):
        return {key: substitute(item, kind, replace) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, kind, replace) for item in value]
    if isinstance(value, tuple):
        return tuple(substitute(item, kind, replace) for item in value)
    return value


def iter_tokens(value: Any) -> Iterator[OutputToken]:
    """Yield OutputTokens found in *value*."""
    if isinstance(value, OutputToken):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_tokens(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_tokens(item)
