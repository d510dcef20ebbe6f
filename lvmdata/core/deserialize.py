# lvmdata/core/deserialize.py
"""
Deserialization bridge.

Caller-defined types pull data out of a parsed tree through three
capabilities on a `Node`: expect_map(), expect_seq() and
expect_scalar(kind). Every request checks the stored tag explicitly; there is
no implicit narrowing or widening between kinds.

Example
-------
>>> @dataclass
... class Run:
...     operator: str
...     voltage: list[float]
...
...     @classmethod
...     def from_node(cls, node):
...         doc = node.expect_map()
...         header = doc.required("header").expect_map()
...         group = doc.required("groups").expect_seq()[0].expect_map()
...         volts = group.required("channels").expect_seq()[0].expect_map()
...         return cls(
...             operator=header.optional("Operator", "").as_str(),
...             voltage=volts.required("values").expect_seq().map(lambda n: n.as_float()),
...         )
>>> run = deserialize(document, Run)
"""
from __future__ import annotations

from typing import Any, Callable, Iterator, Protocol, TypeVar, Union, runtime_checkable

from .exceptions import MissingField, TypeMismatch
from .value import Kind, Value


T = TypeVar("T")


@runtime_checkable
class SupportsValue(Protocol):
    """Anything that can expose itself as a Value tree."""

    def to_value(self) -> Value: ...


Builder = Union[Callable[["Node"], T], type]


class Node:
    """Read-only cursor over one Value, remembering where it sits in the tree."""

    __slots__ = ("value", "path")

    def __init__(self, value: Value, path: str = "$") -> None:
        if not isinstance(value, Value):
            raise TypeError("Node expects a Value.")
        self.value = value
        self.path = path

    def __repr__(self) -> str:
        return f"Node({self.path}, {self.value.kind.value})"

    @property
    def kind(self) -> Kind:
        return self.value.kind

    @property
    def is_null(self) -> bool:
        return self.value.is_null

    def _mismatch(self, expected: str) -> TypeMismatch:
        return TypeMismatch(expected, self.value.kind.value, path=self.path)

    # ---- capabilities ----
    def expect_map(self) -> "MapNode":
        if self.value.kind is not Kind.MAP:
            raise self._mismatch(Kind.MAP.value)
        return MapNode(self.value, self.path)

    def expect_seq(self) -> "SeqNode":
        if self.value.kind is not Kind.SEQ:
            raise self._mismatch(Kind.SEQ.value)
        return SeqNode(self.value, self.path)

    def expect_scalar(self, kind: Kind) -> Any:
        if kind in (Kind.MAP, Kind.SEQ):
            raise ValueError(f"{kind.value} is not a scalar kind")
        if self.value.kind is not kind:
            raise self._mismatch(kind.value)
        return self.value.payload

    # ---- scalar shorthands ----
    def as_int(self) -> int:
        return self.expect_scalar(Kind.INTEGER)

    def as_float(self) -> float:
        return self.expect_scalar(Kind.FLOAT)

    def as_bool(self) -> bool:
        return self.expect_scalar(Kind.BOOL)

    def as_str(self) -> str:
        return self.expect_scalar(Kind.STRING)

    def as_timestamp(self):
        return self.expect_scalar(Kind.TIMESTAMP)


class MapNode(Node):
    """A Node known to hold a MAP."""

    __slots__ = ()

    def __len__(self) -> int:
        return len(self.value.payload)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.value.payload)

    def keys(self) -> list[str]:
        return list(dict.fromkeys(k for k, _ in self.value.payload))

    def items(self) -> list[tuple[str, Node]]:
        return [(k, Node(v, f"{self.path}.{k}")) for k, v in self.value.payload]

    def _lookup(self, key: str) -> Value | None:
        for k, v in reversed(self.value.payload):
            if k == key:
                return v
        return None

    def required(self, key: str) -> Node:
        v = self._lookup(key)
        if v is None:
            raise MissingField(key, path=self.path)
        return Node(v, f"{self.path}.{key}")

    def optional(self, key: str, default: Any = None) -> Any:
        """
        The child Node for `key`, or `default` when the key is absent.

        A non-Node default is wrapped with Value.from_python, so scalar
        shorthands work on it: m.optional("Operator", "").as_str()
        """
        v = self._lookup(key)
        if v is not None:
            return Node(v, f"{self.path}.{key}")
        if default is None or isinstance(default, Node):
            return default
        return Node(Value.from_python(default), f"{self.path}.{key}")

    def get_all(self, key: str) -> list[Node]:
        return [Node(v, f"{self.path}.{key}") for k, v in self.value.payload if k == key]


class SeqNode(Node):
    """A Node known to hold a SEQ."""

    __slots__ = ()

    def __len__(self) -> int:
        return len(self.value.payload)

    def __iter__(self) -> Iterator[Node]:
        for i, v in enumerate(self.value.payload):
            yield Node(v, f"{self.path}[{i}]")

    def __getitem__(self, index: int) -> Node:
        items = self.value.payload
        if not -len(items) <= index < len(items):
            raise MissingField(index, path=self.path)
        i = index % len(items)
        return Node(items[i], f"{self.path}[{i}]")

    def expect_len(self, n: int) -> "SeqNode":
        if len(self) != n:
            raise TypeMismatch(f"seq of length {n}", f"seq of length {len(self)}", path=self.path)
        return self

    def map(self, builder: Builder) -> list:
        fn = _as_callable(builder)
        return [fn(node) for node in self]


def _as_callable(builder: Builder) -> Callable[[Node], Any]:
    if isinstance(builder, type) and callable(getattr(builder, "from_node", None)):
        return builder.from_node
    if callable(builder):
        return builder
    raise TypeError("builder must be callable or a type with a from_node() classmethod")


def to_node(source: Value | SupportsValue) -> Node:
    if isinstance(source, Value):
        return Node(source)
    if isinstance(source, SupportsValue):
        return Node(source.to_value())
    raise TypeError(f"cannot deserialize from {type(source).__name__}")


def deserialize(source: Value | SupportsValue, builder: Builder) -> Any:
    """
    Populate a caller-defined target from `source`.

    `source` is a Value or anything with to_value() (Document, Group,
    Channel, Metadata). `builder` is a callable taking the root Node, or a
    type exposing from_node(node).
    """
    return _as_callable(builder)(to_node(source))
