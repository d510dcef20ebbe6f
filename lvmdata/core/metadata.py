# lvmdata/core/metadata.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from .exceptions import InvalidValue
from .value import Value


_MISSING = object()


@dataclass(frozen=True, slots=True)
class Metadata:
    """
    Ordered key/value metadata of a header or channel.

    LVM headers may repeat a key, so this is a multi-mapping:
    - every occurrence is kept, in file order (items(), get_all())
    - plain lookup (m[key], get()) returns the last occurrence
    """
    entries: tuple[tuple[str, Value], ...] = ()

    def __post_init__(self) -> None:
        entries = tuple(self.entries)
        for entry in entries:
            if not (isinstance(entry, tuple) and len(entry) == 2):
                raise InvalidValue("Metadata entries must be (key, Value) pairs.")
            key, value = entry
            if not isinstance(key, str):
                raise InvalidValue("Metadata keys must be strings.")
            if not isinstance(value, Value):
                raise InvalidValue(f"Metadata['{key}'] must be a Value.")
        object.__setattr__(self, "entries", entries)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> "Metadata":
        """Build from plain Python values (converted with Value.from_python)."""
        items = data.items() if isinstance(data, Mapping) else data
        return cls(tuple((k, Value.from_python(v)) for k, v in items))

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.entries)

    def __getitem__(self, key: str) -> Value:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        for k, v in reversed(self.entries):
            if k == key:
                return v
        return default

    def get_all(self, key: str) -> list[Value]:
        return [v for k, v in self.entries if k == key]

    def keys(self) -> list[str]:
        return list(dict.fromkeys(k for k, _ in self.entries))

    def items(self) -> list[tuple[str, Value]]:
        return list(self.entries)

    # ---- transformations ----
    def with_entry(self, key: str, value: Value) -> "Metadata":
        return Metadata(self.entries + ((key, value),))

    def to_value(self) -> Value:
        return Value.mapping(self.entries)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of Python payloads (last occurrence wins)."""
        return {k: v.to_python() for k, v in self.entries}
