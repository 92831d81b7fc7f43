"""
proxyvm.layout.fields — declared storage layouts of implementation code.

A layout is an explicit, ordered list of field descriptors. Slots are assigned
sequentially from 0 in declaration order; every non-gap field takes exactly one slot
(no packing) and a ``gap`` field reserves ``size`` consecutive slots for fields a later
version may add. The next version of a contract is expected to repeat the previous
list as a prefix and only append (see `proxyvm.layout.check`).

Field types decide how a raw 256-bit word is interpreted:

    uint256  the word itself
    address  the low 160 bits of the word
    bool     word != 0 (written as 0/1)
    gap      never read or written
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..errors import LayoutError
from ..hashing import sha3_256
from ..state.slots import check_word
from ..types.address import address_to_word, word_to_address


class FieldType(str, Enum):
    UINT256 = "uint256"
    ADDRESS = "address"
    BOOL = "bool"
    GAP = "gap"

    @classmethod
    def parse(cls, name: str) -> "FieldType":
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise LayoutError(
                f"unknown field type {name!r}", data={"known": [t.value for t in cls]}
            ) from None

    def encode(self, value: Any) -> int:
        """Python value -> storage word."""
        if self is FieldType.UINT256:
            return check_word(value, what="uint256 value")
        if self is FieldType.ADDRESS:
            return address_to_word(value)
        if self is FieldType.BOOL:
            if not isinstance(value, bool):
                raise TypeError("bool field expects a bool")
            return 1 if value else 0
        raise LayoutError("gap slots cannot be written")

    def decode(self, word: int) -> Any:
        if self is FieldType.UINT256:
            return word
        if self is FieldType.ADDRESS:
            return word_to_address(word)
        if self is FieldType.BOOL:
            return word != 0
        raise LayoutError("gap slots cannot be read")


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType
    size: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise LayoutError("field name must be a non-empty string")
        ftype = self.type if isinstance(self.type, FieldType) else FieldType.parse(self.type)
        object.__setattr__(self, "type", ftype)
        if not isinstance(self.size, int) or isinstance(self.size, bool) or self.size < 1:
            raise LayoutError(f"field {self.name!r}: size must be a positive int")
        if ftype is not FieldType.GAP and self.size != 1:
            raise LayoutError(f"field {self.name!r}: only gap fields may span several slots")

    @property
    def is_gap(self) -> bool:
        return self.type is FieldType.GAP

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.is_gap:
            d["size"] = self.size
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Field":
        if not isinstance(d, Mapping) or "name" not in d or "type" not in d:
            raise LayoutError("field entries need 'name' and 'type'")
        size = d.get("size", 1)
        if isinstance(size, bool) or not isinstance(size, int):
            raise LayoutError(f"field {d['name']!r}: size must be an integer, got {size!r}")
        return cls(name=d["name"], type=d["type"], size=size)


def uint256(name: str) -> Field:
    return Field(name, FieldType.UINT256)


def address(name: str) -> Field:
    return Field(name, FieldType.ADDRESS)


def boolean(name: str) -> Field:
    return Field(name, FieldType.BOOL)


def gap(size: int, name: str = "__gap") -> Field:
    return Field(name, FieldType.GAP, size)


@dataclass(frozen=True)
class SlottedField:
    """A field together with the first slot it occupies."""

    field: Field
    slot: int

    @property
    def end(self) -> int:
        return self.slot + self.field.size


class StorageLayout:
    """Ordered field list of one contract version, with sequential slot assignment."""

    __slots__ = ("name", "fields", "_entries", "_by_name", "_end")

    def __init__(self, name: str, fields: Iterable[Field]) -> None:
        self.name = name
        self.fields: Tuple[Field, ...] = tuple(fields)
        entries: List[SlottedField] = []
        by_name: Dict[str, SlottedField] = {}
        slot = 0
        for f in self.fields:
            if not isinstance(f, Field):
                raise LayoutError(f"layout {name!r}: expected Field, got {type(f).__name__}", layout=name)
            if f.name in by_name:
                raise LayoutError(f"layout {name!r}: duplicate field {f.name!r}", layout=name)
            e = SlottedField(f, slot)
            entries.append(e)
            by_name[f.name] = e
            slot += f.size
        self._entries = tuple(entries)
        self._by_name = by_name
        self._end = slot

    # ------------------------------------------------------------------ queries

    @property
    def end(self) -> int:
        """First slot past the layout (total slots consumed, gaps included)."""
        return self._end

    def __iter__(self) -> Iterator[SlottedField]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def entry(self, name: str) -> SlottedField:
        try:
            return self._by_name[name]
        except KeyError:
            raise LayoutError(f"layout {self.name!r} has no field {name!r}", layout=self.name) from None

    def slot_of(self, name: str) -> int:
        e = self.entry(name)
        if e.field.is_gap:
            raise LayoutError(f"{name!r} is a gap", layout=self.name)
        return e.slot

    def at_slot(self, slot: int) -> Optional[SlottedField]:
        """Entry covering `slot`, or None past the end."""
        for e in self._entries:
            if e.slot <= slot < e.end:
                return e
        return None

    def gaps(self) -> List[SlottedField]:
        return [e for e in self._entries if e.field.is_gap]

    def occupied_slots(self) -> Dict[int, str]:
        """slot -> field name, for non-gap fields."""
        return {e.slot: e.field.name for e in self._entries if not e.field.is_gap}

    # ------------------------------------------------------------------ serde

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "StorageLayout":
        name = d.get("name") if isinstance(d, Mapping) else None
        if not isinstance(name, str) or not name:
            raise LayoutError("layout needs a non-empty 'name'")
        raw = d.get("fields") or []
        if not isinstance(raw, list):
            raise LayoutError(f"layout {name!r}: 'fields' must be a list", layout=name)
        return cls(name, [Field.from_dict(f) for f in raw])

    def fingerprint(self) -> str:
        """
        sha3-256 over the canonical JSON of the field list. The layout name is excluded;
        field names, types and sizes all count.
        """
        payload = json.dumps([f.to_dict() for f in self.fields], sort_keys=True, separators=(",", ":"))
        return sha3_256(payload.encode("utf-8")).hex()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StorageLayout):
            return NotImplemented
        return self.name == other.name and self.fields == other.fields

    def __hash__(self) -> int:
        return hash((self.name, self.fields))

    def __repr__(self) -> str:
        return f"StorageLayout({self.name!r}, {len(self.fields)} fields, end={self._end})"


__all__ = [
    "FieldType",
    "Field",
    "SlottedField",
    "StorageLayout",
    "uint256",
    "address",
    "boolean",
    "gap",
]
