from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Union

from .errors import SchemaError
from .record import Record
from .tags import BOUNDARY_CODE, COMMENT_CODE, valid_group_code
from .values import ValueType, accepts
from .versions import MODAL_FLAGS, DXFVersion

SUBCLASS_CODE = 100
APP_GROUP_CODE = 102
SOFT_OWNER_CODE = 330
HARD_OWNER_CODE = 360
RESERVED_CODES = frozenset({BOUNDARY_CODE, SUBCLASS_CODE, APP_GROUP_CODE, COMMENT_CODE})

Validator = Callable[[Record], Union[str, None]]

_TYPE_DEFAULTS: dict[ValueType, Any] = {
    ValueType.INT: 0,
    ValueType.SHORT: 0,
    ValueType.HEX: 0,
    ValueType.DOUBLE: 0.0,
    ValueType.STRING: "",
    ValueType.FLAG: False,
    ValueType.BINARY: b"",
}


class Cardinality(Enum):
    SINGLE = "single"
    REPEATED = "repeated"


@dataclass(frozen=True)
class FieldSlot:
    """One field of a record kind.

    ``codes`` holds a single group code, or the codes of a coordinate tuple in
    write order (e.g. ``(10, 20, 30)``). A repeated tuple slot closes one
    element when its last code arrives.
    """

    name: str
    codes: tuple[int, ...]
    type: ValueType
    default: Any = None
    min_version: DXFVersion | None = None
    max_version: DXFVersion | None = None
    cardinality: Cardinality = Cardinality.SINGLE
    always_write: bool = False
    required: bool = False
    flag: str | None = None
    alt_codes: tuple[int, ...] = ()
    counts: str | None = None

    def __post_init__(self) -> None:
        codes = (self.codes,) if isinstance(self.codes, int) else tuple(self.codes)
        object.__setattr__(self, "codes", codes)
        alt_codes = (self.alt_codes,) if isinstance(self.alt_codes, int) else tuple(self.alt_codes)
        object.__setattr__(self, "alt_codes", alt_codes)
        if self.repeated:
            object.__setattr__(self, "default", ())
        elif self.default is None:
            scalar = _TYPE_DEFAULTS[self.type]
            object.__setattr__(self, "default", tuple(scalar for _ in codes) if len(codes) > 1 else scalar)

    @property
    def repeated(self) -> bool:
        return self.cardinality is Cardinality.REPEATED

    @property
    def is_tuple(self) -> bool:
        return len(self.codes) > 1

    def initial_value(self) -> Any:
        if self.repeated:
            return []
        return self.default

    def is_default(self, value: Any) -> bool:
        if self.repeated:
            return len(value) == 0
        return value == self.default


@dataclass(frozen=True)
class SubclassMarker:
    name: str
    min_version: DXFVersion | None = DXFVersion.R13
    max_version: DXFVersion | None = None


SchemaEntry = Union[FieldSlot, SubclassMarker]


@dataclass(frozen=True)
class FieldSchema:
    """Immutable field table for one record kind, shared by all sessions."""

    name: str
    entries: tuple[SchemaEntry, ...]
    aliases: tuple[str, ...] = ()
    handle_code: int | None = 5
    min_version: DXFVersion | None = None
    validators: tuple[Validator, ...] = ()
    _by_code: dict[int, tuple[FieldSlot, int]] = field(init=False, repr=False, compare=False, hash=False)
    _by_name: dict[str, FieldSlot] = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "validators", tuple(self.validators))
        by_code: dict[int, tuple[FieldSlot, int]] = {}
        by_name: dict[str, FieldSlot] = {}
        if not self.name or self.name != self.name.strip():
            raise SchemaError(f"invalid record kind name: {self.name!r}")
        if self.handle_code is not None and not valid_group_code(self.handle_code):
            raise SchemaError(f"{self.name}: invalid handle code {self.handle_code}")

        for entry in self.entries:
            if isinstance(entry, SubclassMarker):
                continue
            if not isinstance(entry, FieldSlot):
                raise SchemaError(f"{self.name}: unsupported schema entry {entry!r}")
            if entry.name in by_name:
                raise SchemaError(f"{self.name}: duplicate slot name {entry.name!r}")
            by_name[entry.name] = entry
            _check_slot(self, entry)
            for index, code in enumerate(entry.codes):
                self._claim(by_code, code, entry, index)
            for code in entry.alt_codes:
                self._claim(by_code, code, entry, 0)

        for slot in by_name.values():
            if slot.counts is None:
                continue
            target = by_name.get(slot.counts)
            if target is None or not target.repeated:
                raise SchemaError(f"{self.name}.{slot.name}: counts {slot.counts!r}, which is not a repeated slot")

        object.__setattr__(self, "_by_code", by_code)
        object.__setattr__(self, "_by_name", by_name)

    def _claim(self, by_code: dict[int, tuple[FieldSlot, int]], code: int, slot: FieldSlot, index: int) -> None:
        if not valid_group_code(code):
            raise SchemaError(f"{self.name}.{slot.name}: group code {code} is out of range")
        if code in RESERVED_CODES or code == self.handle_code:
            raise SchemaError(f"{self.name}.{slot.name}: group code {code} is reserved")
        if code in by_code:
            other = by_code[code][0].name
            raise SchemaError(f"{self.name}.{slot.name}: group code {code} already used by {other!r}")
        by_code[code] = (slot, index)

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    @property
    def slots(self) -> tuple[FieldSlot, ...]:
        return tuple(self._by_name.values())

    @property
    def markers(self) -> frozenset[str]:
        return frozenset(entry.name for entry in self.entries if isinstance(entry, SubclassMarker))

    def __iter__(self) -> Iterator[SchemaEntry]:
        return iter(self.entries)

    def matches(self, kind: str) -> bool:
        return kind.strip() in self.names

    def slot(self, name: str) -> FieldSlot:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"{self.name} has no field {name!r}") from None

    def lookup(self, code: int) -> tuple[FieldSlot, int] | None:
        return self._by_code.get(code)

    def claims(self, code: int) -> bool:
        return code in self._by_code

    def new_record(self, **values: Any) -> Record:
        """Create a record holding schema defaults, overridden by ``values``."""
        record = Record(self.name, {slot.name: slot.initial_value() for slot in self.slots})
        for name, value in values.items():
            if name in ("handle", "soft_owner", "hard_owner"):
                setattr(record, name, value)
                continue
            slot = self.slot(name)
            record[name] = list(value) if slot.repeated else value
        return record


def _check_slot(schema: FieldSchema, slot: FieldSlot) -> None:
    where = f"{schema.name}.{slot.name}"
    if not slot.codes:
        raise SchemaError(f"{where}: no group code")
    if slot.is_tuple and slot.alt_codes:
        raise SchemaError(f"{where}: alternate codes are not supported on tuple slots")
    if slot.flag is not None and slot.flag not in MODAL_FLAGS:
        raise SchemaError(f"{where}: unknown modal flag {slot.flag!r}")
    if slot.min_version is not None and slot.max_version is not None and slot.min_version > slot.max_version:
        raise SchemaError(f"{where}: min_version {slot.min_version.name} is after max_version {slot.max_version.name}")
    if slot.counts is not None and (slot.repeated or slot.is_tuple or slot.type not in (ValueType.INT, ValueType.SHORT)):
        raise SchemaError(f"{where}: a count must be a single integer slot")
    if slot.repeated:
        return
    if slot.is_tuple:
        default = slot.default
        if not isinstance(default, tuple) or len(default) != len(slot.codes):
            raise SchemaError(f"{where}: default must be a {len(slot.codes)}-tuple")
        values = default
    else:
        values = (slot.default,)
    for value in values:
        if not accepts(value, slot.type):
            raise SchemaError(f"{where}: default {value!r} is not a valid {slot.type.value}")


def distinct_points(first: str, second: str) -> Validator:
    def check(record: Record) -> str | None:
        if tuple(record[first]) == tuple(record[second]):
            return f"{first} and {second} are identical {tuple(record[first])}"
        return None

    check.__name__ = f"distinct_points_{first}_{second}"
    return check


def min_count(name: str, count: int) -> Validator:
    def check(record: Record) -> str | None:
        if len(record[name]) < count:
            return f"{name} needs at least {count} elements, found {len(record[name])}"
        return None

    check.__name__ = f"min_count_{name}"
    return check


def positive(name: str) -> Validator:
    def check(record: Record) -> str | None:
        if record[name] <= 0:
            return f"{name} must be positive, found {record[name]}"
        return None

    check.__name__ = f"positive_{name}"
    return check
