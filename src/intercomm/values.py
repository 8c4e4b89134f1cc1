"""Value types for intercomm.

Every value knows its own kind (``value.kind()``), and every scalar renders
its canonical text through ``str()``; that text is what a child process sees.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from typing import ClassVar, Union

import numpy as np

from .errors import InvariantError
from .handle import SharedHandle
from .kinds import (
    INT_BOUNDS,
    EnumKind,
    FlagsKind,
    InterType,
    ListKind,
    OptionKind,
    RecordKind,
    ResultKind,
    ScalarKind,
    TupleKind,
    UnionKind,
    VariantKind,
)


def _check_payload(owner: str, declared: InterType, payload: Value) -> None:
    actual = payload.kind()
    if actual != declared:
        raise InvariantError(f"{owner}: payload of kind {actual} where {declared} is declared")


# ---------------------------------------------------------------------------
# Integers
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class _Integer:
    value: int

    KIND: ClassVar[ScalarKind]

    def __post_init__(self) -> None:
        if isinstance(self.value, bool):
            raise InvariantError(f"{self.KIND}: bool is not an integer")
        try:
            v = operator.index(self.value)
        except TypeError:
            raise InvariantError(f"{self.KIND}: {self.value!r} is not an integer") from None
        lo, hi = INT_BOUNDS[self.KIND]
        if not lo <= v <= hi:
            raise InvariantError(f"{self.KIND}: {v} out of range [{lo}, {hi}]")
        object.__setattr__(self, "value", v)

    def kind(self) -> ScalarKind:
        return self.KIND

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class VS8(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.S8


@dataclass(frozen=True, slots=True)
class VU8(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.U8


@dataclass(frozen=True, slots=True)
class VS16(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.S16


@dataclass(frozen=True, slots=True)
class VU16(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.U16


@dataclass(frozen=True, slots=True)
class VS32(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.S32


@dataclass(frozen=True, slots=True)
class VU32(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.U32


@dataclass(frozen=True, slots=True)
class VS64(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.S64


@dataclass(frozen=True, slots=True)
class VU64(_Integer):
    KIND: ClassVar[ScalarKind] = ScalarKind.U64


# ---------------------------------------------------------------------------
# Floats
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class _Float:
    """A float that is never NaN; ``value=None`` stands for NaN."""

    value: float | None

    KIND: ClassVar[ScalarKind]
    DTYPE: ClassVar[type]

    def __post_init__(self) -> None:
        if self.value is None:
            return
        v = float(self.DTYPE(self.value))
        if math.isnan(v):
            raise InvariantError(f"{self.KIND}: NaN must be given as None")
        object.__setattr__(self, "value", v)

    @classmethod
    def of(cls, x: float):
        """Build from any float, mapping NaN to the absent value."""
        x = cls.DTYPE(x)
        return cls(None if np.isnan(x) else float(x))

    @property
    def is_nan(self) -> bool:
        return self.value is None

    def kind(self) -> ScalarKind:
        return self.KIND

    def __str__(self) -> str:
        if self.value is None:
            return "NaN"
        # Shortest positional text that parses back to the same value at this width.
        return np.format_float_positional(self.DTYPE(self.value), unique=True, trim="-")


@dataclass(frozen=True, slots=True)
class VF32(_Float):
    KIND: ClassVar[ScalarKind] = ScalarKind.F32
    DTYPE: ClassVar[type] = np.float32


@dataclass(frozen=True, slots=True)
class VF64(_Float):
    KIND: ClassVar[ScalarKind] = ScalarKind.F64
    DTYPE: ClassVar[type] = np.float64


# ---------------------------------------------------------------------------
# Char / String / Bool / Handle
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class VChar:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or len(self.value) != 1:
            raise InvariantError(f"Char: expected one code point, got {self.value!r}")
        if 0xD800 <= ord(self.value) <= 0xDFFF:
            raise InvariantError(f"Char: surrogate U+{ord(self.value):04X} is not a char")

    def kind(self) -> ScalarKind:
        return ScalarKind.Char

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class VString:
    value: str

    def kind(self) -> ScalarKind:
        return ScalarKind.String

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class VBool:
    value: bool

    def kind(self) -> ScalarKind:
        return ScalarKind.Bool

    def __str__(self) -> str:
        return str(self.value).lower()


@dataclass(frozen=True, slots=True)
class VHandle:
    handle: SharedHandle

    def kind(self) -> ScalarKind:
        return ScalarKind.Handle


# ---------------------------------------------------------------------------
# Composites
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class VVariant:
    arms: VariantKind
    label: str
    payload: Value

    def __post_init__(self) -> None:
        declared = self.arms.arm(self.label)
        if declared is None:
            raise InvariantError(f"variant: {self.label!r} is not one of the arms")
        _check_payload(f"variant arm {self.label!r}", declared, self.payload)

    def kind(self) -> VariantKind:
        return self.arms

    def __str__(self) -> str:
        return f"{self.label}({self.payload})"


@dataclass(frozen=True, slots=True)
class VRecord:
    fields: tuple[tuple[str, Value], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple((str(n), v) for n, v in self.fields))

    def kind(self) -> RecordKind:
        return RecordKind([(name, value.kind()) for name, value in self.fields])

    def __str__(self) -> str:
        return "{" + ", ".join(f"{n}: {v}" for n, v in self.fields) + "}"


@dataclass(frozen=True, slots=True)
class VList:
    elem: InterType
    items: tuple[Value, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        for i, item in enumerate(self.items):
            if item.kind() != self.elem:
                raise InvariantError(
                    f"list<{self.elem}>: item {i} has kind {item.kind()}"
                )

    def kind(self) -> ListKind:
        return ListKind(self.elem)

    def __str__(self) -> str:
        return "[" + ", ".join(str(v) for v in self.items) + "]"


@dataclass(frozen=True, slots=True)
class VTuple:
    items: tuple[Value, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    def kind(self) -> TupleKind:
        return TupleKind([item.kind() for item in self.items])

    def __str__(self) -> str:
        return "(" + ", ".join(str(v) for v in self.items) + ")"


@dataclass(frozen=True, slots=True)
class VFlags:
    flags: tuple[tuple[str, bool], ...]

    def __post_init__(self) -> None:
        flags = tuple((str(n), bool(b)) for n, b in self.flags)
        names = [n for n, _ in flags]
        if len(set(names)) != len(names):
            raise InvariantError(f"flags: duplicate names in {names}")
        object.__setattr__(self, "flags", flags)

    def kind(self) -> FlagsKind:
        return FlagsKind([name for name, _ in self.flags])

    def is_set(self, name: str) -> bool:
        for n, state in self.flags:
            if n == name:
                return state
        raise KeyError(name)

    def __str__(self) -> str:
        return "{" + ", ".join(n for n, b in self.flags if b) + "}"


@dataclass(frozen=True, slots=True)
class VEnum:
    names: EnumKind
    label: str

    def __post_init__(self) -> None:
        if self.label not in self.names.names:
            raise InvariantError(f"enum: {self.label!r} is not one of {list(self.names.names)}")

    def kind(self) -> EnumKind:
        return self.names

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True, slots=True)
class VOption:
    inner: InterType
    value: Value | None = None

    def __post_init__(self) -> None:
        if self.value is not None:
            _check_payload("option", self.inner, self.value)

    def kind(self) -> OptionKind:
        return OptionKind(self.inner)

    def __str__(self) -> str:
        return "none" if self.value is None else f"some({self.value})"


@dataclass(frozen=True, slots=True)
class VUnion:
    alternatives: UnionKind
    index: int
    payload: Value

    def __post_init__(self) -> None:
        n = len(self.alternatives.alternatives)
        if not 0 <= self.index < n:
            raise InvariantError(f"union: index {self.index} out of range for {n} alternatives")
        _check_payload(f"union case {self.index}", self.alternatives.alternatives[self.index], self.payload)

    def kind(self) -> UnionKind:
        return self.alternatives

    def __str__(self) -> str:
        return str(self.payload)


@dataclass(frozen=True, slots=True)
class VResult:
    ok: InterType
    err: InterType
    is_ok: bool
    payload: Value

    def __post_init__(self) -> None:
        if self.is_ok:
            _check_payload("result ok", self.ok, self.payload)
        else:
            _check_payload("result err", self.err, self.payload)

    def kind(self) -> ResultKind:
        return ResultKind(self.ok, self.err)

    def __str__(self) -> str:
        return f"{'ok' if self.is_ok else 'err'}({self.payload})"


Value = Union[
    VS8, VU8, VS16, VU16, VS32, VU32, VS64, VU64,
    VF32, VF64, VChar, VString, VBool, VHandle,
    VVariant, VRecord, VList, VTuple, VFlags, VEnum, VOption, VUnion, VResult,
]

VALUE_TYPES: tuple[type, ...] = (
    VS8, VU8, VS16, VU16, VS32, VU32, VS64, VU64,
    VF32, VF64, VChar, VString, VBool, VHandle,
    VVariant, VRecord, VList, VTuple, VFlags, VEnum, VOption, VUnion, VResult,
)

# Values whose canonical text is their own str(); handles lower to a descriptor number instead.
TEXT_VALUES: tuple[type, ...] = (
    VS8, VU8, VS16, VU16, VS32, VU32, VS64, VU64,
    VF32, VF64, VChar, VString, VBool,
)


def is_value(obj: object) -> bool:
    return isinstance(obj, VALUE_TYPES)
