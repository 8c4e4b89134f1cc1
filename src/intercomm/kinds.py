"""Type descriptors: the structural shape of an intercomm value."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Union


# ---------------------------------------------------------------------------
# ScalarKind
# ---------------------------------------------------------------------------

class ScalarKind(Enum):
    S8 = auto()
    U8 = auto()
    S16 = auto()
    U16 = auto()
    S32 = auto()
    U32 = auto()
    S64 = auto()
    U64 = auto()
    F32 = auto()
    F64 = auto()
    Char = auto()
    String = auto()
    Bool = auto()
    Handle = auto()

    def __str__(self) -> str:
        return self.name


INT_BOUNDS: dict[ScalarKind, tuple[int, int]] = {
    ScalarKind.S8: (-(1 << 7), (1 << 7) - 1),
    ScalarKind.U8: (0, (1 << 8) - 1),
    ScalarKind.S16: (-(1 << 15), (1 << 15) - 1),
    ScalarKind.U16: (0, (1 << 16) - 1),
    ScalarKind.S32: (-(1 << 31), (1 << 31) - 1),
    ScalarKind.U32: (0, (1 << 32) - 1),
    ScalarKind.S64: (-(1 << 63), (1 << 63) - 1),
    ScalarKind.U64: (0, (1 << 64) - 1),
}


# ---------------------------------------------------------------------------
# Composite kinds
# ---------------------------------------------------------------------------

def _freeze(obj, name: str, pairs: bool = False) -> None:
    """Normalise a sequence attribute of a frozen kind to a tuple."""
    items = getattr(obj, name)
    if pairs:
        object.__setattr__(obj, name, tuple((str(n), t) for n, t in items))
    else:
        object.__setattr__(obj, name, tuple(items))


@dataclass(frozen=True, slots=True)
class TupleKind:
    items: tuple[InterType, ...]

    def __post_init__(self) -> None:
        _freeze(self, "items")

    def __str__(self) -> str:
        return "tuple<" + ", ".join(str(t) for t in self.items) + ">"


@dataclass(frozen=True, slots=True)
class ListKind:
    elem: InterType

    def __str__(self) -> str:
        return f"list<{self.elem}>"


@dataclass(frozen=True, slots=True)
class RecordKind:
    fields: tuple[tuple[str, InterType], ...]

    def __post_init__(self) -> None:
        _freeze(self, "fields", pairs=True)

    def __str__(self) -> str:
        return "record{" + ", ".join(f"{n}: {t}" for n, t in self.fields) + "}"


@dataclass(frozen=True, slots=True)
class VariantKind:
    arms: tuple[tuple[str, InterType], ...]

    def __post_init__(self) -> None:
        _freeze(self, "arms", pairs=True)

    def arm(self, label: str) -> InterType | None:
        """Payload kind of the arm named *label*, or ``None`` if there is none."""
        for name, kind in self.arms:
            if name == label:
                return kind
        return None

    def __str__(self) -> str:
        return "variant{" + ", ".join(f"{n}({t})" for n, t in self.arms) + "}"


@dataclass(frozen=True, slots=True)
class EnumKind:
    names: tuple[str, ...]

    def __post_init__(self) -> None:
        _freeze(self, "names")

    def __str__(self) -> str:
        return "enum{" + ", ".join(self.names) + "}"


@dataclass(frozen=True, slots=True)
class FlagsKind:
    names: tuple[str, ...]

    def __post_init__(self) -> None:
        _freeze(self, "names")

    def __str__(self) -> str:
        return "flags{" + ", ".join(self.names) + "}"


@dataclass(frozen=True, slots=True)
class OptionKind:
    inner: InterType

    def __str__(self) -> str:
        return f"option<{self.inner}>"


@dataclass(frozen=True, slots=True)
class UnionKind:
    alternatives: tuple[InterType, ...]

    def __post_init__(self) -> None:
        _freeze(self, "alternatives")

    def __str__(self) -> str:
        return "union<" + ", ".join(str(t) for t in self.alternatives) + ">"


@dataclass(frozen=True, slots=True)
class ResultKind:
    ok: InterType
    err: InterType

    def __str__(self) -> str:
        return f"result<{self.ok}, {self.err}>"


CompositeKind = Union[
    TupleKind,
    ListKind,
    RecordKind,
    VariantKind,
    EnumKind,
    FlagsKind,
    OptionKind,
    UnionKind,
    ResultKind,
]

InterType = Union[ScalarKind, CompositeKind]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def is_integer(kind: InterType) -> bool:
    return kind in INT_BOUNDS


def is_float(kind: InterType) -> bool:
    return kind is ScalarKind.F32 or kind is ScalarKind.F64


def is_scalar(kind: InterType) -> bool:
    return isinstance(kind, ScalarKind)
