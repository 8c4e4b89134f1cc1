"""Conversion layer: native Python and numpy values → intercomm Values.

Two functions make up the capability:

- ``kind_of(tp)``      the static kind of a native type (or type hint)
- ``to_value(obj, tp)`` the Value for *obj*, converted as type *tp*

and they agree: ``to_value(x, T).kind() == kind_of(T)``.

Scalars dispatch on the class (walking its MRO), so subclasses of ``io.IOBase``
and ``socket.socket`` convert as handles.  ``list[T]``, ``Optional[T]`` and
``Result[T, E]`` hints lift any convertible ``T``/``E``.
"""

from __future__ import annotations

import io
import socket
import types
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union, get_args, get_origin

import numpy as np

from .errors import ConversionError
from .handle import SharedHandle
from .kinds import InterType, ListKind, OptionKind, ResultKind, ScalarKind
from .values import (
    VBool,
    VChar,
    VF32,
    VF64,
    VHandle,
    VList,
    VOption,
    VResult,
    VS8,
    VS16,
    VS32,
    VS64,
    VString,
    VU8,
    VU16,
    VU32,
    VU64,
    Value,
    is_value,
)

T = TypeVar("T")
E = TypeVar("E")


# ---------------------------------------------------------------------------
# Native carriers without a Python builtin
# ---------------------------------------------------------------------------

class Char(str):
    """A ``str`` holding exactly one code point, converted as ``Char``."""

    __slots__ = ()

    def __new__(cls, value: str) -> Char:
        if len(value) != 1:
            raise ValueError(f"Char needs exactly one code point, got {value!r}")
        return super().__new__(cls, value)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]


# ---------------------------------------------------------------------------
# Scalar registry
# ---------------------------------------------------------------------------

_Converter = Callable[[Any], Value]

_REGISTRY: dict[type, tuple[InterType, _Converter]] = {}


def register(cls: type, kind: InterType, converter: _Converter) -> None:
    """Teach the conversion layer a new native type.

    *converter* must return a Value whose ``kind()`` equals *kind*.
    """
    _REGISTRY[cls] = (kind, converter)


def _lookup(cls: type) -> tuple[InterType, _Converter] | None:
    for klass in cls.__mro__:
        if klass in _REGISTRY:
            return _REGISTRY[klass]
    # Abstract bases such as io.IOBase are not on the MRO of the concrete io classes.
    for klass, entry in _REGISTRY.items():
        if issubclass(cls, klass):
            return entry
    return None


def _handle(obj: Any) -> VHandle:
    if isinstance(obj, SharedHandle):
        return VHandle(obj)
    if isinstance(obj, socket.socket):
        return VHandle(SharedHandle.from_socket(obj))
    try:
        return VHandle(SharedHandle.from_file(obj))
    except io.UnsupportedOperation:
        raise ConversionError(f"{type(obj).__name__} has no file descriptor to pass") from None


for _cls, _vcls in (
    (np.int8, VS8), (np.uint8, VU8),
    (np.int16, VS16), (np.uint16, VU16),
    (np.int32, VS32), (np.uint32, VU32),
    (np.int64, VS64), (np.uint64, VU64),
):
    register(_cls, _vcls.KIND, lambda obj, _vcls=_vcls: _vcls(int(obj)))

register(bool, ScalarKind.Bool, lambda obj: VBool(bool(obj)))
register(np.bool_, ScalarKind.Bool, lambda obj: VBool(bool(obj)))
register(int, ScalarKind.S64, lambda obj: VS64(int(obj)))
register(np.float32, ScalarKind.F32, VF32.of)
register(np.float64, ScalarKind.F64, VF64.of)
register(float, ScalarKind.F64, VF64.of)
register(Char, ScalarKind.Char, lambda obj: VChar(str(obj)))
register(str, ScalarKind.String, lambda obj: VString(str(obj)))
register(SharedHandle, ScalarKind.Handle, _handle)
register(io.IOBase, ScalarKind.Handle, _handle)
register(socket.socket, ScalarKind.Handle, _handle)

del _cls, _vcls


# ---------------------------------------------------------------------------
# Type hints
# ---------------------------------------------------------------------------

def _split_union(tp: Any) -> tuple[Any, ...] | None:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return get_args(tp)
    return None


def _option_inner(alternatives: tuple[Any, ...]) -> Any:
    rest = [a for a in alternatives if a is not type(None)]
    if len(rest) == 1 and len(rest) < len(alternatives):
        return rest[0]
    return None


def _result_args(alternatives: tuple[Any, ...]) -> tuple[Any, Any] | None:
    ok = err = None
    for alt in alternatives:
        origin = get_origin(alt)
        if origin is Ok:
            (ok,) = get_args(alt)
        elif origin is Err:
            (err,) = get_args(alt)
        else:
            return None
    if ok is None or err is None:
        return None
    return ok, err


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def kind_of(tp: Any) -> InterType:
    """Return the kind that values of native type *tp* convert to."""
    if get_origin(tp) is list:
        (elem,) = get_args(tp)
        return ListKind(kind_of(elem))

    alternatives = _split_union(tp)
    if alternatives is not None:
        inner = _option_inner(alternatives)
        if inner is not None:
            return OptionKind(kind_of(inner))
        result = _result_args(alternatives)
        if result is not None:
            return ResultKind(kind_of(result[0]), kind_of(result[1]))
        raise ConversionError(f"no conversion for union type {tp!r}")

    if isinstance(tp, type):
        hook = getattr(tp, "__inter_kind__", None)
        if hook is not None:
            return hook()
        entry = _lookup(tp)
        if entry is not None:
            return entry[0]
        if tp in (list, Ok, Err, type(None)):
            raise ConversionError(f"{tp.__name__} needs a parameterised type hint, e.g. list[int]")

    raise ConversionError(f"no conversion for {tp!r}")


def to_value(obj: Any, tp: Any = None) -> Value:
    """Convert *obj* into a Value of ``kind_of(tp)``.

    *tp* defaults to ``type(obj)``; it is required for lists, optionals and
    results, whose element kinds cannot be read off a runtime object.
    Values pass through unchanged.

    Handle conversions take ownership: a file or socket passed here is closed
    or detached, and only the resulting ``SharedHandle`` owns the descriptor.
    """
    if tp is None:
        if is_value(obj):
            return obj
        tp = type(obj)

    if get_origin(tp) is list:
        (elem,) = get_args(tp)
        return VList(kind_of(elem), [to_value(item, elem) for item in obj])

    alternatives = _split_union(tp)
    if alternatives is not None:
        inner = _option_inner(alternatives)
        if inner is not None:
            return VOption(kind_of(inner), None if obj is None else to_value(obj, inner))
        result = _result_args(alternatives)
        if result is not None:
            ok_tp, err_tp = result
            if isinstance(obj, Ok):
                payload, is_ok = to_value(obj.value, ok_tp), True
            elif isinstance(obj, Err):
                payload, is_ok = to_value(obj.error, err_tp), False
            else:
                raise ConversionError(f"expected Ok or Err for {tp!r}, got {obj!r}")
            return VResult(kind_of(ok_tp), kind_of(err_tp), is_ok, payload)
        raise ConversionError(f"no conversion for union type {tp!r}")

    if isinstance(tp, type):
        hook = getattr(tp, "__to_value__", None)
        if hook is not None:
            return hook(obj)
        entry = _lookup(tp)
        if entry is not None:
            return entry[1](obj)

    # Raises the appropriate ConversionError.
    kind_of(tp)
    raise ConversionError(f"no conversion for {tp!r}")


__all__ = [
    "Char",
    "Ok",
    "Err",
    "Result",
    "kind_of",
    "to_value",
    "register",
]
