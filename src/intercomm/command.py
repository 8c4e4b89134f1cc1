"""Command lowering: typed arguments and environment → ProcessSpec."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping

from .convert import kind_of, to_value
from .errors import HandlePassingUnsupported, UnsupportedLowering
from .process import (
    FIRST_HANDLE_FD,
    Convention,
    Duplication,
    ProcessSpec,
    supports_handle_passing,
)
from .kinds import InterType, ScalarKind, is_scalar
from .values import TEXT_VALUES, Value, VHandle, is_value

logger = logging.getLogger(__name__)

# First descriptor number each convention hands out.
_FIRST_FD: dict[Convention, int] = {
    Convention.IMPLICIT: FIRST_HANDLE_FD,
}


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def make_command(
    program: str | os.PathLike,
    args: Iterable[Any] = (),
    envs: Iterable[tuple[str, Any]] | Mapping[str, Any] = (),
    convention: Convention = Convention.IMPLICIT,
) -> ProcessSpec:
    """Lower *args* and *envs* into a ProcessSpec for *program*.

    Entries that are not Values yet go through ``to_value`` first.  Scalars
    become their canonical text; each handle is given the next descriptor
    number from 3 upward (arguments first, then environment entries) and the
    child finds it open at that number.

    Raises ``UnsupportedLowering`` for composite values, and
    ``HandlePassingUnsupported`` when handles are passed on a host that cannot
    place descriptors.
    """
    if isinstance(envs, Mapping):
        envs = envs.items()

    lowering = _Lowering(convention)
    args = list(args)
    envs = [(str(key), val) for key, val in envs]
    slots = [f"args[{i}]" for i in range(len(args))] + [f"env {key}" for key, _ in envs]
    values = _convert_all(slots, args + [val for _, val in envs])

    lowered = [lowering.lower(value, slot) for slot, value in zip(slots, values)]
    lowered_args = lowered[: len(args)]
    lowered_envs = [(key, text) for (key, _), text in zip(envs, lowered[len(args):])]

    spec = ProcessSpec(
        program=os.fspath(program),
        args=lowered_args,
        envs=lowered_envs,
        duplications=lowering.duplications,
        convention=convention,
    )
    logger.debug(
        "lowered %s: %d args, %d envs, fds %s",
        spec.program, len(spec.args), len(spec.envs), spec.targets(),
    )
    return spec


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def _kind(obj: Any) -> InterType:
    return obj.kind() if is_value(obj) else kind_of(type(obj))


def _convert_all(slots: list[str], entries: list[Any]) -> list[Value]:
    """Convert every entry, or none if any cannot be lowered.

    Kinds are checked before anything is converted, and handles are
    converted last: turning a file or socket into a handle takes ownership
    of it, so a failing call must not have reached them.
    """
    kinds = [_kind(obj) for obj in entries]
    for slot, kind in zip(slots, kinds):
        if not is_scalar(kind):
            raise UnsupportedLowering(kind, slot)
    handles = sum(kind is ScalarKind.Handle for kind in kinds)
    if handles and not supports_handle_passing():
        raise HandlePassingUnsupported(
            f"cannot pass {handles} handle(s): "
            "this platform has no posix_spawn with dup2 file actions"
        )

    values: list[Value | None] = [None] * len(entries)
    order = sorted(range(len(entries)), key=lambda i: kinds[i] is ScalarKind.Handle)
    for i in order:
        values[i] = to_value(entries[i])
    return values


# ---------------------------------------------------------------------------
# Lowering state
# ---------------------------------------------------------------------------

class _Lowering:
    """Renders values to text and hands out descriptor numbers for handles."""

    def __init__(self, convention: Convention) -> None:
        try:
            self.next_fd = _FIRST_FD[convention]
        except (KeyError, TypeError):
            raise ValueError(f"unknown calling convention: {convention!r}") from None
        self.duplications: list[Duplication] = []

    def lower(self, value: Value, slot: str) -> str:
        if isinstance(value, TEXT_VALUES):
            return str(value)
        if isinstance(value, VHandle):
            target = self.next_fd
            self.duplications.append(Duplication(value.handle, target))
            self.next_fd += 1
            logger.debug("%s: %r → fd %d", slot, value.handle, target)
            return str(target)
        raise UnsupportedLowering(value.kind(), slot)
