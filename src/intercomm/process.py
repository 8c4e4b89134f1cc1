"""ProcessSpec: the launch configuration produced by ``make_command``.

Descriptors are placed in the child with ``os.posix_spawn`` file actions.
The C library performs every ``dup2`` in the child after the process is
duplicated and before the new program is loaded; the result of ``dup2`` does
not carry close-on-exec, so each duplicate stays open across exec, while the
parent's other descriptors are closed in the child: non-inheritable ones by exec,
inheritable ones by explicit close actions.
"""

from __future__ import annotations

import logging
import os
import select
import selectors
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from .errors import HandlePassingUnsupported
from .handle import SharedHandle

logger = logging.getLogger(__name__)

_PIPE_BUF = getattr(select, "PIPE_BUF", 512)

# Python ignores these; the child gets default dispositions back, as with subprocess.
_RESET_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGPIPE", "SIGXFSZ") if hasattr(signal, name)
)

# 0, 1 and 2 are configured through ProcessSpec.stdin / stdout / stderr.
FIRST_HANDLE_FD = 3


def supports_handle_passing() -> bool:
    """True when the host can place a descriptor at a chosen number in a child."""
    return hasattr(os, "posix_spawnp") and hasattr(os, "POSIX_SPAWN_DUP2")


# ---------------------------------------------------------------------------
# Convention
# ---------------------------------------------------------------------------

class Convention(Enum):
    """How typed values are lowered into a child's argv and environment.

    ``IMPLICIT`` renders scalars as text and hands descriptors out from 3
    upward; it is the only convention so far.
    """

    IMPLICIT = "implicit"


# ---------------------------------------------------------------------------
# ProcessSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Duplication:
    """Place ``handle`` at descriptor number ``target`` in the child."""

    handle: SharedHandle
    target: int


class Output(NamedTuple):
    returncode: int
    stdout: bytes
    stderr: bytes


@dataclass
class ProcessSpec:
    """A ready-to-spawn program invocation.

    ``stdin``, ``stdout`` and ``stderr`` may be set to parent descriptors
    (ints or objects with ``fileno()``) to redirect the child's standard
    streams; left as ``None`` the child inherits the parent's.
    """

    program: str
    args: list[str] = field(default_factory=list)
    envs: list[tuple[str, str]] = field(default_factory=list)
    duplications: list[Duplication] = field(default_factory=list)
    convention: Convention = Convention.IMPLICIT
    stdin: object = None
    stdout: object = None
    stderr: object = None
    inherit_env: bool = True

    # -- Invocation surface ---------------------------------------------

    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def environ(self) -> dict[str, str]:
        env = dict(os.environ) if self.inherit_env else {}
        for key, value in self.envs:
            env[key] = value
        return env

    def targets(self) -> list[int]:
        """Descriptor numbers the child will find open, in allocation order."""
        return [d.target for d in self.duplications]

    def file_actions(self, stdio: tuple | None = None) -> list[tuple]:
        """The ``posix_spawn`` file actions: stdio first, then duplications in order.

        *stdio* overrides the ``(stdin, stdout, stderr)`` fields.
        """
        if stdio is None:
            stdio = (self.stdin, self.stdout, self.stderr)
        actions: list[tuple] = []
        for target, source in enumerate(stdio):
            if source is not None:
                fd = source if isinstance(source, int) else source.fileno()
                actions.append((os.POSIX_SPAWN_DUP2, fd, target))
        for dup in self.duplications:
            actions.append((os.POSIX_SPAWN_DUP2, dup.handle.fileno(), dup.target))
        return actions

    # -- Launch ---------------------------------------------------------

    def spawn(self) -> Child:
        """Start the program and return without waiting.

        Raises ``OSError`` if the program cannot be started or any descriptor
        cannot be placed; the child never runs in that case.
        """
        return self._spawn((self.stdin, self.stdout, self.stderr))

    def _spawn(self, stdio: tuple) -> Child:
        if not supports_handle_passing():
            raise HandlePassingUnsupported("posix_spawn with dup2 file actions is not available on this platform")
        argv = self.argv()
        actions, temporaries = _stage(self.file_actions(stdio))
        actions += [(os.POSIX_SPAWN_CLOSE, fd) for fd in _inherited_fds(keep=self.targets())]
        try:
            pid = os.posix_spawnp(
                self.program,
                argv,
                self.environ(),
                file_actions=actions,
                setsigdef=_RESET_SIGNALS,
            )
        finally:
            for fd in temporaries:
                os.close(fd)
        logger.debug("spawned %s as pid %d with fds %s", argv, pid, self.targets())
        return Child(pid)

    def output(self, input: bytes | None = None) -> Output:
        """Run to completion, capturing stdout and stderr.

        The child's stdin reads *input*, or ``/dev/null`` when it is ``None``.
        """
        out_r, out_w = os.pipe()
        err_r, err_w = os.pipe()
        in_r, in_w = os.pipe() if input is not None else (os.open(os.devnull, os.O_RDONLY), -1)
        try:
            child = self._spawn((in_r, out_w, err_w))
        except BaseException:
            for fd in (out_r, err_r, in_w):
                if fd >= 0:
                    os.close(fd)
            raise
        finally:
            for fd in (out_w, err_w, in_r):
                os.close(fd)

        try:
            stdout, stderr = _communicate(out_r, err_r, in_w, input or b"")
        finally:
            returncode = child.wait()
        return Output(returncode, stdout, stderr)


def _inherited_fds(keep: list[int]) -> list[int]:
    """Inheritable descriptors above 2 that the child should not see.

    posix_spawn only drops close-on-exec descriptors; these are closed by
    explicit actions after the dup2s, as subprocess does with close_fds.
    """
    for fd_dir in ("/proc/self/fd", "/dev/fd"):
        try:
            names = os.listdir(fd_dir)
        except OSError:
            continue
        break
    else:
        logger.debug("no descriptor listing on this host; inherited fds are left open")
        return []

    found = []
    for name in names:
        fd = int(name)
        if fd <= 2 or fd in keep:
            continue
        try:
            if os.get_inheritable(fd):
                found.append(fd)
        except OSError:
            # The listing's own descriptor, already closed.
            continue
    return sorted(found)


def _stage(actions: list[tuple]) -> tuple[list[tuple], list[int]]:
    """Move sources that sit on a target number out of the way.

    Each dup2 would otherwise overwrite a source that a later action still
    reads, or be a no-op that leaves close-on-exec set.  Conflicting sources
    are duplicated above the highest target (close-on-exec, so only the
    dup2 copies reach the child); the caller closes the returned temporaries.
    """
    import fcntl

    targets = {target for _, _, target in actions}
    floor = max(targets, default=0) + 1
    moved: dict[int, int] = {}
    staged = []
    try:
        for op, source, target in actions:
            if source in targets:
                if source not in moved:
                    moved[source] = fcntl.fcntl(source, fcntl.F_DUPFD_CLOEXEC, floor)
                source = moved[source]
            staged.append((op, source, target))
    except BaseException:
        for fd in moved.values():
            os.close(fd)
        raise
    return staged, list(moved.values())


def _communicate(out_r: int, err_r: int, in_w: int, data: bytes) -> tuple[bytes, bytes]:
    """Feed *data* to ``in_w`` while draining ``out_r`` and ``err_r``; closes all three."""
    chunks: dict[int, list[bytes]] = {out_r: [], err_r: []}
    view = memoryview(data)
    with selectors.DefaultSelector() as sel:
        sel.register(out_r, selectors.EVENT_READ)
        sel.register(err_r, selectors.EVENT_READ)
        if in_w >= 0:
            if view:
                sel.register(in_w, selectors.EVENT_WRITE)
            else:
                os.close(in_w)
        while sel.get_map():
            for key, _ in sel.select():
                fd = key.fd
                if fd == in_w:
                    try:
                        n = os.write(fd, view[:_PIPE_BUF])
                    except BrokenPipeError:
                        n = len(view)
                    view = view[n:]
                    if not view:
                        sel.unregister(fd)
                        os.close(fd)
                    continue
                chunk = os.read(fd, 65536)
                if chunk:
                    chunks[fd].append(chunk)
                else:
                    sel.unregister(fd)
                    os.close(fd)
    return b"".join(chunks[out_r]), b"".join(chunks[err_r])


# ---------------------------------------------------------------------------
# Child
# ---------------------------------------------------------------------------

class Child:
    """A spawned process."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        self.returncode: int | None = None

    def wait(self) -> int:
        """Wait for exit; returns the exit code, or ``-signum`` if killed."""
        if self.returncode is None:
            _, status = os.waitpid(self.pid, 0)
            self.returncode = os.waitstatus_to_exitcode(status)
        return self.returncode

    def __repr__(self) -> str:
        return f"Child(pid={self.pid}, returncode={self.returncode})"
