"""SharedHandle: shared ownership of one open OS descriptor."""

from __future__ import annotations

import logging
import os
import socket
import weakref
from typing import IO

logger = logging.getLogger(__name__)


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError as exc:
        logger.debug("closing fd %d failed: %s", fd, exc)


class SharedHandle:
    """Owns a descriptor and closes it once the last reference is dropped.

    Python's reference counting provides the sharing: every ``VHandle``
    value, every pending duplication in a ``ProcessSpec`` and any copy the
    caller keeps refer to the same ``SharedHandle`` object, and the
    descriptor is closed when that object is collected.

    Usage::

        handle = SharedHandle.from_file(open("data.bin", "rb"))
        spec = make_command("reader", ["--use-fd", handle])
        spec.output()
        handle.fileno()   # still open in the parent
    """

    __slots__ = ("_fd", "_finalizer", "__weakref__")

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid file descriptor: {fd}")
        self._fd = fd
        self._finalizer = weakref.finalize(self, _close_quietly, fd)

    # -- Construction ---------------------------------------------------

    @classmethod
    def from_file(cls, file: IO) -> SharedHandle:
        """Take ownership of the descriptor behind *file*.

        The descriptor is duplicated (non-inheritable) and *file* is closed,
        so afterwards only the returned handle owns it.
        """
        fd = os.dup(file.fileno())
        file.close()
        return cls(fd)

    @classmethod
    def from_socket(cls, sock: socket.socket) -> SharedHandle:
        """Take ownership of *sock*'s descriptor; *sock* is left detached."""
        return cls(sock.detach())

    # -- Access ---------------------------------------------------------

    def fileno(self) -> int:
        if not self._finalizer.alive:
            raise ValueError("I/O operation on closed handle")
        return self._fd

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def dup(self) -> SharedHandle:
        """Return an independent owner of a duplicate of this descriptor."""
        return SharedHandle(os.dup(self.fileno()))

    def detach(self) -> int:
        """Give up ownership and return the raw descriptor without closing it."""
        fd = self.fileno()
        self._finalizer.detach()
        return fd

    def close(self) -> None:
        """Close now, for every holder of this handle."""
        self._finalizer()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"fd={self._fd}"
        return f"SharedHandle({state})"
