"""Tests for intercomm.handle."""

import gc
import os
import socket

import pytest

from intercomm.handle import SharedHandle


def _is_open(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError:
        return False
    return True


class TestOwnership:
    def test_closes_when_last_reference_dropped(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        fd = handle.fileno()
        alias = handle
        del handle
        gc.collect()
        assert _is_open(fd)
        del alias
        gc.collect()
        assert not _is_open(fd)

    def test_explicit_close(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        fd = handle.fileno()
        handle.close()
        assert handle.closed
        assert not _is_open(fd)
        with pytest.raises(ValueError):
            handle.fileno()

    def test_detach(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        fd = handle.detach()
        del handle
        gc.collect()
        assert _is_open(fd)
        os.close(fd)

    def test_dup_is_independent(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        copy = handle.dup()
        assert copy.fileno() != handle.fileno()
        handle.close()
        assert not copy.closed
        copy.close()

    def test_negative_fd(self):
        with pytest.raises(ValueError):
            SharedHandle(-1)


class TestFromNative:
    def test_from_file_takes_ownership(self, tmp_path):
        path = tmp_path / "data.txt"
        path.write_bytes(b"payload")
        f = open(path, "rb")
        handle = SharedHandle.from_file(f)
        assert f.closed
        assert os.read(handle.fileno(), 100) == b"payload"
        assert not os.get_inheritable(handle.fileno())
        handle.close()

    def test_from_socket_detaches(self):
        a, b = socket.socketpair()
        handle = SharedHandle.from_socket(a)
        assert a.fileno() == -1
        b.sendall(b"ping")
        assert os.read(handle.fileno(), 4) == b"ping"
        handle.close()
        b.close()


def test_repr():
    handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
    assert repr(handle) == f"SharedHandle(fd={handle.fileno()})"
    handle.close()
    assert repr(handle) == "SharedHandle(closed)"
