"""Exclusive-ownership file descriptor handles."""

from __future__ import annotations

import os


class OwnedFd:
    """Owns one OS file descriptor and closes it exactly once.

    Handing the descriptor to another owner goes through ``transfer`` or
    ``release``, which leave this handle empty so it can never double-close.
    """

    __slots__ = ("_fd",)

    def __init__(self, fd: int) -> None:
        self._fd = fd

    @property
    def closed(self) -> bool:
        return self._fd < 0

    def fileno(self) -> int:
        if self._fd < 0:
            raise ValueError("I/O operation on closed descriptor")
        return self._fd

    def release(self) -> int:
        """Give up ownership and return the raw descriptor."""
        fd, self._fd = self._fd, -1
        return fd

    def transfer(self) -> "OwnedFd":
        """Move ownership into a new handle, emptying this one."""
        return OwnedFd(self.release())

    def close(self) -> None:
        if self._fd >= 0:
            fd, self._fd = self._fd, -1
            os.close(fd)

    def __enter__(self) -> "OwnedFd":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except OSError:
            pass

    def __repr__(self) -> str:
        return f"OwnedFd({self._fd})" if self._fd >= 0 else "OwnedFd(closed)"


def make_pipe() -> tuple[OwnedFd, OwnedFd]:
    """Create a pipe whose ends are not inherited across exec.

    Returns:
        ``(read_end, write_end)`` handles.
    """
    # os.pipe() descriptors are non-inheritable (close-on-exec) already
    read_fd, write_fd = os.pipe()
    return OwnedFd(read_fd), OwnedFd(write_fd)
