"""Named logging endpoints that write escaped, line-oriented entries."""

from __future__ import annotations

import sys
import threading
from typing import BinaryIO

_DELIMITER = b" :: "
_lock = threading.Lock()
_writer: BinaryIO | None = None


def set_log_writer(writer: BinaryIO | None) -> BinaryIO | None:
    """Send all log entries to ``writer``; ``None`` restores standard output.

    Returns the writer that was configured before, or ``None`` if the default
    was in use.
    """
    global _writer
    with _lock:
        previous = _writer
        _writer = writer
    return previous


def get_log_writer() -> BinaryIO:
    """Return the binary stream that log entries are written to."""
    with _lock:
        return _current_writer()


def _current_writer() -> BinaryIO:
    return _writer if _writer is not None else sys.stdout.buffer


class LogEndpoint:
    """A logging endpoint, identified only by its name."""

    def __init__(self, name: bytes | str) -> None:
        if isinstance(name, str):
            name = name.encode("utf-8")
        self._name = bytes(name)

    @property
    def name(self) -> bytes:
        return self._name

    def write_entry(self, msg: bytes) -> None:
        """Write one log entry.

        The entry is prefixed with the endpoint name, one trailing newline is
        dropped, interior newlines become a literal ``\\n`` and the entry ends
        with a newline. Empty messages are not written. The entry is written
        to the log writer in one call while holding the writer lock.
        """
        msg = bytes(msg)
        if msg.endswith(b"\n"):
            msg = msg[:-1]
        if not msg:
            return
        entry = self._name + _DELIMITER + msg.replace(b"\n", b"\\n") + b"\n"
        with _lock:
            _current_writer().write(entry)

    def write(self, buf: bytes) -> int:
        """Write ``buf`` as one entry and return the number of bytes consumed."""
        self.write_entry(buf)
        return len(buf)

    def flush(self) -> None:
        """Flush the shared log writer."""
        with _lock:
            _current_writer().flush()

    def __repr__(self) -> str:
        return f"LogEndpoint({self._name!r})"