"""An in-memory buffer whose unread output can be matched incrementally.

A Buffer records everything written to it and keeps a read cursor. The
say() matcher and detect() only look at data after that cursor, and a
successful match moves the cursor to the end of the matched region.
"""

from __future__ import annotations

import re
import threading
from typing import Any, BinaryIO

_POLL_INTERVAL = 0.01
_COPY_CHUNK = 32 * 1024


class _Detection:
    """The outcome of Buffer.detect().

    It yields True once, when the pattern has been seen, and is closed
    after that or when the detection is cancelled.
    """

    def __init__(self, buffer: Buffer) -> None:
        self._buffer = buffer
        self._cond = threading.Condition()
        self._match_end: int | None = None
        self._closed = False

    @property
    def ready(self) -> bool:
        """True when a match is waiting to be received."""
        with self._cond:
            return self._match_end is not None and not self._closed

    @property
    def closed(self) -> bool:
        """True once the match has been received or the detection cancelled."""
        with self._cond:
            return self._closed

    def receive(self, timeout: float | None = None) -> bool:
        """Wait for the outcome.

        Returns True the first time a match is received, moving the buffer's
        read cursor past it unless that would rewind it, and False once the
        detection is closed. Raises TimeoutError if neither happens in time.
        """
        with self._cond:
            settled = self._cond.wait_for(
                lambda: self._closed or self._match_end is not None, timeout
            )
            if not settled:
                raise TimeoutError("nothing was detected in time")
            if self._closed:
                return False
            end = self._match_end
            self._closed = True
        self._buffer._advance_to(end)
        return True

    def _matched(self, end: int) -> None:
        with self._cond:
            self._match_end = end
            self._cond.notify_all()

    def _cancel(self) -> None:
        with self._cond:
            if self._match_end is None:
                self._closed = True
            self._cond.notify_all()


class Buffer:
    """A thread-safe writable buffer with a read cursor.

    It keeps every write in memory and is meant for test code only.
    """

    def __init__(self, data: bytes = b"") -> None:
        self._contents = bytearray(data)
        self._read_cursor = 0
        self._lock = threading.Lock()
        self._detect_cancel: threading.Event | None = None
        self._closed = False

    def write(self, data: bytes) -> int:
        """Append data; raises ValueError once the buffer is closed."""
        data = bytes(data)
        with self._lock:
            if self._closed:
                raise ValueError("attempt to write to closed buffer")
            self._contents.extend(data)
            return len(data)

    def read(self, size: int = -1) -> bytes:
        """Read up to size unread bytes, advancing the cursor.

        Returns b"" when nothing is left unread; raises ValueError once the
        buffer is closed.
        """
        with self._lock:
            if self._closed:
                raise ValueError("attempt to read from closed buffer")
            start = self._read_cursor
            end = len(self._contents) if size < 0 else min(len(self._contents), start + size)
            if end <= start:
                return b""
            self._read_cursor = end
            return bytes(self._contents[start:end])

    def clear(self) -> None:
        """Drop all contents and reset the cursor; raises ValueError once closed."""
        with self._lock:
            if self._closed:
                raise ValueError("attempt to clear closed buffer")
            self._contents = bytearray()
            self._read_cursor = 0

    def close(self) -> None:
        """Mark the buffer as no longer written to."""
        with self._lock:
            self._closed = True

    def closed(self) -> bool:
        """Whether the buffer has been closed."""
        with self._lock:
            return self._closed

    def contents(self) -> bytes:
        """Everything ever written to the buffer."""
        with self._lock:
            return bytes(self._contents)

    def detect(self, desired: str, *args: Any) -> _Detection:
        """Watch for unread data matching a regular expression.

        When args are given, the pattern is built with printf-style
        formatting. Call cancel_detects() when done with the detections.
        """
        pattern = re.compile((desired % args if args else desired).encode())
        with self._lock:
            if self._detect_cancel is None:
                self._detect_cancel = threading.Event()
            cancel = self._detect_cancel
        detection = _Detection(self)
        watcher = threading.Thread(
            target=self._watch, args=(pattern, detection, cancel), daemon=True
        )
        watcher.start()
        return detection

    def cancel_detects(self) -> None:
        """Close every pending detection and stop their watchers."""
        with self._lock:
            if self._detect_cancel is not None:
                self._detect_cancel.set()
                self._detect_cancel = None

    def _watch(self, pattern: re.Pattern[bytes], detection: _Detection, cancel: threading.Event) -> None:
        while not cancel.wait(_POLL_INTERVAL):
            with self._lock:
                cursor = self._read_cursor
                found = pattern.search(bytes(self._contents[cursor:]))
            if found is not None:
                detection._matched(cursor + found.end())
                return
        detection._cancel()

    def _advance_to(self, position: int) -> None:
        with self._lock:
            if position >= self._read_cursor:
                self._read_cursor = position

    def _did_say(self, pattern: re.Pattern[bytes]) -> tuple[bool, bytes]:
        with self._lock:
            unread = bytes(self._contents[self._read_cursor:])
            found = pattern.search(unread)
            if found is not None:
                self._read_cursor += found.end()
                return True, unread
            return False, unread


def buffer_with_bytes(data: bytes) -> Buffer:
    """A new buffer seeded with data, its cursor at the beginning."""
    return Buffer(data)


def buffer_reader(reader: BinaryIO) -> Buffer:
    """A new buffer filled in the background from reader, closed at its end."""
    buffer = Buffer()

    def copy() -> None:
        try:
            while True:
                chunk = reader.read(_COPY_CHUNK)
                if not chunk:
                    break
                buffer.write(chunk)
        except ValueError:
            pass
        finally:
            buffer.close()

    threading.Thread(target=copy, daemon=True).start()
    return buffer