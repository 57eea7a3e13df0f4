"""A writer that puts a prefix at the start of every line."""

from __future__ import annotations

import threading
from typing import Any


class PrefixedWriter:
    """Wraps a writer and emits prefix at the beginning of each new line.

    Useful to tell apart the output of several processes logged to one place.
    """

    def __init__(self, prefix: str | bytes, writer: Any) -> None:
        self.prefix = prefix.encode() if isinstance(prefix, str) else bytes(prefix)
        self.writer = writer
        self._lock = threading.Lock()
        self._at_start_of_line = True

    def write(self, data: bytes) -> int:
        """Write data with prefixes inserted; returns len(data)."""
        data = bytes(data)
        with self._lock:
            out = bytearray()
            for byte in data:
                if self._at_start_of_line:
                    out += self.prefix
                out.append(byte)
                self._at_start_of_line = byte == ord("\n")
            self.writer.write(bytes(out))
        return len(data)