"""Closers, readers and writers that give up after a timeout."""

from __future__ import annotations

import threading
from typing import Any, Callable


class TimeoutOccurred(TimeoutError):
    """The wrapped call did not return within the allotted time."""

    def __init__(self) -> None:
        super().__init__("timeout occurred")


class TimeoutWrapper:
    """Wraps a closer, reader or writer; each call gets at most timeout seconds."""

    def __init__(
        self,
        timeout: float,
        *,
        closer: Any = None,
        reader: Any = None,
        writer: Any = None,
    ) -> None:
        self.timeout = timeout
        self._closer = closer
        self._reader = reader
        self._writer = writer

    def close(self) -> Any:
        """Close the wrapped closer, or raise TimeoutOccurred."""
        return self._run(self._require(self._closer, "closer").close)

    def read(self, size: int = -1) -> bytes:
        """Read from the wrapped reader, or raise TimeoutOccurred."""
        return self._run(self._require(self._reader, "reader").read, size)

    def write(self, data: bytes) -> int:
        """Write to the wrapped writer, or raise TimeoutOccurred."""
        return self._run(self._require(self._writer, "writer").write, data)

    @staticmethod
    def _require(target: Any, role: str) -> Any:
        if target is None:
            raise TypeError(f"no {role} is wrapped")
        return target

    def _run(self, call: Callable[..., Any], *args: Any) -> Any:
        outcome: dict[str, Any] = {}
        done = threading.Event()

        def target() -> None:
            try:
                outcome["value"] = call(*args)
            except BaseException as exc:  # re-raised in the caller's thread
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=target, daemon=True).start()
        if not done.wait(self.timeout):
            raise TimeoutOccurred()
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("value")


def timeout_closer(closer: Any, timeout: float) -> TimeoutWrapper:
    """Wrap closer so close() raises TimeoutOccurred after timeout seconds."""
    return TimeoutWrapper(timeout, closer=closer)


def timeout_reader(reader: Any, timeout: float) -> TimeoutWrapper:
    """Wrap reader so read() raises TimeoutOccurred after timeout seconds."""
    return TimeoutWrapper(timeout, reader=reader)


def timeout_writer(writer: Any, timeout: float) -> TimeoutWrapper:
    """Wrap writer so write() raises TimeoutOccurred after timeout seconds."""
    return TimeoutWrapper(timeout, writer=writer)