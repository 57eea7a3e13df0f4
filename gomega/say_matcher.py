"""The say() matcher, which matches the unread output of a Buffer."""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable

from gomega.buffer import Buffer
from gomega.format import format_object, indent_string


@runtime_checkable
class BufferProvider(Protocol):
    """Objects that expose a Buffer for say() to operate on."""

    def buffer(self) -> Buffer: ...


def _buffer_of(actual: Any) -> Buffer | None:
    if isinstance(actual, Buffer):
        return actual
    if isinstance(actual, BufferProvider):
        return actual.buffer()
    return None


class SayMatcher:
    """Matches when the unread part of a buffer matches a regular expression.

    A successful match moves the buffer's read cursor past the match.
    """

    def __init__(self, expected: str) -> None:
        self.expected = expected
        self._pattern = re.compile(expected.encode())
        self._received = b""

    def match(self, actual: Any) -> bool:
        """Match against actual's unread output; raises TypeError for non-buffers."""
        buffer = _buffer_of(actual)
        if buffer is None:
            raise TypeError(
                "Say must be passed a Buffer or BufferProvider.  Got:\n"
                + format_object(actual, 1)
            )
        did_say, self._received = buffer._did_say(self._pattern)
        return did_say

    def failure_message(self, actual: Any) -> str:
        return (
            f"Got stuck at:\n{indent_string(self._received_text(), 1)}\n"
            f"Waiting for:\n{indent_string(self.expected, 1)}"
        )

    def negated_failure_message(self, actual: Any) -> str:
        return (
            f"Saw:\n{indent_string(self._received_text(), 1)}\n"
            f"Which matches the unexpected:\n{indent_string(self.expected, 1)}"
        )

    def match_may_change_in_the_future(self, actual: Any) -> bool:
        """False once the buffer is closed, so polling can stop early."""
        buffer = _buffer_of(actual)
        if buffer is None:
            return True
        return not buffer.closed()

    def _received_text(self) -> str:
        return self._received.decode("utf-8", errors="replace")


def say(expected: str, *args: Any) -> SayMatcher:
    """A matcher for buffers; with args, expected is printf-style formatted."""
    if args:
        expected = expected % args
    return SayMatcher(expected)