"""The exited() matcher, which checks whether a process has exited."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from gomega.format import format_object, message
from gomega.session import Session


@runtime_checkable
class Exiter(Protocol):
    """Anything that reports an exit code, -1 while still running."""

    def exit_code(self) -> int: ...


class ExitMatcher:
    """Matches an Exiter that has exited, optionally with a given exit code.

    An expected code of -1 accepts any exit code.
    """

    def __init__(self, expected_code: int = -1) -> None:
        self.expected_code = expected_code
        self.actual_exit_code = -1

    def match(self, actual: Any) -> bool:
        """Check actual's exit code; raises TypeError if actual is no Exiter."""
        if not isinstance(actual, Exiter):
            raise TypeError(
                "Exit must be passed an Exiter (missing method exit_code()) Got:\n"
                + format_object(actual, 1)
            )
        self.actual_exit_code = actual.exit_code()
        if self.actual_exit_code == -1:
            return False
        if self.expected_code == -1:
            return True
        return self.expected_code == self.actual_exit_code

    def failure_message(self, actual: Any) -> str:
        if self.actual_exit_code == -1:
            return "Expected process to exit.  It did not."
        return message(self.actual_exit_code, "to match exit code:", self.expected_code)

    def negated_failure_message(self, actual: Any) -> str:
        if self.actual_exit_code == -1:
            return "you really shouldn't be able to see this!"
        if self.expected_code == -1:
            return "Expected process not to exit.  It did."
        return message(self.actual_exit_code, "not to match exit code:", self.expected_code)

    def match_may_change_in_the_future(self, actual: Any) -> bool:
        """False once a session has exited, so polling can stop early."""
        if isinstance(actual, Session):
            return actual.exit_code() == -1
        return True


def exited(*args: int) -> ExitMatcher:
    """A matcher for exited processes; an optional first argument is the exit code."""
    return ExitMatcher(args[0] if args else -1)