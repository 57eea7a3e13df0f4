"""Running external processes and watching their output and exit.

A Session starts a command, pipes its stdout and stderr into Buffers
(and optionally into further writers) and records its exit code. Every
started session is tracked, so all of them can be signalled at once.
"""

from __future__ import annotations

import signal as _signal
import subprocess
import threading
import time
from collections.abc import Sequence
from typing import Any

from gomega.buffer import Buffer

_CHUNK = 32 * 1024
_SIGKILL = getattr(_signal, "SIGKILL", _signal.SIGTERM)


class SessionTimeout(TimeoutError):
    """The process did not exit within the allotted time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"process did not exit within {timeout} seconds")
        self.timeout = timeout


class Session:
    """A running command whose output lands in the out and err buffers.

    exit_code() is -1 until the process exits; a process ended by a
    signal reports 128 plus the signal number. When the process exits,
    both buffers are closed and the exited event is set.
    """

    def __init__(self, command: Sequence[str] | str) -> None:
        self.command = command
        self.process: subprocess.Popen[bytes] | None = None
        self.out = Buffer()
        self.err = Buffer()
        self.exited = threading.Event()
        self._lock = threading.Lock()
        self._exit_code = -1

    def buffer(self) -> Buffer:
        """The stdout buffer, so a session can be given to say()."""
        return self.out

    def exit_code(self) -> int:
        """The exit code, or -1 while the process is still running."""
        with self._lock:
            return self._exit_code

    def wait(self, timeout: float = 1.0, polling_interval: float = 0.01) -> Session:
        """Wait for the process to exit; raises SessionTimeout if it does not."""
        deadline = time.monotonic() + timeout
        while not self.exited.wait(polling_interval):
            if time.monotonic() >= deadline:
                raise SessionTimeout(timeout)
        return self

    def kill(self) -> Session:
        """Send SIGKILL without waiting for the process to exit."""
        return self.signal(_SIGKILL)

    def interrupt(self) -> Session:
        """Send SIGINT without waiting for the process to exit."""
        return self.signal(_signal.SIGINT)

    def terminate(self) -> Session:
        """Send SIGTERM without waiting for the process to exit."""
        return self.signal(_signal.SIGTERM)

    def signal(self, sig: int) -> Session:
        """Send sig to the process unless it has already exited."""
        if self._process_is_alive():
            try:
                self.process.send_signal(sig)
            except ProcessLookupError:
                pass
        return self

    def _process_is_alive(self) -> bool:
        return self.exit_code() == -1 and self.process is not None

    def _start(self, out_writer: Any, err_writer: Any) -> None:
        self.process = subprocess.Popen(
            self.command, stdout=subprocess.PIPE, stderr=subprocess.PIPE
        )
        pumps = [
            threading.Thread(
                target=_pump, args=(self.process.stdout, self.out, out_writer), daemon=True
            ),
            threading.Thread(
                target=_pump, args=(self.process.stderr, self.err, err_writer), daemon=True
            ),
        ]
        for pump in pumps:
            pump.start()
        threading.Thread(target=self._monitor_for_exit, args=(pumps,), daemon=True).start()

    def _monitor_for_exit(self, pumps: list[threading.Thread]) -> None:
        returncode = self.process.wait()
        for pump in pumps:
            pump.join()
        with self._lock:
            self.out.close()
            self.err.close()
            self._exit_code = 128 - returncode if returncode < 0 else returncode
        self.exited.set()


def _pump(pipe: Any, buffer: Buffer, writer: Any) -> None:
    with pipe:
        while chunk := pipe.read1(_CHUNK):
            buffer.write(chunk)
            if writer is not None:
                writer.write(chunk)


_tracked_sessions: list[Session] = []
_tracked_lock = threading.Lock()


def start(command: Sequence[str] | str, out_writer: Any = None, err_writer: Any = None) -> Session:
    """Start command and wrap it in a tracked Session.

    Output also goes to out_writer and err_writer when they are given.
    Raises OSError (such as FileNotFoundError) if the command cannot start.
    """
    session = Session(command)
    session._start(out_writer, err_writer)
    with _tracked_lock:
        _tracked_sessions.append(session)
    return session


def kill_and_wait(timeout: float = 1.0) -> None:
    """Kill every tracked session, wait for each, and stop tracking them."""
    global _tracked_sessions
    with _tracked_lock:
        for session in _tracked_sessions:
            session.kill().wait(timeout)
        _tracked_sessions = []


def terminate_and_wait(timeout: float = 1.0) -> None:
    """Terminate every tracked session and wait for each to exit."""
    with _tracked_lock:
        for session in _tracked_sessions:
            session.terminate().wait(timeout)


def kill_all() -> None:
    """Send SIGKILL to every tracked session without waiting."""
    with _tracked_lock:
        for session in _tracked_sessions:
            session.kill()


def terminate_all() -> None:
    """Send SIGTERM to every tracked session without waiting."""
    with _tracked_lock:
        for session in _tracked_sessions:
            session.terminate()


def signal_all(sig: int) -> None:
    """Send sig to every tracked session without waiting."""
    with _tracked_lock:
        for session in _tracked_sessions:
            session.signal(sig)


def interrupt_all() -> None:
    """Send SIGINT to every tracked session without waiting."""
    with _tracked_lock:
        for session in _tracked_sessions:
            session.interrupt()