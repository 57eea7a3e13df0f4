"""Compiling Go packages and test binaries for use in process tests.

The binaries are placed in a private temporary directory. Call
cleanup_build_artifacts() once the tests are done to remove them.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import tempfile
import threading
from collections.abc import Iterable, Mapping
from typing import Union

Environment = Union[Iterable[str], Mapping[str, str], None]

_lock = threading.Lock()
_tmp_dir = ""


class BuildError(Exception):
    """A package could not be fetched or compiled."""


def build(package_path: str, *args: str) -> str:
    """Compile package_path with `go build`; returns the binary's path.

    The GOPATH of the environment is used, or the Go default when unset.
    Extra args are passed on to `go build`.
    """
    return _do_build(_default_gopath(), package_path, None, args)


def build_with_environment(package_path: str, env: Environment, *args: str) -> str:
    """Like build(), with env ("KEY=value" entries or a mapping) set for the build."""
    return _do_build(_default_gopath(), package_path, env, args)


def build_in(gopath: str, package_path: str, *args: str) -> str:
    """Like build(), with a custom GOPATH."""
    return _do_build(gopath, package_path, None, args)


def compile_test(package_path: str, *args: str) -> str:
    """Compile the tests of package_path with `go test -c`; returns the binary's path."""
    return _do_compile_test(_default_gopath(), package_path, None, args)


def get_and_compile_test(package_path: str, *args: str) -> str:
    """Like compile_test(), but runs `go get -t` on the package first."""
    gopath = _default_gopath()
    _get_for_test(gopath, package_path, None)
    return _do_compile_test(gopath, package_path, None, args)


def compile_test_with_environment(package_path: str, env: Environment, *args: str) -> str:
    """Like compile_test(), with env set for the build."""
    return _do_compile_test(_default_gopath(), package_path, env, args)


def get_and_compile_test_with_environment(
    package_path: str, env: Environment, *args: str
) -> str:
    """Like get_and_compile_test(), with env set for the fetch and the build."""
    gopath = _default_gopath()
    _get_for_test(gopath, package_path, env)
    return _do_compile_test(gopath, package_path, env, args)


def compile_test_in(gopath: str, package_path: str, *args: str) -> str:
    """Like compile_test(), with a custom GOPATH."""
    return _do_compile_test(gopath, package_path, None, args)


def get_and_compile_test_in(gopath: str, package_path: str, *args: str) -> str:
    """Like get_and_compile_test(), with a custom GOPATH."""
    _get_for_test(gopath, package_path, None)
    return _do_compile_test(gopath, package_path, None, args)


def cleanup_build_artifacts() -> None:
    """Remove every binary compiled so far."""
    global _tmp_dir
    with _lock:
        if _tmp_dir:
            shutil.rmtree(_tmp_dir, ignore_errors=True)
            _tmp_dir = ""


def _default_gopath() -> str:
    gopath = os.environ.get("GOPATH")
    if gopath:
        return gopath
    home = os.path.expanduser("~")
    if home == "~":
        return ""
    return os.path.join(home, "go")


def _do_build(gopath: str, package_path: str, env: Environment, args: Iterable[str]) -> str:
    executable = _new_executable_path(gopath, package_path)
    command = ["go", "build", *args, "-o", executable, package_path]
    _run(command, _environment(gopath, env), None, "build", package_path)
    return executable


def _do_compile_test(
    gopath: str, package_path: str, env: Environment, args: Iterable[str]
) -> str:
    executable = _new_executable_path(gopath, package_path)
    command = ["go", "test", "-c", *args, "-o", executable, package_path]
    _run(command, _environment(gopath, env), None, "build", package_path)
    return executable


def _is_local_package(package_path: str) -> bool:
    return package_path.startswith(".")


def _get_for_test(gopath: str, package_path: str, env: Environment) -> None:
    if _is_local_package(package_path):
        return
    command = ["go", "get", "-t", package_path]
    _run(command, _environment(gopath, env), gopath, "get", package_path)


def _run(
    command: list[str],
    env: dict[str, str],
    cwd: str | None,
    action: str,
    package_path: str,
) -> None:
    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            env=env,
            cwd=cwd,
            check=False,
        )
    except OSError as exc:
        raise BuildError(
            f"Failed to {action} {package_path}:\n\nError:\n{exc}\n\nOutput:\n"
        ) from exc
    if completed.returncode != 0:
        output = (completed.stdout or b"").decode("utf-8", errors="replace")
        raise BuildError(
            f"Failed to {action} {package_path}:\n\nError:\n"
            f"exit status {completed.returncode}\n\nOutput:\n{output}"
        )


def _environment(gopath: str, extra: Environment) -> dict[str, str]:
    environ = {key: value for key, value in os.environ.items() if key != "GOPATH"}
    environ["GOPATH"] = gopath
    if extra is None:
        return environ
    if isinstance(extra, Mapping):
        environ.update(extra)
        return environ
    for entry in extra:
        key, separator, value = entry.partition("=")
        if not separator:
            raise ValueError(f"environment entry must have the form KEY=value: {entry!r}")
        environ[key] = value
    return environ


def _base_name(package_path: str) -> str:
    stripped = package_path.rstrip("/")
    if not package_path:
        return "."
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _new_executable_path(gopath: str, package_path: str) -> str:
    directory = _temporary_directory()
    if not gopath:
        raise BuildError("$GOPATH not provided when building " + package_path)
    executable = os.path.join(directory, _base_name(package_path))
    if sys.platform.startswith("win"):
        executable += ".exe"
    return executable


def _temporary_directory() -> str:
    global _tmp_dir
    with _lock:
        if not _tmp_dir:
            _tmp_dir = tempfile.mkdtemp(prefix="gexec_artifacts")
        return tempfile.mkdtemp(dir=_tmp_dir, prefix="g")