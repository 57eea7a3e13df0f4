# gomega

Helpers for tests that need more than a plain `assert`. The package uses only
the standard library.

- **Readable failure messages.** `gomega.format` pretty-prints any object with
  its type and indentation. It also produces a truncated diff that points at
  the first difference between two long strings. Rendering is controlled by
  the module-level `gomega.format.settings` object, a `Settings` dataclass
  (maximum depth, maximum length, indent and so on). Objects that define a
  `gomega_string()` method (the `GomegaStringer` protocol) provide their own
  representation.
- **Incremental output buffers.** `gomega.buffer.Buffer` collects writes and
  keeps a read cursor. The `say` matcher in `gomega.say_matcher` checks the
  unread part of the buffer against a regular expression, and each match moves
  the cursor forward. `Buffer.detect()` watches for a pattern in the
  background. `buffer_with_bytes()` and `buffer_reader()` create pre-filled
  buffers and buffers fed from a stream.
- **Subprocess sessions.** `gomega.session.start` runs a command and sends its
  stdout and stderr into buffers. It also records the exit code: a process
  ended by a signal reports 128 plus the signal number. The `exited` matcher in
  `gomega.exit_matcher` checks that exit code. Every started session is
  tracked, and `kill_all()`, `terminate_all()`, `interrupt_all()`,
  `signal_all()`, `kill_and_wait()` and `terminate_and_wait()` act on all of
  them at once.
- **Building Go binaries.** `gomega.build` runs the `go` toolchain and places
  the compiled binaries in a private temporary directory. `build()` uses
  `go build` and `compile_test()` uses `go test -c`; there are variants with
  extra environment, a custom GOPATH, or a `go get -t` first. Failures raise
  `BuildError`. `cleanup_build_artifacts()` removes everything compiled so
  far. These functions need `go` on the `PATH`.
- **I/O helpers.** `gomega.io_wrappers` wraps closers, readers and writers so
  that a call which does not return in time raises `TimeoutOccurred`.
  `gomega.prefixed_writer.PrefixedWriter` puts a prefix at the start of every
  line it writes.

## Installation

```
pip install gomega
```

To run the package's own tests:

```
pip install "gomega[test]"
pytest
```

## Examples

Format values for a failure message:

```python
from gomega.format import message

print(message(3, "to equal", 4))
# Expected
#     <int>: 3
# to equal
#     <int>: 4
```

Match output as it arrives:

```python
from gomega.buffer import Buffer
from gomega.say_matcher import say

buf = Buffer()
buf.write(b"hello world")
assert say("hello").match(buf)
assert not say("hello").match(buf)   # the cursor has moved past "hello"
assert say("wor.d").match(buf)
```

Wait for a pattern in the background:

```python
detection = buf.detect("done")
buf.write(b" done")
assert detection.receive(timeout=1.0)
buf.cancel_detects()
```

Run a process and check its exit code:

```python
from gomega.session import start
from gomega.exit_matcher import exited
from gomega.say_matcher import say

session = start(["echo", "hi"])
session.wait(5, 0.01)          # raises SessionTimeout if it does not exit
assert exited(0).match(session)
assert say("hi").match(session)
```

Prefix each line of output:

```python
import io
from gomega.prefixed_writer import PrefixedWriter

out = io.BytesIO()
writer = PrefixedWriter("[cmd] ", out)
writer.write(b"one\ntwo\n")
assert out.getvalue() == b"[cmd] one\n[cmd] two\n"
```

Give up on a slow reader:

```python
from gomega.io_wrappers import TimeoutOccurred, timeout_reader

reader = timeout_reader(some_stream, 0.5)
try:
    data = reader.read(1024)
except TimeoutOccurred:
    ...
```

## What it does not do

The matchers are plain objects. Each one has `match()`, `failure_message()`,
`negated_failure_message()` and `match_may_change_in_the_future()` methods.
The package does not provide an assertion runner, and it does not retry a
matcher until it passes; your tests call these methods themselves.

There is no HTTP test server, and there are no request-verifying handlers.