import re
import threading
import time

import pytest

from gomega.buffer import Buffer
from gomega.say_matcher import BufferProvider, say


class Speaker:
    def __init__(self, buffer):
        self._buffer = buffer

    def buffer(self):
        return self._buffer


def _eventually(predicate, timeout=1.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def buffer():
    buf = Buffer()
    buf.write(b"abc")
    return buf


def test_non_buffer_raises():
    with pytest.raises(TypeError, match="Buffer"):
        say("foo").match("foo")


def test_match_succeeds(buffer):
    assert say("abc").match(buffer) is True


def test_printf_formatting(buffer):
    matcher = say("a%sc", "b")
    assert matcher.expected == "abc"
    assert matcher.match(buffer) is True


def test_literal_percent(buffer):
    buffer.write(b"%")
    assert say("abc%").match(buffer) is True


def test_regular_expression(buffer):
    assert say("a.c").match(buffer) is True


def test_fast_forwards_buffer(buffer):
    buffer.write(b"def")
    assert say("abcd").match(buffer) is True
    assert say("ef").match(buffer) is True
    assert say("[a-z]").match(buffer) is False


def test_no_match_does_not_error(buffer):
    assert say("def").match(buffer) is False


def test_closed_buffer_stops_polling(buffer):
    buffer.close()
    matcher = say("def")
    assert matcher.match(buffer) is False
    assert matcher.match_may_change_in_the_future(buffer) is False
    assert say("abc").match(buffer) is True


def test_open_buffer_may_change(buffer):
    assert say("def").match_may_change_in_the_future(buffer) is True


def test_non_buffer_may_change():
    assert say("def").match_may_change_in_the_future("foo") is True


def test_positive_failure_reports_where_it_got_stuck(buffer):
    assert say("abc").match(buffer) is True
    buffer.write(b"def")
    matcher = say("abc")
    assert matcher.match(buffer) is False
    message = matcher.failure_message(buffer)
    assert "Got stuck at:" in message
    assert "def" in message
    assert message == "Got stuck at:\n    def\nWaiting for:\n    abc"


def test_negative_failure_reports_what_was_seen(buffer):
    matcher = say("abc")
    assert matcher.match(buffer) is True
    message = matcher.negated_failure_message(buffer)
    assert "Saw:" in message
    assert "Which matches the unexpected:" in message
    assert "abc" in message


def test_failed_match_does_not_fast_forward(buffer):
    assert say("def").match(buffer) is False
    assert say("abc").match(buffer) is True


def test_real_life_example(buffer):
    assert say("abc").match(buffer) is True
    timer = threading.Timer(0.01, buffer.write, args=(b"def",))
    timer.start()
    assert say("def").match(buffer) is False
    assert _eventually(lambda: say("def").match(buffer))
    timer.join()


def test_buffer_provider_is_used():
    speaker = Speaker(Buffer())
    assert isinstance(speaker, BufferProvider)
    assert say("abc").match(speaker) is False
    speaker.buffer().write(b"abc")
    assert say("abc").match(speaker) is True


def test_buffer_provider_closed_stops_polling():
    speaker = Speaker(Buffer())
    speaker.buffer().close()
    matcher = say("def")
    assert matcher.match(speaker) is False
    assert matcher.match_may_change_in_the_future(speaker) is False


def test_invalid_pattern_raises():
    with pytest.raises(re.error, match="unterminated"):
        say("(")