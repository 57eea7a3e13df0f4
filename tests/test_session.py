import signal
import sys
import time

import pytest

from gomega.buffer import Buffer
from gomega.say_matcher import say
from gomega.session import (
    SessionTimeout,
    interrupt_all,
    kill_all,
    kill_and_wait,
    signal_all,
    start,
    terminate_all,
    terminate_and_wait,
)

OUT_QUOTE = "We've done the impossible, and that makes us mighty."
ERR_QUOTE = "Ah, curse your sudden but inevitable betrayal!"

FIREFLY = """
import random, sys, time
quotes = [
    "Can we maybe vote on the whole murdering people issue?",
    "I swear by my pretty floral bonnet, I will end you.",
    "My work's illegal, but at least it's honest.",
]
print("We've done the impossible, and that makes us mighty.", flush=True)
print("Ah, curse your sudden but inevitable betrayal!", file=sys.stderr, flush=True)
index = random.randrange(len(quotes))
time.sleep(0.1)
print(quotes[index], flush=True)
sys.exit(int(sys.argv[1]) if len(sys.argv) == 2 else index)
"""

SLEEP = ["sleep", "10000000"]


def firefly(*args, out_writer=None, err_writer=None):
    return start([sys.executable, "-c", FIREFLY, *args], out_writer, err_writer)


def eventually_says(target, pattern, timeout=5.0):
    matcher = say(pattern)
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if matcher.match(target):
            return True
        if not matcher.match_may_change_in_the_future(target):
            return False
        time.sleep(0.01)
    return False


def test_out_and_err_are_buffered():
    session = firefly()
    assert eventually_says(session.out, "We've done the impossible")
    assert eventually_says(session.err, "Ah, curse your sudden")
    session.wait(timeout=5)
    assert 0 <= session.exit_code() < 3


def test_detects_random_quote_and_matching_exit_code():
    session = firefly()
    session.wait(timeout=5)
    text = session.out.contents().decode()
    expected = {
        "Can we maybe vote": 0,
        "I swear by my pretty floral bonnet": 1,
        "My work's illegal": 2,
    }
    codes = [code for phrase, code in expected.items() if phrase in text]
    assert codes == [session.exit_code()]


def test_session_is_a_buffer_provider():
    session = firefly()
    assert session.buffer() is session.out
    assert eventually_says(session, "We've done the impossible")
    session.wait(timeout=5)


def test_exit_code_is_minus_one_until_exit():
    session = firefly()
    assert session.exit_code() == -1
    assert 0 <= session.wait(timeout=5).exit_code() < 3


def test_explicit_exit_code():
    assert firefly("2").wait(timeout=5).exit_code() == 2


def test_exited_event_is_set():
    session = firefly()
    assert session.exited.wait(5) is True
    assert session.exit_code() != -1


def test_wait_times_out():
    session = start(SLEEP)
    with pytest.raises(SessionTimeout):
        session.wait(timeout=0.05)
    assert session.kill().wait(timeout=5).exit_code() == 128 + 9


def test_kill():
    assert start(SLEEP).kill().wait(timeout=5).exit_code() == 128 + 9


def test_interrupt():
    assert start(SLEEP).interrupt().wait(timeout=5).exit_code() == 128 + 2


def test_terminate():
    assert start(SLEEP).terminate().wait(timeout=5).exit_code() == 128 + 15


def test_signal():
    session = start(SLEEP).signal(signal.SIGABRT)
    assert session.wait(timeout=5).exit_code() == 128 + 6


def test_signal_after_exit_is_ignored():
    session = firefly("0").wait(timeout=5)
    assert session.signal(signal.SIGTERM).exit_code() == 0


def test_failed_start_raises():
    with pytest.raises(FileNotFoundError):
        start(["agklsjdfas"])


def test_buffers_closed_on_exit():
    session = firefly()
    session.wait(timeout=5)
    assert session.out.closed() is True
    assert session.err.closed() is True
    assert say(OUT_QUOTE).match(session.out) is True


def test_say_short_circuits_after_exit():
    session = firefly().wait(timeout=5)
    started = time.monotonic()
    assert eventually_says(session, "blah blah blah blah blah") is False
    assert time.monotonic() - started < 0.5


def test_routes_to_writers_and_buffers():
    out_writer, err_writer = Buffer(), Buffer()
    session = firefly(out_writer=out_writer, err_writer=err_writer)
    session.wait(timeout=5)
    assert OUT_QUOTE.encode() in out_writer.contents()
    assert ERR_QUOTE.encode() in err_writer.contents()
    assert out_writer.contents() == session.out.contents()
    assert err_writer.contents() == session.err.contents()


@pytest.fixture
def tracked():
    kill_and_wait(5)
    yield
    kill_and_wait(5)


def three_sleepers():
    return [start(SLEEP) for _ in range(3)]


def test_kill_all(tracked):
    sessions = three_sleepers()
    kill_all()
    assert [s.wait(timeout=5).exit_code() for s in sessions] == [137, 137, 137]


def test_unstarted_sessions_are_not_tracked(tracked):
    with pytest.raises(FileNotFoundError):
        start(["does not exist", "10000000"])
    sessions = [start(SLEEP) for _ in range(2)]
    kill_all()
    assert [s.wait(timeout=5).exit_code() for s in sessions] == [137, 137]


def test_kill_and_wait(tracked):
    sessions = three_sleepers()
    kill_and_wait(5)
    assert [s.exit_code() for s in sessions] == [137, 137, 137]


def test_terminate_all(tracked):
    sessions = three_sleepers()
    terminate_all()
    assert [s.wait(timeout=5).exit_code() for s in sessions] == [143, 143, 143]


def test_terminate_and_wait(tracked):
    sessions = three_sleepers()
    terminate_and_wait(5)
    assert [s.exit_code() for s in sessions] == [143, 143, 143]


def test_signal_all(tracked):
    sessions = three_sleepers()
    signal_all(signal.SIGABRT)
    assert [s.wait(timeout=5).exit_code() for s in sessions] == [134, 134, 134]


def test_interrupt_all(tracked):
    sessions = three_sleepers()
    interrupt_all()
    assert [s.wait(timeout=5).exit_code() for s in sessions] == [130, 130, 130]