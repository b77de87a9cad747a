"""Tests for Orchestrator."""

import os
import signal
import time

import pytest

from forkpath.core.errors import ConfigurationError, TransportOverflowError
from forkpath.core.outcome import EXIT_ERROR, EXIT_FAILURE, EXIT_SUCCESS, Outcome
from forkpath.observability import ObservabilityHub, MemorySink, TraceLevel
from forkpath.process import Orchestrator, is_supported

pytestmark = pytest.mark.skipif(
    not hasattr(os, "fork"), reason="requires os.fork"
)


# =============================================================================
# Work Functions
# =============================================================================


def send_ok(channel) -> bool:
    channel.send("ok")
    return True


def send_value(channel, value) -> bool:
    channel.send(value)
    return True


def return_value(channel, result: bool) -> bool:
    return result


def staggered(channel, index: int, count: int) -> bool:
    """Later workers finish first."""
    time.sleep((count - index) * 0.05)
    channel.send(f"worker-{index}")
    return True


def send_index(channel, index: int) -> bool:
    channel.send(str(index))
    return True


def fail_on(channel, index: int, bad: int) -> bool:
    channel.send(index)
    return index != bad


def send_sized(channel, size: int) -> bool:
    channel.send("x" * size)
    return True


def send_many(channel, count: int) -> bool:
    for i in range(count):
        channel.send(f"frame-{i}")
    return True


def send_nothing(channel) -> bool:
    return True


def send_twice(channel) -> bool:
    channel.send("first")
    channel.send("second")
    return True


def raise_error(channel) -> bool:
    raise RuntimeError("boom")


def kill_self(channel) -> bool:
    os.kill(os.getpid(), signal.SIGKILL)
    return True


def no_annotation(channel):
    return True


def wrong_annotation(channel) -> int:
    return 0


# =============================================================================
# Construction Tests
# =============================================================================


class TestConstruction:
    """Tests for Orchestrator construction and configuration."""

    def test_defaults(self):
        orchestrator = Orchestrator(send_ok)
        assert orchestrator.async_mode is True
        assert orchestrator.debug is False
        assert orchestrator.message_buffer == 1024
        assert orchestrator.pids == []
        assert not orchestrator.has_messages()

    def test_missing_return_annotation(self):
        with pytest.raises(ConfigurationError, match="bool"):
            Orchestrator(no_annotation)

    def test_wrong_return_annotation(self):
        with pytest.raises(ConfigurationError):
            Orchestrator(wrong_annotation)

    def test_lambda_rejected(self):
        with pytest.raises(ConfigurationError):
            Orchestrator(lambda channel: True)

    def test_not_callable(self):
        with pytest.raises(ConfigurationError, match="callable"):
            Orchestrator("send_ok")

    def test_string_annotation_accepted(self):
        def postponed(channel) -> "bool":
            return True

        Orchestrator(postponed)

    def test_unsupported_platform(self, monkeypatch):
        monkeypatch.delattr(os, "fork")
        assert not is_supported()
        with pytest.raises(ConfigurationError, match="fork"):
            Orchestrator(send_ok)

    def test_setters_chain(self):
        orchestrator = Orchestrator(send_ok)
        assert orchestrator.set_debug(True).set_message_buffer(64) is orchestrator
        assert orchestrator.debug is True
        assert orchestrator.message_buffer == 64

    @pytest.mark.parametrize("size", [0, -1, True, 1.5, "1024"])
    def test_invalid_message_buffer(self, size):
        with pytest.raises(ConfigurationError):
            Orchestrator(send_ok).set_message_buffer(size)

    def test_unpicklable_arguments(self):
        orchestrator = Orchestrator(send_value, async_mode=False)
        with pytest.raises(ConfigurationError, match="picklable"):
            orchestrator.run(lambda: None)


# =============================================================================
# Synchronous Tests
# =============================================================================


class TestSync:
    """Tests for synchronous runs."""

    def test_send_ok(self):
        """A sync run returns the work result and collects its message."""
        orchestrator = Orchestrator(send_ok, async_mode=False)
        assert orchestrator.run() is True
        assert list(orchestrator.get_messages()) == ["ok"]
        assert orchestrator.pid is None

    def test_returns_work_result(self):
        orchestrator = Orchestrator(return_value, async_mode=False)
        assert orchestrator.run(True) is True
        assert orchestrator.results[0].exit_code == EXIT_SUCCESS
        assert orchestrator.run(False) is False
        assert orchestrator.results[0].exit_code == EXIT_FAILURE
        assert not orchestrator.results[0].crashed

    def test_signal_is_failure(self):
        orchestrator = Orchestrator(kill_self, async_mode=False)
        assert orchestrator.run() is False
        result = orchestrator.results[0]
        assert result.signal == signal.SIGKILL
        assert result.exit_code is None
        assert result.outcome is Outcome.FAILURE
        assert result.crashed

    def test_exception_is_failure(self):
        orchestrator = Orchestrator(raise_error, async_mode=False)
        assert orchestrator.run() is False
        assert orchestrator.results[0].exit_code == EXIT_ERROR
        assert orchestrator.results[0].crashed

    def test_overflow_in_worker(self):
        """An oversized message aborts the worker before it reports success."""
        orchestrator = Orchestrator(send_value, async_mode=False)
        orchestrator.set_message_buffer(16)
        assert orchestrator.run("x" * 30) is False
        assert not orchestrator.has_messages()
        assert orchestrator.results[0].exit_code == EXIT_ERROR

    def test_messages_accumulate_until_cleared(self):
        orchestrator = Orchestrator(send_value, async_mode=False)
        orchestrator.run("a")
        orchestrator.run("b")
        assert list(orchestrator.get_messages()) == ["a", "b"]

        orchestrator.clear_messages()
        assert not orchestrator.has_messages()
        assert list(orchestrator.get_messages()) == []

        orchestrator.run("c")
        assert list(orchestrator.get_messages()) == ["c"]

    def test_null_message_collected(self):
        orchestrator = Orchestrator(send_value, async_mode=False)
        orchestrator.run(None)
        assert orchestrator.has_messages()
        assert list(orchestrator.get_messages()) == [None]
        assert orchestrator.results[0].message_received

    def test_no_message(self):
        orchestrator = Orchestrator(send_nothing, async_mode=False)
        assert orchestrator.run() is True
        assert not orchestrator.has_messages()
        assert not orchestrator.results[0].message_received

    def test_at_most_one_message_per_worker(self):
        orchestrator = Orchestrator(send_twice, async_mode=False)
        orchestrator.run()
        assert list(orchestrator.get_messages()) == ["first"]

    def test_structured_message(self):
        orchestrator = Orchestrator(send_value, async_mode=False)
        orchestrator.run({"rows": [1, 2, 3], "done": True})
        assert list(orchestrator.get_messages()) == [{"rows": [1, 2, 3], "done": True}]

    def test_wait_without_run(self):
        with pytest.raises(ConfigurationError):
            Orchestrator(send_ok, async_mode=False).wait()

    def test_wait_twice(self):
        orchestrator = Orchestrator(send_ok, async_mode=False)
        orchestrator.run()
        with pytest.raises(ConfigurationError):
            orchestrator.wait()

    def test_wait_all_in_sync_mode(self):
        orchestrator = Orchestrator(send_ok, async_mode=False)
        orchestrator.run()
        with pytest.raises(ConfigurationError, match="asynchronous"):
            orchestrator.wait_all()

    def test_get_messages_in_worker(self):
        """A worker's copy of the orchestrator refuses get_messages()."""
        holder = {}

        def peek(channel) -> bool:
            list(holder["orchestrator"].get_messages())
            return True

        orchestrator = Orchestrator(peek, async_mode=False)
        holder["orchestrator"] = orchestrator
        assert orchestrator.run() is False
        assert orchestrator.results[0].exit_code == EXIT_ERROR
        assert not orchestrator.is_worker


# =============================================================================
# Asynchronous Tests
# =============================================================================


class TestAsync:
    """Tests for asynchronous runs."""

    def test_run_returns_immediately(self):
        orchestrator = Orchestrator(staggered)
        start = time.perf_counter()
        assert orchestrator.run(0, 4) is True
        assert time.perf_counter() - start < 0.2
        assert len(orchestrator.pids) == 1
        assert orchestrator.wait_all() is True

    def test_messages_in_launch_order(self):
        """Later-launched workers finish first, messages stay in launch order."""
        count = 5
        orchestrator = Orchestrator(staggered)
        for i in range(count):
            orchestrator.run(i, count)
        pids = orchestrator.pids

        assert orchestrator.wait_all() is True
        assert list(orchestrator.get_messages()) == [
            f"worker-{i}" for i in range(count)
        ]
        assert [r.pid for r in orchestrator.results] == pids

    def test_numeric_string_indexes(self):
        """Index strings come back as numbers, still in launch order."""
        orchestrator = Orchestrator(send_index)
        for i in range(4):
            orchestrator.run(i)
        assert orchestrator.wait_all() is True
        assert list(orchestrator.get_messages()) == [0, 1, 2, 3]

    def test_one_failure_fails_all(self):
        orchestrator = Orchestrator(fail_on)
        for i in range(4):
            orchestrator.run(i, 2)
        assert orchestrator.wait_all() is False
        assert [r.succeeded for r in orchestrator.results] == [True, True, False, True]
        assert list(orchestrator.get_messages()) == [0, 1, 2, 3]

    def test_wait_all_clears_previous_messages(self):
        orchestrator = Orchestrator(send_value)
        orchestrator.add_message("stale")
        orchestrator.run("fresh")
        orchestrator.wait_all()
        assert list(orchestrator.get_messages()) == ["fresh"]

    def test_reuse_across_batches(self):
        orchestrator = Orchestrator(send_value)
        orchestrator.run("a")
        orchestrator.run("b")
        assert orchestrator.wait_all() is True
        assert orchestrator.pids == []

        orchestrator.run("c")
        assert orchestrator.wait_all() is True
        assert list(orchestrator.get_messages()) == ["c"]
        assert len(orchestrator.results) == 1

    def test_wait_all_with_nothing_tracked(self):
        assert Orchestrator(send_ok).wait_all() is True

    def test_wait_in_async_mode(self):
        orchestrator = Orchestrator(send_ok)
        orchestrator.run()
        with pytest.raises(ConfigurationError):
            orchestrator.wait()
        orchestrator.wait_all()

    def test_killed_worker(self):
        orchestrator = Orchestrator(kill_self)
        orchestrator.run()
        assert orchestrator.wait_all() is False
        assert orchestrator.results[0].signal == signal.SIGKILL


# =============================================================================
# Debug Mode Tests
# =============================================================================


class TestDebug:
    """Tests for inline debug runs."""

    def test_runs_inline(self):
        orchestrator = Orchestrator(send_ok).set_debug(True)
        assert orchestrator.run() is True
        assert orchestrator.pids == []
        assert orchestrator.pid is None
        assert list(orchestrator.get_messages()) == ["ok"]

    def test_returns_work_result(self):
        orchestrator = Orchestrator(return_value, async_mode=False).set_debug(True)
        assert orchestrator.run(False) is False
        assert orchestrator.run(True) is True

    def test_result_coerced_to_bool(self):
        """A truthy or falsy non-bool result still yields a bool."""
        orchestrator = Orchestrator(return_value, async_mode=False).set_debug(True)
        assert orchestrator.run(None) is False
        assert orchestrator.run(1) is True
        assert orchestrator.run("") is False

    def test_messages_round_trip(self):
        """Debug sends go through the same encoding as real frames."""
        orchestrator = Orchestrator(send_value).set_debug(True)
        orchestrator.run(("a", 1))
        orchestrator.run("7")
        assert list(orchestrator.get_messages()) == [["a", 1], 7]

    def test_exceptions_surface(self):
        orchestrator = Orchestrator(raise_error).set_debug(True)
        with pytest.raises(RuntimeError, match="boom"):
            orchestrator.run()

    def test_overflow_surfaces(self):
        orchestrator = Orchestrator(send_value).set_debug(True).set_message_buffer(16)
        with pytest.raises(TransportOverflowError):
            orchestrator.run("x" * 30)

    def test_arguments_are_copied(self):
        """The work function gets its own copy of the arguments."""
        def mutate(channel, data) -> bool:
            data.append("changed")
            return True

        original = ["a"]
        Orchestrator(mutate).set_debug(True).run(original)
        assert original == ["a"]


# =============================================================================
# Observability Tests
# =============================================================================


class TestObservability:
    """Tests for records emitted by the orchestrator."""

    @pytest.fixture
    def hub_and_sink(self):
        hub = ObservabilityHub()
        sink = MemorySink()
        hub.configure(level=TraceLevel.VERBOSE, sinks=[sink])
        yield hub, sink
        hub.shutdown()

    def test_async_records(self, hub_and_sink):
        hub, sink = hub_and_sink
        orchestrator = Orchestrator(fail_on, observability_hub=hub)
        orchestrator.run(0, 1)
        orchestrator.run(1, 1)
        pids = orchestrator.pids
        orchestrator.wait_all()

        launches = sink.get_records("process_launch")
        exits = sink.get_records("process_exit")
        assert [r.pid for r in launches] == pids
        assert [r.pid for r in exits] == pids
        assert [r.success for r in exits] == [True, False]
        assert len(sink.get_records("message")) == 2

        summary = sink.get_records("run_summary")[-1]
        assert summary.mode == "async"
        assert summary.total == 2
        assert summary.failed == 1

    def test_debug_launch_record(self, hub_and_sink):
        hub, sink = hub_and_sink
        Orchestrator(send_ok, observability_hub=hub).set_debug(True).run()
        launch = sink.get_records("process_launch")[0]
        assert launch.pid == 0
        assert launch.mode == "debug"

    def test_disabled_hub_emits_nothing(self):
        hub = ObservabilityHub()
        sink = MemorySink()
        hub.add_sink(sink)
        orchestrator = Orchestrator(send_ok, async_mode=False, observability_hub=hub)
        orchestrator.run()
        assert len(sink) == 0


# =============================================================================
# Large Frame Tests
# =============================================================================


@pytest.fixture
def deadline():
    """Fail instead of hanging if a wait never returns."""
    def expired(signum, frame):
        raise TimeoutError("wait did not return")

    previous = signal.signal(signal.SIGALRM, expired)
    signal.alarm(20)
    yield
    signal.alarm(0)
    signal.signal(signal.SIGALRM, previous)


class TestLargeFrames:
    """Tests for frames larger than the socket buffer."""

    def test_sync_frame_larger_than_socket_buffer(self, deadline):
        orchestrator = Orchestrator(send_sized, async_mode=False)
        orchestrator.set_message_buffer(4_000_000)

        assert orchestrator.run(2_000_000) is True
        messages = list(orchestrator.get_messages())
        assert len(messages) == 1
        assert len(messages[0]) == 2_000_000

    def test_async_large_frames_in_launch_order(self, deadline):
        orchestrator = Orchestrator(send_sized).set_message_buffer(1_000_000)
        for size in (900_000, 10, 500_000):
            orchestrator.run(size)

        assert orchestrator.wait_all() is True
        assert [len(m) for m in orchestrator.get_messages()] == [900_000, 10, 500_000]

    def test_frames_after_the_first_are_dropped(self, deadline):
        """Later frames are drained so the worker can exit, then discarded."""
        orchestrator = Orchestrator(send_many, async_mode=False)
        orchestrator.set_message_buffer(300_000)

        assert orchestrator.run(5) is True
        messages = list(orchestrator.get_messages())
        assert messages == ["frame-0"]
        assert orchestrator.results[0].message_received


# =============================================================================
# File Descriptor Tests
# =============================================================================


class TestDescriptors:
    """Tests for socket ownership after a fork."""

    def test_launcher_releases_worker_side(self):
        orchestrator = Orchestrator(send_ok)
        orchestrator.run()
        channel = orchestrator._channels[orchestrator.pids[0]]

        assert channel.worker_transport.closed
        assert not channel.launcher_transport.closed
        assert orchestrator.wait_all() is True
        assert channel.closed
        assert list(orchestrator.get_messages()) == ["ok"]

    def test_many_async_runs_stay_within_descriptor_limit(self, deadline):
        """Each pending run holds a single descriptor in the launcher."""
        resource = pytest.importorskip("resource")
        soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
        limit = min(hard, 256)
        resource.setrlimit(resource.RLIMIT_NOFILE, (limit, hard))
        try:
            orchestrator = Orchestrator(send_index)
            count = 160
            for i in range(count):
                orchestrator.run(i)
            assert orchestrator.wait_all() is True
            assert list(orchestrator.get_messages()) == list(range(count))
        finally:
            resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))
