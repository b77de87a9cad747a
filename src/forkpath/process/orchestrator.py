"""Orchestrator - run a work function in forked worker processes.

Each run() forks one worker. The worker calls the work function with a
Channel as its first argument and reports success through its exit code.
The launcher collects at most one message per worker, reading the channel
while it waits for the worker to exit.

Modes:
    async (default): run() returns as soon as the worker is forked.
        wait_all() reaps every worker in launch order.
    sync: run() forks and immediately waits, returning the worker's result.
    debug: the work function runs inline in the calling process and sent
        messages appear in get_messages() straight away.

Architecture:
    run(*args) ──→ Channel ──fork──→ worker: work_fn(channel, *args) → exit 0/1
                      │
                      └── launcher: {pid → Channel} ──wait_all()──→ messages

Example:
    >>> from forkpath import Orchestrator
    >>>
    >>> def square(channel, n: int) -> bool:
    ...     channel.send(n * n)
    ...     return True
    >>>
    >>> orchestrator = Orchestrator(square)
    >>> for n in range(4):
    ...     orchestrator.run(n)
    >>> orchestrator.wait_all()
    True
    >>> list(orchestrator.get_messages())
    [0, 1, 4, 9]
"""

import inspect
import logging
import os
import pickle
import selectors
import socket
import sys
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from forkpath.core.errors import ConfigurationError
from forkpath.core.message import MessageType
from forkpath.core.outcome import EXIT_ERROR, Outcome, ProcessResult
from forkpath.observability import ObservabilityHub
from forkpath.observability.records import (
    MessageRecord,
    ProcessExitRecord,
    ProcessLaunchRecord,
    RunSummaryRecord,
)
from forkpath.process.channel import Channel
from forkpath.process.transport import DEFAULT_FRAME_SIZE

logger = logging.getLogger(__name__)

WorkFunction = Callable[..., bool]

_NO_MESSAGE = object()

# Seconds between exit checks while a worker keeps its channel open
_POLL_INTERVAL = 0.05


def is_supported() -> bool:
    """Check that the platform can fork and create socket pairs."""
    return hasattr(os, "fork") and hasattr(socket, "socketpair")


def check_work_function(work_fn: Any) -> None:
    """Validate the work function contract.

    The work function must be callable and declare ``-> bool``.

    Raises:
        ConfigurationError: If the contract is not met.
    """
    if not callable(work_fn):
        raise ConfigurationError(
            f"Work function must be callable, got {type(work_fn).__name__}"
        )
    try:
        signature = inspect.signature(work_fn)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Cannot inspect work function: {e}") from e

    returns = signature.return_annotation
    if returns is not bool and returns != "bool":
        raise ConfigurationError(
            "Work functions for forked processes must declare a bool return "
            "type to indicate success/failure"
        )


def _flush_std_streams() -> None:
    # Unflushed buffers would otherwise be written by both processes
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            try:
                stream.flush()
            except (OSError, ValueError):
                pass


class Orchestrator:
    """Launches a work function in worker processes and collects results.

    An orchestrator can be reused for any number of run() calls.

    Args:
        work_fn: Callable ``work_fn(channel, *args) -> bool``.
        async_mode: If True, run() does not block; use wait_all().
        observability_hub: Optional hub (uses the global one if None).

    Raises:
        ConfigurationError: If the platform cannot fork or the work function
            does not declare a bool return type.
    """

    def __init__(
        self,
        work_fn: WorkFunction,
        async_mode: bool = True,
        observability_hub: Optional[ObservabilityHub] = None,
    ):
        if not is_supported():
            raise ConfigurationError(
                "os.fork and socket.socketpair are required but not available "
                "on this platform"
            )
        check_work_function(work_fn)

        self._work_fn = work_fn
        self._async = async_mode
        self._hub = observability_hub or ObservabilityHub.get_instance()

        self._debug = False
        self._message_buffer = DEFAULT_FRAME_SIZE

        # Launch order is the iteration order of this dict
        self._channels: Dict[int, Channel] = {}
        self._pid: Optional[int] = None
        self._channel: Optional[Channel] = None
        self._is_worker = False

        self._messages: List[Any] = []
        self._results: List[ProcessResult] = []

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_debug(self, enabled: bool) -> "Orchestrator":
        """Run the work function inline instead of forking."""
        self._debug = bool(enabled)
        return self

    def set_message_buffer(self, size: int) -> "Orchestrator":
        """Set the frame size in bytes for channels created from now on.

        Raises:
            ConfigurationError: If size is not a positive integer.
        """
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ConfigurationError(
                f"Message buffer must be a positive integer, got {size!r}"
            )
        self._message_buffer = size
        return self

    @property
    def debug(self) -> bool:
        return self._debug

    @property
    def async_mode(self) -> bool:
        return self._async

    @property
    def message_buffer(self) -> int:
        return self._message_buffer

    @property
    def is_worker(self) -> bool:
        """True inside a forked worker's copy of the orchestrator."""
        return self._is_worker

    @property
    def pid(self) -> Optional[int]:
        """Process id of a synchronous run that has not been waited on."""
        return self._pid

    @property
    def pids(self) -> List[int]:
        """Process ids of tracked async workers, in launch order."""
        return list(self._channels)

    @property
    def results(self) -> List[ProcessResult]:
        """Per-process results of the last wait() or wait_all()."""
        return list(self._results)

    # ------------------------------------------------------------------
    # Launching
    # ------------------------------------------------------------------

    def run(self, *args: Any) -> bool:
        """Run the work function once.

        Args:
            *args: Arguments passed to the work function after the channel.
                They must be picklable; the worker receives its own copy.

        Returns:
            async: True once the worker has been launched.
            sync: True if the worker exited with code 0.
            debug: The work function's own result, as a bool.

        Raises:
            ConfigurationError: If the arguments cannot be pickled.
            TransportCreationError: If the channel cannot be created.
        """
        if self._is_worker:
            raise ConfigurationError("run cannot be called from a worker process")

        try:
            payload = pickle.dumps(args)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Work function arguments must be picklable: {e}") from e

        channel = Channel(self, self._message_buffer)

        if self._debug:
            return self._run_inline(channel, payload, len(args))

        _flush_std_streams()
        pid = os.fork()

        if pid == 0:
            self._run_worker(channel, payload)

        channel.release_worker_side()

        if self._async:
            self._channels[pid] = channel
            logger.info(f"Launched async worker {pid}")
            self._emit_launch(pid, "async", len(args))
            return True

        self._pid = pid
        self._channel = channel
        logger.debug(f"Launched sync worker {pid}")
        self._emit_launch(pid, "sync", len(args))
        return self.wait()

    def _run_inline(self, channel: Channel, payload: bytes, arg_count: int) -> bool:
        """Debug mode: call the work function in this process."""
        self._emit_launch(0, "debug", arg_count)
        try:
            return bool(self._work_fn(channel, *pickle.loads(payload)))
        finally:
            channel.close()

    def _run_worker(self, channel: Channel, payload: bytes) -> None:
        """Body of the forked worker. Never returns."""
        self._is_worker = True
        self._channels = {}
        self._messages = []

        code = EXIT_ERROR
        try:
            successful = self._work_fn(channel, *pickle.loads(payload))
            code = Outcome.from_bool(bool(successful)).exit_code
        except Exception:
            logger.exception(f"Work function failed in worker {os.getpid()}")
        finally:
            _flush_std_streams()
            os._exit(code)

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    def wait(self) -> bool:
        """Wait for the worker of a synchronous run.

        Drains at most one message into the message list and closes the
        worker's channel.

        Returns:
            True if the worker exited normally with code 0.

        Raises:
            ConfigurationError: If not called by the launcher of a
                synchronous run that is still pending.
        """
        if self._is_worker:
            raise ConfigurationError(
                "wait can only be called from the parent of a forked process"
            )
        if self._async:
            raise ConfigurationError(
                "wait can only be used with synchronous processes; use wait_all"
            )
        if self._pid is None or self._channel is None:
            raise ConfigurationError("wait called without a pending synchronous run")

        pid, channel = self._pid, self._channel
        self._pid = None
        self._channel = None

        start_ns = time.perf_counter_ns()
        result = self._collect(pid, channel)
        self._results = [result]
        self._emit_summary("sync", start_ns)

        return result.succeeded

    def wait_all(self) -> bool:
        """Wait for every tracked async worker, in launch order.

        Clears the message list first, then for each worker in the order
        it was launched: blocks until it exits, drains at most one message
        and closes its channel. A worker that finished early still has its
        message collected in launch position.

        Returns:
            True if every worker exited with code 0.

        Raises:
            ConfigurationError: If called from a worker or in sync mode.
        """
        if self._is_worker:
            raise ConfigurationError(
                "wait_all can only be called from the parent of a forked process"
            )
        if not self._async:
            raise ConfigurationError(
                "wait_all can only be used with asynchronous processes"
            )

        self._messages = []
        results: List[ProcessResult] = []
        start_ns = time.perf_counter_ns()

        while self._channels:
            pid = next(iter(self._channels))
            channel = self._channels.pop(pid)
            results.append(self._collect(pid, channel))

        self._results = results
        self._emit_summary("async", start_ns)

        failed = [r.pid for r in results if not r.succeeded]
        if failed:
            logger.warning(f"{len(failed)} of {len(results)} workers failed: {failed}")
        else:
            logger.info(
                f"Collected {len(results)} workers, {len(self._messages)} messages"
            )
        return not failed

    def _wait_draining(self, pid: int, channel: Channel) -> int:
        """Block until the worker exits, reading its channel meanwhile.

        A frame larger than the socket buffer would otherwise leave the
        worker stuck in send while the launcher is stuck in waitpid.

        Returns:
            The raw os.waitpid() status.
        """
        transport = channel.launcher_transport
        with selectors.DefaultSelector() as selector:
            selector.register(transport.fileno(), selectors.EVENT_READ)
            while True:
                waited, status = os.waitpid(pid, os.WNOHANG)
                if waited == pid:
                    return status

                ready = selector.select(_POLL_INTERVAL)
                if ready and transport.pump() is None:
                    # End of stream: nothing more can arrive
                    _, status = os.waitpid(pid, 0)
                    return status

    def _collect(self, pid: int, channel: Channel) -> ProcessResult:
        """Reap one worker and drain its channel."""
        start = time.perf_counter()
        status = self._wait_draining(pid, channel)
        wait_ms = (time.perf_counter() - start) * 1000

        try:
            message = channel.receive(_NO_MESSAGE)
        finally:
            channel.close()

        received = message is not _NO_MESSAGE
        if received:
            self._messages.append(message)

        result = ProcessResult.from_wait_status(
            pid, status, wait_ms=wait_ms, message_received=received
        )
        if result.succeeded:
            logger.debug(f"Worker {pid} exited cleanly after {wait_ms:.1f}ms")
        elif result.signal is not None:
            logger.warning(f"Worker {pid} was killed by signal {result.signal}")
        else:
            logger.warning(f"Worker {pid} failed with exit code {result.exit_code}")

        if self._hub.enabled:
            self._emit_exit(result)
            if received:
                self._emit_message(pid, message, channel.frame_size)

        return result

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def has_messages(self) -> bool:
        return bool(self._messages)

    def get_messages(self) -> Iterator[Any]:
        """Iterate over collected messages in launch order.

        Raises:
            ConfigurationError: If called from a worker process.
        """
        if self._is_worker:
            raise ConfigurationError(
                "get_messages can only be called from the parent of a forked process"
            )
        return (message for message in list(self._messages))

    def add_message(self, value: Any) -> None:
        """Append a message directly. Used by debug-mode channels."""
        self._messages.append(value)

    def clear_messages(self) -> "Orchestrator":
        """Empty the message list without touching tracked workers.

        Useful when messages are read after every synchronous run in a loop
        rather than pooled until the end.
        """
        self._messages = []
        return self

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def _emit_launch(self, pid: int, mode: str, arg_count: int) -> None:
        if not self._hub.enabled:
            return
        self._hub.emit(ProcessLaunchRecord(
            pid=pid,
            mode=mode,
            frame_size=self._message_buffer,
            arg_count=arg_count,
        ))

    def _emit_exit(self, result: ProcessResult) -> None:
        self._hub.emit(ProcessExitRecord(
            pid=result.pid,
            exit_code=result.exit_code,
            signal=result.signal,
            success=result.succeeded,
            wait_ms=result.wait_ms,
        ))

    def _emit_message(self, pid: int, message: Any, frame_size: int) -> None:
        try:
            message_type = MessageType.of(message).value
        except TypeError:
            message_type = type(message).__name__
        self._hub.emit(MessageRecord(
            pid=pid,
            message_type=message_type,
            frame_size=frame_size,
        ))

    def _emit_summary(self, mode: str, start_ns: int) -> None:
        if not self._hub.enabled:
            return
        self._hub.emit(RunSummaryRecord(
            mode=mode,
            total=len(self._results),
            failed=sum(1 for r in self._results if not r.succeeded),
            messages=len(self._messages),
            duration_ms=(time.perf_counter_ns() - start_ns) / 1_000_000,
        ))


__all__ = [
    "WorkFunction",
    "Orchestrator",
    "is_supported",
    "check_work_function",
]
