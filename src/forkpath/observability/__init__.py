"""Observability system for forkpath.

Provides trace records for the process lifecycle:
- Worker launches (async, sync and inline debug runs)
- Worker exits with their exit disposition and wait time
- Messages drained from channels
- Per-wait summaries

Trace Levels:
- OFF: No tracing (production default)
- MINIMAL: Summaries only
- NORMAL: Launches and exits
- VERBOSE: Every drained message

Records are only emitted by the process that configured the hub. A forked
worker inherits a copy of the hub and its sinks, and anything it emitted
would interleave with the launcher's output, so the hub ignores emits made
after a fork.

Example:
    >>> from forkpath.observability import ObservabilityHub, TraceLevel, FileSink
    >>> hub = ObservabilityHub.get_instance()
    >>> hub.configure(level=TraceLevel.NORMAL)
    >>> hub.add_sink(FileSink("/tmp/trace.jsonl"))
    >>>
    >>> if hub.enabled:
    ...     hub.emit(ProcessExitRecord(pid=pid, exit_code=0, success=True))
"""

from enum import IntEnum
from typing import List, Optional
import logging
import os
import threading

logger = logging.getLogger(__name__)


class TraceLevel(IntEnum):
    """Observability trace levels.

    Higher levels include all lower level information.
    """
    OFF = 0       # No tracing
    MINIMAL = 1   # Summaries only
    NORMAL = 2    # Launches and exits
    VERBOSE = 3   # Every message

    @classmethod
    def from_string(cls, s: str) -> "TraceLevel":
        """Parse a trace level name such as "normal".

        Raises:
            ValueError: If the name is not a trace level.
        """
        try:
            return cls[s.upper()]
        except KeyError:
            raise ValueError(
                f"Unknown trace level: {s}. "
                f"Valid levels: {', '.join(m.name.lower() for m in cls)}"
            ) from None


class Sink:
    """Base class for trace sinks.

    Sinks receive trace records and handle their output
    (file, console, memory buffer, etc.).
    """

    def write(self, record: "TraceRecord") -> None:
        """Write a trace record.

        Args:
            record: The trace record to write.
        """
        raise NotImplementedError

    def flush(self) -> None:
        """Flush any buffered records."""
        pass

    def close(self) -> None:
        """Close the sink and release resources."""
        pass


class ObservabilityHub:
    """Central hub for observability configuration and record emission.

    Singleton pattern - use get_instance() to access.

    Thread Safety:
        The hub is thread-safe. Records can be emitted from multiple threads.

    Example:
        >>> hub = ObservabilityHub.get_instance()
        >>> hub.configure(level=TraceLevel.NORMAL)
        >>> hub.add_sink(ConsoleSink())
        >>>
        >>> # Fast check before creating records
        >>> if hub.enabled:
        ...     hub.emit(record)
    """

    _instance: Optional["ObservabilityHub"] = None
    _lock = threading.Lock()

    def __init__(self):
        """Initialize the hub. Use get_instance() instead."""
        self._level = TraceLevel.OFF
        self._sinks: List[Sink] = []
        self._emit_lock = threading.Lock()
        self._owner_pid = os.getpid()

        # Cached state for fast checks
        self._enabled = False

    @classmethod
    def get_instance(cls) -> "ObservabilityHub":
        """Get the singleton hub instance.

        Returns:
            The global ObservabilityHub instance.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. For testing only."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
            cls._instance = None

    def configure(
        self,
        level: TraceLevel = TraceLevel.OFF,
        sinks: Optional[List[Sink]] = None,
    ) -> None:
        """Configure the hub and claim it for the calling process.

        Args:
            level: Trace level to set.
            sinks: Optional list of sinks to add.
        """
        self._level = level
        self._enabled = level > TraceLevel.OFF
        self._owner_pid = os.getpid()

        if sinks:
            for sink in sinks:
                self.add_sink(sink)

    def add_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def emit(self, record: "TraceRecord") -> None:
        """Emit a trace record to all sinks.

        Args:
            record: The trace record to emit.
        """
        if not self._enabled:
            return

        if record.min_level > self._level:
            return

        if os.getpid() != self._owner_pid:
            return

        with self._emit_lock:
            for sink in self._sinks:
                try:
                    sink.write(record)
                except Exception as e:
                    # Sink failures must not affect process orchestration
                    logger.debug(f"Sink {type(sink).__name__} failed: {e}")

    def flush(self) -> None:
        """Flush all sinks."""
        with self._emit_lock:
            for sink in self._sinks:
                try:
                    sink.flush()
                except Exception as e:
                    logger.debug(f"Sink {type(sink).__name__} flush failed: {e}")

    def shutdown(self) -> None:
        """Shutdown the hub and close all sinks."""
        with self._emit_lock:
            for sink in self._sinks:
                try:
                    sink.flush()
                    sink.close()
                except Exception as e:
                    logger.debug(f"Sink {type(sink).__name__} close failed: {e}")
            self._sinks.clear()

        self._level = TraceLevel.OFF
        self._enabled = False

    @property
    def enabled(self) -> bool:
        """Fast check if tracing is enabled.

        Use this before creating trace records to minimize overhead
        when tracing is disabled.
        """
        return self._enabled

    @property
    def level(self) -> TraceLevel:
        return self._level

    @property
    def sinks(self) -> List[Sink]:
        with self._emit_lock:
            return list(self._sinks)

    def is_level_enabled(self, level: TraceLevel) -> bool:
        return self._level >= level


# Import TraceRecord and sinks after defining TraceLevel
from forkpath.observability.records import (  # noqa: E402
    TraceRecord,
    ProcessLaunchRecord,
    ProcessExitRecord,
    MessageRecord,
    RunSummaryRecord,
)
from forkpath.observability.sinks import (  # noqa: E402
    FileSink,
    ConsoleSink,
    MemorySink,
    NullSink,
)

__all__ = [
    # Core
    "TraceLevel",
    "Sink",
    "ObservabilityHub",
    # Records
    "TraceRecord",
    "ProcessLaunchRecord",
    "ProcessExitRecord",
    "MessageRecord",
    "RunSummaryRecord",
    # Sinks
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
