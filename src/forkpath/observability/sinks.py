"""Trace output sinks for observability.

Sinks receive trace records and handle their output to various destinations:
- FileSink: JSONL file output
- ConsoleSink: Formatted console output
- MemorySink: In-memory buffer for testing/analysis
- NullSink: Discards everything
"""

import sys
import threading
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, TextIO, Callable

from forkpath.observability import Sink
from forkpath.observability.records import (
    TraceRecord,
    ProcessLaunchRecord,
    ProcessExitRecord,
    MessageRecord,
    RunSummaryRecord,
)


class FileSink(Sink):
    """Sink that writes trace records to a JSONL file.

    Each record is written as a single JSON line, suitable for
    post-processing with tools like jq.

    Args:
        path: Path to the output file.
        buffer_size: Number of records to buffer before flushing (default: 100).
        append: Whether to append to existing file (default: False).

    Example:
        >>> sink = FileSink("/tmp/trace.jsonl")
        >>> hub.add_sink(sink)
        >>> # ... launch and wait ...
        >>> sink.close()  # Ensure final flush
    """

    def __init__(
        self,
        path: str,
        buffer_size: int = 100,
        append: bool = False,
    ):
        self._path = Path(path)
        self._buffer_size = buffer_size
        self._append = append

        self._buffer: List[str] = []
        self._file: Optional[TextIO] = None
        self._lock = threading.Lock()

        self._open_file()

    @property
    def path(self) -> Path:
        return self._path

    def _open_file(self) -> None:
        mode = "a" if self._append else "w"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, mode, encoding="utf-8")

    def write(self, record: TraceRecord) -> None:
        line = record.to_json()

        with self._lock:
            self._buffer.append(line)
            if len(self._buffer) >= self._buffer_size:
                self._flush_buffer()

    def _flush_buffer(self) -> None:
        """Flush the buffer to disk. Must be called with lock held."""
        if not self._buffer or self._file is None:
            return

        for line in self._buffer:
            self._file.write(line + "\n")
        self._file.flush()
        self._buffer.clear()

    def flush(self) -> None:
        with self._lock:
            self._flush_buffer()

    def close(self) -> None:
        with self._lock:
            self._flush_buffer()
            if self._file is not None:
                self._file.close()
                self._file = None


class ConsoleSink(Sink):
    """Sink that writes formatted trace records to console.

    Failed workers are highlighted; successful exits are only shown when
    ``show_success`` is set.

    Args:
        stream: Output stream (default: sys.stderr).
        color: Enable ANSI color codes (default: True).
        show_success: Also print successful exits (default: False).
        format_fn: Optional custom format function for records.
    """

    # ANSI color codes
    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "cyan": "\033[96m",
        "gray": "\033[90m",
    }

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        color: bool = True,
        show_success: bool = False,
        format_fn: Optional[Callable[[TraceRecord], Optional[str]]] = None,
    ):
        self._stream = stream or sys.stderr
        self._color = color and self._stream.isatty()
        self._show_success = show_success
        self._format_fn = format_fn
        self._lock = threading.Lock()

    def _colorize(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def write(self, record: TraceRecord) -> None:
        if self._format_fn:
            line = self._format_fn(record)
        else:
            line = self._format_record(record)

        if line:
            with self._lock:
                self._stream.write(line + "\n")
                self._stream.flush()

    def _format_record(self, record: TraceRecord) -> Optional[str]:
        """Format a record for console output.

        Returns:
            Formatted string or None to skip output.
        """
        if isinstance(record, ProcessLaunchRecord):
            return self._format_launch(record)
        elif isinstance(record, ProcessExitRecord):
            return self._format_exit(record)
        elif isinstance(record, MessageRecord):
            tag = self._colorize("[MSG]", "gray")
            return f"{tag} pid {record.pid}: {record.message_type}"
        elif isinstance(record, RunSummaryRecord):
            return self._format_summary(record)
        return None

    def _format_launch(self, record: ProcessLaunchRecord) -> str:
        tag = self._colorize("[LAUNCH]", "blue")
        who = "inline" if record.pid == 0 else f"pid {record.pid}"
        return f"{tag} {who} ({record.mode}, {record.arg_count} args)"

    def _format_exit(self, record: ProcessExitRecord) -> Optional[str]:
        if record.success:
            if not self._show_success:
                return None
            tag = self._colorize("[EXIT]", "green")
            return f"{tag} pid {record.pid} ok after {record.wait_ms:.0f}ms"

        tag = self._colorize("[FAIL]", "red")
        if record.signal is not None:
            reason = f"killed by signal {record.signal}"
        else:
            reason = f"exit code {record.exit_code}"
        return f"{tag} pid {record.pid} {reason}"

    def _format_summary(self, record: RunSummaryRecord) -> str:
        color = "red" if record.failed else "cyan"
        tag = self._colorize("[DONE]", color)
        return (
            f"{tag} {record.mode}: {record.total - record.failed}/{record.total} "
            f"succeeded, {record.messages} messages in {record.duration_ms:.0f}ms"
        )

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()


class MemorySink(Sink):
    """Sink that stores trace records in memory.

    Useful for testing and for in-session analysis.

    Args:
        max_records: Maximum number of records to keep (default: 10000).

    Example:
        >>> sink = MemorySink()
        >>> hub.add_sink(sink)
        >>> # ... launch and wait ...
        >>> exits = sink.get_records("process_exit")
    """

    def __init__(self, max_records: int = 10000):
        self._max_records = max_records
        self._records: Deque[TraceRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def write(self, record: TraceRecord) -> None:
        with self._lock:
            self._records.append(record)

    def get_records(self, record_type: Optional[str] = None) -> List[TraceRecord]:
        """Get stored records.

        Args:
            record_type: Optional filter by record type.

        Returns:
            List of trace records.
        """
        with self._lock:
            records = list(self._records)

        if record_type:
            records = [r for r in records if r.record_type == record_type]

        return records

    def get_by_pid(self, pid: int) -> List[TraceRecord]:
        """Get all records for one worker process."""
        with self._lock:
            records = list(self._records)

        return [r for r in records if getattr(r, "pid", None) == pid]

    def get_exit_stats(self) -> dict:
        """Summarize exit records.

        Returns:
            Dict with counts of exits, failures and signals, and wait times.
        """
        exits = [
            r for r in self.get_records()
            if isinstance(r, ProcessExitRecord)
        ]

        if not exits:
            return {}

        waits = [r.wait_ms for r in exits]
        return {
            "count": len(exits),
            "failed": sum(1 for r in exits if not r.success),
            "signaled": sum(1 for r in exits if r.signal is not None),
            "avg_wait_ms": sum(waits) / len(waits),
            "max_wait_ms": max(waits),
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class NullSink(Sink):
    """Sink that discards all records."""

    def write(self, record: TraceRecord) -> None:
        pass


__all__ = [
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
