"""Trace record data classes for observability.

Record Categories:
- Base: TraceRecord base class
- Lifecycle: worker launch and exit
- Messages: frames drained from channels
- Summary: one record per wait()/wait_all()
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Any
import time
import json


# Forward reference for TraceLevel
from forkpath.observability import TraceLevel


@dataclass
class TraceRecord:
    """Base class for all trace records.

    All trace records have:
    - record_type: String identifying the record type
    - timestamp_ns: When the record was created (monotonic)
    - min_level: Minimum trace level required to emit this record

    Subclasses should set record_type as a class variable.
    """
    record_type: str = field(default="base", init=False)
    timestamp_ns: int = field(default_factory=lambda: time.perf_counter_ns())
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        d = asdict(self)
        # Remove min_level from output (internal use only)
        d.pop("min_level", None)
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# =============================================================================
# Lifecycle Records
# =============================================================================


@dataclass
class ProcessLaunchRecord(TraceRecord):
    """Emitted by the launcher after a worker is started.

    Inline debug runs are recorded with pid 0.
    """
    record_type: str = field(default="process_launch", init=False)
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    pid: int = 0
    mode: str = ""  # "async", "sync", "debug"
    frame_size: int = 0
    arg_count: int = 0


@dataclass
class ProcessExitRecord(TraceRecord):
    """Emitted once a worker has been reaped."""
    record_type: str = field(default="process_exit", init=False)
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    pid: int = 0
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    success: bool = False
    wait_ms: float = 0.0


# =============================================================================
# Message Records
# =============================================================================


@dataclass
class MessageRecord(TraceRecord):
    """Emitted for every message drained from a channel."""
    record_type: str = field(default="message", init=False)
    min_level: TraceLevel = field(default=TraceLevel.VERBOSE, repr=False)

    pid: int = 0
    message_type: str = ""
    frame_size: int = 0


# =============================================================================
# Summary Records
# =============================================================================


@dataclass
class RunSummaryRecord(TraceRecord):
    """Emitted after wait() or wait_all() has collected every worker."""
    record_type: str = field(default="run_summary", init=False)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    mode: str = ""
    total: int = 0
    failed: int = 0
    messages: int = 0
    duration_ms: float = 0.0


__all__ = [
    "TraceRecord",
    "ProcessLaunchRecord",
    "ProcessExitRecord",
    "MessageRecord",
    "RunSummaryRecord",
]
