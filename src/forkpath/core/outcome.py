"""Process outcomes and exit-code conventions.

A worker reports success or failure through its exit code:

    0  work function returned True
    1  work function returned False
    2  work function raised (including a transport overflow)

Any other disposition, such as termination by a signal, is a failure.

Example:
    >>> Outcome.from_bool(True).exit_code
    0
    >>> Outcome.from_wait_status(status) is Outcome.SUCCESS
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ERROR = 2


class Outcome(Enum):
    """Two-valued outcome of a unit of work."""

    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def from_bool(cls, successful: bool) -> "Outcome":
        return cls.SUCCESS if successful else cls.FAILURE

    @classmethod
    def from_exit_code(cls, code: Optional[int]) -> "Outcome":
        return cls.SUCCESS if code == EXIT_SUCCESS else cls.FAILURE

    @classmethod
    def from_wait_status(cls, status: int) -> "Outcome":
        """Map a raw os.waitpid() status to an outcome.

        Only a normal exit with code 0 is a success.
        """
        if not os.WIFEXITED(status):
            return cls.FAILURE
        return cls.from_exit_code(os.WEXITSTATUS(status))

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self is Outcome.SUCCESS else EXIT_FAILURE

    def __bool__(self) -> bool:
        return self is Outcome.SUCCESS


@dataclass
class ProcessResult:
    """Result of waiting on one worker process.

    Attributes:
        pid: Process id of the worker (0 for inline debug runs).
        outcome: Success or failure.
        exit_code: Exit code if the process exited normally, else None.
        signal: Terminating signal number if killed by a signal, else None.
        wait_ms: Time spent blocked waiting for the process, in milliseconds.
        message_received: Whether a message was drained from its channel.
    """
    pid: int
    outcome: Outcome
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    wait_ms: float = 0.0
    message_received: bool = False

    @classmethod
    def from_wait_status(cls, pid: int, status: int, **kwargs) -> "ProcessResult":
        """Build a result from a raw os.waitpid() status."""
        exit_code = os.WEXITSTATUS(status) if os.WIFEXITED(status) else None
        sig = os.WTERMSIG(status) if os.WIFSIGNALED(status) else None
        return cls(
            pid=pid,
            outcome=Outcome.from_wait_status(status),
            exit_code=exit_code,
            signal=sig,
            **kwargs,
        )

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def crashed(self) -> bool:
        """True if the worker raised or was killed, rather than returning False."""
        return self.signal is not None or self.exit_code == EXIT_ERROR


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "EXIT_ERROR",
    "Outcome",
    "ProcessResult",
]
