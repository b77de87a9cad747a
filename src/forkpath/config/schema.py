"""Pydantic validation models for forkpath configuration.

Defines the schema for YAML configuration files with validation
rules and sensible defaults.
"""

from typing import Dict, List, Any, Optional, Literal, TYPE_CHECKING
from pydantic import BaseModel, Field, field_validator, model_validator

if TYPE_CHECKING:
    from forkpath.process.orchestrator import Orchestrator, WorkFunction


class SinkSchema(BaseModel):
    """Configuration for an observability sink.

    Attributes:
        type: Sink type (file, console, memory, null).
        path: File path for file sinks.
        options: Additional sink-specific options.
    """

    type: Literal["file", "console", "memory", "null"] = "file"
    path: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_file_sink_has_path(self) -> "SinkSchema":
        """Validate that file sinks have a path."""
        if self.type == "file" and not self.path:
            raise ValueError("File sink requires 'path' to be set")
        return self


class ObservabilitySchema(BaseModel):
    """Configuration for observability/tracing.

    Attributes:
        level: Trace level (off, minimal, normal, verbose).
        sinks: List of sink configurations.
    """

    level: Literal["off", "minimal", "normal", "verbose"] = "off"
    sinks: List[SinkSchema] = Field(default_factory=list)


class TaskSchema(BaseModel):
    """Configuration for one task: a work function and how to run it.

    Attributes:
        function: "package.module:callable" path or a registered task name.
        mode: "async" launches every run before waiting, "sync" waits
            after each run.
        debug: Run inline without forking.
        message_buffer: Frame size in bytes for worker messages.
        runs: Argument lists, one run per entry.
        observability: Optional observability settings.
    """

    function: str = Field(min_length=1)
    mode: Literal["async", "sync"] = "async"
    debug: bool = False
    message_buffer: int = Field(default=1024, gt=0)
    runs: List[List[Any]] = Field(default_factory=lambda: [[]])
    observability: ObservabilitySchema = Field(default_factory=ObservabilitySchema)

    @field_validator("function")
    @classmethod
    def validate_function(cls, v: str) -> str:
        """Reject paths with an empty module or attribute part."""
        if ":" in v:
            module, _, attr = v.partition(":")
            if not module or not attr:
                raise ValueError(
                    f"Invalid function path '{v}'. Expected 'package.module:callable'"
                )
        return v

    @property
    def async_mode(self) -> bool:
        return self.mode == "async"

    def build_orchestrator(self, work_fn: "WorkFunction") -> "Orchestrator":
        """Create an Orchestrator configured from this task."""
        from forkpath.process.orchestrator import Orchestrator

        orchestrator = Orchestrator(work_fn, async_mode=self.async_mode)
        orchestrator.set_debug(self.debug)
        orchestrator.set_message_buffer(self.message_buffer)
        return orchestrator


class ConfigSchema(BaseModel):
    """Root configuration schema.

    Attributes:
        version: Configuration file version (currently "1.0").
        tasks: Mapping of task names to their configurations.
        globals: Optional global settings applied to all tasks.
    """

    version: str = "1.0"
    tasks: Dict[str, TaskSchema] = Field(min_length=1)
    globals: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate configuration version."""
        supported = {"1.0"}
        if v not in supported:
            raise ValueError(
                f"Unsupported config version: {v}. Supported: {supported}"
            )
        return v
