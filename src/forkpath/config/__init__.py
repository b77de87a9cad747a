"""Configuration system for forkpath.

Provides YAML-based declarative task configuration with:
- Pydantic schema validation
- Environment variable substitution (${VAR} and ${VAR:-default})
- Orchestrator construction from a task entry

Example YAML config:
    version: "1.0"
    tasks:
      thumbnails:
        function: "media.jobs:make_thumbnail"
        mode: async
        message_buffer: 4096
        runs:
          - ["${INPUT_DIR:-./in}/a.jpg"]
          - ["${INPUT_DIR:-./in}/b.jpg"]
        observability:
          level: normal
          sinks:
            - type: file
              path: "${LOG_DIR:-./logs}/trace.jsonl"

Example usage:
    >>> from forkpath.config import load_yaml_config
    >>> config = load_yaml_config("tasks.yaml")
    >>> for name, task in config.tasks.items():
    ...     print(f"Task: {name} ({task.mode})")
"""

from forkpath.config.schema import (
    ConfigSchema,
    TaskSchema,
    ObservabilitySchema,
    SinkSchema,
)
from forkpath.config.loader import (
    load_yaml_config,
    load_yaml_string,
    substitute_env_vars,
    ConfigLoadError,
)

__all__ = [
    # Schema models
    "ConfigSchema",
    "TaskSchema",
    "ObservabilitySchema",
    "SinkSchema",
    # Loader
    "load_yaml_config",
    "load_yaml_string",
    "substitute_env_vars",
    "ConfigLoadError",
]
