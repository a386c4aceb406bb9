"""
maestro.core.config - Configuration Management
================================================

Configuration for the Maestro orchestrator. Values can come from several
sources with the following priority (highest first):

    1. Explicit constructor arguments
    2. Environment variables (prefixed with MAESTRO_)
    3. YAML configuration file (maestro.yaml)
    4. Default values defined in the model below

Architecture Context:
    One MaestroConfig is created per Maestro facade and its values are
    handed to the components that need them:

        MaestroConfig
            ├── event_bus_buffer_size        → EventBus
            ├── default_workflow_timeout_ms  → WorkflowExecutor
            ├── max_concurrent_workflows     → Maestro (admission control)
            ├── health_check_interval_ms     → Maestro (health sweep)
            └── log_level                    → configure_logging()

    ``Maestro.update_config`` produces a new validated instance; the
    object itself is treated as immutable.

Usage:
    config = MaestroConfig()
    config = load_config("maestro.yaml")
    config = MaestroConfig(max_concurrent_workflows=10, log_level="DEBUG")

Environment Variables:
    MAESTRO_LOG_LEVEL=DEBUG
    MAESTRO_MAX_CONCURRENT_WORKFLOWS=50
    MAESTRO_EVENT_BUS_BUFFER_SIZE=20000
    MAESTRO_HEALTH_CHECK_INTERVAL_MS=15000
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings

from maestro.core.exceptions import ConfigurationError


# =============================================================================
# Main Configuration
# =============================================================================
# Environment Variable Mapping:
#   MAESTRO_LOG_LEVEL                  → config.log_level
#   MAESTRO_MAX_CONCURRENT_WORKFLOWS   → config.max_concurrent_workflows
#   MAESTRO_DEFAULT_WORKFLOW_TIMEOUT_MS → config.default_workflow_timeout_ms
# =============================================================================
class MaestroConfig(BaseSettings):
    """Top-level configuration for the Maestro orchestrator.

    Attributes:
        environment: Deployment environment label.
        log_level: Logging level applied by ``configure_logging``.
        max_concurrent_workflows: Admission cap on non-terminal executions.
            ``execute_workflow`` fails with CapacityExceededError at the cap.
        default_workflow_timeout_ms: Wall-clock budget for an execution
            whose workflow sets no ``max_duration_ms``. 0 disables it.
        event_bus_buffer_size: Events retained in the bus history ring.
        health_check_interval_ms: Period of the background health sweep.
        agent_timeout_ms: Per-invocation timeout hint for invokers. The
            executor itself does not enforce it.
        enable_rollback: Accepted for compatibility. No rollback is
            performed; enabling it logs a warning at startup.
        enable_compensation: Accepted for compatibility. No compensation
            is performed; enabling it logs a warning at startup.

    Example:
        >>> config = MaestroConfig(
        ...     environment="dev",
        ...     max_concurrent_workflows=5,
        ... )
    """

    # -------------------------------------------------------------------------
    # General Settings
    # -------------------------------------------------------------------------
    environment: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    # -------------------------------------------------------------------------
    # Execution Settings
    # -------------------------------------------------------------------------
    max_concurrent_workflows: int = Field(
        default=100,
        ge=1,
        description="Maximum number of non-terminal executions",
    )
    default_workflow_timeout_ms: int = Field(
        default=300_000,
        ge=0,
        description="Wall-clock execution budget in ms (0 = unlimited)",
    )
    agent_timeout_ms: int = Field(
        default=10_000,
        ge=0,
        description="Per-invocation timeout hint for capability invokers",
    )

    # -------------------------------------------------------------------------
    # Event Bus / Health
    # -------------------------------------------------------------------------
    event_bus_buffer_size: int = Field(
        default=10_000,
        ge=1,
        description="Number of events retained in the history ring buffer",
    )
    health_check_interval_ms: int = Field(
        default=30_000,
        ge=1,
        description="Interval of the periodic agent health sweep in ms",
    )

    # -------------------------------------------------------------------------
    # Recovery Flags (accepted, no behaviour attached)
    # -------------------------------------------------------------------------
    enable_rollback: bool = Field(
        default=False,
        description="Reserved: rollback of completed steps on failure",
    )
    enable_compensation: bool = Field(
        default=False,
        description="Reserved: compensating capability calls on failure",
    )

    model_config = {
        "env_prefix": "MAESTRO_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> MaestroConfig:
    """Load Maestro configuration from a YAML file and/or environment variables.

    Args:
        path: Path to a YAML configuration file. If None, looks for
            'maestro.yaml' in the current directory and falls back to pure
            defaults + environment variables when it does not exist.

    Returns:
        A fully validated MaestroConfig instance.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Example:
        >>> config = load_config("maestro.yaml")
        >>> config = load_config()  # auto-detect or use defaults
    """
    if path is None:
        default_path = Path("maestro.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {path}. "
                f"Create a maestro.yaml or use MAESTRO_* environment variables."
            )

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    message=f"Invalid YAML in configuration file: {path}",
                    error_code="INVALID_CONFIG_FILE",
                    details={"path": path, "error": str(exc)},
                ) from exc

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file must contain a mapping: {path}",
                error_code="INVALID_CONFIG_FILE",
                details={"path": path, "type": type(raw_data).__name__},
            )
        yaml_data = raw_data

    return MaestroConfig(**yaml_data)


def get_default_config() -> MaestroConfig:
    """Create a MaestroConfig with all defaults (plus any MAESTRO_* env vars)."""
    return MaestroConfig()
