"""
Tests for maestro.core.config and maestro.core.logging
========================================================

What's Being Tested:
    - MaestroConfig defaults and validation bounds
    - Environment variable overrides (MAESTRO_* prefix)
    - load_config() with YAML files, missing files and malformed files
    - configure_logging() level validation
"""

import pytest
from pydantic import ValidationError

from maestro.core.config import MaestroConfig, get_default_config, load_config
from maestro.core.exceptions import ConfigurationError
from maestro.core.logging import configure_logging


# =============================================================================
# Test: Defaults
# =============================================================================
class TestMaestroConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self) -> None:
        config = MaestroConfig()
        assert config.environment == "dev"
        assert config.log_level == "INFO"
        assert config.max_concurrent_workflows == 100
        assert config.default_workflow_timeout_ms == 300_000
        assert config.agent_timeout_ms == 10_000
        assert config.event_bus_buffer_size == 10_000
        assert config.health_check_interval_ms == 30_000
        assert config.enable_rollback is False
        assert config.enable_compensation is False

    def test_get_default_config(self) -> None:
        assert get_default_config() == MaestroConfig()


# =============================================================================
# Test: Validation
# =============================================================================
class TestMaestroConfigValidation:
    """Tests for value constraints."""

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValidationError):
            MaestroConfig(max_concurrent_workflows=0)

    def test_rejects_negative_timeout(self) -> None:
        with pytest.raises(ValidationError):
            MaestroConfig(default_workflow_timeout_ms=-1)

    def test_zero_timeout_allowed(self) -> None:
        """0 disables the execution budget."""
        assert MaestroConfig(default_workflow_timeout_ms=0).default_workflow_timeout_ms == 0

    def test_rejects_unknown_environment(self) -> None:
        with pytest.raises(ValidationError):
            MaestroConfig(environment="qa")

    def test_rejects_empty_event_buffer(self) -> None:
        with pytest.raises(ValidationError):
            MaestroConfig(event_bus_buffer_size=0)

    def test_rejects_unknown_log_level(self) -> None:
        with pytest.raises(ValidationError):
            MaestroConfig(log_level="VERBOSE")


# =============================================================================
# Test: Environment Overrides
# =============================================================================
class TestEnvironmentOverrides:
    """MAESTRO_* environment variables override defaults."""

    def test_env_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("MAESTRO_MAX_CONCURRENT_WORKFLOWS", "7")
        monkeypatch.setenv("MAESTRO_ENVIRONMENT", "prod")
        config = MaestroConfig()
        assert config.max_concurrent_workflows == 7
        assert config.environment == "prod"

    def test_case_insensitive(self, monkeypatch) -> None:
        monkeypatch.setenv("maestro_log_level", "DEBUG")
        assert MaestroConfig().log_level == "DEBUG"


# =============================================================================
# Test: load_config
# =============================================================================
class TestLoadConfig:
    """Tests for YAML loading."""

    def test_loads_yaml(self, tmp_path) -> None:
        path = tmp_path / "maestro.yaml"
        path.write_text("max_concurrent_workflows: 3\nenvironment: staging\n")
        config = load_config(str(path))
        assert config.max_concurrent_workflows == 3
        assert config.environment == "staging"

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == MaestroConfig()

    def test_missing_explicit_path(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_no_path_and_no_default_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == MaestroConfig()

    def test_default_file_discovered(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "maestro.yaml").write_text("event_bus_buffer_size: 42\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().event_bus_buffer_size == 42

    def test_malformed_yaml(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("max_concurrent_workflows: [1, 2\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(path))
        assert exc_info.value.error_code == "INVALID_CONFIG_FILE"

    def test_non_mapping_top_level(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(path))
        assert exc_info.value.details["type"] == "list"

    def test_invalid_value_in_file(self, tmp_path) -> None:
        path = tmp_path / "invalid.yaml"
        path.write_text("max_concurrent_workflows: 0\n")
        with pytest.raises(ValidationError):
            load_config(str(path))


# =============================================================================
# Test: configure_logging
# =============================================================================
class TestConfigureLogging:
    """Tests for logging setup."""

    def test_accepts_known_levels(self) -> None:
        configure_logging("debug")
        configure_logging("WARNING", json_format=True)
        configure_logging("INFO")

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            configure_logging("LOUD")
        assert exc_info.value.error_code == "INVALID_LOG_LEVEL"
