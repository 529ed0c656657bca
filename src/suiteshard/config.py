"""Configuration parsing from ``.suiteshard.yml``."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from suiteshard.errors import EXIT_CONFIG_ERROR, EXIT_FAILURE, ConfigurationError
from suiteshard.sharding.splitter import DEFAULT_SUFFIX

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".suiteshard.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_WORKERS_PER_CPU = 3
_MAX_EXIT_CODE = 255


def default_worker_count() -> int:
    """Available parallelism times three."""
    return (os.cpu_count() or 1) * _WORKERS_PER_CPU


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass
class EngineConfig:
    """How worker processes invoke the test-execution engine."""

    interpreter: str = "php"
    """Interpreter the engine runs under (empty = run the command directly)."""

    command: list[str] = field(default_factory=lambda: ["vendor/bin/phpunit"])
    """Engine command; ``--configuration`` and ``--testsuite`` are appended."""

    extra_args: list[str] = field(default_factory=list)
    """Additional arguments appended after the sub-suite selection."""

    prepend: str = ""
    """Auto-prepend hook path forwarded to every worker."""

    working_dir: str = ""
    """Working directory for workers (empty = current directory)."""


@dataclass
class SuiteShardConfig:
    """Complete configuration from ``.suiteshard.yml``."""

    workers: int = field(default_factory=default_worker_count)
    """Number of shards, and so of parallel workers."""

    suffix: str = DEFAULT_SUFFIX
    """Filename suffix identifying test files."""

    failure_exit_code: int = EXIT_FAILURE
    """Exit status reported when at least one shard failed."""

    temp_dir: str = field(default_factory=tempfile.gettempdir)
    """Directory for the run's temporary artifacts."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    """Engine invocation settings."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def _as_str_list(value: Any, default: list[str]) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list):
        return [str(item) for item in value]
    return list(default)


def _parse_engine_config(raw: dict[str, Any]) -> EngineConfig:
    """Parse the engine section from raw YAML."""
    engine_raw = raw.get("engine", {})
    if not isinstance(engine_raw, dict):
        engine_raw = {}

    default = EngineConfig()
    return EngineConfig(
        interpreter=str(
            engine_raw.get("interpreter", os.environ.get("SUITESHARD_PHP", default.interpreter))
        ),
        command=_as_str_list(engine_raw.get("command"), default.command),
        extra_args=_as_str_list(engine_raw.get("extra_args"), default.extra_args),
        prepend=str(raw.get("prepend", "")),
        working_dir=str(engine_raw.get("working_dir", "")),
    )


def load_config(root: str | Path) -> SuiteShardConfig:
    """Load and parse ``.suiteshard.yml`` from *root*.

    Falls back to defaults and environment variables when the file is
    missing or incomplete.

    Raises:
        ConfigurationError: If the file is not valid YAML or holds a
            non-numeric value where a number is expected.
    """
    config_file = Path(root).resolve() / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        try:
            parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        logger.debug("Loaded configuration from %s", config_file)

    try:
        workers = int(raw.get("workers", os.environ.get("SUITESHARD_WORKERS", 0)) or 0)
        failure_exit_code = int(raw.get("failure_exit_code", EXIT_FAILURE))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric value in {config_file}: {e}") from e

    return SuiteShardConfig(
        workers=workers or default_worker_count(),
        suffix=str(raw.get("suffix", os.environ.get("SUITESHARD_SUFFIX", DEFAULT_SUFFIX))),
        failure_exit_code=failure_exit_code,
        temp_dir=str(
            raw.get("temp_dir", os.environ.get("SUITESHARD_TEMP_DIR", tempfile.gettempdir()))
        ),
        engine=_parse_engine_config(raw),
        raw=raw,
    )


def validate_config(config: SuiteShardConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if config.workers < 1:
        errors.append(f"workers must be >= 1 (got: {config.workers})")

    if not config.suffix:
        errors.append("suffix must not be empty")

    if not 1 <= config.failure_exit_code <= _MAX_EXIT_CODE:
        errors.append(
            f"failure_exit_code must be between 1 and {_MAX_EXIT_CODE} "
            f"(got: {config.failure_exit_code})"
        )
    elif config.failure_exit_code == EXIT_CONFIG_ERROR:
        errors.append(
            f"failure_exit_code must not be {EXIT_CONFIG_ERROR}, which is reserved for "
            "configuration errors"
        )

    if not config.engine.command:
        errors.append("engine.command must not be empty")

    if config.engine.prepend and not config.engine.interpreter:
        errors.append("prepend requires engine.interpreter to be set")

    return errors
