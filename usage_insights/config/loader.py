"""
Configuration management and loading.

Handles ingestion limits and logging settings read from a YAML file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

import yaml

DEFAULT_MAX_FILE_SIZE_MB = 100
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class IngestConfig:
    """Limits applied to uploaded files before parsing."""
    max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB
    allowed_extensions: Tuple[str, ...] = (".csv",)

    def __post_init__(self):
        """Validate limits are positive and extensions are well formed."""
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be > 0")
        if not self.allowed_extensions:
            raise ValueError("allowed_extensions cannot be empty")
        for ext in self.allowed_extensions:
            if not ext.startswith("."):
                raise ValueError(f"extension '{ext}' must start with '.'")

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"

    def __post_init__(self):
        if self.level not in LOG_LEVELS:
            raise ValueError(f"logging level must be one of: {list(LOG_LEVELS)}")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    ingest: IngestConfig = field(default_factory=IngestConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Unknown keys and wrongly typed values are rejected rather than ignored.
    Every section is optional; missing values fall back to defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return AppConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'ingest', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    ingest = _parse_ingest_config(_section(raw_config, 'ingest'))
    logging_config = _parse_logging_config(_section(raw_config, 'logging'))

    return AppConfig(ingest=ingest, logging=logging_config)


def _section(raw_config: Dict, name: str) -> Dict:
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _parse_ingest_config(data: Dict) -> IngestConfig:
    """Parse and validate the ingest section.

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'max_file_size_mb', 'allowed_extensions'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in ingest: {unknown_keys}")

    max_size = data.get('max_file_size_mb', DEFAULT_MAX_FILE_SIZE_MB)
    if isinstance(max_size, bool) or not isinstance(max_size, (int, float)) or max_size <= 0:
        raise ValueError("'max_file_size_mb' in ingest must be > 0")

    extensions = data.get('allowed_extensions', [".csv"])
    if not isinstance(extensions, list) or not all(isinstance(e, str) for e in extensions):
        raise ValueError("'allowed_extensions' in ingest must be a list of strings")

    return IngestConfig(
        max_file_size_mb=float(max_size),
        allowed_extensions=tuple(e.lower() for e in extensions)
    )


def _parse_logging_config(data: Dict) -> LoggingConfig:
    allowed_keys = {'level'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in logging: {unknown_keys}")

    level = data.get('level', "WARNING")
    if not isinstance(level, str):
        raise ValueError("'level' in logging must be a string")

    return LoggingConfig(level=level.upper())
