"""
Configuration management for mflow.

Settings come from a JSON file and can be overridden with MFLOW_*
environment variables, e.g. ``MFLOW_ENGINE_URL=http://localhost:9000``.
"""

import json
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any

EXECUTION_POLICIES = ("reject", "queue")


@dataclass
class Settings:
    """
    Runtime settings for the server and the workflow runner.

    Example:
        settings = Settings.load("mflow.json")
        engine = create_engine(settings)
    """
    engine_url: str = "http://127.0.0.1:9000"
    engine_command: str = ""
    engine_timeout: float = 600.0
    execution_policy: str = "reject"
    log_level: str = "INFO"
    log_json: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self):
        if self.execution_policy not in EXECUTION_POLICIES:
            raise ValueError(
                f"Unknown execution policy: {self.execution_policy}. "
                f"Available: {list(EXECUTION_POLICIES)}"
            )

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load settings from a JSON file."""
        return load_config(path)

    def save(self, path: str | Path) -> None:
        """Save settings to a JSON file."""
        save_config(self, path)

    def to_dict(self) -> dict:
        return asdict(self)


def coerce_value(value: str, current: Any) -> Any:
    """
    Convert a string to the type of the current value.

    Raises:
        ValueError: If the string does not parse as the int/float it replaces
    """
    if isinstance(current, bool):
        return value.lower() in ('true', '1', 'yes')
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


def load_config(path: str | Path | None = None, env_prefix: str = "MFLOW_") -> Settings:
    """
    Load settings from a JSON file and the environment.

    Args:
        path: Path to the JSON settings file (None = defaults only)
        env_prefix: Prefix of environment variables that override the file

    Returns:
        Parsed Settings object

    Raises:
        FileNotFoundError: If a path is given and the file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
        ValueError: If a value has the wrong shape
    """
    data: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with open(path, "r") as f:
            data = json.load(f)

    defaults = Settings()
    known = {f.name for f in fields(Settings)}
    values = {k: v for k, v in data.items() if k in known}

    for key, raw in get_env_config(env_prefix).items():
        if key in known:
            values[key] = coerce_value(raw, getattr(defaults, key))

    return Settings(**values)


def save_config(settings: Settings, path: str | Path) -> None:
    """Save settings to a JSON file."""
    with open(Path(path), "w") as f:
        json.dump(settings.to_dict(), f, indent=2)


def get_env_config(prefix: str = "MFLOW_") -> dict[str, str]:
    """
    Get configuration from environment variables.

    Variable names are lowercased with the prefix removed:
        MFLOW_LOG_LEVEL=DEBUG -> {"log_level": "DEBUG"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config[key[len(prefix):].lower()] = value
    return config
