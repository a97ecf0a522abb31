"""Configuration loader."""

import os
from dataclasses import dataclass
from pathlib import Path

import tomllib


@dataclass(frozen=True)
class EndpointConfig:
    """Message channel endpoint."""

    url: str
    request_timeout: float


@dataclass(frozen=True)
class StorageConfig:
    """Settings store configuration."""

    backend: str
    settings_file: str


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str
    format: str
    date_format: str
    console: bool
    file: bool
    json: bool
    file_path: str
    max_size_mb: int
    backup_count: int


@dataclass(frozen=True)
class GuiConfig:
    """Popup window configuration."""

    width: int
    height: int
    locale: str
    forward_logs: bool


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""

    name: str
    version: str
    coordinator: EndpointConfig
    companion: EndpointConfig
    storage: StorageConfig
    logging: LoggingConfig
    gui: GuiConfig


STORAGE_BACKENDS = ("channel", "file")


def _get_env_override(section: str, key: str) -> str | None:
    """Get environment variable override."""
    env_key = f"APP_{section.upper()}_{key.upper()}"
    return os.environ.get(env_key)


def _apply_overrides(data: dict, section: str) -> dict:
    """Apply environment variable overrides to section."""
    result = dict(data)
    for key in result:
        override = _get_env_override(section, key)
        if override is not None:
            if isinstance(result[key], bool):
                result[key] = override.lower() in ("true", "1", "yes")
            elif isinstance(result[key], int):
                result[key] = int(override)
            elif isinstance(result[key], float):
                result[key] = float(override)
            else:
                result[key] = override
    return result


def _endpoint(data: dict, section: str) -> EndpointConfig:
    section_data = _apply_overrides(data[section], section)
    timeout = float(section_data["request_timeout"])
    if timeout <= 0:
        raise ValueError(f"{section}.request_timeout must be > 0")
    return EndpointConfig(url=section_data["url"], request_timeout=timeout)


def load_config(config_dir: str | Path) -> AppConfig:
    """Load configuration from TOML files.

    Args:
        config_dir: Path to configuration directory.

    Returns:
        Complete application configuration.

    Raises:
        FileNotFoundError: If required config file is missing.
        ValueError: If a configuration value is invalid.
        KeyError: If a required configuration value is missing.
    """
    config_path = Path(config_dir)

    app_path = config_path / "app.toml"
    logging_path = config_path / "logging.toml"

    for path in (app_path, logging_path):
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(app_path, "rb") as f:
        app_data = tomllib.load(f)

    with open(logging_path, "rb") as f:
        logging_data = tomllib.load(f)

    storage_data = _apply_overrides(app_data["storage"], "storage")
    if storage_data["backend"] not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend: {storage_data['backend']!r} "
            f"(expected one of {', '.join(STORAGE_BACKENDS)})"
        )

    gui_data = _apply_overrides(app_data["gui"], "gui")

    logging_section = _apply_overrides(
        {
            key: value
            for key, value in logging_data["logging"].items()
            if not isinstance(value, dict)
        },
        "logging",
    )
    logging_handlers = logging_data["logging"]["handlers"]
    logging_rotation = logging_data["logging"]["rotation"]

    return AppConfig(
        name=app_data["application"]["name"],
        version=app_data["application"]["version"],
        coordinator=_endpoint(app_data, "coordinator"),
        companion=_endpoint(app_data, "companion"),
        storage=StorageConfig(
            backend=storage_data["backend"],
            settings_file=storage_data["settings_file"],
        ),
        logging=LoggingConfig(
            level=logging_section["level"],
            format=logging_section["format"],
            date_format=logging_section["date_format"],
            console=logging_handlers["console"],
            file=logging_handlers["file"],
            json=logging_handlers["json"],
            file_path=logging_handlers["file_path"],
            max_size_mb=logging_rotation["max_size_mb"],
            backup_count=logging_rotation["backup_count"],
        ),
        gui=GuiConfig(
            width=gui_data["width"],
            height=gui_data["height"],
            locale=gui_data["locale"],
            forward_logs=gui_data["forward_logs"],
        ),
    )
