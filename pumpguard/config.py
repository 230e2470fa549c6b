"""
Configuration for PumpGuard
===========================
Process-level runtime settings (paths, timing, HTTP surface), loaded from
environment variables. Pump tuning thresholds are not here; they live in
``ConfigStore`` and can change at runtime.
Sets up the logging configuration as well.
"""

import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pumpguard.constants import DEFAULT_HISTORY_CAPACITY, EVENT_TAIL_DEFAULT, MAX_HISTORY_CAPACITY
from pumpguard.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("PUMPGUARD_ENV", "development"))
    DEBUG: bool = field(default_factory=lambda: _env_bool("PUMPGUARD_DEBUG", False))

    data_dir: str = field(default_factory=lambda: os.getenv("PUMPGUARD_DATA_DIR", "var"))
    log_dir: str = field(default_factory=lambda: os.getenv("PUMPGUARD_LOG_DIR", "logs"))
    log_level: str = field(default_factory=lambda: os.getenv("PUMPGUARD_LOG_LEVEL", "INFO"))

    # Control loop
    tick_ms: int = field(default_factory=lambda: _env_int("PUMPGUARD_TICK_MS", 1000))
    history_capacity: int = field(
        default_factory=lambda: _env_int("PUMPGUARD_HISTORY_CAPACITY", DEFAULT_HISTORY_CAPACITY)
    )
    history_save_ms: int = field(default_factory=lambda: _env_int("PUMPGUARD_HISTORY_SAVE_MS", 60_000))
    event_tail_size: int = field(default_factory=lambda: _env_int("PUMPGUARD_EVENT_TAIL", EVENT_TAIL_DEFAULT))

    # Pump hardware; -1 runs without GPIO (recording driver)
    pump_gpio_pin: int = field(default_factory=lambda: _env_int("PUMPGUARD_PUMP_GPIO_PIN", -1))

    # Status / config API
    http_host: str = field(default_factory=lambda: os.getenv("PUMPGUARD_HTTP_HOST", "0.0.0.0"))
    http_port: int = field(default_factory=lambda: _env_int("PUMPGUARD_HTTP_PORT", 8000))
    socketio_cors_origins: str = field(default_factory=lambda: os.getenv("PUMPGUARD_SOCKETIO_CORS_ORIGINS", "*"))
    status_push_ms: int = field(default_factory=lambda: _env_int("PUMPGUARD_STATUS_PUSH_MS", 1000))

    def __post_init__(self) -> None:
        if self.tick_ms <= 0:
            raise ConfigurationError("PUMPGUARD_TICK_MS must be positive.")
        if not 1 <= self.history_capacity <= MAX_HISTORY_CAPACITY:
            raise ConfigurationError(f"PUMPGUARD_HISTORY_CAPACITY must be within 1..{MAX_HISTORY_CAPACITY}.")
        if self.event_tail_size < 1:
            raise ConfigurationError("PUMPGUARD_EVENT_TAIL must be at least 1.")

    @property
    def config_path(self) -> Path:
        return Path(self.data_dir) / "config.json"

    @property
    def history_path(self) -> Path:
        return Path(self.data_dir) / "history.bin"

    @property
    def events_path(self) -> Path:
        return Path(self.log_dir) / "events.csv"

    @property
    def soil_log_path(self) -> Path:
        return Path(self.log_dir) / "soil.csv"

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for the Flask application."""
        return {
            "PUMPGUARD_ENV": self.environment,
            "DEBUG": self.DEBUG,
        }


def setup_logging(config: AppConfig) -> None:
    """Install console and rotating file handlers on the root logger (idempotent)."""
    level = logging.DEBUG if config.DEBUG else getattr(logging, config.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    has_console = any(getattr(h, "name", "") == "pumpguard_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "pumpguard_file" for h in root.handlers)

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "pumpguard_console"
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if not has_file:
        os.makedirs(config.log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(config.log_dir, "pumpguard.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.name = "pumpguard_file"
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Werkzeug request lines are noise at one status poll per second
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
