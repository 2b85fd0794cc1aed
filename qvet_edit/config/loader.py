from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..services.retry import RetryPolicy

"""Config loader.

Responsibilities:
- Load YAML config/qvet.yml
- Validate against config_schema.json (shipped next to this module)
- Apply defaults for optional keys
- Read credentials from the environment (QVET_USER / QVET_PASS / QVET_AUTO)
"""

__all__ = [
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "ConfigError",
    "Timeouts",
    "AppConfig",
    "Credentials",
    "load_config",
    "load_credentials",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/qvet.yml")

ENV_USER = "QVET_USER"
ENV_PASS = "QVET_PASS"
ENV_AUTO = "QVET_AUTO"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Timeouts:
    page_load: float = 30.0
    element: float = 10.0
    open_entity: float = 15.0
    option_wait: float = 10.0
    edit_mode: float = 2.0


@dataclass(frozen=True)
class AppConfig:
    base_url: str
    home_path: str = "/Home/Index"
    headless: bool = True
    report_directory: str = "reports"
    log_directory: str = "logs"
    baseline_sheet: str = "Original"
    edited_sheet: str = "Editar"
    timeouts: Timeouts = field(default_factory=Timeouts)
    cascade_settle_seconds: float = 5.0
    save_settle_seconds: float = 3.0
    grid_strategy: str = "interactive"
    grid_retry: RetryPolicy = field(default_factory=RetryPolicy)

    @property
    def home_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.home_path.lstrip("/")


@dataclass(frozen=True)
class Credentials:
    """QVET login form values; ``clinic`` is the clinic code typed into #Clinica."""
    user: str | None
    password: str | None
    clinic: str | None

    @property
    def complete(self) -> bool:
        return bool(self.user and self.password and self.clinic)

    def missing(self) -> list[str]:
        pairs = ((ENV_USER, self.user), (ENV_PASS, self.password), (ENV_AUTO, self.clinic))
        return [name for name, value in pairs if not value]


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        prefix = f"{location}: " if location else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    defaults = AppConfig(base_url=data["base_url"])
    timeouts = Timeouts(**data.get("timeouts", {}))
    try:
        retry = RetryPolicy(**data.get("grid_retry", {}))
    except ValueError as e:  # pragma: no cover (schema bounds cover this)
        raise ConfigError(f"grid_retry: {e}") from e

    return AppConfig(
        base_url=data["base_url"],
        home_path=data.get("home_path", defaults.home_path),
        headless=data.get("headless", defaults.headless),
        report_directory=data.get("report_directory", defaults.report_directory),
        log_directory=data.get("log_directory", defaults.log_directory),
        baseline_sheet=data.get("baseline_sheet", defaults.baseline_sheet),
        edited_sheet=data.get("edited_sheet", defaults.edited_sheet),
        timeouts=timeouts,
        cascade_settle_seconds=float(data.get("cascade_settle_seconds", defaults.cascade_settle_seconds)),
        save_settle_seconds=float(data.get("save_settle_seconds", defaults.save_settle_seconds)),
        grid_strategy=data.get("grid_strategy", defaults.grid_strategy),
        grid_retry=retry,
    )


def load_credentials(env: Mapping[str, str] | None = None) -> Credentials:
    """Read credentials from ``env`` (default: os.environ, after .env was loaded)."""
    source = os.environ if env is None else env
    return Credentials(
        user=source.get(ENV_USER) or None,
        password=source.get(ENV_PASS) or None,
        clinic=source.get(ENV_AUTO) or None,
    )
