from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .models import AppConfig, Config

DEFAULT_CONFIG_DIR = Path.home() / ".hour_tracker"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "hours.sqlite"
DEFAULT_MARKDOWN_PATH = DEFAULT_CONFIG_DIR / "weeks"
CONFIG_ENV_VAR = "HOUR_TRACKER_CONFIG"
STORAGE_BACKENDS = ("sqlite", "markdown")


def resolve_config_path(value: str | None = None) -> Path:
    raw = value or os.environ.get(CONFIG_ENV_VAR) or str(DEFAULT_CONFIG_PATH)
    return Path(raw).expanduser()


def default_app_config(
    storage_path: Path | None = None, backend: str = "sqlite"
) -> AppConfig:
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(f"Unknown storage backend: {backend!r}")
    if storage_path is None:
        storage_path = DEFAULT_DB_PATH if backend == "sqlite" else DEFAULT_MARKDOWN_PATH
    profile = Config(
        profile_name="default",
        storage_backend=backend,
        storage_path=storage_path,
    )
    return AppConfig(default_profile="default", profiles={"default": profile})


def _profile_from_dict(name: str, data: dict[str, Any]) -> Config:
    backend = str(data.get("storage_backend", "sqlite"))
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(f"Profile {name!r}: unknown storage backend {backend!r}")
    default_path = DEFAULT_DB_PATH if backend == "sqlite" else DEFAULT_MARKDOWN_PATH
    return Config(
        profile_name=name,
        storage_backend=backend,
        storage_path=Path(str(data.get("storage_path") or default_path)).expanduser(),
    )


def load_app_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(
            f"Config not found at {path}. Run 'hour-tracker init' first."
        )
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config at {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config at {path} must be a mapping.")
    raw_profiles = data.get("profiles") or {}
    if not isinstance(raw_profiles, dict) or not raw_profiles:
        raise ConfigError(f"Config at {path} defines no profiles.")
    profiles = {
        str(name): _profile_from_dict(str(name), values or {})
        for name, values in raw_profiles.items()
    }
    default_profile = str(data.get("default_profile") or next(iter(profiles)))
    if default_profile not in profiles:
        raise ConfigError(f"Default profile {default_profile!r} is not defined.")
    return AppConfig(default_profile=default_profile, profiles=profiles)


def load_config(path: Path, profile: str | None = None) -> Config:
    app_config = load_app_config(path)
    name = profile or app_config.default_profile
    try:
        return app_config.profiles[name]
    except KeyError:
        raise ConfigError(f"Profile {name!r} not found in {path}.") from None


def save_config(path: Path, app_config: AppConfig) -> None:
    payload = {
        "default_profile": app_config.default_profile,
        "profiles": {
            name: {
                "storage_backend": config.storage_backend,
                "storage_path": str(config.storage_path),
            }
            for name, config in app_config.profiles.items()
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
