"""Configuration management for production and test environments.

Paths (checkpoint file, log directory) depend on the environment mode so test
runs never touch a production checkpoint. Upstream endpoints and credentials
come from environment variables; the CLI loads a ``.env`` file first.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.log import get_logger

log = get_logger(__name__)

EnvironmentMode = Literal["production", "test"]

CHECKPOINT_FILENAME = "anilibria_temp_data.json"

_DEFAULT_PRODUCTION_PATHS = {
    "checkpoint_path": Path("data") / CHECKPOINT_FILENAME,
    "log_dir": Path("logs"),
}

_DEFAULT_TEST_PATHS = {
    "checkpoint_path": Path("test_data") / CHECKPOINT_FILENAME,
    "log_dir": Path("test_data/logs"),
}


class EnvironmentConfig:
    """Manages environment-specific paths for the checkpoint file and logs."""

    def __init__(self, mode: EnvironmentMode = "production") -> None:
        self._mode: EnvironmentMode = mode
        self._paths: dict[str, Path] = {}
        self._load_paths()
        log.debug("environment_config_initialized", mode=mode, paths=str(self._paths))

    def _load_paths(self) -> None:
        """Load paths based on current mode."""
        if self._mode == "test":
            self._paths = _DEFAULT_TEST_PATHS.copy()
        else:
            self._paths = _DEFAULT_PRODUCTION_PATHS.copy()
        override = os.getenv("CHECKPOINT_PATH")
        if override:
            self._paths["checkpoint_path"] = Path(override)

    @property
    def mode(self) -> EnvironmentMode:
        """Get current environment mode."""
        return self._mode

    @property
    def checkpoint_path(self) -> Path:
        """Get checkpoint file path."""
        return self._paths["checkpoint_path"]

    @property
    def log_dir(self) -> Path:
        """Get session log directory."""
        return self._paths["log_dir"]

    def set_mode(self, mode: EnvironmentMode) -> None:
        """Change environment mode and reload paths."""
        if mode != self._mode:
            old_mode = self._mode
            self._mode = mode
            self._load_paths()
            log.info(
                "environment_mode_changed",
                old_mode=old_mode,
                new_mode=mode,
                new_paths=str(self._paths),
            )

    def get_summary(self) -> dict[str, str]:
        """Get summary of current configuration."""
        return {"mode": self._mode, **{k: str(v) for k, v in self._paths.items()}}


class ServiceSettings(BaseSettings):
    """Upstream endpoints, credentials and pipeline knobs.

    Each field reads the environment variable of the same name in upper case
    (``KODIK_TOKEN``, ``HTTP_TIMEOUT``, ...). Empty variables keep the default.
    """

    catalog_api_url: str = "https://shikimori.one/api/graphql"
    catalog_site_url: str = "https://shikimori.one"
    kodik_api_url: str = "https://kodikapi.com"
    kodik_token: str = ""
    kodik_player_host: str = "//kodik.info"
    destination_api_url: str = "http://localhost:8000/db/anime"
    asset_base_url: str = "https://s3.ru1.storage.beget.cloud/anime-assets"
    fandub_token: str = "AniLibria"
    http_timeout: float = 30.0
    catalog_rate_limit: float = 4.0
    user_agent: str = "Mozilla/5.0"

    model_config = SettingsConfigDict(env_ignore_empty=True, extra="ignore")

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        """Build settings from the process environment (the CLI loads ``.env`` first)."""
        settings = cls()
        log.debug(
            "service_settings_loaded",
            overridden=sorted(settings.model_fields_set),
            has_kodik_token=bool(settings.kodik_token),
        )
        return settings


# Global configuration instance (lazily initialized)
_config: EnvironmentConfig | None = None


def get_config() -> EnvironmentConfig:
    """Get the global configuration instance, initializing it in production mode."""
    global _config
    if _config is None:
        _config = EnvironmentConfig(mode="production")
    return _config


def set_test_mode() -> None:
    """Switch to test mode globally (``--test`` CLI flag, test fixtures)."""
    global _config
    if _config is None:
        _config = EnvironmentConfig(mode="test")
        log.info("initialized_in_test_mode", paths=_config.get_summary())
    else:
        _config.set_mode("test")
        log.info("switched_to_test_mode", paths=_config.get_summary())
