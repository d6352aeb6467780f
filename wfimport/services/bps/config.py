"""Configuration loader for the workflow engine API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from wfimport.core.errors import ConfigError
from wfimport.core.logger import get_logger
from wfimport.core.profiles import resolve_config_path

LOGGER = get_logger()

DEFAULT_TIMEOUT = 30.0
DEFAULT_PATH = "default"
DEFAULT_MODE = "standard"
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 2.0

BASE_URL_ENV = "BPS_BASE_URL"
CLIENT_ID_ENV = "BPS_CLIENT_ID"
CLIENT_SECRET_ENV = "BPS_CLIENT_SECRET"
DATABASE_ID_ENV = "BPS_DATABASE_ID"
TIMEOUT_ENV = "BPS_TIMEOUT_SEC"
MAX_RETRIES_ENV = "BPS_MAX_RETRIES"
BASE_DELAY_ENV = "BPS_BASE_DELAY_SEC"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff parameters: attempt n (1-indexed) waits ``base * 2**(n-1)`` seconds."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay_seconds <= 0:
            raise ConfigError(f"base_delay_seconds must be > 0, got {self.base_delay_seconds}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "RetryPolicy":
        if not data:
            return cls()
        return cls(
            max_retries=int(data.get("max_retries", DEFAULT_MAX_RETRIES)),
            base_delay_seconds=float(data.get("base_delay_seconds", DEFAULT_BASE_DELAY)),
        )

    def delay_for(self, attempt: int) -> float:
        """Return the sleep before retry number *attempt* (1-indexed)."""

        if attempt < 1:
            raise ValueError("attempt is 1-indexed")
        return self.base_delay_seconds * (2 ** (attempt - 1))

    def delays(self) -> list[float]:
        return [self.delay_for(attempt) for attempt in range(1, self.max_retries + 1)]


@dataclass(slots=True)
class BpsConfig:
    """Resolved connection settings for one workflow engine instance."""

    base_url: str
    client_id: str
    client_secret: str
    database_id: str
    path: str = DEFAULT_PATH
    mode: str = DEFAULT_MODE
    timeout_sec: float = DEFAULT_TIMEOUT
    retries: RetryPolicy = field(default_factory=RetryPolicy)
    verify_tls: bool = True
    trust_env: bool = False
    proxies: Mapping[str, str] | None = None

    @property
    def token_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/oauth2/token"

    @classmethod
    def from_profile(cls, profile_name: str, *, config_path: str | Path | None = None) -> "BpsConfig":
        """Create a configuration instance from profiles.yaml.

        Args:
            profile_name: Logical profile name under the ``bps`` section.
            config_path: Optional override for the config file path.

        Returns:
            Parsed ``BpsConfig`` instance.

        Raises:
            ConfigError: If the configuration cannot be loaded or is invalid.
        """

        raw = _load_profiles_file(path=config_path).get(profile_name)
        if raw is None:
            raise ConfigError(f"bps profile '{profile_name}' not found in profiles.yaml")
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BpsConfig":
        """Create a configuration instance from a mapping."""

        def _require(key: str) -> str:
            value = data.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ConfigError(f"Missing required bps config value: {key}")
            return str(_expand_env(value)).strip()

        proxies_raw = data.get("proxies")
        proxies: Mapping[str, str] | None = None
        if isinstance(proxies_raw, Mapping):
            proxies = {k: _expand_env(v) for k, v in proxies_raw.items()}
        retries_raw = data.get("retries")

        try:
            timeout_sec = float(data.get("timeout_sec", DEFAULT_TIMEOUT))
            retries = RetryPolicy.from_mapping(retries_raw if isinstance(retries_raw, Mapping) else None)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric bps config value: {exc}") from exc

        return cls(
            base_url=_require("base_url"),
            client_id=_require("client_id"),
            client_secret=_require("client_secret"),
            database_id=_require("database_id"),
            path=str(_expand_env(data.get("path", DEFAULT_PATH))),
            mode=str(_expand_env(data.get("mode", DEFAULT_MODE))),
            timeout_sec=timeout_sec,
            retries=retries,
            verify_tls=bool(data.get("verify_tls", True)),
            trust_env=bool(data.get("trust_env", False)),
            proxies=proxies,
        )


def _read_env(key: str) -> str | None:
    value = os.getenv(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_env_int(key: str) -> int | None:
    value = _read_env(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:  # noqa: BLE001 - configuration validation
        raise ConfigError(f"Environment variable {key} must be an integer") from exc


def _read_env_float(key: str) -> float | None:
    value = _read_env(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:  # noqa: BLE001 - configuration validation
        raise ConfigError(f"Environment variable {key} must be a number") from exc


def load_timeout(config: BpsConfig | None = None) -> float:
    """Return the request timeout in seconds."""

    value = _read_env_float(TIMEOUT_ENV)
    if value is not None:
        return value
    if config:
        return float(config.timeout_sec)
    return DEFAULT_TIMEOUT


def load_retry_policy(config: BpsConfig | None = None) -> RetryPolicy:
    """Return the retry policy applying environment overrides."""

    base = config.retries if config is not None else RetryPolicy()
    max_retries = _read_env_int(MAX_RETRIES_ENV)
    base_delay = _read_env_float(BASE_DELAY_ENV)
    return RetryPolicy(
        max_retries=base.max_retries if max_retries is None else max_retries,
        base_delay_seconds=base.base_delay_seconds if base_delay is None else base_delay,
    )


def resolve_config(profile: str | None = None, *, config_path: str | Path | None = None) -> BpsConfig:
    """Resolve configuration from a profile or environment variables with overrides."""

    if profile:
        base = BpsConfig.from_profile(profile, config_path=config_path)
        return BpsConfig(
            base_url=_read_env(BASE_URL_ENV) or base.base_url,
            client_id=_read_env(CLIENT_ID_ENV) or base.client_id,
            client_secret=_read_env(CLIENT_SECRET_ENV) or base.client_secret,
            database_id=_read_env(DATABASE_ID_ENV) or base.database_id,
            path=base.path,
            mode=base.mode,
            timeout_sec=load_timeout(base),
            retries=load_retry_policy(base),
            verify_tls=base.verify_tls,
            trust_env=base.trust_env,
            proxies=base.proxies,
        )

    return BpsConfig.from_mapping(
        {
            "base_url": _read_env(BASE_URL_ENV),
            "client_id": _read_env(CLIENT_ID_ENV),
            "client_secret": _read_env(CLIENT_SECRET_ENV),
            "database_id": _read_env(DATABASE_ID_ENV),
            "timeout_sec": load_timeout(None),
            "retries": {
                "max_retries": load_retry_policy(None).max_retries,
                "base_delay_seconds": load_retry_policy(None).base_delay_seconds,
            },
        }
    )


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        if "${" in value and "}" in value and expanded == value:
            raise ConfigError(f"Environment variable not set for value: {value}")
        return expanded
    return value


def load_profiles_document(path: str | Path | None = None) -> dict[str, Any]:
    """Read profiles.yaml and return the parsed top-level mapping."""

    cfg_path = resolve_config_path(path or "profiles.yaml")
    if not cfg_path.exists():
        raise ConfigError(f"profiles.yaml not found at {cfg_path}")
    try:
        with cfg_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid yaml in {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a mapping at the top level")
    return data


def _load_profiles_file(*, path: str | Path | None) -> dict[str, Mapping[str, Any]]:
    data = load_profiles_document(path)
    section = data.get("bps")
    if not isinstance(section, Mapping):
        raise ConfigError("profiles.yaml missing 'bps' section")
    profiles: dict[str, Mapping[str, Any]] = {}
    for key, value in section.items():
        if not isinstance(value, Mapping):
            LOGGER.warning("Ignoring bps profile %s with invalid type", key)
            continue
        profiles[str(key)] = value
    if not profiles:
        raise ConfigError("No bps profiles defined in profiles.yaml")
    return profiles


__all__ = [
    "BpsConfig",
    "RetryPolicy",
    "BASE_URL_ENV",
    "CLIENT_ID_ENV",
    "CLIENT_SECRET_ENV",
    "DATABASE_ID_ENV",
    "TIMEOUT_ENV",
    "MAX_RETRIES_ENV",
    "BASE_DELAY_ENV",
    "load_timeout",
    "load_retry_policy",
    "load_profiles_document",
    "resolve_config",
]
