"""Primary client implementation for the workflow engine element API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from wfimport.core.logger import get_logger

from .auth import AuthClient
from .config import BpsConfig, resolve_config
from .http import HttpClient
from .models import BpsRequestError

LOGGER = get_logger()

API_VERSION = "v6.0"


class ElementSink(Protocol):
    """Contract the import driver relies on: one call per row."""

    def create_element(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Create a workflow element from an assembled request body."""


class BpsClient:
    """High level facade over the workflow engine REST API."""

    def __init__(
        self,
        config: BpsConfig,
        *,
        http_client: HttpClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or LOGGER
        self._http = http_client or HttpClient(config, logger=self._logger)

    @classmethod
    def from_profile(cls, profile: str | None = None, *, config_path: str | Path | None = None) -> "BpsClient":
        """Instantiate a client using ``profiles.yaml`` plus environment overrides."""

        config = resolve_config(profile, config_path=config_path)
        return cls(config)

    @property
    def config(self) -> BpsConfig:
        return self._config

    @property
    def auth(self) -> AuthClient:
        return self._http.auth_client

    def authenticate(self) -> None:
        """Acquire the run's bearer token. Raises ``BpsAuthError`` on failure."""

        self._http.auth_client.authenticate()

    def elements_path(self) -> str:
        return f"/api/data/{API_VERSION}/db/{self._config.database_id}/elements"

    def create_element(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """POST a new element and return the decoded response body."""

        result = self._http.request(
            "POST",
            self.elements_path(),
            params={"path": self._config.path, "mode": self._config.mode},
            json_body=body,
        )
        if not isinstance(result, dict):
            raise BpsRequestError("Element creation response invalid", payload={"body": result})
        self._logger.debug("bps.client element_created id=%s", result.get("id"))
        return result

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "BpsClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["BpsClient", "ElementSink", "API_VERSION"]
