"""Client-credentials authentication against the workflow engine token endpoint."""

from __future__ import annotations

import threading
from typing import Optional

import requests
from requests import Response
from requests.exceptions import RequestException

from wfimport.core.logger import get_logger

from .config import BpsConfig, load_timeout
from .models import BpsAuthError, describe_error_payload

LOGGER = get_logger()


class AuthClient:
    """Exchange client credentials for a bearer token, once per run.

    The token is cached for the lifetime of the client. Failures are never
    retried: a missing or rejected token is a configuration problem that must
    stop the whole run.
    """

    def __init__(
        self,
        config: BpsConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.verify = config.verify_tls
        self._session.trust_env = config.trust_env
        if config.proxies:
            self._session.proxies.update(config.proxies)
        self._lock = threading.RLock()
        self._token: str | None = None
        self._timeout = load_timeout(config)

    @property
    def session(self) -> requests.Session:
        """Expose the session used for token retrieval."""

        return self._session

    def get_token(self) -> str:
        """Return the cached access token, authenticating on first use."""

        with self._lock:
            if self._token is not None:
                return self._token
            return self._authenticate_locked()

    def authenticate(self) -> str:
        """Request a fresh token, replacing any cached one."""

        with self._lock:
            return self._authenticate_locked()

    # Internal helpers -------------------------------------------------

    def _authenticate_locked(self) -> str:
        form = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "grant_type": "client_credentials",
        }
        try:
            response = self._session.post(
                self._config.token_url,
                data=form,
                timeout=self._timeout,
            )
        except RequestException as exc:
            LOGGER.error(
                "bps.auth token_request_error url=%s error=%s",
                self._config.token_url,
                type(exc).__name__,
            )
            raise BpsAuthError(f"Token request failed: {exc}") from exc

        token = self._parse_response(response)
        self._token = token
        LOGGER.info("bps.auth token_acquired url=%s", self._config.token_url)
        return token

    def _parse_response(self, response: Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not 200 <= response.status_code < 300:
            detail = describe_error_payload(payload) if isinstance(payload, dict) else ""
            message = f"Token endpoint returned HTTP {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise BpsAuthError(
                message,
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict) else None,
            )
        if not isinstance(payload, dict):
            raise BpsAuthError("Token endpoint returned invalid JSON", status_code=response.status_code)
        token_value = payload.get("access_token")
        if not token_value:
            raise BpsAuthError("Token response missing access_token", status_code=response.status_code)
        return str(token_value)


__all__ = ["AuthClient"]
