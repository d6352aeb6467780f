"""HTTP utilities for the workflow engine REST API."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, MutableMapping

import requests
from requests import Response
from requests.exceptions import ConnectionError, Timeout

from wfimport.core.logger import get_logger

from .auth import AuthClient
from .config import BpsConfig, RetryPolicy, load_retry_policy, load_timeout
from .models import BpsRequestError, BpsRetryableError, describe_error_payload

LOGGER = get_logger()

USER_AGENT = "wfimport/1.0"
NOT_IMPLEMENTED = 501


def is_retryable_status(status: int) -> bool:
    """5xx responses are transient, except 501 which never heals on retry."""

    return 500 <= status < 600 and status != NOT_IMPLEMENTED


class HttpClient:
    """Request helper wrapping bearer auth, error classification and retries."""

    def __init__(
        self,
        config: BpsConfig,
        *,
        session: requests.Session | None = None,
        auth_client: AuthClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.verify = config.verify_tls
        self._session.trust_env = config.trust_env
        if config.proxies:
            self._session.proxies.update(config.proxies)
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._auth = auth_client or AuthClient(config, session=self._session)
        self._logger = logger or LOGGER
        self._retry_policy = load_retry_policy(config)
        self._timeout = load_timeout(config)

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def auth_client(self) -> AuthClient:
        """Return the authentication helper used by this client."""

        return self._auth

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Mapping[str, object] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Perform one logical API call, retrying transient failures.

        Attempt 0 is the initial try. After a retryable failure on attempt ``n``
        with ``n < max_retries`` the client sleeps ``base * 2**n`` seconds and
        tries again. Permanent failures and exhausted retries raise the last
        error. Returns the decoded JSON body of the successful response.
        """

        url = self._compose_url(path)
        policy = self._retry_policy
        attempt = 0
        while True:
            try:
                return self._send_once(method, url, params=params, json_body=json_body, timeout=timeout)
            except BpsRetryableError as exc:
                if attempt >= policy.max_retries:
                    self._logger.error(
                        "bps.http retries_exhausted method=%s url=%s attempts=%d error=%s",
                        method,
                        self._redact_url(url),
                        attempt + 1,
                        exc,
                    )
                    raise
                delay = policy.base_delay_seconds * (2 ** attempt)
                self._logger.warning(
                    "bps.http retry method=%s url=%s attempt=%d/%d delay=%.1fs error=%s",
                    method,
                    self._redact_url(url),
                    attempt + 1,
                    policy.max_retries,
                    delay,
                    exc,
                )
                time.sleep(delay)
                attempt += 1

    # Internal helpers -------------------------------------------------

    def _send_once(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None,
        json_body: Mapping[str, object] | None,
        timeout: float | None,
    ) -> Any:
        headers: MutableMapping[str, str] = {
            "Authorization": f"Bearer {self._auth.get_token()}",
            "Accept": "application/json",
        }
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                params=dict(params or {}),
                json=json_body,
                timeout=timeout or self._timeout,
            )
        except (ConnectionError, Timeout) as exc:
            self._logger.warning(
                "bps.http transport_error method=%s url=%s error=%s",
                method,
                self._redact_url(url),
                type(exc).__name__,
            )
            raise BpsRetryableError(f"{type(exc).__name__}: {exc}", payload={"url": self._redact_url(url)}) from exc
        except Exception as exc:  # noqa: BLE001 - unknown failures are permanent
            self._logger.error(
                "bps.http unexpected_error method=%s url=%s error=%s",
                method,
                self._redact_url(url),
                type(exc).__name__,
            )
            raise BpsRequestError(f"{type(exc).__name__}: {exc}", payload={"url": self._redact_url(url)}) from exc

        status = response.status_code
        payload = self._safe_json(response)
        if 200 <= status < 300:
            return payload

        body = payload if isinstance(payload, dict) else {"body": payload}
        message = self._failure_message(response, body)
        if is_retryable_status(status):
            self._logger.warning(
                "bps.http retryable_status method=%s url=%s status=%d",
                method,
                self._redact_url(url),
                status,
            )
            raise BpsRetryableError(message, status_code=status, payload=body)
        self._logger.error(
            "bps.http request_rejected method=%s url=%s status=%d detail=%s",
            method,
            self._redact_url(url),
            status,
            describe_error_payload(body),
        )
        raise BpsRequestError(message, status_code=status, payload=body)

    def _failure_message(self, response: Response, body: Mapping[str, Any]) -> str:
        reason = getattr(response, "reason", "") or ""
        head = f"HTTP {response.status_code} {reason}".rstrip()
        detail = describe_error_payload(body)
        return f"{head}: {detail}" if detail else head

    def _redact_url(self, url: str) -> str:
        if "?" in url:
            return url.split("?")[0]
        return url

    def _compose_url(self, path: str) -> str:
        base = self._config.base_url.rstrip("/")
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}{path}"

    def _safe_json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError:
            text = response.text or ""
            if len(text) > 200:
                text = text[:200] + "..."
            return {"body": text} if text else {}

    def close(self) -> None:
        self._session.close()


__all__ = ["HttpClient", "is_retryable_status"]
