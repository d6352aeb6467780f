"""Workflow engine REST API integration."""

from .client import BpsClient
from .config import BpsConfig, RetryPolicy, resolve_config
from .models import BpsAuthError, BpsError, BpsRequestError, BpsRetryableError

__all__ = [
    "BpsClient",
    "BpsConfig",
    "RetryPolicy",
    "resolve_config",
    "BpsError",
    "BpsAuthError",
    "BpsRequestError",
    "BpsRetryableError",
]
