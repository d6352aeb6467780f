"""
RESPONSIBILITIES
- Provide a persistence-local logger helper reusing the core logging setup.
"""

from __future__ import annotations

import logging

from wfimport.core.logger import get_logger as core_get_logger


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger for persistence modules."""

    return core_get_logger().getChild(f"persist.{name}")
