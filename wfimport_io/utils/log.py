"""Logging helpers for the wfimport_io package."""

# Module responsibilities:
# - Hand out loggers that share the application handlers configured in wfimport.core.logger.

from __future__ import annotations

import logging

from wfimport.core.logger import get_logger as core_get_logger


def get_logger(name: str) -> logging.Logger:
    """Return a package-scoped logger.

    Args:
        name: Logger name suffix appended to the ``io`` namespace.

    Returns:
        Child of the application logger, so records reach app.log and stdout.
    """

    return core_get_logger().getChild(f"io.{name}")
