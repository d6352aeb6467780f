"""Custom exceptions used across wfimport."""


class WfImportError(Exception):
    """Base error for the application."""


class ConfigError(WfImportError):
    """Configuration related error."""


class MappingError(WfImportError):
    """Raised when field mapping metadata cannot be read from the source workbook."""
