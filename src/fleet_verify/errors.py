"""Exceptions raised by fleet-verify."""


class FleetVerifyError(Exception):
    """Base exception for fleet-verify errors."""

    pass


class ConfigError(FleetVerifyError, ValueError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class StoreError(FleetVerifyError):
    """Raised when the status store cannot be written."""

    pass
