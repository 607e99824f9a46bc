from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    AUTH_ERROR = 3
    OCI_ERROR = 4
    RUNTIME_ERROR = 5
    DISCOVERY_ERROR = 6


class DiscoverError(Exception):
    """Base error for the discovery pipeline."""


class ConfigError(DiscoverError):
    """Raised for configuration or argument issues."""


class AuthResolutionError(DiscoverError):
    """Raised when authentication cannot be resolved."""


class OCIClientError(DiscoverError):
    """Raised when OCI SDK operations fail in a non-retriable way."""


class DiscoveryError(DiscoverError):
    """
    Raised when the instance inventory cannot be fetched. Fatal to the run:
    there is no partial-inventory mode.
    """


class FilterPatternError(DiscoverError):
    """Raised when a filter is not a valid regular expression. Local to that filter."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid filter pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ExportError(DiscoverError):
    """Raised when writing an artifact fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, AuthResolutionError):
        return int(ExitCode.AUTH_ERROR)
    if isinstance(exc, DiscoveryError):
        return int(ExitCode.DISCOVERY_ERROR)
    if isinstance(exc, OCIClientError):
        return int(ExitCode.OCI_ERROR)
    if isinstance(exc, (ExportError, FilterPatternError, DiscoverError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1


def _oci_error_types() -> tuple[type[BaseException], ...]:
    try:
        from oci.exceptions import RequestException, ServiceError  # type: ignore
    except Exception:
        return ()
    return (ServiceError, RequestException)


def is_oci_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like an OCI SDK error (service error,
    transport error, or anything raised from an oci.* module).
    """
    oci_types = _oci_error_types()
    if oci_types and isinstance(exc, oci_types):
        return True
    return exc.__class__.__module__.startswith("oci.")


def map_oci_error(exc: BaseException, context: str) -> OCIClientError | None:
    """
    Wrap OCI SDK errors with OCIClientError for consistent exit codes.
    Returns None for non-SDK exceptions so callers can re-raise them untouched.
    """
    if not is_oci_error(exc):
        return None
    status = getattr(exc, "status", None)
    code = getattr(exc, "code", None)
    if status is not None and code:
        return OCIClientError(f"{context}: {status} {code}: {getattr(exc, 'message', exc)}")
    return OCIClientError(f"{context}: {exc}")
