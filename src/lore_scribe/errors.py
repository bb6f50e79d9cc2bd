# ABOUTME: Error taxonomy shared by every pipeline phase
# ABOUTME: Each exception carries an ErrorKind so per-item results can be classified without type checks

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories reported in run logs."""

    PARSE = "parse"
    VALIDATION = "validation"
    IO = "io"
    NETWORK_TRANSIENT = "network_transient"
    NETWORK_PERMANENT = "network_permanent"
    REFERENCE_RESOLUTION = "reference_resolution"
    PREREQUISITE_MISSING = "prerequisite_missing"


class LoreScribeError(Exception):
    """Base exception for all pipeline errors."""

    kind: ErrorKind = ErrorKind.VALIDATION


class ParseError(LoreScribeError):
    """Raised when a source or registry file is not valid JSON."""

    kind = ErrorKind.PARSE


class ValidationError(LoreScribeError):
    """Raised when a record is missing identity fields or cannot be accepted."""

    kind = ErrorKind.VALIDATION


class UnknownEntityClassError(ValidationError):
    """Raised when a record declares an entity class outside the known set."""

    def __init__(self, entity_class: object):
        super().__init__(f"Unknown entity class: {entity_class!r}")
        self.entity_class = entity_class


class StorageError(LoreScribeError):
    """Raised when reading or writing a local file fails."""

    kind = ErrorKind.IO


class NetworkError(LoreScribeError):
    """Base class for failed fetches."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkTransientError(NetworkError):
    """Timeouts, connection failures and 5xx responses; eligible for retry."""

    kind = ErrorKind.NETWORK_TRANSIENT


class NetworkPermanentError(NetworkError):
    """403, 404 and other client errors; never retried."""

    kind = ErrorKind.NETWORK_PERMANENT


class ReferenceResolutionError(LoreScribeError):
    """Raised when a cited entity or image ID cannot be resolved."""

    kind = ErrorKind.REFERENCE_RESOLUTION


class PrerequisiteMissingError(LoreScribeError):
    """Raised when a required registry has not been synchronized yet. Fatal for the run."""

    kind = ErrorKind.PREREQUISITE_MISSING

    def __init__(self, registry_name: str, command: str):
        super().__init__(f"Registry not found: {registry_name}. Run `lore-scribe {command}` first.")
        self.registry_name = registry_name
        self.command = command
