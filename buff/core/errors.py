"""Error taxonomy for the buff client.

Every failure the core can produce is a BuffError subclass. Nothing below
the CLI terminates the process; `buff.cli.main` decides how to report.
"""

from typing import Optional


class BuffError(Exception):
    """Base class for all client errors.

    Carries a human-readable message suitable for a single terminal line.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TraversalError(BuffError):
    """The package root (or, in strict mode, a subtree) cannot be walked."""


class ArchiveError(BuffError):
    """A source file vanished or became unreadable while archiving."""


class CompressionError(BuffError):
    """I/O failure while compressing or persisting an artifact."""


class ConfigError(BuffError):
    """The credential store is malformed or cannot be written."""


class ManifestError(BuffError):
    """buff.toml is missing, unreadable or malformed."""


class AuthError(BuffError):
    """Login was refused or the registry could not be reached."""


class PublishError(BuffError):
    """Publishing failed.

    `reason` is one of the class-level reason constants, so callers can tell
    a missing login apart from a broken artifact or a server-side rejection.
    """

    MISSING_CREDENTIAL = "missing_credential"
    ARTIFACT = "artifact"
    REJECTED = "rejected"
    UNREACHABLE = "unreachable"

    def __init__(self, reason: str, message: str, cause: Optional[Exception] = None):
        self.reason = reason
        self.cause = cause
        super().__init__(message)


def describe_validation_error(exc) -> str:
    """One-line summary of a pydantic ValidationError."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
