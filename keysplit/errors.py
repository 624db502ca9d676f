"""
Keysplit error types.

Every failure the engine can report has its own class so callers can tell
a tampered share from a version clash without parsing messages. All of them
are ValueErrors, matching what the rest of the library raises for bad input.
"""


class ShareError(ValueError):
    """Base class for every share-level failure."""


class InsufficientSharesError(ShareError):
    """Fewer shares than the operation needs."""


class TamperedShareError(ShareError):
    """A share's integrity tag is missing or does not match its content."""


class VersionMismatchError(ShareError):
    """Shares combined in one operation carry different versions."""


class DuplicateCoordinateError(ShareError, ZeroDivisionError):
    """Two shares sit at the same x; interpolation would divide by zero."""


class AmbiguousTargetError(ShareError):
    """No single identity is left to derive a compatible share for."""


class InvalidShareError(ShareError):
    """Malformed share or secret (bad shape, bad hex, unknown type...)."""
