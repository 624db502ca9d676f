"""Keysplit — 2-of-3 secret sharing over GF(256) with tamper-evident shares."""

from .sharing import split, reconstruct, generate_compatible_share
from .integrity import compute_tag, verify_share
from .shares import Share, ShareType, COORDINATES, SHARE_VERSION
from .manager import split_key, combine_shares, generate_new_share_from_two
from .manager import verify_shares, save_shares, load_shares
from .errors import (
    ShareError, InsufficientSharesError, TamperedShareError, VersionMismatchError,
    DuplicateCoordinateError, AmbiguousTargetError, InvalidShareError,
)

__version__ = "1.0.0"
__all__ = [
    'split', 'reconstruct', 'generate_compatible_share',
    'compute_tag', 'verify_share',
    'Share', 'ShareType', 'COORDINATES', 'SHARE_VERSION',
    'split_key', 'combine_shares', 'generate_new_share_from_two',
    'verify_shares', 'save_shares', 'load_shares',
    'ShareError', 'InsufficientSharesError', 'TamperedShareError',
    'VersionMismatchError', 'DuplicateCoordinateError', 'AmbiguousTargetError',
    'InvalidShareError',
]
