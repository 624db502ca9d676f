"""
Keysplit engine — 2-of-3 Shamir secret sharing over GF(2^8).

Every byte of the secret is shared independently with its own degree-1
polynomial f(x) = s + r*x, where r is a fresh random field element. The
polynomial is evaluated at x = 1, 2, 3 for the device, server and recovery
shares. Any two points pin the line down and give back f(0) = s; a single
point is uniformly distributed whatever s is.

The scheme is fixed: always three shares, always threshold two.

SECURITY: the coefficients must come from a cryptographically secure
generator. A weak source breaks the hiding property silently, with no error
anywhere. This module draws from `secrets` and nothing else.
"""

import logging
import secrets
from dataclasses import replace

from . import gf256
from .errors import (
    AmbiguousTargetError,
    DuplicateCoordinateError,
    InsufficientSharesError,
    InvalidShareError,
    TamperedShareError,
    VersionMismatchError,
)
from .integrity import compute_tag, verify_share
from .shares import COORDINATES, SHARE_VERSION, Share, ShareType

logger = logging.getLogger(__name__)

MIN_SHARES = 2

# Output order of split()
SHARE_ORDER = (ShareType.DEVICE, ShareType.SERVER, ShareType.RECOVERY)


def _random_coefficients(count: int) -> bytes:
    """One independent CSPRNG byte per secret byte."""
    return secrets.token_bytes(count)


def _stamp(share: Share) -> Share:
    return replace(share, hash=compute_tag(share))


def _interpolate(points: list, x: int) -> int:
    """
    Lagrange-evaluate the polynomial through `points` at `x` in GF(256).

    Args:
        points: list of (x_k, y_k) pairs with distinct x_k
        x: where to evaluate (0 recovers the secret byte)
    """
    result = 0
    for k, (xk, yk) in enumerate(points):
        term = yk
        for j, (xj, _) in enumerate(points):
            if j == k:
                continue
            numerator = gf256.subtract(x, xj)
            denominator = gf256.subtract(xk, xj)
            term = gf256.multiply(term, gf256.divide(numerator, denominator))
        result = gf256.add(result, term)
    return result


def _check_shares(shares: list, operation: str) -> None:
    """
    Eager precondition checks shared by reconstruct and derivation.

    Order: count, integrity, identity binding, version, payload length,
    duplicate coordinates. The first failure aborts the whole operation;
    nothing is dropped or skipped.
    """
    if len(shares) < MIN_SHARES:
        logger.warning("%s rejected: %d share(s) supplied", operation, len(shares))
        raise InsufficientSharesError(
            f"Need at least {MIN_SHARES} shares, got {len(shares)}")

    for i, share in enumerate(shares):
        if not isinstance(share, Share):
            raise InvalidShareError(
                f"Share {i + 1} is a {type(share).__name__}, not a Share")

    bad = [i + 1 for i, share in enumerate(shares) if not verify_share(share)]
    if bad:
        logger.warning("%s rejected: tag check failed for share(s) %s", operation, bad)
        raise TamperedShareError(
            f"Invalid or tampered share(s) detected: {', '.join(map(str, bad))}")

    misplaced = [i + 1 for i, share in enumerate(shares)
                 if COORDINATES.get(share.type) != share.x]
    if misplaced:
        logger.warning("%s rejected: identity/coordinate mismatch for share(s) %s",
                       operation, misplaced)
        raise InvalidShareError(
            "Share type does not match its coordinate for share(s): "
            f"{', '.join(map(str, misplaced))}")

    versions = {share.version for share in shares}
    if len(versions) > 1:
        logger.warning("%s rejected: mixed versions %s", operation, sorted(versions))
        raise VersionMismatchError(
            f"Incompatible share versions: {sorted(versions)}")

    lengths = {len(share.y) for share in shares}
    if len(lengths) > 1:
        raise InvalidShareError(
            f"Shares have different payload lengths: {sorted(lengths)}")

    xs = [share.x for share in shares]
    if len(set(xs)) != len(xs):
        logger.warning("%s rejected: duplicate coordinates %s", operation, xs)
        raise DuplicateCoordinateError(
            f"Duplicate share coordinates {xs}: interpolation would divide by zero")


def split(secret: bytes) -> list:
    """
    Split a secret into three shares, any two of which recover it.

    Args:
        secret: the bytes to split (may be empty)

    Returns:
        [device, server, recovery], each with len(y) == len(secret),
        version 1 and a fresh integrity tag.

    Raises:
        InvalidShareError: if secret is not bytes-like
    """
    if not isinstance(secret, (bytes, bytearray, memoryview)):
        raise InvalidShareError(
            f"Secret must be bytes, got {type(secret).__name__}")
    secret = bytes(secret)

    coefficients = _random_coefficients(len(secret))
    payloads = {share_type: bytearray(len(secret)) for share_type in SHARE_ORDER}

    for i, (s, r) in enumerate(zip(secret, coefficients)):
        for share_type in SHARE_ORDER:
            x = COORDINATES[share_type]
            payloads[share_type][i] = gf256.add(s, gf256.multiply(r, x))

    shares = [
        _stamp(Share(type=share_type, x=COORDINATES[share_type],
                     y=bytes(payloads[share_type]), version=SHARE_VERSION))
        for share_type in SHARE_ORDER
    ]
    logger.debug("Split %d-byte secret into %d shares", len(secret), len(shares))
    return shares


def reconstruct(shares: list) -> bytes:
    """
    Recover the secret from two or more shares via Lagrange interpolation at 0.

    Raises:
        InsufficientSharesError: fewer than 2 shares
        TamperedShareError: any share fails its integrity check
        VersionMismatchError: shares disagree on version
        InvalidShareError: payload lengths differ, or a share sits at the
            wrong x for its identity
        DuplicateCoordinateError: two shares share an x
    """
    shares = list(shares)
    _check_shares(shares, "reconstruct")

    length = len(shares[0].y)
    secret = bytes(
        _interpolate([(share.x, share.y[i]) for share in shares], 0)
        for i in range(length)
    )
    logger.debug("Reconstructed %d-byte secret from %d shares", length, len(shares))
    return secret


def _resolve_target(shares: list, target_type) -> ShareType:
    present = {share.type for share in shares}
    if target_type is None:
        missing = [t for t in SHARE_ORDER if t not in present]
        if len(missing) != 1:
            raise AmbiguousTargetError(
                "Could not determine which share type to generate: "
                f"inputs cover {sorted(t.value for t in present)}")
        return missing[0]

    try:
        target = ShareType(target_type)
    except ValueError:
        raise InvalidShareError(f"Unknown share type: {target_type!r}")
    if target in present:
        raise AmbiguousTargetError(
            f"Target type {target.value!r} is already among the input shares")
    return target


def generate_compatible_share(shares: list, target_type=None) -> Share:
    """
    Derive a share for a missing identity from two existing ones.

    The new share lies on the same per-byte polynomials as the inputs, so it
    combines with either of them to give back the same secret.

    Args:
        shares: the existing shares (two, normally)
        target_type: identity to generate; defaults to the one not present

    Raises:
        AmbiguousTargetError: no single identity is missing, or target_type
            is already among the inputs
        plus everything reconstruct() raises for bad inputs
    """
    shares = list(shares)
    _check_shares(shares, "generate_compatible_share")
    target = _resolve_target(shares, target_type)

    x = COORDINATES[target]
    length = len(shares[0].y)
    y = bytes(
        _interpolate([(share.x, share.y[i]) for share in shares], x)
        for i in range(length)
    )
    share = _stamp(Share(type=target, x=x, y=y, version=shares[0].version))
    logger.debug("Derived %s share from %s", target.value,
                 [s.type.value for s in shares])
    return share
