"""
Keysplit — Key manager.

String-level operations on top of the engine: split a text key into portable
share dicts, combine share dicts back into the key, derive a lost share from
two survivors, and check a set of shares without combining them.

Shares cross this layer as plain dicts (see shares.Share.to_dict) so they can
be stored as JSON or sent over the wire as-is.
"""

import json
import logging
from pathlib import Path

from . import sharing
from .errors import InsufficientSharesError, InvalidShareError, ShareError
from .integrity import verify_share
from .shares import Share

logger = logging.getLogger(__name__)

ENGINE_TOTAL = 3
ENGINE_THRESHOLD = 2


def _rewrap(exc: ShareError, context: str) -> ShareError:
    """Same error class, message prefixed with what we were doing."""
    return type(exc)(f"{context}: {exc}")


def _decode(shares: list) -> list:
    decoded = []
    for i, data in enumerate(shares, 1):
        try:
            decoded.append(Share.from_dict(data))
        except InvalidShareError as e:
            raise InvalidShareError(f"Share {i}: {e}")
    return decoded


def split_key(secret: str, total_shares: int = ENGINE_TOTAL,
              threshold: int = ENGINE_THRESHOLD) -> list:
    """
    Split a text key into three portable shares.

    Args:
        secret: the key, encoded as UTF-8 before splitting
        total_shares: requested share count (N), must be >= threshold
        threshold: requested threshold (K), must be >= 2

    Returns:
        List of three share dicts: device, server, recovery.

    The engine is fixed at 2-of-3. Other N/K values are validated and then
    ignored, with a warning.
    """
    try:
        if not isinstance(secret, str) or not secret:
            raise InvalidShareError("Secret key is required")
        if threshold < 2:
            raise InvalidShareError("Threshold must be at least 2")
        if total_shares < threshold:
            raise InvalidShareError("Total shares must be greater than or equal to threshold")

        if (total_shares, threshold) != (ENGINE_TOTAL, ENGINE_THRESHOLD):
            logger.warning(
                "Requested %d-of-%d, but shares are always 2-of-3; producing 3 shares",
                threshold, total_shares)

        shares = sharing.split(secret.encode('utf-8'))
    except ShareError as e:
        raise _rewrap(e, "Failed to split key") from e

    return [share.to_dict() for share in shares]


def combine_shares(shares: list) -> str:
    """
    Combine two or more share dicts back into the text key.

    Raises:
        ShareError subclass describing the first problem found
    """
    try:
        if not isinstance(shares, (list, tuple)):
            raise InvalidShareError("Shares must be a list")
        if len(shares) < 2:
            raise InsufficientSharesError("At least 2 valid shares are required")

        secret = sharing.reconstruct(_decode(shares))
        try:
            return secret.decode('utf-8')
        except UnicodeDecodeError:
            raise InvalidShareError("Recovered key is not valid UTF-8")
    except ShareError as e:
        raise _rewrap(e, "Failed to combine shares") from e


def generate_new_share_from_two(share1: dict, share2: dict) -> dict:
    """Derive the missing third share from two existing share dicts."""
    try:
        if not share1 or not share2:
            raise InsufficientSharesError("Two valid shares are required")

        new_share = sharing.generate_compatible_share(_decode([share1, share2]))
    except ShareError as e:
        raise _rewrap(e, "Failed to generate new share") from e

    return new_share.to_dict()


def verify_shares(shares: list) -> dict:
    """
    Check a set of share dicts without combining them.

    Returns dict with:
        - valid: bool (every share decodes and its tag matches, versions
          agree, no identity repeats)
        - share_count: how many shares passed
        - types: identities of the passing shares
        - version: the common version, if there is one
        - errors: list of error messages
    """
    result = {
        'valid': True,
        'share_count': 0,
        'types': [],
        'version': None,
        'errors': [],
    }

    versions = set()
    for i, data in enumerate(shares, 1):
        try:
            share = Share.from_dict(data)
        except InvalidShareError as e:
            result['errors'].append(f"Share {i}: {e}")
            result['valid'] = False
            continue

        if not verify_share(share):
            result['errors'].append(f"Share {i}: integrity check failed (tampered or unsigned)")
            result['valid'] = False
            continue

        if share.type.value in result['types']:
            result['errors'].append(f"Share {i}: duplicate {share.type.value} share")
            result['valid'] = False
            continue

        versions.add(share.version)
        result['types'].append(share.type.value)
        result['share_count'] += 1

    if len(versions) > 1:
        result['errors'].append(f"Shares carry different versions: {sorted(versions)}")
        result['valid'] = False
    elif versions:
        result['version'] = versions.pop()

    return result


def save_shares(shares: list, output_dir: str) -> list:
    """
    Save shares to separate JSON files.

    Creates: <output_dir>/share_device.json, share_server.json, ...

    Returns list of file paths.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    paths = []
    for data in shares:
        path = out / f"share_{data['type']}.json"
        path.write_text(json.dumps(data, indent=2) + '\n')
        paths.append(str(path))

    logger.info("Wrote %d share file(s) to %s", len(paths), out)
    return paths


def load_shares(paths: list) -> list:
    """
    Load share dicts from JSON files.

    Raises:
        InvalidShareError: if a file is not UTF-8 JSON
    """
    shares = []
    for p in paths:
        try:
            shares.append(json.loads(Path(p).read_text()))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidShareError(f"{p}: not a share file ({e})")
    return shares
