"""
Share integrity tags.

Each share carries SHA-256(x || y || type) stamped when the engine creates
it. The tag is recomputed and compared in constant time whenever a share is
about to be combined, so a share altered in storage or transit is rejected
before any of its bytes are used.
"""

from cryptography.hazmat.primitives import constant_time, hashes

from .shares import Share

TAG_SIZE = 32


def compute_tag(share: Share) -> bytes:
    """
    Compute the integrity tag of a share.

    The digest input is the coordinate as one byte, then the raw payload,
    then the identity name in UTF-8. x is always 1..3 and the identity names
    are fixed, so the encoding is unambiguous.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(bytes([share.x]))
    digest.update(bytes(share.y))
    digest.update(share.type.value.encode('utf-8'))
    return digest.finalize()


def verify_share(share: Share) -> bool:
    """
    Check a share's tag. Fails closed: no tag means not valid.

    Never raises for a malformed share; anything that cannot be hashed is
    simply not valid.
    """
    tag = share.hash
    if not tag or not isinstance(tag, (bytes, bytearray)) or len(tag) != TAG_SIZE:
        return False
    try:
        expected = compute_tag(share)
    except (TypeError, ValueError, AttributeError):
        return False
    return constant_time.bytes_eq(expected, bytes(tag))
