"""
Share model and its storage/transport encoding.

A share is one party's fragment of a split secret: the identity it belongs
to, the x coordinate it was evaluated at, one payload byte per secret byte,
a version tag and an integrity tag. Shares are frozen; re-encoding always
produces a new value.

Portable form:
    {"type": "device", "x": 1, "y": "<hex>", "version": 1, "hash": "<hex>"}
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidShareError


class ShareType(Enum):
    """The three fixed identities a share can belong to."""
    DEVICE = "device"
    SERVER = "server"
    RECOVERY = "recovery"


# Each identity is bound to exactly one evaluation point.
COORDINATES = {
    ShareType.DEVICE: 1,
    ShareType.SERVER: 2,
    ShareType.RECOVERY: 3,
}

SHARE_VERSION = 1

_REQUIRED = ("type", "x", "y", "version")


def coordinate_for(share_type: ShareType) -> int:
    """Return the fixed x coordinate for an identity."""
    return COORDINATES[ShareType(share_type)]


@dataclass(frozen=True)
class Share:
    """A single share of a split secret."""
    type: ShareType
    x: int                        # evaluation point, 1..3, never 0
    y: bytes                      # one byte per secret byte
    version: int = SHARE_VERSION
    hash: Optional[bytes] = None  # SHA-256 tag, stamped by the engine

    def __repr__(self) -> str:
        # Keep payload bytes out of logs and tracebacks.
        return (f"Share(type={self.type.value}, x={self.x}, "
                f"len={len(self.y)}, version={self.version})")

    def to_dict(self) -> dict:
        return {
            'type': self.type.value,
            'x': self.x,
            'y': self.y.hex(),
            'version': self.version,
            'hash': self.hash.hex() if self.hash is not None else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> "Share":
        """
        Decode a share from its portable form.

        A missing or null "hash" decodes to hash=None; such a share decodes
        fine but will never pass verification.

        Raises:
            InvalidShareError: on missing fields, unknown type, bad hex,
                an out-of-range coordinate, or a coordinate that does not
                match the identity
        """
        if not isinstance(data, dict):
            raise InvalidShareError(
                f"Share must be an object, got {type(data).__name__}")

        missing = [f for f in _REQUIRED if f not in data]
        if missing:
            raise InvalidShareError(f"Share is missing fields: {', '.join(missing)}")

        try:
            share_type = ShareType(data['type'])
        except ValueError:
            raise InvalidShareError(f"Unknown share type: {data['type']!r}")

        x = data['x']
        if isinstance(x, bool) or not isinstance(x, int) or x not in COORDINATES.values():
            raise InvalidShareError(f"Share x must be 1, 2 or 3, got {x!r}")
        if x != COORDINATES[share_type]:
            raise InvalidShareError(
                f"A {share_type.value} share must sit at x={COORDINATES[share_type]}, got x={x}")

        version = data['version']
        if isinstance(version, bool) or not isinstance(version, int):
            raise InvalidShareError(f"Share version must be an integer, got {version!r}")

        y = _unhex('y', data['y'])
        raw_hash = data.get('hash')
        tag = _unhex('hash', raw_hash) if raw_hash is not None else None

        return cls(type=share_type, x=x, y=y, version=version, hash=tag)

    @classmethod
    def from_json(cls, text: str) -> "Share":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidShareError(f"Share is not valid JSON: {e}")
        return cls.from_dict(data)


def _unhex(field: str, value) -> bytes:
    if not isinstance(value, str):
        raise InvalidShareError(f"Share {field} must be a hex string")
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise InvalidShareError(f"Share {field} is not valid hex")
