"""
Keysplit — Test Suite

Tests GF(256) arithmetic, the share model, integrity tags and the
split/reconstruct/derive engine.
"""

import itertools
import os
import sys
from collections import Counter
from dataclasses import replace
from unittest import mock

# Add parent to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from keysplit import gf256, sharing
from keysplit.errors import (
    AmbiguousTargetError,
    DuplicateCoordinateError,
    InsufficientSharesError,
    InvalidShareError,
    ShareError,
    TamperedShareError,
    VersionMismatchError,
)
from keysplit.integrity import compute_tag, verify_share
from keysplit.shares import COORDINATES, Share, ShareType


# ==========================================================================
# GF(256) Tests
# ==========================================================================

def test_gf256_tables():
    """Tables walk the whole multiplicative group and wrap at 255."""
    assert gf256.EXP[0] == 1
    assert gf256.EXP[1] == 2
    assert gf256.EXP[255] == gf256.EXP[0]
    assert sorted(gf256.EXP[:255]) == list(range(1, 256))
    for i in range(255):
        assert gf256.LOG[gf256.EXP[i]] == i


def test_gf256_add_is_xor():
    assert gf256.add(0x53, 0xCA) == 0x53 ^ 0xCA
    assert gf256.subtract(0x53, 0xCA) == gf256.add(0x53, 0xCA)
    assert gf256.add(0x7F, 0x7F) == 0


def test_gf256_multiply_known_values():
    """Spot values for the 0x11D field."""
    assert gf256.multiply(2, 0x80) == 0x1D
    assert gf256.multiply(3, 7) == 9
    assert gf256.multiply(0, 0xFF) == 0
    assert gf256.multiply(0xFF, 0) == 0
    assert gf256.multiply(1, 0xAB) == 0xAB


def test_gf256_multiply_matches_slow_path():
    for a in range(256):
        for b in (0, 1, 2, 3, 0x1D, 0x80, 0xFF):
            assert gf256.multiply(a, b) == gf256._multiply_slow(a, b)


def test_gf256_inverse():
    assert gf256.inverse(1) == 1
    for a in range(1, 256):
        assert gf256.multiply(a, gf256.inverse(a)) == 1


def test_gf256_inverse_of_zero():
    try:
        gf256.inverse(0)
        assert False, "Should have raised ZeroDivisionError"
    except ZeroDivisionError:
        pass


def test_gf256_power():
    assert gf256.power(0, 0) == 1
    assert gf256.power(0, 5) == 0
    assert gf256.power(7, 0) == 1
    assert gf256.power(2, 8) == 0x1D
    for a in (1, 2, 3, 0x53, 0xFF):
        expected = 1
        for e in range(6):
            assert gf256.power(a, e) == expected
            expected = gf256.multiply(expected, a)


def test_gf256_divide():
    for a in (0, 1, 0x41, 0xFE):
        for b in (1, 2, 3, 0x99):
            assert gf256.multiply(gf256.divide(a, b), b) == a


def test_gf256_rejects_out_of_range():
    for bad in (-1, 256):
        try:
            gf256.multiply(bad, 1)
            assert False, "Should have raised ValueError"
        except ValueError:
            pass


# ==========================================================================
# Share Model Tests
# ==========================================================================

def test_coordinates_fixed():
    assert COORDINATES == {
        ShareType.DEVICE: 1,
        ShareType.SERVER: 2,
        ShareType.RECOVERY: 3,
    }


def test_share_dict_round_trip():
    shares = sharing.split(b"portable")
    for share in shares:
        data = share.to_dict()
        assert data['y'] == share.y.hex()
        assert data['hash'] == share.hash.hex()
        assert data['type'] == share.type.value
        assert Share.from_dict(data) == share
        assert Share.from_json(share.to_json()) == share


def test_share_from_dict_missing_fields():
    data = sharing.split(b"x")[0].to_dict()
    del data['y']
    try:
        Share.from_dict(data)
        assert False, "Should have raised InvalidShareError"
    except InvalidShareError as e:
        assert "y" in str(e)


def test_share_from_dict_rejects_bad_values():
    good = sharing.split(b"x")[0].to_dict()
    bad_variants = [
        {**good, 'type': 'laptop'},
        {**good, 'x': 0},
        {**good, 'x': 4},
        {**good, 'x': '1'},
        {**good, 'y': 'zz'},
        {**good, 'version': '1'},
        {**good, 'hash': 'not hex'},
    ]
    for data in bad_variants:
        try:
            Share.from_dict(data)
            assert False, f"Should have rejected {data}"
        except InvalidShareError:
            pass


def test_share_from_dict_rejects_relabelled_coordinate():
    """A re-tagged share moved to another identity's x does not decode."""
    device = sharing.split(b"AB")[0]
    moved = replace(device, x=2)
    data = dict(device.to_dict(), x=2, hash=compute_tag(moved).hex())
    try:
        Share.from_dict(data)
        assert False, "Should have raised InvalidShareError"
    except InvalidShareError as e:
        assert "x=1" in str(e)


def test_share_from_dict_without_hash_fails_verification():
    data = sharing.split(b"x")[0].to_dict()
    del data['hash']
    share = Share.from_dict(data)
    assert share.hash is None
    assert verify_share(share) is False


def test_share_repr_hides_payload():
    share = sharing.split(b"top secret")[0]
    assert share.y.hex() not in repr(share)


# ==========================================================================
# Integrity Tests
# ==========================================================================

def test_tag_is_sha256_of_fields():
    import hashlib
    share = sharing.split(b"AB")[1]
    expected = hashlib.sha256(bytes([share.x]) + share.y + b"server").digest()
    assert compute_tag(share) == expected
    assert share.hash == expected


def test_verify_fresh_shares():
    for share in sharing.split(os.urandom(16)):
        assert verify_share(share) is True


def test_verify_detects_tampering():
    """Flipping a bit in y, x or type invalidates the tag."""
    share = sharing.split(b"tamper me")[0]

    y = bytearray(share.y)
    y[3] ^= 0x01
    assert verify_share(replace(share, y=bytes(y))) is False
    assert verify_share(replace(share, x=share.x ^ 0x02)) is False
    assert verify_share(replace(share, type=ShareType.SERVER)) is False


def test_verify_rejects_missing_or_malformed_tag():
    share = sharing.split(b"tag")[0]
    assert verify_share(replace(share, hash=None)) is False
    assert verify_share(replace(share, hash=b"")) is False
    assert verify_share(replace(share, hash=share.hash[:-1])) is False
    assert verify_share(replace(share, hash=share.hash.hex())) is False


# ==========================================================================
# Engine Tests
# ==========================================================================

def test_split_shape():
    secret = os.urandom(32)
    shares = sharing.split(secret)
    assert [s.type for s in shares] == [ShareType.DEVICE, ShareType.SERVER, ShareType.RECOVERY]
    assert [s.x for s in shares] == [1, 2, 3]
    for s in shares:
        assert len(s.y) == len(secret)
        assert s.version == 1
        assert s.hash is not None


def test_split_rejects_text():
    try:
        sharing.split("not bytes")
        assert False, "Should have raised InvalidShareError"
    except InvalidShareError:
        pass


def test_round_trip_all_pairs():
    """Any 2 of 3 shares recover the secret."""
    for length in (0, 1, 2, 17, 64):
        secret = os.urandom(length)
        shares = sharing.split(secret)
        for pair in itertools.combinations(shares, 2):
            assert sharing.reconstruct(list(pair)) == secret
            assert sharing.reconstruct(list(reversed(pair))) == secret


def test_round_trip_all_three():
    secret = os.urandom(48)
    assert sharing.reconstruct(sharing.split(secret)) == secret


def test_empty_secret():
    shares = sharing.split(b"")
    assert all(s.y == b"" for s in shares)
    assert sharing.reconstruct(shares[1:]) == b""


def test_concrete_ab_scenario():
    shares = sharing.split(b"AB")
    assert {s.x for s in shares} == {1, 2, 3}
    assert all(len(s.y) == 2 for s in shares)
    assert sharing.reconstruct([shares[0], shares[1]]) == bytes([0x41, 0x42])
    assert sharing.reconstruct([shares[1], shares[2]]) == bytes([0x41, 0x42])

    derived = sharing.generate_compatible_share([shares[0], shares[1]])
    assert derived.x == 3
    assert derived.type == ShareType.RECOVERY
    assert derived.y == shares[2].y
    assert derived.hash == shares[2].hash


def test_split_polynomial_evaluation():
    """With a fixed coefficient the shares are s + r*x."""
    with mock.patch.object(sharing, '_random_coefficients', return_value=b"\x05"):
        shares = sharing.split(b"\x41")
    for s in shares:
        assert s.y[0] == 0x41 ^ gf256.multiply(0x05, s.x)


def test_single_share_hides_secret():
    """
    For a fixed secret byte, each share byte is a bijection of the random
    coefficient, so uniform coefficients give uniform share bytes.
    """
    for share_index in range(3):
        seen = set()
        for r in range(256):
            with mock.patch.object(sharing, '_random_coefficients', return_value=bytes([r])):
                seen.add(sharing.split(b"\x42")[share_index].y[0])
        assert seen == set(range(256))


def test_single_share_distribution():
    """Real draws: every byte value shows up for a fixed one-byte secret."""
    counts = Counter(sharing.split(b"\x00")[0].y[0] for _ in range(256 * 40))
    assert len(counts) == 256


def test_fresh_coefficient_per_byte():
    with mock.patch.object(sharing, '_random_coefficients', return_value=b"\x01\x02") as rng:
        shares = sharing.split(b"\x00\x00")
    rng.assert_called_once_with(2)
    assert shares[0].y == b"\x01\x02"


def test_reconstruct_insufficient_shares():
    shares = sharing.split(b"secret")
    for subset in ([], shares[:1]):
        try:
            sharing.reconstruct(subset)
            assert False, "Should have raised InsufficientSharesError"
        except InsufficientSharesError:
            pass


def test_reconstruct_rejects_any_tampered_share():
    """One bad share among three fails the whole call."""
    shares = sharing.split(b"all or nothing")
    y = bytearray(shares[2].y)
    y[0] ^= 0x80
    tampered = [shares[0], shares[1], replace(shares[2], y=bytes(y))]
    try:
        sharing.reconstruct(tampered)
        assert False, "Should have raised TamperedShareError"
    except TamperedShareError as e:
        assert "3" in str(e)


def test_reconstruct_rejects_unsigned_share():
    shares = sharing.split(b"unsigned")
    try:
        sharing.reconstruct([shares[0], replace(shares[1], hash=None)])
        assert False, "Should have raised TamperedShareError"
    except TamperedShareError:
        pass


def test_reconstruct_version_mismatch():
    shares = sharing.split(b"versions")
    other = sharing._stamp(replace(shares[1], version=2))
    assert verify_share(other)
    try:
        sharing.reconstruct([shares[0], other])
        assert False, "Should have raised VersionMismatchError"
    except VersionMismatchError:
        pass


def test_reconstruct_duplicate_coordinate():
    """Two independently generated device shares cannot be combined."""
    a = sharing.split(b"same x")[0]
    b = sharing.split(b"same x")[0]
    try:
        sharing.reconstruct([a, b])
        assert False, "Should have raised DuplicateCoordinateError"
    except DuplicateCoordinateError as e:
        assert isinstance(e, ZeroDivisionError)
        assert isinstance(e, ShareError)


def test_reconstruct_rejects_relabelled_share():
    """
    Moving a share to another identity's coordinate and re-tagging it
    passes the tag check, so the identity binding must catch it.
    """
    device, _, recovery = sharing.split(b"AB")
    forgeries = [
        sharing._stamp(replace(device, x=2)),
        sharing._stamp(replace(device, type=ShareType.SERVER)),
    ]
    for forged in forgeries:
        assert verify_share(forged)
        try:
            sharing.reconstruct([forged, recovery])
            assert False, "Should have raised InvalidShareError"
        except InvalidShareError:
            pass
        try:
            sharing.generate_compatible_share([forged, recovery])
            assert False, "Should have raised InvalidShareError"
        except InvalidShareError:
            pass


def test_reconstruct_length_mismatch():
    a = sharing.split(b"short")[0]
    b = sharing.split(b"longer secret")[1]
    try:
        sharing.reconstruct([a, b])
        assert False, "Should have raised InvalidShareError"
    except InvalidShareError:
        pass


def test_reconstruct_rejects_non_share():
    share = sharing.split(b"x")[0]
    try:
        sharing.reconstruct([share, share.to_dict()])
        assert False, "Should have raised InvalidShareError"
    except InvalidShareError:
        pass


def test_compatible_share_consistency():
    """Derived share combines with either original and with both."""
    secret = os.urandom(40)
    shares = sharing.split(secret)
    for pair in itertools.combinations(shares, 2):
        derived = sharing.generate_compatible_share(list(pair))
        missing = next(s for s in shares if s not in pair)
        assert derived.type == missing.type
        assert derived.x == missing.x
        assert derived.y == missing.y
        assert verify_share(derived)
        for original in pair:
            assert sharing.reconstruct([derived, original]) == secret
        assert sharing.reconstruct([derived, *pair]) == secret


def test_compatible_share_keeps_version():
    shares = [sharing._stamp(replace(s, version=7)) for s in sharing.split(b"v7")]
    derived = sharing.generate_compatible_share(shares[:2])
    assert derived.version == 7


def test_compatible_share_explicit_target():
    shares = sharing.split(b"explicit")
    derived = sharing.generate_compatible_share(shares[1:], target_type=ShareType.DEVICE)
    assert derived == shares[0]
    derived = sharing.generate_compatible_share(shares[1:], target_type="device")
    assert derived == shares[0]


def test_compatible_share_ambiguous_target():
    shares = sharing.split(b"ambiguous")
    try:
        sharing.generate_compatible_share(shares)
        assert False, "Should have raised AmbiguousTargetError"
    except AmbiguousTargetError:
        pass
    try:
        sharing.generate_compatible_share(shares[:2], target_type=ShareType.SERVER)
        assert False, "Should have raised AmbiguousTargetError"
    except AmbiguousTargetError:
        pass


def test_compatible_share_preconditions():
    shares = sharing.split(b"preconditions")

    try:
        sharing.generate_compatible_share(shares[:1])
        assert False, "Should have raised InsufficientSharesError"
    except InsufficientSharesError:
        pass

    try:
        sharing.generate_compatible_share([shares[0], replace(shares[1], x=3)])
        assert False, "Should have raised TamperedShareError"
    except TamperedShareError:
        pass

    other = sharing._stamp(replace(shares[1], version=2))
    try:
        sharing.generate_compatible_share([shares[0], other])
        assert False, "Should have raised VersionMismatchError"
    except VersionMismatchError:
        pass


# ==========================================================================
# Runner
# ==========================================================================

def run_all():
    tests = [v for k, v in sorted(globals().items()) if k.startswith('test_') and callable(v)]

    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            print(f"[PASS] {t.__name__}")
            passed += 1
        except Exception as e:
            print(f"[FAIL] {t.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n--- Keysplit tests: {passed} passed, {failed} failed ---")
    return failed == 0


if __name__ == "__main__":
    sys.exit(0 if run_all() else 1)
