"""
GF(2^8) arithmetic.

Field elements are plain ints in 0..255. Multiplication and inversion go
through log/exp tables built once at import by walking the powers of the
generator 2 modulo the reduction polynomial x^8 + x^4 + x^3 + x^2 + 1
(0x11D). The tables are tuples, so they can be shared freely between threads.
"""

PRIMITIVE_POLY = 0x11D
GENERATOR = 2
ORDER = 255  # size of the multiplicative group


def _multiply_slow(a: int, b: int) -> int:
    """Carry-less multiply with reduction. Only used to build the tables."""
    result = 0
    for _ in range(8):
        if b & 1:
            result ^= a
        b >>= 1
        a <<= 1
        if a & 0x100:
            a ^= PRIMITIVE_POLY
    return result


def _build_tables() -> tuple:
    exp = [0] * 256
    log = [0] * 256
    x = 1
    for i in range(ORDER):
        exp[i] = x
        log[x] = i
        x = _multiply_slow(x, GENERATOR)
    exp[ORDER] = exp[0]
    return tuple(exp), tuple(log)


EXP, LOG = _build_tables()


def _check(*values: int) -> None:
    for v in values:
        if not 0 <= v <= 255:
            raise ValueError(f"{v!r} is not a GF(256) element")


def add(a: int, b: int) -> int:
    """Addition is XOR (characteristic 2)."""
    _check(a, b)
    return a ^ b


def subtract(a: int, b: int) -> int:
    """Same as add in this field."""
    return add(a, b)


def multiply(a: int, b: int) -> int:
    _check(a, b)
    if a == 0 or b == 0:
        return 0
    return EXP[(LOG[a] + LOG[b]) % ORDER]


def power(base: int, exp: int) -> int:
    """Raise base to an integer power. power(0, 0) is 1."""
    _check(base)
    if exp == 0:
        return 1
    if base == 0:
        return 0
    return EXP[(LOG[base] * exp) % ORDER]


def inverse(a: int) -> int:
    """
    Multiplicative inverse.

    Raises:
        ZeroDivisionError: if a is 0
    """
    _check(a)
    if a == 0:
        raise ZeroDivisionError("0 has no inverse in GF(256)")
    if a == 1:
        return 1
    return EXP[(ORDER - LOG[a]) % ORDER]


def divide(a: int, b: int) -> int:
    return multiply(a, inverse(b))
