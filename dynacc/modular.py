"""
Modular Arithmetic Engine

Arbitrary-precision modular exponentiation, inversion and the extended
Euclidean algorithm that the accumulator and witness updates are built on.

modexp walks a Montgomery ladder over a width that depends only on the bit
lengths of the exponent and modulus, and swaps its registers arithmetically,
so each step performs one multiplication and one squaring whatever the
exponent bit is.
"""

from typing import Tuple

from .errors import NotInvertible


def extended_gcd(a: int, b: int) -> Tuple[int, int, int]:
    """
    Extended Euclidean Algorithm.

    Computes gcd(a, b) and Bézout coefficients x, y such that
    a*x + b*y = gcd(a, b). The gcd is always returned non-negative.

    Args:
        a: First integer
        b: Second integer

    Returns:
        Tuple[int, int, int]: (gcd, x, y)

    Example:
        >>> gcd, x, y = extended_gcd(35, 15)
        >>> assert gcd == 5
        >>> assert 35 * x + 15 * y == 5
    """
    old_r, r = a, b
    old_x, x = 1, 0
    old_y, y = 0, 1

    while r != 0:
        quotient = old_r // r
        old_r, r = r, old_r - quotient * r
        old_x, x = x, old_x - quotient * x
        old_y, y = y, old_y - quotient * y

    if old_r < 0:
        old_r, old_x, old_y = -old_r, -old_x, -old_y

    return old_r, old_x, old_y


def modinv(a: int, modulus: int) -> int:
    """
    Compute the multiplicative inverse of a modulo modulus.

    Args:
        a: Value to invert (any integer, reduced first)
        modulus: Modulus, greater than 1

    Returns:
        int: x in [1, modulus) with a*x ≡ 1 (mod modulus)

    Raises:
        ValueError: If modulus <= 1
        NotInvertible: If gcd(a, modulus) != 1
    """
    if modulus <= 1:
        raise ValueError("Modulus must be greater than 1")

    gcd, x, _ = extended_gcd(a % modulus, modulus)
    if gcd != 1:
        raise NotInvertible(f"Value is not invertible: gcd with modulus is {gcd}")

    return x % modulus


def _cswap(a: int, b: int, bit: int) -> Tuple[int, int]:
    # bit is 0 or 1; -bit is an all-ones mask when set
    diff = (a ^ b) & -bit
    return a ^ diff, b ^ diff


def modexp(base: int, exponent: int, modulus: int) -> int:
    """
    Compute base^exponent mod modulus with a Montgomery ladder.

    Args:
        base: Base (any integer, reduced first)
        exponent: Non-negative exponent
        modulus: Positive modulus

    Returns:
        int: base^exponent mod modulus

    Raises:
        ValueError: If exponent is negative or modulus is not positive

    Example:
        >>> assert modexp(4, 13, 209) == pow(4, 13, 209)
    """
    if modulus <= 0:
        raise ValueError("Modulus must be positive")
    if exponent < 0:
        raise ValueError("Exponent must be non-negative")
    if modulus == 1:
        return 0

    width = max(exponent.bit_length(), modulus.bit_length())
    r0, r1 = 1, base % modulus

    for i in range(width - 1, -1, -1):
        bit = (exponent >> i) & 1
        r0, r1 = _cswap(r0, r1, bit)
        r1 = (r0 * r1) % modulus
        r0 = (r0 * r0) % modulus
        r0, r1 = _cswap(r0, r1, bit)

    return r0


def modexp_signed(base: int, exponent: int, modulus: int) -> int:
    """
    Compute base^exponent mod modulus for a possibly negative exponent.

    Negative exponents go through the inverse of the base, which must be a unit.

    Raises:
        NotInvertible: If exponent < 0 and base shares a factor with modulus
    """
    if exponent < 0:
        return modexp(modinv(base, modulus), -exponent, modulus)
    return modexp(base, exponent, modulus)
