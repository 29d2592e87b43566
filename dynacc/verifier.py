"""
Membership Verification

Pure check of the defining relation w^e ≡ v (mod N). Used identically by
the issuer (self-checks) and by holders against the published value.
"""

import hmac

from .modular import modexp


def _fixed_bytes(value: int, modulus: int) -> bytes:
    return value.to_bytes((modulus.bit_length() + 7) // 8, "big")


def verify_membership(exponent: int, witness: int, value: int, modulus: int) -> bool:
    """
    Verify that exponent is a member of the accumulator value using witness.

    Args:
        exponent: Prime representative of the element
        witness: Membership witness
        value: Accumulator value
        modulus: RSA modulus

    Returns:
        bool: True iff witness^exponent mod modulus == value

    Example:
        >>> # N = 209, g = 4, set {13}: v = 4^13 mod 209, witness = 4
        >>> assert verify_membership(13, 4, pow(4, 13, 209), 209)
    """
    if exponent < 0 or witness <= 0 or value <= 0 or modulus <= 1:
        return False

    # A reduced power is always below the modulus
    if value >= modulus:
        return False

    computed = modexp(witness % modulus, exponent, modulus)
    return hmac.compare_digest(_fixed_bytes(computed, modulus), _fixed_bytes(value, modulus))
