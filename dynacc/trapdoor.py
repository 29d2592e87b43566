"""
Trapdoor Capability for RSA Accumulators

The factorization (p, q) of the modulus, held only by the issuer. It is a
separate object rather than a field on the accumulator, so holder-side code
that never receives one has no way to reach the operations below.

With the trapdoor the issuer can take e-th roots directly: compute
d = e^(-1) mod λ(N) and raise to d. That gives any member's witness without
bookkeeping, and deletion without a holder-supplied witness.
"""

import logging
import math
from typing import TYPE_CHECKING

from .errors import ExponentCollidesWithFactor, NotInvertible, UnknownElement
from .modular import modexp, modinv

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

    from .accumulator import Accumulator, UpdateDescriptor

logger = logging.getLogger(__name__)


def compute_phi_n(p: int, q: int) -> int:
    """
    Compute Euler's totient φ(N) = (p - 1)(q - 1) for N = p * q.

    Raises:
        ValueError: If p or q <= 1, or p == q
    """
    if p <= 1 or q <= 1:
        raise ValueError("Both p and q must be greater than 1")
    if p == q:
        raise ValueError("p and q must be distinct")

    return (p - 1) * (q - 1)


def compute_lambda_n(p: int, q: int) -> int:
    """
    Compute Carmichael's λ(N) = lcm(p - 1, q - 1) for N = p * q.

    This is the exponent modulus for arithmetic in Z*_N.

    Raises:
        ValueError: If p or q <= 1, or p == q
    """
    if p <= 1 or q <= 1:
        raise ValueError("Both p and q must be greater than 1")
    if p == q:
        raise ValueError("p and q must be distinct")

    p_minus_1 = p - 1
    q_minus_1 = q - 1
    return (p_minus_1 // math.gcd(p_minus_1, q_minus_1)) * q_minus_1


class Trapdoor:
    """Issuer-only knowledge of the modulus factorization."""

    def __init__(self, p: int, q: int):
        if p <= 1 or q <= 1:
            raise ValueError("Both p and q must be greater than 1")
        if p == q:
            raise ValueError("p and q must be distinct")
        self._p = p
        self._q = q
        self._lambda = compute_lambda_n(p, q)

    @classmethod
    def from_private_key(cls, key: "RSAPrivateKey") -> "Trapdoor":
        """Build a trapdoor from a cryptography RSA private key."""
        numbers = key.private_numbers()
        return cls(numbers.p, numbers.q)

    @property
    def modulus(self) -> int:
        return self._p * self._q

    def group_order(self) -> int:
        """φ(N), the order of Z*_N."""
        return compute_phi_n(self._p, self._q)

    def carmichael(self) -> int:
        """λ(N), the exponent of Z*_N."""
        return self._lambda

    def check_exponent(self, exponent: int) -> None:
        """
        Reject an exponent equal to one of the modulus factors.

        Raises:
            ExponentCollidesWithFactor: If exponent is p or q
        """
        # Compare against both factors unconditionally
        hits = (exponent == self._p) | (exponent == self._q)
        if hits:
            logger.error("Encoded exponent collides with a modulus factor")
            raise ExponentCollidesWithFactor(
                "Exponent equals a factor of the modulus", exponent=exponent
            )

    def root(self, value: int, exponent: int) -> int:
        """
        Compute the exponent-th root of value in Z*_N.

        Returns:
            int: r with r^exponent ≡ value (mod N)

        Raises:
            NotInvertible: If gcd(exponent, λ(N)) != 1
        """
        n = self.modulus
        if not (1 <= value < n):
            raise ValueError("Value must be in [1, N-1]")

        try:
            inverse_exp = modinv(exponent, self._lambda)
        except NotInvertible as e:
            logger.error("Exponent is not invertible modulo the group exponent")
            raise NotInvertible(str(e), exponent=exponent) from e

        return modexp(value, inverse_exp, n)

    def witness(self, accumulator: "Accumulator", exponent: int) -> int:
        """
        Compute the current witness of a tracked exponent directly.

        Raises:
            ValueError: If the accumulator uses a different modulus
            UnknownElement: If exponent is not accumulated
        """
        if accumulator.modulus != self.modulus:
            raise ValueError("Trapdoor does not match the accumulator modulus")
        if exponent not in accumulator:
            raise UnknownElement("Exponent is not accumulated", exponent=exponent)

        return self.root(accumulator.value(), exponent)

    def remove(self, accumulator: "Accumulator", exponent: int) -> "UpdateDescriptor":
        """Delete exponent without a holder-supplied witness."""
        return accumulator.delete(exponent, self.witness(accumulator, exponent))

    def __repr__(self) -> str:
        return f"Trapdoor(<{self.modulus.bit_length()}-bit modulus>)"
