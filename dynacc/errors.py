"""
Error Taxonomy for Dynamic RSA Accumulators

Every failure raised by this package derives from AccumulatorError so callers
can tell accumulator faults apart from ordinary argument errors.
"""

from typing import Optional


class AccumulatorError(Exception):
    """Base class for accumulator failures."""

    def __init__(self, message: str, exponent: Optional[int] = None):
        super().__init__(message)
        self.exponent = exponent


class InvalidWitness(AccumulatorError):
    """A witness does not satisfy w^e = v (stale state or forgery attempt)."""


class AlreadyAccumulated(AccumulatorError):
    """The exponent is already part of the accumulated set."""


class UnknownElement(AccumulatorError):
    """The exponent is not tracked by this accumulator or witness store."""


class StaleBaseWitness(AccumulatorError):
    """The recorded witness missed an update and must be recomputed from scratch."""


class NotInvertible(AccumulatorError, ValueError):
    """gcd(a, modulus) != 1, so no multiplicative inverse exists."""


class ExponentCollidesWithFactor(AccumulatorError):
    """An encoded exponent equals one of the modulus factors."""


class EncodingExhausted(AccumulatorError, ValueError):
    """No prime representative was found within the candidate bound."""
