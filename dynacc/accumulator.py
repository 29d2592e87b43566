"""
RSA Accumulator State

Holds the accumulated value v = g^(product of member primes) mod N and the
append-only log of update descriptors. Add and delete never need the
trapdoor: adding raises v to the new prime, deleting replaces v with the
deleted member's witness, which is the accumulator over everyone else.

Mutations are serialized under a lock (one logical writer); value() reads the
last committed value without locking.
"""

import logging
import math
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from .errors import AlreadyAccumulated, ExponentCollidesWithFactor, InvalidWitness, UnknownElement
from .hash_to_prime import is_probable_prime
from .modular import modexp
from .params import AccumulatorParams
from .verifier import verify_membership

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    ADD = "add"
    DELETE = "delete"


@dataclass(frozen=True)
class UpdateDescriptor:
    """
    One committed mutation of the accumulator.

    sequence is the 1-based position of the mutation in the accumulator's log.
    """

    operation: Operation
    exponent: int
    value_before: int
    value_after: int
    sequence: int


@dataclass(frozen=True)
class PublishedState:
    """The public artifact handed to holders: modulus and current value."""

    modulus: int
    value: int
    sequence: int

    def to_dict(self) -> Dict[str, Any]:
        return {"N": hex(self.modulus), "value": hex(self.value), "sequence": self.sequence}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishedState":
        try:
            return cls(int(data["N"], 16), int(data["value"], 16), int(data["sequence"]))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid published state: {e}") from e


def add_member(A: int, p: int, N: int) -> int:
    """
    Add a new member (prime p) to the accumulator value A: A^p mod N.

    Raises:
        ValueError: If inputs are non-positive
    """
    if A <= 0 or p <= 0 or N <= 0:
        raise ValueError("All parameters must be positive")

    return modexp(A, p, N)


def recompute_root(primes: Iterable[int], N: int, g: int) -> int:
    """
    Recompute the accumulator value from scratch given a set of primes.

    Exponentiates one prime at a time to avoid huge intermediate exponents.

    Example:
        >>> root = recompute_root([3, 5, 7], 35, 2)
        >>> # root = ((2^3)^5)^7 mod 35
    """
    if N <= 0 or g <= 0:
        raise ValueError("N and g must be positive")

    if g >= N:
        raise ValueError("Generator g must be less than modulus N")

    A = g
    for p in primes:
        if p <= 0:
            raise ValueError("All primes must be positive")
        A = modexp(A, p, N)

    return A


def membership_witness(current_primes: Iterable[int], target_p: int, N: int, g: int) -> int:
    """
    Compute the witness for target_p from the full member set.

    The witness is the accumulator over every other prime:
    w = g^(product of primes except target_p) mod N

    Raises:
        UnknownElement: If target_p is not in current_primes
    """
    primes = set(current_primes)
    if target_p not in primes:
        raise UnknownElement("Target prime is not in the member set", exponent=target_p)

    return recompute_root(primes - {target_p}, N, g)


class Accumulator:
    """Dynamic RSA accumulator over prime exponents."""

    def __init__(self, params: AccumulatorParams):
        self._params = params
        self._value = params.generator
        self._members: set = set()
        self._history: List[UpdateDescriptor] = []
        self._lock = threading.Lock()
        self.accumulator_id = uuid.uuid4().hex[:8]
        self._log_extra = {"accumulator_id": self.accumulator_id}

        logger.info(
            f"Created accumulator: N={params.modulus.bit_length()} bits",
            extra=self._log_extra,
        )

    @property
    def params(self) -> AccumulatorParams:
        return self._params

    @property
    def modulus(self) -> int:
        return self._params.modulus

    @property
    def generator(self) -> int:
        return self._params.generator

    def value(self) -> int:
        """Current published accumulated value."""
        return self._value

    @property
    def sequence(self) -> int:
        """Number of committed mutations."""
        return len(self._history)

    @property
    def history(self) -> Tuple[UpdateDescriptor, ...]:
        return tuple(self._history)

    def members(self) -> FrozenSet[int]:
        return frozenset(self._members)

    def __contains__(self, exponent: object) -> bool:
        return exponent in self._members

    def __len__(self) -> int:
        return len(self._members)

    def publish(self) -> PublishedState:
        with self._lock:
            return PublishedState(self.modulus, self._value, len(self._history))

    def _check_exponent(self, exponent: int) -> None:
        if not isinstance(exponent, int) or isinstance(exponent, bool):
            raise TypeError("Exponent must be an int")
        if exponent < 2 or not is_probable_prime(exponent):
            raise ValueError(f"Exponent {exponent} is not a prime")
        if math.gcd(exponent, self.modulus) != 1:
            logger.error("Exponent shares a factor with the modulus", extra=self._log_extra)
            raise ExponentCollidesWithFactor(
                "Exponent is not coprime to the modulus", exponent=exponent
            )

    def _commit(self, operation: Operation, exponent: int, new_value: int) -> UpdateDescriptor:
        descriptor = UpdateDescriptor(
            operation=operation,
            exponent=exponent,
            value_before=self._value,
            value_after=new_value,
            sequence=len(self._history) + 1,
        )
        self._history.append(descriptor)
        self._value = new_value
        return descriptor

    def add(self, exponent: int) -> UpdateDescriptor:
        """
        Accumulate a prime exponent.

        The witness for the new member is descriptor.value_before.

        Raises:
            ValueError: If exponent is not prime
            ExponentCollidesWithFactor: If exponent divides the modulus
            AlreadyAccumulated: If exponent is already a member
        """
        self._check_exponent(exponent)

        with self._lock:
            if exponent in self._members:
                raise AlreadyAccumulated("Exponent is already accumulated", exponent=exponent)

            descriptor = self._commit(Operation.ADD, exponent, modexp(self._value, exponent, self.modulus))
            self._members.add(exponent)

        logger.info(f"Added member #{descriptor.sequence} ({len(self._members)} members)", extra=self._log_extra)
        return descriptor

    def delete(self, exponent: int, witness: int) -> UpdateDescriptor:
        """
        Remove a prime exponent using its current witness.

        The witness becomes the new accumulated value.

        Raises:
            UnknownElement: If exponent is not a member
            InvalidWitness: If witness^exponent != value (v is left unchanged)
        """
        with self._lock:
            if exponent not in self._members:
                raise UnknownElement("Exponent is not accumulated", exponent=exponent)

            if not verify_membership(exponent, witness, self._value, self.modulus):
                logger.warning(
                    f"Rejected deletion with invalid witness at sequence {len(self._history)}",
                    extra=self._log_extra,
                )
                raise InvalidWitness("Witness does not match the accumulator value", exponent=exponent)

            descriptor = self._commit(Operation.DELETE, exponent, witness)
            self._members.discard(exponent)

        logger.info(f"Deleted member #{descriptor.sequence} ({len(self._members)} members)", extra=self._log_extra)
        return descriptor

    def membership_snapshot(self) -> Tuple[FrozenSet[int], int]:
        """Members and sequence number, read together under the writer lock."""
        with self._lock:
            return frozenset(self._members), len(self._history)

    def witness_from_scratch(self, exponent: int) -> int:
        """
        Recompute a member's witness from the full exponent product.

        Raises:
            UnknownElement: If exponent is not a member
        """
        members, _ = self.membership_snapshot()
        return membership_witness(members, exponent, self.modulus, self.generator)
