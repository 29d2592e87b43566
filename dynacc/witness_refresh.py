"""
Witness Refresh for RSA Accumulators

Keeps membership witnesses valid as the accumulator changes.

After an addition of prime x, every other witness is raised to x:
    w' = w^x mod N

After a deletion of prime x (new value v' = v^(1/x)), a member e with
w^e = v is moved with the Bézout identity a*x + b*e = 1, taken over the
integers:
    w' = v'^b * w^a mod N
so that w'^e = v'^(b*e) * v'^(a*x) = v'. No group order or trapdoor is
involved. Inverting e modulo N instead of modulo the (unknown) group order
does not give a valid witness.
"""

import logging
import threading
from concurrent.futures import Executor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .accumulator import Accumulator, Operation, UpdateDescriptor, membership_witness
from .config import get_settings
from .errors import (
    AccumulatorError,
    AlreadyAccumulated,
    InvalidWitness,
    NotInvertible,
    StaleBaseWitness,
    UnknownElement,
)
from .modular import extended_gcd, modexp, modexp_signed
from .verifier import verify_membership

logger = logging.getLogger(__name__)


class WitnessState(str, Enum):
    NO_WITNESS = "no_witness"
    VALID = "valid"
    STALE = "stale"


@dataclass
class TrackedWitness:
    """Witness bookkeeping for one exponent."""

    exponent: int
    state: WitnessState
    value: Optional[int]
    sequence: int


@dataclass(frozen=True)
class RefreshReport:
    """Outcome of applying one update descriptor to a store."""

    sequence: int
    refreshed: Tuple[int, ...]
    stale: Tuple[int, ...]
    discarded: Optional[int] = None
    added: Optional[int] = None


def update_witness_on_addition(old_witness: int, added_prime: int, N: int) -> int:
    """
    Update an existing witness after a new prime is added to the set.

    new_witness = old_witness^added_prime mod N

    Raises:
        ValueError: If inputs are non-positive
    """
    if old_witness <= 0 or added_prime <= 0 or N <= 0:
        raise ValueError("All parameters must be positive")

    return modexp(old_witness, added_prime, N)


def update_witness_on_deletion(old_witness: int, exponent: int, removed_prime: int, new_value: int, N: int) -> int:
    """
    Update an existing witness after another prime is removed from the set.

    Args:
        old_witness: Witness of exponent against the value before removal
        exponent: Prime whose witness is being updated
        removed_prime: The prime that was removed
        new_value: Accumulator value after removal
        N: RSA modulus

    Returns:
        int: Witness of exponent against new_value

    Raises:
        ValueError: If inputs are non-positive
        NotInvertible: If gcd(removed_prime, exponent) != 1, or a negative
            Bézout coefficient meets a non-unit base
    """
    if old_witness <= 0 or exponent <= 0 or removed_prime <= 0 or new_value <= 0 or N <= 0:
        raise ValueError("All parameters must be positive")

    gcd, a, b = extended_gcd(removed_prime, exponent)
    if gcd != 1:
        raise NotInvertible(f"Exponents are not coprime (gcd = {gcd})", exponent=exponent)

    return (modexp_signed(new_value, b, N) * modexp_signed(old_witness, a, N)) % N


def advance_witness(witness: int, exponent: int, descriptor: UpdateDescriptor, N: int) -> int:
    """
    Move a witness across one update descriptor and check the result.

    Module-level so that it can run in a worker process.

    Raises:
        InvalidWitness: If the advanced witness does not verify against
            descriptor.value_after (the starting witness was wrong)
    """
    if descriptor.operation is Operation.ADD:
        new_witness = update_witness_on_addition(witness, descriptor.exponent, N)
    else:
        new_witness = update_witness_on_deletion(
            witness, exponent, descriptor.exponent, descriptor.value_after, N
        )

    if not verify_membership(exponent, new_witness, descriptor.value_after, N):
        raise InvalidWitness("Refreshed witness does not verify", exponent=exponent)

    return new_witness


class WitnessStore:
    """
    Per-exponent witnesses kept in step with an accumulator's descriptor log.

    Each entry remembers the sequence number of the last descriptor its
    witness reflects. Descriptors must reach an entry in log order: one that
    is already reflected is ignored, a gap makes the entry stale.
    """

    def __init__(
        self,
        modulus: int,
        *,
        workers: Optional[int] = None,
        parallel_threshold: Optional[int] = None,
        executor: Optional[Executor] = None,
    ):
        if modulus <= 1:
            raise ValueError("Modulus must be greater than 1")

        settings = get_settings()
        self.modulus = modulus
        self.workers = workers or settings.worker_count()
        self.parallel_threshold = parallel_threshold or settings.parallel_threshold
        self._executor = executor
        self._entries: Dict[int, TrackedWitness] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, exponent: object) -> bool:
        return exponent in self._entries

    def exponents(self) -> FrozenSet[int]:
        return frozenset(self._entries)

    def track(self, exponent: int, witness: int, sequence: int) -> None:
        """Record a valid witness that reflects descriptors up to sequence."""
        if not (0 < witness < self.modulus):
            raise ValueError("Witness must be in [1, N-1]")
        with self._lock:
            self._entries[exponent] = TrackedWitness(exponent, WitnessState.VALID, witness, sequence)

    def register(self, exponent: int) -> None:
        """Track an exponent that has no witness yet."""
        with self._lock:
            if exponent in self._entries:
                raise AlreadyAccumulated("Exponent is already tracked", exponent=exponent)
            self._entries[exponent] = TrackedWitness(exponent, WitnessState.NO_WITNESS, None, 0)

    def discard(self, exponent: int) -> None:
        with self._lock:
            if self._entries.pop(exponent, None) is None:
                raise UnknownElement("Exponent is not tracked", exponent=exponent)

    def state(self, exponent: int) -> WitnessState:
        entry = self._entries.get(exponent)
        if entry is None:
            raise UnknownElement("Exponent is not tracked", exponent=exponent)
        return entry.state

    def sequence_of(self, exponent: int) -> int:
        entry = self._entries.get(exponent)
        if entry is None:
            raise UnknownElement("Exponent is not tracked", exponent=exponent)
        return entry.sequence

    def witness(self, exponent: int) -> int:
        """
        Current witness of a tracked exponent.

        Raises:
            UnknownElement: If exponent is not tracked or has no witness yet
            StaleBaseWitness: If the entry is stale
        """
        entry = self._entries.get(exponent)
        if entry is None:
            raise UnknownElement("Exponent is not tracked", exponent=exponent)
        if entry.state is WitnessState.NO_WITNESS:
            raise UnknownElement("Exponent has no witness yet", exponent=exponent)
        if entry.state is not WitnessState.VALID:
            raise StaleBaseWitness(f"Witness is {entry.state.value}", exponent=exponent)
        return entry.value

    def _adopt(self, entry: TrackedWitness, descriptor: UpdateDescriptor) -> int:
        # A registered exponent gets its first witness from its own addition
        if descriptor.operation is not Operation.ADD or descriptor.exponent != entry.exponent:
            raise UnknownElement(
                f"Exponent has no witness yet; descriptor #{descriptor.sequence} does not add it",
                exponent=entry.exponent,
            )
        entry.state = WitnessState.VALID
        entry.value = descriptor.value_before
        entry.sequence = descriptor.sequence
        return entry.value

    def _check_base(self, entry: TrackedWitness) -> None:
        if entry.state is not WitnessState.VALID:
            raise StaleBaseWitness(
                f"Cannot refresh from a {entry.state.value} witness; recompute it first",
                exponent=entry.exponent,
            )

    def refresh(self, exponent: int, descriptor: UpdateDescriptor) -> Optional[int]:
        """
        Advance one tracked witness across a descriptor.

        Returns:
            Optional[int]: The new witness, or None when the descriptor deletes
            this exponent (its witness is discarded)

        A registered exponent without a witness becomes valid on the
        descriptor that adds it, taking descriptor.value_before as its witness.

        Raises:
            UnknownElement: If exponent is not tracked, or has no witness and
                the descriptor does not add it
            StaleBaseWitness: If the entry is stale, or descriptors were skipped
            AlreadyAccumulated: If the descriptor re-adds a tracked exponent
            InvalidWitness: If the refreshed witness fails verification
            NotInvertible: If the Bézout step degenerates
        """
        with self._lock:
            entry = self._entries.get(exponent)
            if entry is None:
                raise UnknownElement("Exponent is not tracked", exponent=exponent)

            if entry.state is WitnessState.NO_WITNESS:
                return self._adopt(entry, descriptor)

            self._check_base(entry)

            if descriptor.sequence <= entry.sequence:
                logger.debug(f"Descriptor #{descriptor.sequence} already reflected")
                return entry.value

            if descriptor.sequence > entry.sequence + 1:
                entry.state = WitnessState.STALE
                raise StaleBaseWitness(
                    f"Missed descriptors {entry.sequence + 1}..{descriptor.sequence - 1}",
                    exponent=exponent,
                )

            if descriptor.exponent == exponent:
                if descriptor.operation is Operation.DELETE:
                    del self._entries[exponent]
                    return None
                raise AlreadyAccumulated("Descriptor re-adds a tracked exponent", exponent=exponent)

            try:
                new_witness = advance_witness(entry.value, exponent, descriptor, self.modulus)
            except AccumulatorError:
                entry.state = WitnessState.STALE
                logger.error(f"Witness refresh failed at descriptor #{descriptor.sequence}")
                raise

            entry.value = new_witness
            entry.sequence = descriptor.sequence
            return new_witness

    def apply(
        self,
        descriptor: UpdateDescriptor,
        *,
        track_added: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> RefreshReport:
        """
        Advance every other tracked witness across a descriptor.

        A deleted exponent's witness is discarded. An added exponent that was
        registered without a witness, or any added exponent when track_added
        is set, gets descriptor.value_before as its witness. Elements whose
        refresh fails, that missed earlier descriptors, or that are abandoned
        because cancel was set end up stale.

        Raises:
            AlreadyAccumulated: If the descriptor re-adds an exponent that
                already has a witness (nothing is changed)
        """
        with self._lock:
            own = self._entries.get(descriptor.exponent)
            if (
                descriptor.operation is Operation.ADD
                and own is not None
                and own.state is not WitnessState.NO_WITNESS
                and own.sequence < descriptor.sequence
            ):
                raise AlreadyAccumulated("Descriptor re-adds a tracked exponent", exponent=descriptor.exponent)

            discarded = None
            if descriptor.operation is Operation.DELETE and descriptor.exponent in self._entries:
                del self._entries[descriptor.exponent]
                discarded = descriptor.exponent

            targets: List[TrackedWitness] = []
            for entry in self._entries.values():
                if entry.exponent == descriptor.exponent or entry.state is not WitnessState.VALID:
                    continue
                if entry.sequence >= descriptor.sequence:
                    continue
                if entry.sequence < descriptor.sequence - 1:
                    entry.state = WitnessState.STALE
                    continue
                targets.append(entry)

            results = self._run(targets, descriptor, cancel)

            refreshed = []
            for entry in targets:
                new_witness = results.get(entry.exponent)
                if new_witness is None:
                    entry.state = WitnessState.STALE
                else:
                    entry.value = new_witness
                    entry.sequence = descriptor.sequence
                    refreshed.append(entry.exponent)

            added = None
            if descriptor.operation is Operation.ADD:
                if own is not None and own.state is WitnessState.NO_WITNESS:
                    self._adopt(own, descriptor)
                    added = descriptor.exponent
                elif own is None and track_added:
                    self._entries[descriptor.exponent] = TrackedWitness(
                        descriptor.exponent, WitnessState.VALID, descriptor.value_before, descriptor.sequence
                    )
                    added = descriptor.exponent

            stale = tuple(e for e, entry in self._entries.items() if entry.state is WitnessState.STALE)

        logger.info(
            f"Applied descriptor #{descriptor.sequence}: "
            f"{len(refreshed)} refreshed, {len(stale)} stale"
        )
        return RefreshReport(descriptor.sequence, tuple(refreshed), stale, discarded, added)

    def _run(
        self,
        targets: List[TrackedWitness],
        descriptor: UpdateDescriptor,
        cancel: Optional[threading.Event],
    ) -> Dict[int, Optional[int]]:
        parallel = len(targets) >= self.parallel_threshold and (
            self._executor is not None or self.workers > 1
        )
        if not parallel:
            return self._run_serial(targets, descriptor, cancel)

        if self._executor is not None:
            return self._collect(self._executor, targets, descriptor, cancel)

        with ProcessPoolExecutor(max_workers=self.workers) as executor:
            return self._collect(executor, targets, descriptor, cancel)

    def _run_serial(
        self,
        targets: Iterable[TrackedWitness],
        descriptor: UpdateDescriptor,
        cancel: Optional[threading.Event],
    ) -> Dict[int, Optional[int]]:
        results: Dict[int, Optional[int]] = {}
        for entry in targets:
            if cancel is not None and cancel.is_set():
                logger.warning(f"Refresh for descriptor #{descriptor.sequence} cancelled")
                break
            try:
                results[entry.exponent] = advance_witness(entry.value, entry.exponent, descriptor, self.modulus)
            except (InvalidWitness, NotInvertible) as e:
                logger.error(f"Witness refresh failed at descriptor #{descriptor.sequence}: {e}")
                results[entry.exponent] = None
        return results

    def _collect(
        self,
        executor: Executor,
        targets: List[TrackedWitness],
        descriptor: UpdateDescriptor,
        cancel: Optional[threading.Event],
    ) -> Dict[int, Optional[int]]:
        results: Dict[int, Optional[int]] = {}
        futures = {
            executor.submit(advance_witness, entry.value, entry.exponent, descriptor, self.modulus): entry.exponent
            for entry in targets
        }

        for future in as_completed(futures):
            if cancel is not None and cancel.is_set():
                logger.warning(f"Refresh for descriptor #{descriptor.sequence} cancelled")
                break
            exponent = futures[future]
            try:
                results[exponent] = future.result()
            except (InvalidWitness, NotInvertible) as e:
                logger.error(f"Witness refresh failed at descriptor #{descriptor.sequence}: {e}")
                results[exponent] = None

        for future in futures:
            future.cancel()

        return results

    def recompute(self, exponent: int, accumulator: Accumulator) -> int:
        """
        Rebuild a witness from the accumulator's full member set.

        This is the recovery path for stale witnesses.

        Raises:
            ValueError: If the accumulator uses a different modulus
            UnknownElement: If exponent is not a member of the accumulator
        """
        if accumulator.modulus != self.modulus:
            raise ValueError("Accumulator modulus does not match the store")

        members, sequence = accumulator.membership_snapshot()
        witness = membership_witness(members, exponent, accumulator.modulus, accumulator.generator)

        with self._lock:
            self._entries[exponent] = TrackedWitness(exponent, WitnessState.VALID, witness, sequence)

        logger.info(f"Recomputed witness from scratch at sequence {sequence}")
        return witness
