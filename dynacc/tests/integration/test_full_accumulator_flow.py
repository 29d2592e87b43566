"""
Integration Tests for the Complete Accumulator Flow

Issuer and holders working together: issuance, refresh across additions and
deletions, revocation, and recovery of stale witnesses.
"""

import pytest

from dynacc import (
    Accumulator,
    ElementEncoder,
    InvalidWitness,
    PublishedState,
    StaleBaseWitness,
    WitnessState,
    WitnessStore,
    verify_membership,
)


class TestWorkedScenario:
    """The five/seven scenario on toy parameters (N = 209, u = 4)."""

    def test_scenario(self, toy_accumulator):
        acc = toy_accumulator
        u, N = 4, 209
        store = WitnessStore(N)

        # add(5): v1 = u^5, witness(5) = u
        d1 = acc.add(5)
        store.apply(d1, track_added=True)
        assert acc.value() == pow(u, 5, N)
        assert store.witness(5) == u

        # add(7): v2 = u^35, witness(5) = u^7, witness(7) = u^5
        d2 = acc.add(7)
        store.apply(d2, track_added=True)
        assert acc.value() == pow(u, 35, N)
        assert store.witness(5) == pow(u, 7, N)
        assert store.witness(7) == pow(u, 5, N)

        # delete(5, u^7): v3 = u^7
        d3 = acc.delete(5, pow(u, 7, N))
        assert acc.value() == pow(u, 7, N)

        # witness(7) refreshes through the Bézout identity with e_del=5, e_j=7
        report = store.apply(d3)
        assert report.discarded == 5
        assert report.refreshed == (7,)
        assert store.witness(7) == u
        assert pow(store.witness(7), 7, N) == acc.value()

    def test_negative_scenario(self, toy_accumulator):
        acc = toy_accumulator
        acc.add(5)
        acc.add(7)
        before = acc.value()

        with pytest.raises(InvalidWitness):
            acc.delete(5, pow(4, 5, 209))

        assert acc.value() == before


class TestIssuerHolderFlow:
    """Realistic parameters, identifiers encoded to 256-bit primes."""

    @pytest.fixture
    def encoder(self):
        return ElementEncoder()

    def test_lifecycle(self, accumulator, encoder):
        N = accumulator.modulus
        issuer = WitnessStore(N)
        ids = [f"credential-{i:03d}" for i in range(6)]
        exponents = {i: encoder.encode(i) for i in ids}

        # Issue all credentials; each holder keeps its own store
        holders = {}
        for ident in ids:
            descriptor = accumulator.add(exponents[ident])
            issuer.apply(descriptor, track_added=True)
            for holder in holders.values():
                holder.apply(descriptor)
            holder = WitnessStore(N)
            holder.track(exponents[ident], descriptor.value_before, descriptor.sequence)
            holders[ident] = holder

        published = PublishedState.from_dict(accumulator.publish().to_dict())
        for ident in ids:
            e = exponents[ident]
            assert verify_membership(e, holders[ident].witness(e), published.value, published.modulus)
            assert holders[ident].witness(e) == issuer.witness(e)

        # Revoke two credentials
        for revoked in (ids[1], ids[4]):
            e = exponents[revoked]
            descriptor = accumulator.delete(e, issuer.witness(e))
            issuer.apply(descriptor)
            for holder in holders.values():
                holder.apply(descriptor)

        published = accumulator.publish()
        for ident in ids:
            e = exponents[ident]
            if ident in (ids[1], ids[4]):
                assert e not in holders[ident]
                assert e not in accumulator
            else:
                witness = holders[ident].witness(e)
                assert verify_membership(e, witness, published.value, published.modulus)
                assert witness == accumulator.witness_from_scratch(e)

    def test_revoked_witness_no_longer_verifies(self, accumulator, primes):
        store = WitnessStore(accumulator.modulus)
        for e in primes[:3]:
            store.apply(accumulator.add(e), track_added=True)
        old_witness = store.witness(primes[1])

        accumulator.delete(primes[1], old_witness)

        assert not verify_membership(primes[1], old_witness, accumulator.value(), accumulator.modulus)

    def test_add_preserves_others(self, accumulator, primes):
        store = WitnessStore(accumulator.modulus)
        for e in primes:
            store.apply(accumulator.add(e), track_added=True)
            for tracked in store.exponents():
                assert verify_membership(tracked, store.witness(tracked), accumulator.value(), accumulator.modulus)

    def test_interleaved_adds_and_deletes(self, accumulator, primes):
        store = WitnessStore(accumulator.modulus)
        steps = [
            ("add", primes[0]), ("add", primes[1]), ("add", primes[2]),
            ("delete", primes[1]), ("add", primes[3]), ("delete", primes[0]),
            ("add", primes[1]), ("add", primes[4]), ("delete", primes[3]),
        ]

        for op, e in steps:
            if op == "add":
                store.apply(accumulator.add(e), track_added=True)
            else:
                store.apply(accumulator.delete(e, store.witness(e)))

            assert store.exponents() == accumulator.members()
            for tracked in store.exponents():
                assert verify_membership(tracked, store.witness(tracked), accumulator.value(), accumulator.modulus)

    def test_holder_recovers_after_missed_descriptor(self, accumulator, primes):
        first = accumulator.add(primes[0])
        holder = WitnessStore(accumulator.modulus)
        holder.track(primes[0], first.value_before, first.sequence)

        accumulator.add(primes[1])  # missed by the holder
        third = accumulator.add(primes[2])

        with pytest.raises(StaleBaseWitness):
            holder.refresh(primes[0], third)
        assert holder.state(primes[0]) is WitnessState.STALE

        holder.recompute(primes[0], accumulator)
        assert verify_membership(primes[0], holder.witness(primes[0]), accumulator.value(), accumulator.modulus)
