"""
Dynamic RSA Accumulator Package

Accumulator state, witness maintenance and membership verification for
anonymity-preserving revocation: an issuer accumulates the prime
representatives of valid credentials, holders keep witnesses that prove
membership against the published accumulator value.
"""

from .accumulator import (
    Accumulator,
    Operation,
    PublishedState,
    UpdateDescriptor,
    add_member,
    membership_witness,
    recompute_root,
)
from .errors import (
    AccumulatorError,
    AlreadyAccumulated,
    EncodingExhausted,
    ExponentCollidesWithFactor,
    InvalidWitness,
    NotInvertible,
    StaleBaseWitness,
    UnknownElement,
)
from .hash_to_prime import ElementEncoder, hash_to_prime, identifier_bytes
from .modular import extended_gcd, modexp, modinv
from .params import AccumulatorParams, generate_params, generate_toy_params, load_params, save_params
from .trapdoor import Trapdoor
from .verifier import verify_membership
from .witness_refresh import RefreshReport, WitnessState, WitnessStore

__version__ = "0.1.0"
__all__ = [
    "Accumulator",
    "Operation",
    "PublishedState",
    "UpdateDescriptor",
    "add_member",
    "membership_witness",
    "recompute_root",
    "AccumulatorError",
    "AlreadyAccumulated",
    "EncodingExhausted",
    "ExponentCollidesWithFactor",
    "InvalidWitness",
    "NotInvertible",
    "StaleBaseWitness",
    "UnknownElement",
    "ElementEncoder",
    "hash_to_prime",
    "identifier_bytes",
    "extended_gcd",
    "modexp",
    "modinv",
    "AccumulatorParams",
    "generate_params",
    "generate_toy_params",
    "load_params",
    "save_params",
    "Trapdoor",
    "verify_membership",
    "RefreshReport",
    "WitnessState",
    "WitnessStore",
]
