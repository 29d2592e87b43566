"""
Shared fixtures: toy parameters with their trapdoor, and real-sized
parameters generated once per session.
"""

import pytest

from dynacc.accumulator import Accumulator
from dynacc.params import generate_params, generate_toy_params


@pytest.fixture
def toy_params():
    """N = 209 = 11 * 19, g = 4, plus Trapdoor(11, 19)."""
    return generate_toy_params()


@pytest.fixture
def toy_accumulator(toy_params):
    params, _ = toy_params
    return Accumulator(params)


@pytest.fixture(scope="session")
def rsa_params():
    """1024-bit parameters and trapdoor from the cryptography package."""
    return generate_params(1024)


@pytest.fixture
def accumulator(rsa_params):
    params, _ = rsa_params
    return Accumulator(params)


@pytest.fixture(scope="session")
def primes():
    """Distinct 64-bit prime representatives for test elements."""
    from dynacc.hash_to_prime import ElementEncoder

    encoder = ElementEncoder(bits=64)
    return [encoder.encode(f"element-{i}") for i in range(8)]
