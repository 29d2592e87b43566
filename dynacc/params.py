"""
RSA Parameters for the Accumulator

Public parameters (modulus N and generator g) plus helpers to load, save,
validate and generate them. Generation is a convenience for tests and demos:
production setups come from an external trusted setup.
"""

import json
import math
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from .config import get_settings
from .trapdoor import Trapdoor


@dataclass(frozen=True)
class AccumulatorParams:
    """Public accumulator parameters: modulus N and generator g."""

    modulus: int
    generator: int

    def __post_init__(self) -> None:
        if self.modulus <= 2:
            raise ValueError("RSA modulus N must be greater than 2")
        if not (1 < self.generator < self.modulus):
            raise ValueError("Generator g must be in (1, N)")
        if math.gcd(self.modulus, self.generator) != 1:
            raise ValueError("RSA modulus N and generator g must be coprime")

    def to_dict(self) -> Dict[str, str]:
        return {"N": hex(self.modulus), "g": hex(self.generator)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccumulatorParams":
        try:
            return cls(int(data["N"], 16), int(data["g"], 16))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid parameters format: {e}") from e


def validate_params(N: int, g: int, *, min_bits: Optional[int] = None) -> None:
    """
    Validate RSA parameters for accumulator operations.

    Args:
        N: RSA modulus
        g: Generator base
        min_bits: Minimum modulus size (default: configured min_modulus_bits)

    Raises:
        ValueError: If parameters are invalid
    """
    if min_bits is None:
        min_bits = get_settings().min_modulus_bits

    if N <= 0:
        raise ValueError("RSA modulus N must be positive")

    if g <= 0:
        raise ValueError("Generator g must be positive")

    if g >= N:
        raise ValueError("Generator g must be less than modulus N")

    if N.bit_length() < min_bits:
        raise ValueError(f"RSA modulus N must be at least {min_bits} bits")

    if math.gcd(N, g) != 1:
        raise ValueError("RSA modulus N and generator g must be coprime")


def load_params(path: Optional[Union[str, Path]] = None, *, min_bits: Optional[int] = None) -> AccumulatorParams:
    """
    Load public parameters from a JSON file with hex "N" and "g".

    Args:
        path: File to read (default: configured params_file)
        min_bits: Minimum modulus size passed to validate_params

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If no path is configured or the content is invalid
    """
    if path is None:
        path = get_settings().params_file
    if path is None:
        raise ValueError("No parameters file given and DYNACC_PARAMS_FILE is not set")

    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid parameters file format: {e}") from e

    params = AccumulatorParams.from_dict(data)
    validate_params(params.modulus, params.generator, min_bits=min_bits)
    return params


def save_params(params: AccumulatorParams, path: Union[str, Path]) -> None:
    """Write public parameters as JSON. The trapdoor is never written."""
    payload = params.to_dict()
    payload["description"] = f"{params.modulus.bit_length()}-bit RSA accumulator parameters"
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)


def _random_square(N: int) -> int:
    # Square of a random unit, so g lies in the quadratic-residue subgroup
    while True:
        h = secrets.randbelow(N - 3) + 2
        if math.gcd(h, N) == 1:
            g = pow(h, 2, N)
            if g != 1:
                return g


def generate_params(bits: int = 2048) -> Tuple[AccumulatorParams, Trapdoor]:
    """
    Generate fresh parameters and the matching trapdoor.

    Uses an RSA key from the cryptography package for the modulus.

    Args:
        bits: Modulus size (>= 1024)

    Returns:
        Tuple[AccumulatorParams, Trapdoor]
    """
    if bits < 1024:
        raise ValueError("Modulus size must be at least 1024 bits")

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    trapdoor = Trapdoor.from_private_key(private_key)
    N = trapdoor.modulus

    return AccumulatorParams(N, _random_square(N)), trapdoor


def generate_toy_params() -> Tuple[AccumulatorParams, Trapdoor]:
    """
    Small toy parameters for unit testing: N = 11 * 19 = 209, g = 4.
    """
    return AccumulatorParams(209, 4), Trapdoor(11, 19)
