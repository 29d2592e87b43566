"""
Hash-to-Prime Element Encoding

Maps application identifiers (device public keys, credential serials, plain
strings) to prime exponents for the accumulator. The mapping is deterministic,
independent of accumulator state, and draws each candidate from a fresh hash
of (identifier, counter), so distinct identifiers land on unrelated primes.
"""

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING, Dict, Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519

from .config import get_settings
from .errors import EncodingExhausted

if TYPE_CHECKING:
    from .trapdoor import Trapdoor

logger = logging.getLogger(__name__)

Identifier = Union[bytes, str, int, object]

_DOMAIN_TAG = b"dynacc/hash-to-prime/v1"


def _mr_is_probable_prime(n: int, rounds: int = 64) -> bool:
    """Deterministic Miller-Rabin primality test."""
    if n < 2:
        return False
    small = [2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37]
    for p in small:
        if n == p:
            return True
        if n % p == 0:
            return False
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    seed = n.to_bytes((n.bit_length() + 7) // 8, "big")
    for i in range(rounds):
        h = hashlib.sha256(seed + i.to_bytes(4, "big")).digest()
        a = 2 + (int.from_bytes(h, "big") % (n - 3))
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = (x * x) % n
            if x == n - 1:
                break
        else:
            return False
    return True


def is_probable_prime(n: int, rounds: Optional[int] = None) -> bool:
    """Miller-Rabin test with the configured number of rounds."""
    return _mr_is_probable_prime(n, rounds or get_settings().mr_rounds)


def identifier_bytes(identifier: Identifier) -> bytes:
    """
    Canonical, domain-separated byte encoding of an identifier.

    Accepts bytes, str (UTF-8), non-negative int, or a public key object from
    the cryptography package. Each kind gets its own one-byte prefix so that
    e.g. "a" and b"a" never share a representative.

    Raises:
        TypeError: If the identifier type is unsupported
        ValueError: If an int identifier is negative
    """
    if isinstance(identifier, (bytes, bytearray)):
        return b"b" + bytes(identifier)
    if isinstance(identifier, str):
        return b"s" + identifier.encode("utf-8")
    if isinstance(identifier, bool):
        raise TypeError("bool is not a valid identifier")
    if isinstance(identifier, int):
        if identifier < 0:
            raise ValueError("Integer identifiers must be non-negative")
        length = max(1, (identifier.bit_length() + 7) // 8)
        return b"i" + identifier.to_bytes(length, "big")
    if isinstance(identifier, (ed25519.Ed25519PublicKey, x25519.X25519PublicKey)):
        raw = identifier.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return b"k" + raw
    if hasattr(identifier, "public_bytes"):
        der = identifier.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return b"k" + der
    raise TypeError(f"Unsupported identifier type: {type(identifier).__name__}")


def _candidate(data: bytes, counter: int, bits: int, key: Optional[bytes]) -> int:
    nbytes = (bits + 7) // 8
    material = _DOMAIN_TAG + bits.to_bytes(2, "big") + counter.to_bytes(8, "big") + data

    out = b""
    block = 0
    while len(out) < nbytes:
        chunk = block.to_bytes(4, "big") + material
        if key is None:
            out += hashlib.sha256(chunk).digest()
        else:
            out += hmac.new(key, chunk, hashlib.sha256).digest()
        block += 1

    cand = int.from_bytes(out[:nbytes], "big") >> (nbytes * 8 - bits)
    # Force exact bit length and oddness
    return cand | (1 << (bits - 1)) | 1


def hash_to_prime(
    data: bytes,
    *,
    bits: int = 256,
    max_attempts: int = 100_000,
    mr_rounds: int = 64,
    key: Optional[bytes] = None,
) -> int:
    """
    Convert bytes to a prime of exactly `bits` bits.

    Candidates are SHA-256 (or HMAC-SHA256 when a key is given) expansions of
    the input and a trial counter; the first probable prime wins.

    Args:
        data: Input bytes (use identifier_bytes() for typed identifiers)
        bits: Bit length of the result (>= 64)
        max_attempts: Number of candidates tried before giving up
        mr_rounds: Miller-Rabin rounds
        key: Optional secret key for keyed encoding

    Returns:
        int: A prime derived from the input

    Raises:
        TypeError: If data is not bytes
        ValueError: If bits or max_attempts are out of range
        EncodingExhausted: If no prime is found within max_attempts

    Example:
        >>> prime = hash_to_prime(b"device-001")
        >>> assert prime.bit_length() == 256
    """
    if not isinstance(data, bytes):
        raise TypeError("data must be bytes")
    if max_attempts <= 0:
        raise ValueError("max_attempts must be positive")
    if bits < 64:
        raise ValueError("bits should be >= 64")

    for counter in range(max_attempts):
        cand = _candidate(data, counter, bits, key)
        if _mr_is_probable_prime(cand, mr_rounds):
            return cand

    raise EncodingExhausted(f"Could not find prime within {max_attempts} attempts")


class ElementEncoder:
    """
    Deterministic identifier -> prime exponent mapping with a local cache.

    When constructed with the issuer's trapdoor, every exponent is also checked
    against the modulus factors.
    """

    def __init__(
        self,
        *,
        bits: Optional[int] = None,
        max_attempts: Optional[int] = None,
        mr_rounds: Optional[int] = None,
        key: Optional[bytes] = None,
        trapdoor: Optional["Trapdoor"] = None,
    ):
        settings = get_settings()
        self.bits = bits or settings.prime_bits
        self.max_attempts = max_attempts or settings.max_attempts
        self.mr_rounds = mr_rounds or settings.mr_rounds
        self._key = key
        self._trapdoor = trapdoor
        self._cache: Dict[bytes, int] = {}

    def encode(self, identifier: Identifier) -> int:
        """Return the prime representative of identifier."""
        data = identifier_bytes(identifier)

        exponent = self._cache.get(data)
        if exponent is None:
            exponent = hash_to_prime(
                data,
                bits=self.bits,
                max_attempts=self.max_attempts,
                mr_rounds=self.mr_rounds,
                key=self._key,
            )
            self._cache[data] = exponent
            logger.debug(f"Encoded identifier to {exponent.bit_length()}-bit prime")

        if self._trapdoor is not None:
            self._trapdoor.check_exponent(exponent)

        return exponent

    def __call__(self, identifier: Identifier) -> int:
        return self.encode(identifier)

    def cache_size(self) -> int:
        return len(self._cache)
