"""
Password hash configurations for user import.

Every supported algorithm is a member of ``HashAlgorithm`` paired with one
parameter dataclass. ``build_hash_config`` validates the parameters and
returns the JSON fields expected by the import endpoint.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from admin_core.errors import InvalidArgumentError


class HashAlgorithm(str, Enum):
    HMAC_SHA512 = "HMAC_SHA512"
    HMAC_SHA256 = "HMAC_SHA256"
    HMAC_SHA1 = "HMAC_SHA1"
    HMAC_MD5 = "HMAC_MD5"
    MD5 = "MD5"
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"
    PBKDF_SHA1 = "PBKDF_SHA1"
    PBKDF2_SHA256 = "PBKDF2_SHA256"
    SCRYPT = "SCRYPT"
    STANDARD_SCRYPT = "STANDARD_SCRYPT"
    BCRYPT = "BCRYPT"


_HMAC_ALGORITHMS = frozenset([
    HashAlgorithm.HMAC_SHA512,
    HashAlgorithm.HMAC_SHA256,
    HashAlgorithm.HMAC_SHA1,
    HashAlgorithm.HMAC_MD5,
])

# algorithm -> (min rounds, max rounds), inclusive
ROUNDS_BOUNDS = {
    HashAlgorithm.MD5: (0, 8192),
    HashAlgorithm.SHA1: (1, 8192),
    HashAlgorithm.SHA256: (1, 8192),
    HashAlgorithm.SHA512: (1, 8192),
    HashAlgorithm.PBKDF_SHA1: (0, 120000),
    HashAlgorithm.PBKDF2_SHA256: (0, 120000),
}


@dataclass(frozen=True)
class HmacHash:
    algorithm: HashAlgorithm
    key: bytes


@dataclass(frozen=True)
class RepeatableHash:
    algorithm: HashAlgorithm
    rounds: Optional[int]


@dataclass(frozen=True)
class ScryptHash:
    """Firebase's modified scrypt."""

    key: str
    rounds: Optional[int]
    memory_cost: Optional[int]
    salt_separator: Optional[str] = None

    algorithm = HashAlgorithm.SCRYPT


@dataclass(frozen=True)
class StandardScryptHash:
    derived_key_length: Optional[int]
    block_size: Optional[int]
    parallelization: Optional[int]
    memory_cost: Optional[int]

    algorithm = HashAlgorithm.STANDARD_SCRYPT


@dataclass(frozen=True)
class BcryptHash:
    algorithm = HashAlgorithm.BCRYPT


UserImportHash = Union[HmacHash, RepeatableHash, ScryptHash, StandardScryptHash, BcryptHash]


def hmac_hash(algorithm: Union[HashAlgorithm, str], key: bytes) -> HmacHash:
    return HmacHash(algorithm=HashAlgorithm(algorithm), key=key)


def repeatable_hash(algorithm: Union[HashAlgorithm, str], rounds: int) -> RepeatableHash:
    return RepeatableHash(algorithm=HashAlgorithm(algorithm), rounds=rounds)


def _urlsafe_b64(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _check_rounds(algorithm: HashAlgorithm, rounds: Optional[int]) -> int:
    minimum, maximum = ROUNDS_BOUNDS.get(algorithm, (1, 8))
    if rounds is None:
        raise InvalidArgumentError(f"rounds must be set for {algorithm.value}.")
    if isinstance(rounds, bool) or not isinstance(rounds, int) or not minimum <= rounds <= maximum:
        raise InvalidArgumentError(
            f"Rounds value must be between {minimum} and {maximum} (inclusive).",
            details={"algorithm": algorithm.value, "rounds": rounds},
        )
    return rounds


def _check_non_negative(name: str, value: Optional[int]) -> int:
    if value is None:
        raise InvalidArgumentError(f"{name} must be initialized")
    if value < 0:
        raise InvalidArgumentError(f"{name} must be non-negative")
    return value


def _hmac_config(variant: HmacHash) -> Dict[str, Any]:
    if variant.algorithm not in _HMAC_ALGORITHMS:
        raise InvalidArgumentError(f"{variant.algorithm.value} is not an HMAC algorithm.")
    if not variant.key:
        raise InvalidArgumentError("key must not be null or empty")
    return {"signerKey": base64.b64encode(variant.key).decode("ascii")}


def _repeatable_config(variant: RepeatableHash) -> Dict[str, Any]:
    if variant.algorithm not in ROUNDS_BOUNDS:
        raise InvalidArgumentError(f"{variant.algorithm.value} does not take a rounds parameter.")
    return {"rounds": _check_rounds(variant.algorithm, variant.rounds)}


def _scrypt_config(variant: ScryptHash) -> Dict[str, Any]:
    if not variant.key:
        raise InvalidArgumentError("key must not be null or empty")
    memory_cost = variant.memory_cost
    if memory_cost is None:
        raise InvalidArgumentError("memory cost must be set")
    if not 1 <= memory_cost <= 14:
        raise InvalidArgumentError("memory cost must be between 1 and 14 (inclusive)")
    salt_separator = _urlsafe_b64(variant.salt_separator.encode("utf-8")) if variant.salt_separator else ""
    return {
        "rounds": _check_rounds(HashAlgorithm.SCRYPT, variant.rounds),
        "signerKey": _urlsafe_b64(variant.key.encode("utf-8")),
        "memoryCost": memory_cost,
        "saltSeparator": salt_separator,
    }


def _standard_scrypt_config(variant: StandardScryptHash) -> Dict[str, Any]:
    return {
        "dkLen": _check_non_negative("derived_key_length", variant.derived_key_length),
        "blockSize": _check_non_negative("block_size", variant.block_size),
        "parallization": _check_non_negative("parallelization", variant.parallelization),
        "memoryCost": _check_non_negative("memory_cost", variant.memory_cost),
    }


def build_hash_config(variant: UserImportHash) -> Dict[str, Any]:
    """Validate ``variant`` and return its wire representation."""
    if isinstance(variant, HmacHash):
        config = _hmac_config(variant)
    elif isinstance(variant, RepeatableHash):
        config = _repeatable_config(variant)
    elif isinstance(variant, ScryptHash):
        config = _scrypt_config(variant)
    elif isinstance(variant, StandardScryptHash):
        config = _standard_scrypt_config(variant)
    elif isinstance(variant, BcryptHash):
        config = {}
    else:
        raise InvalidArgumentError(f"Unsupported hash configuration: {variant!r}")

    config["hashAlgorithm"] = variant.algorithm.value
    return config
