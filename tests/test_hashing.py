"""
Unit tests for user import hash configurations.
"""

import pytest

from admin_core.errors import InvalidArgumentError
from admin_auth.hashing import (
    BcryptHash,
    HashAlgorithm,
    ScryptHash,
    StandardScryptHash,
    build_hash_config,
    hmac_hash,
    repeatable_hash,
)


class TestHmacHash:
    """Test cases for HMAC hash configurations."""

    @pytest.mark.parametrize("algorithm", ["HMAC_SHA512", "HMAC_SHA256", "HMAC_SHA1", "HMAC_MD5"])
    def test_config(self, algorithm):
        config = build_hash_config(hmac_hash(algorithm, b"secret"))

        assert config == {"signerKey": "c2VjcmV0", "hashAlgorithm": algorithm}

    def test_standard_base64_key(self):
        config = build_hash_config(hmac_hash(HashAlgorithm.HMAC_SHA256, b"\xfb\xff"))

        assert config["signerKey"] == "+/8="

    def test_empty_key(self):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(hmac_hash(HashAlgorithm.HMAC_SHA256, b""))

    def test_non_hmac_algorithm(self):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(hmac_hash(HashAlgorithm.SHA256, b"secret"))


class TestRepeatableHash:
    """Test cases for hashes configured by a rounds count."""

    @pytest.mark.parametrize("algorithm, rounds", [
        ("MD5", 0),
        ("MD5", 8192),
        ("SHA1", 1),
        ("SHA256", 8192),
        ("SHA512", 100),
        ("PBKDF_SHA1", 0),
        ("PBKDF2_SHA256", 120000),
    ])
    def test_valid_rounds(self, algorithm, rounds):
        config = build_hash_config(repeatable_hash(algorithm, rounds))

        assert config == {"rounds": rounds, "hashAlgorithm": algorithm}

    @pytest.mark.parametrize("algorithm, rounds", [
        ("MD5", -1),
        ("MD5", 8193),
        ("SHA1", 0),
        ("SHA512", 8193),
        ("PBKDF2_SHA256", 120001),
    ])
    def test_rounds_out_of_range(self, algorithm, rounds):
        with pytest.raises(InvalidArgumentError) as exc_info:
            build_hash_config(repeatable_hash(algorithm, rounds))

        assert "Rounds value must be between" in exc_info.value.message

    def test_algorithm_without_rounds(self):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(repeatable_hash(HashAlgorithm.HMAC_SHA1, 1))

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            repeatable_hash("SHA3", 1)


class TestScryptHash:
    """Test cases for scrypt hash configurations."""

    def test_config(self):
        config = build_hash_config(
            ScryptHash(key="key", rounds=8, memory_cost=14, salt_separator="sep")
        )

        assert config == {
            "rounds": 8,
            "signerKey": "a2V5",
            "memoryCost": 14,
            "saltSeparator": "c2Vw",
            "hashAlgorithm": "SCRYPT",
        }

    def test_url_safe_key_without_padding(self):
        config = build_hash_config(ScryptHash(key="k?>", rounds=1, memory_cost=1))

        assert config["signerKey"] == "az8-"
        assert config["saltSeparator"] == ""

    @pytest.mark.parametrize("rounds", [0, 9, None])
    def test_invalid_rounds(self, rounds):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(ScryptHash(key="key", rounds=rounds, memory_cost=14))

    @pytest.mark.parametrize("memory_cost", [0, 15, None])
    def test_invalid_memory_cost(self, memory_cost):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(ScryptHash(key="key", rounds=8, memory_cost=memory_cost))

    def test_missing_key(self):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(ScryptHash(key="", rounds=8, memory_cost=14))


class TestStandardScryptHash:
    """Test cases for standard scrypt hash configurations."""

    def test_config(self):
        config = build_hash_config(
            StandardScryptHash(derived_key_length=64, block_size=8, parallelization=2, memory_cost=14)
        )

        assert config == {
            "dkLen": 64,
            "blockSize": 8,
            "parallization": 2,
            "memoryCost": 14,
            "hashAlgorithm": "STANDARD_SCRYPT",
        }

    def test_negative_value(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            build_hash_config(
                StandardScryptHash(derived_key_length=64, block_size=-1, parallelization=2, memory_cost=14)
            )

        assert exc_info.value.message == "block_size must be non-negative"

    def test_missing_value(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            build_hash_config(
                StandardScryptHash(derived_key_length=None, block_size=8, parallelization=2, memory_cost=14)
            )

        assert exc_info.value.message == "derived_key_length must be initialized"


class TestBcryptHash:
    """Test cases for bcrypt hash configurations."""

    def test_config(self):
        assert build_hash_config(BcryptHash()) == {"hashAlgorithm": "BCRYPT"}

    def test_unsupported_variant(self):
        with pytest.raises(InvalidArgumentError):
            build_hash_config(object())
