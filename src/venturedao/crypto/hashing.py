"""
Hash functions and utilities for VentureDAO.

Implements SHA-256 hashing used to chain audit trail events together.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Union

from cryptography.hazmat.primitives import hashes


@dataclass(frozen=True)
class Hash:
    """Immutable hash value with comparison and string representation."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != 32:
            raise ValueError("Hash must be exactly 32 bytes")

    def __str__(self) -> str:
        return self.value.hex()

    def __repr__(self) -> str:
        return f"Hash('{self.value.hex()}')"

    @classmethod
    def from_hex(cls, hex_string: str) -> "Hash":
        """Create a Hash from a hexadecimal string."""
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def zero(cls) -> "Hash":
        """Create a zero hash (all zeros)."""
        return cls(b"\x00" * 32)

    def to_hex(self) -> str:
        """Convert hash to hexadecimal string."""
        return self.value.hex()


class SHA256Hasher:
    """SHA-256 hasher backed by the ``cryptography`` primitives."""

    @staticmethod
    def hash(data: Union[bytes, str]) -> Hash:
        """
        Hash data using SHA-256.

        Args:
            data: Data to hash (bytes or string)

        Returns:
            Hash object containing the SHA-256 hash
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        digest = hashes.Hash(hashes.SHA256())
        digest.update(data)
        return Hash(digest.finalize())

    @staticmethod
    def hash_list(items: List[Union[bytes, str]]) -> Hash:
        """Hash the concatenation of several items in order."""
        digest = hashes.Hash(hashes.SHA256())
        for item in items:
            if isinstance(item, str):
                item = item.encode("utf-8")
            digest.update(item)
        return Hash(digest.finalize())

    @staticmethod
    def hash_json(payload: Any) -> Hash:
        """Hash a JSON-serialisable payload using a canonical encoding."""
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
        return SHA256Hasher.hash(encoded)
