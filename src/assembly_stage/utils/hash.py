# src/assembly_stage/utils/hash.py
"""Digest helpers for the 256-bit algorithms used by vote commitments."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Final

from blake3 import blake3


def sha256_hexdigest(data: bytes) -> str:
    """Return the SHA-256 hexadecimal digest of the supplied data."""
    return hashlib.sha256(data).hexdigest()


def blake3_hexdigest(data: bytes) -> str:
    """Return the 256-bit BLAKE3 hexadecimal digest of the supplied data."""
    return blake3(data).hexdigest()


HEX_DIGESTS: Final[dict[str, Callable[[bytes], str]]] = {
    "sha256": sha256_hexdigest,
    "blake3": blake3_hexdigest,
}


def hexdigest(algorithm: str, data: bytes) -> str:
    """Return the hexadecimal digest of ``data`` under ``algorithm``.

    Raises:
        ValueError: If the algorithm is not supported.
    """
    try:
        digest = HEX_DIGESTS[algorithm]
    except KeyError as err:
        raise ValueError(f"Unsupported hash algorithm: {algorithm!r}") from err
    return digest(data)
