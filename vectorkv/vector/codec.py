"""
Fixed-width key encoding for embedding vectors.

A vector of N float64 values becomes exactly 8*N little-endian bytes. The
store orders these keys byte-wise, which says nothing about the vectors'
magnitudes or directions: keys are only ever iterated exhaustively or looked
up exactly, never range-scanned.
"""

from typing import Optional, Sequence, Union

import numpy as np

from ..core.errors import DecodingError, EncodingError

KEY_DTYPE = np.dtype("<f8")
ITEM_SIZE = KEY_DTYPE.itemsize

VectorLike = Union[Sequence[float], np.ndarray]


def encode_vector(vector: VectorLike) -> bytes:
    """
    Serialize a vector into its store key.

    Raises:
        EncodingError: If the vector is empty, not one-dimensional or not numeric
    """
    try:
        array = np.asarray(vector, dtype=KEY_DTYPE)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Vector is not numeric: {e}") from e

    if array.ndim != 1:
        raise EncodingError(f"Vector must be one-dimensional, got shape {array.shape}")

    if array.size == 0:
        raise EncodingError("Cannot encode an empty vector")

    return array.tobytes()


def decode_vector(data: bytes, dimension: Optional[int] = None) -> np.ndarray:
    """
    Recover a vector from its store key.

    NaN and infinite values are returned exactly as stored.

    Args:
        data: Raw key bytes
        dimension: Expected number of components, if known

    Raises:
        DecodingError: If the length is not a multiple of 8 or does not match dimension
    """
    if len(data) % ITEM_SIZE != 0:
        raise DecodingError(f"Key length {len(data)} is not a multiple of {ITEM_SIZE}")

    if dimension is not None and len(data) != dimension * ITEM_SIZE:
        raise DecodingError(
            f"Key holds {len(data) // ITEM_SIZE} components, expected {dimension}"
        )

    # Copy so the array owns writable memory independent of the key buffer
    return np.frombuffer(data, dtype=KEY_DTYPE).astype(np.float64)


def key_dimension(data: bytes) -> int:
    """Number of float64 components a key holds."""
    if len(data) % ITEM_SIZE != 0:
        raise DecodingError(f"Key length {len(data)} is not a multiple of {ITEM_SIZE}")
    return len(data) // ITEM_SIZE
