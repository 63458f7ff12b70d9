"""
Full-store iteration that turns keys back into vectors.
"""

from typing import Iterator, Optional, Tuple

import numpy as np

from ..core.db import KVStore
from .codec import decode_vector


class RecordScanner:
    """Reads every stored record from a fresh snapshot."""

    def __init__(self, store: KVStore):
        self.store = store

    def scan_all(self, dimension: Optional[int] = None) -> Iterator[Tuple[np.ndarray, str]]:
        """
        Lazily yield (vector, text) for every record in key-byte order.

        Each call opens its own snapshot; the iterator cannot be resumed.
        Without ``dimension`` the first record fixes it for the rest of the
        scan. A key that does not match stops the scan.

        Raises:
            DecodingError: On the first key of inconsistent length
            StoreError: If the read transaction fails
        """
        with self.store.read_txn() as txn:
            for key, value in txn.iterate(prefetch_values=True):
                vector = decode_vector(key, dimension)
                if dimension is None:
                    dimension = len(vector)
                yield vector, value.decode("utf-8")

    def scan_vectors(self, dimension: Optional[int] = None) -> Iterator[np.ndarray]:
        """Like scan_all but reads keys only, without fetching values."""
        with self.store.read_txn() as txn:
            for key, _ in txn.iterate(prefetch_values=False):
                vector = decode_vector(key, dimension)
                if dimension is None:
                    dimension = len(vector)
                yield vector

    def count(self) -> int:
        """Number of records currently stored."""
        return self.store.count()
