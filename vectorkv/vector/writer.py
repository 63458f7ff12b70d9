"""
Batch insertion of (text, vector) pairs.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.db import KVStore
from ..core.errors import EncodingError, ProviderError, VectorKVError
from .codec import VectorLike, encode_vector, key_dimension
from .embeddings import IEmbeddingProvider, PoolingMode
from util.logging import logger


class RecordWriter:
    """Writes text records keyed by their encoded embedding vectors."""

    def __init__(self, store: KVStore):
        self.store = store

    def insert_batch(self, pairs: Iterable[Tuple[str, VectorLike]], dimension: Optional[int] = None) -> int:
        """
        Insert every pair in one write transaction.

        All-or-nothing: if any vector fails to encode, or the store rejects a
        write, nothing from the batch is committed and the first error is
        raised. Pairs whose vectors are bit-identical collide and the later
        text wins.

        Args:
            pairs: (text, vector) pairs
            dimension: If given, every vector must have exactly this many components

        Returns:
            Number of pairs written

        Raises:
            EncodingError: If a vector is empty, malformed or of the wrong dimension
            StoreError: If the transaction fails
        """
        written = 0
        try:
            with self.store.write_txn() as txn:
                for text, vector in pairs:
                    key = encode_vector(vector)
                    if dimension is not None and key_dimension(key) != dimension:
                        raise EncodingError(
                            f"Vector has {key_dimension(key)} components, expected {dimension}"
                        )
                    txn.set(key, text.encode("utf-8"))
                    written += 1
        except VectorKVError as e:
            logger.log_batch_insert(written, "failed", {"error": str(e), "rolled_back": True})
            raise

        logger.log_batch_insert(written)
        return written

    def embed_and_insert(self, texts: Sequence[str], provider: IEmbeddingProvider,
                         pooling: PoolingMode = PoolingMode.MEAN) -> int:
        """
        Embed every text and insert the whole batch atomically.

        Raises:
            ProviderError: If the provider fails on any text (nothing is written)
        """
        pairs: List[Tuple[str, list]] = []
        for text in texts:
            pairs.append((text, embed(provider, text, pooling)))

        return self.insert_batch(pairs, dimension=len(pairs[0][1]) if pairs else None)


def embed(provider: IEmbeddingProvider, text: str, pooling: PoolingMode = PoolingMode.MEAN) -> list:
    """Call the provider, wrapping any failure in ProviderError."""
    try:
        return provider.embed_text(text, pooling)
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Embedding provider failed: {e}") from e
