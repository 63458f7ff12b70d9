"""
Nearest-neighbour lookup: embed the query, scan and rank every stored
vector, then fetch the text of the winner by re-encoding its vector.
"""

from typing import Optional

import numpy as np

from ..core.db import KVStore
from ..core.errors import EncodingError, NotFoundError, ProviderError, VectorKVError
from .codec import VectorLike, encode_vector
from .embeddings import IEmbeddingProvider, PoolingMode
from .ranker import rank
from .scanner import RecordScanner
from .types import NearestResult
from .writer import embed
from util.logging import logger


class NearestNeighborResolver:
    """Finds the stored text whose vector is most similar to a query."""

    def __init__(self, store: KVStore, provider: Optional[IEmbeddingProvider] = None,
                 pooling: PoolingMode = PoolingMode.MEAN):
        self.store = store
        self.provider = provider
        self.pooling = pooling
        self.scanner = RecordScanner(store)

    def find_nearest(self, query_text: str) -> NearestResult:
        """
        Resolve the stored text nearest to ``query_text``.

        Returns:
            NearestResult with the winning text and the full ranked list

        Raises:
            ProviderError: If no provider is configured or the query cannot be embedded
            DecodingError: If a stored key does not match the query dimension
            StoreError: If a store transaction fails
            NotFoundError: If the corpus is empty, or the winner's key is missing
        """
        if self.provider is None:
            raise ProviderError("NearestNeighborResolver has no embedding provider")

        try:
            query_vector = embed(self.provider, query_text, self.pooling)
            result = self.find_nearest_vector(query_vector)
        except VectorKVError as e:
            logger.log_lookup(query_text, "failed", {"error": str(e)})
            raise

        logger.log_lookup(query_text, details={
            "nearest": result.text,
            "score": result.top.score,
            "candidates": len(result.ranked)
        })
        return result

    def find_nearest_vector(self, query_vector: VectorLike) -> NearestResult:
        """Resolve the stored text nearest to an already embedded query."""
        query = np.asarray(query_vector, dtype=np.float64)
        if query.ndim != 1 or query.size == 0:
            raise EncodingError(f"Query must be a non-empty 1-D vector, got shape {query.shape}")

        ranked = rank(query, self.scanner.scan_vectors(dimension=len(query)))
        if not ranked:
            raise NotFoundError("No stored vectors to rank: the corpus is empty")

        key = encode_vector(ranked[0].vector)
        value = self.store.get(key)
        if value is None:
            raise NotFoundError(
                "Top-ranked vector is missing from the store after re-encoding its key"
            )

        if logger.is_debug_enabled():
            for position, entry in enumerate(ranked):
                logger.log_rank(position, entry.score, entry.vector)

        return NearestResult(text=value.decode("utf-8"), ranked=ranked)
