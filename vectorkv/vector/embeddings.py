"""
Embedding providers. Text goes in, a fixed-dimension float vector comes out.
"""

from abc import ABC, abstractmethod
from enum import Enum
import hashlib
import struct

import numpy as np
from sentence_transformers import SentenceTransformer

from ..core.errors import ProviderError


class PoolingMode(str, Enum):
    """How token embeddings are reduced to one sentence vector."""

    MEAN = "mean"
    CLS = "cls"
    MAX = "max"


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""
    
    @abstractmethod
    def embed_text(self, text: str, pooling: PoolingMode = PoolingMode.MEAN) -> list[float]:
        """Generate embedding vector for given text."""
        pass
    
    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""  
        pass

class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.
    
    This implementation uses a consistent hashing approach to generate
    reproducible embeddings from text, which is useful for testing 
    without requiring external model dependencies. The pooling mode is
    folded into the hash so different modes give different vectors.
    """
    
    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError(f"Dimension must be >= 1: {dimension}")
        self.dimension = dimension
    
    def embed_text(self, text: str, pooling: PoolingMode = PoolingMode.MEAN) -> list[float]:
        """Generate deterministic embedding vector using a chained SHA-256."""
        seed = f"{PoolingMode(pooling).value}:{text}".encode()
        vector = []
        block = 0

        while len(vector) < self.dimension:
            digest = hashlib.sha256(seed + struct.pack("<I", block)).digest()
            for i in range(0, len(digest), 4):
                if len(vector) >= self.dimension:
                    break
                value = struct.unpack("<I", digest[i:i + 4])[0]
                # Normalize to [0, 1] and then map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            block += 1

        return vector
    
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension

class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Token embeddings are pooled here rather than by the model so the caller
    chooses the pooling mode per call.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            try:
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise ProviderError(f"Failed to load model '{self.model_name}': {e}") from e
        return self._model

    def embed_text(self, text: str, pooling: PoolingMode = PoolingMode.MEAN) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        model = self.model
        try:
            tokens = model.encode(text, output_value="token_embeddings")
        except Exception as e:
            raise ProviderError(f"Embedding failed with model '{self.model_name}': {e}") from e

        if hasattr(tokens, "cpu"):
            tokens = tokens.detach().cpu().numpy()
        tokens = np.asarray(tokens, dtype=np.float64)

        if tokens.ndim != 2 or tokens.shape[0] == 0:
            raise ProviderError(f"Model '{self.model_name}' returned no token embeddings")

        return pool_tokens(tokens, pooling).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = len(self.embed_text("test"))
        return self._dimension


def pool_tokens(tokens: np.ndarray, pooling: PoolingMode) -> np.ndarray:
    """Reduce a (tokens, dim) matrix to a single dim vector."""
    mode = PoolingMode(pooling)
    if mode is PoolingMode.MEAN:
        return tokens.mean(axis=0)
    elif mode is PoolingMode.CLS:
        return tokens[0]
    else:
        return tokens.max(axis=0)
