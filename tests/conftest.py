"""
Shared fixtures: a throwaway store and a mapping-based embedding provider.
"""

import pytest

from vectorkv.core.db import KVStore
from vectorkv.vector.embeddings import IEmbeddingProvider, PoolingMode


class MappingEmbedding(IEmbeddingProvider):
    """Returns fixed vectors per text; unknown text raises KeyError."""

    def __init__(self, mapping, dimension=None):
        self.mapping = {text: list(vector) for text, vector in mapping.items()}
        self.dimension = dimension or len(next(iter(self.mapping.values())))
        self.calls = []

    def embed_text(self, text, pooling=PoolingMode.MEAN):
        self.calls.append((text, pooling))
        return self.mapping[text]

    def get_dimension(self):
        return self.dimension


def one_hot(index, dimension):
    vector = [0.0] * dimension
    vector[index] = 1.0
    return vector


@pytest.fixture
def store(tmp_path):
    """Fresh store in a temporary directory, closed after the test."""
    kv = KVStore(str(tmp_path / "test.db"))
    yield kv
    kv.close()


@pytest.fixture
def corpus_provider():
    """Ten distinguishable fragments, each mapped to its own axis."""
    texts = [f"fragment {i}" for i in range(10)]
    return MappingEmbedding({text: one_hot(i, 10) for i, text in enumerate(texts)})
