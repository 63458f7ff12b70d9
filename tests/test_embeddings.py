"""
Tests for the embedding providers.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from vectorkv.core.errors import ProviderError
from vectorkv.vector.embeddings import (
    DeterministicHashEmbedding,
    IEmbeddingProvider,
    PoolingMode,
    SentenceTransformerEmbedding,
    pool_tokens,
)


def test_embedding_interface():
    """Test that the embedding provider implements the interface correctly."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384


def test_deterministic_embedding():
    """Test that the same input always produces the same output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = DeterministicHashEmbedding(dimension=384).embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 384


def test_different_inputs_produce_different_vectors():
    embedder = DeterministicHashEmbedding(dimension=64)

    assert embedder.embed_text("Hello, world!") != embedder.embed_text("Goodbye, world!")


def test_every_dimension_is_filled():
    """Values span the whole vector, no zero padding."""
    vector = DeterministicHashEmbedding(dimension=100).embed_text("test")

    assert len(vector) == 100
    assert all(-1.0 <= v < 1.0 for v in vector)
    assert sum(1 for v in vector if v == 0.0) == 0


def test_pooling_mode_changes_hash_vector():
    embedder = DeterministicHashEmbedding(dimension=16)

    mean = embedder.embed_text("text", PoolingMode.MEAN)
    cls = embedder.embed_text("text", PoolingMode.CLS)

    assert mean != cls
    assert embedder.embed_text("text", "mean") == mean


def test_invalid_dimension():
    with pytest.raises(ValueError):
        DeterministicHashEmbedding(dimension=0)


def test_invalid_pooling_mode():
    with pytest.raises(ValueError):
        DeterministicHashEmbedding(dimension=4).embed_text("x", "median")


class TestPoolTokens:
    """Test reduction of token embeddings."""

    tokens = np.array([[1.0, 4.0], [3.0, 0.0], [2.0, 2.0]])

    def test_mean(self):
        assert pool_tokens(self.tokens, PoolingMode.MEAN).tolist() == [2.0, 2.0]

    def test_cls(self):
        assert pool_tokens(self.tokens, PoolingMode.CLS).tolist() == [1.0, 4.0]

    def test_max(self):
        assert pool_tokens(self.tokens, PoolingMode.MAX).tolist() == [3.0, 4.0]


class TestSentenceTransformerEmbedding:
    """SentenceTransformer provider with the model replaced by a mock."""

    def make_provider(self, tokens):
        provider = SentenceTransformerEmbedding("dummy-model")
        provider._model = MagicMock()
        provider._model.encode.return_value = tokens
        return provider

    def test_mean_pooling_by_default(self):
        provider = self.make_provider(np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32))

        vector = provider.embed_text("hello")

        assert vector == [2.0, 3.0]
        provider._model.encode.assert_called_once_with("hello", output_value="token_embeddings")

    def test_max_pooling(self):
        provider = self.make_provider(np.array([[1.0, 5.0], [3.0, 4.0]]))

        assert provider.embed_text("hello", PoolingMode.MAX) == [3.0, 5.0]

    def test_tensor_like_output(self):
        tensor = MagicMock()
        tensor.detach.return_value.cpu.return_value.numpy.return_value = np.array([[0.5, 0.5]])
        provider = self.make_provider(tensor)

        assert provider.embed_text("hello", PoolingMode.CLS) == [0.5, 0.5]

    def test_dimension_from_output(self):
        provider = self.make_provider(np.zeros((4, 12)))

        assert provider.get_dimension() == 12

    def test_encode_failure_wrapped(self):
        provider = self.make_provider(None)
        provider._model.encode.side_effect = RuntimeError("CUDA out of memory")

        with pytest.raises(ProviderError, match="CUDA out of memory"):
            provider.embed_text("hello")

    def test_empty_token_output(self):
        provider = self.make_provider(np.zeros((0, 8)))

        with pytest.raises(ProviderError, match="no token embeddings"):
            provider.embed_text("")

    @patch("vectorkv.vector.embeddings.SentenceTransformer", side_effect=OSError("not found"))
    def test_model_load_failure_wrapped(self, mock_model):
        provider = SentenceTransformerEmbedding("missing-model")

        with pytest.raises(ProviderError, match="missing-model"):
            provider.embed_text("hello")

    @patch("vectorkv.vector.embeddings.SentenceTransformer")
    def test_model_loaded_lazily_once(self, mock_model):
        mock_model.return_value.encode.return_value = np.ones((2, 3))
        provider = SentenceTransformerEmbedding("lazy-model")

        mock_model.assert_not_called()
        provider.embed_text("a")
        provider.embed_text("b")

        mock_model.assert_called_once_with("lazy-model")
