"""
Vector pipeline: key codec, batch writer, snapshot scanner, cosine ranker
and nearest-neighbour resolver.
"""

# Package initialization for vector module
from .codec import encode_vector, decode_vector, key_dimension
from .types import Ranked, NearestResult
from .embeddings import IEmbeddingProvider, PoolingMode, DeterministicHashEmbedding, SentenceTransformerEmbedding
from .writer import RecordWriter
from .scanner import RecordScanner
from .ranker import cosine_similarity, rank
from .resolver import NearestNeighborResolver

__all__ = [
    'encode_vector',
    'decode_vector',
    'key_dimension',
    'Ranked',
    'NearestResult',
    'IEmbeddingProvider',
    'PoolingMode',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'RecordWriter',
    'RecordScanner',
    'cosine_similarity',
    'rank',
    'NearestNeighborResolver'
]
