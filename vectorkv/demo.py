"""
End-to-end walk through the pipeline on a small fixed corpus: embed and
store ten fragments, list what was stored, then resolve the fragment nearest
to a query.
"""

from typing import Sequence

from .core.db import KVStore
from .vector.embeddings import IEmbeddingProvider, PoolingMode
from .vector.resolver import NearestNeighborResolver
from .vector.scanner import RecordScanner
from .vector.types import NearestResult
from .vector.writer import RecordWriter
from util.logging import logger

DEMO_CORPUS = [
    "Hello, world!",
    "The quick brown fox jumps over the lazy dog.",
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit.",
    "Nulla facilisi. Sed ut imperdiet nunc.",
    "Vestibulum ante ipsum primis in faucibus orci luctus et ultrices posuere cubilia Curae; Donec eget nunc.",
    "Vivamus auctor, nunc nec lacinia tincidunt, nunc nunc fermentum nunc, nec fermentum nunc nunc nec nunc.",
    "Error sit voluptatem accusantium doloremque laudantium, totam rem aperiam, eaque ipsa quae ab illo inventore veritatis et quasi architecto beatae vitae dicta sunt explicabo.",
    "Error (2) Co-pilot, engage the hyperdrive!",
    "Error (3) Co-pilot, engage the hyperdrive!",
    "Error Co-pilot this is not sensible log messages!",
]

DEFAULT_QUERY = "A commonly used latin phrase as placeholder text"


def run_demo(store: KVStore, provider: IEmbeddingProvider, query: str = DEFAULT_QUERY,
             corpus: Sequence[str] = DEMO_CORPUS, pooling: PoolingMode = PoolingMode.MEAN) -> NearestResult:
    """Insert the corpus, log the stored records and resolve the query."""
    RecordWriter(store).embed_and_insert(corpus, provider, pooling)

    for vector, text in RecordScanner(store).scan_all():
        logger.log_scan_record(vector, text)

    resolver = NearestNeighborResolver(store, provider, pooling)
    result = resolver.find_nearest(query)

    logger.info(f"Nearest to {query}: {result.text}")
    return result
