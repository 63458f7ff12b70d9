"""
Runtime configuration read from environment variables.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/vectorkv.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence-transformers
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-MiniLM-L6-v2")
EMBED_DIMENSION = int(os.getenv("EMBED_DIMENSION", "384"))
EMBED_POOLING = os.getenv("EMBED_POOLING", "mean")  # mean|cls|max

# Space reclamation (runs every 5 minutes by default)
MAINTENANCE_ENABLED = os.getenv("MAINTENANCE_ENABLED", "true").lower() == "true"
MAINTENANCE_INTERVAL_SEC = float(os.getenv("MAINTENANCE_INTERVAL_SEC", "300"))
MAINTENANCE_DISCARD_RATIO = float(os.getenv("MAINTENANCE_DISCARD_RATIO", "0.7"))
MAINTENANCE_MAX_PASSES = int(os.getenv("MAINTENANCE_MAX_PASSES", "16"))
RECLAIM_PAGES_PER_PASS = int(os.getenv("RECLAIM_PAGES_PER_PASS", "256"))

VERSION = "1.0.0"

EMBED_PROVIDERS = ("hash", "sentence-transformers")
POOLING_MODES = ("mean", "cls", "max")


def get_embedding_provider(provider: str = None):
    """Get configured embedding provider implementation."""
    from ..vector.embeddings import DeterministicHashEmbedding, SentenceTransformerEmbedding

    provider = provider or EMBED_PROVIDER
    if provider == "sentence-transformers":
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    elif provider == "hash":
        return DeterministicHashEmbedding(dimension=EMBED_DIMENSION)
    else:
        raise ValueError(f"Unknown EMBED_PROVIDER: {provider}")


def get_pooling_mode():
    """Get the configured pooling mode as a PoolingMode."""
    from ..vector.embeddings import PoolingMode
    return PoolingMode(EMBED_POOLING)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def is_maintenance_enabled():
    """Check if background space reclamation is enabled."""
    return MAINTENANCE_ENABLED


def get_maintenance_interval():
    """Get maintenance interval in seconds."""
    return MAINTENANCE_INTERVAL_SEC


def get_discard_ratio():
    """Get the free-page ratio above which reclamation runs."""
    return MAINTENANCE_DISCARD_RATIO


def get_max_passes():
    """Get the cap on back-to-back reclamation passes within one tick."""
    return MAINTENANCE_MAX_PASSES


def validate_maintenance_config():
    """Validate maintenance configuration and return any issues."""
    issues = []

    if MAINTENANCE_INTERVAL_SEC <= 0:
        issues.append("MAINTENANCE_INTERVAL_SEC must be > 0")

    if not 0 < MAINTENANCE_DISCARD_RATIO < 1:
        issues.append(f"MAINTENANCE_DISCARD_RATIO must be between 0 and 1 (exclusive): {MAINTENANCE_DISCARD_RATIO}")

    if MAINTENANCE_MAX_PASSES < 1:
        issues.append("MAINTENANCE_MAX_PASSES must be >= 1")

    if RECLAIM_PAGES_PER_PASS < 1:
        issues.append("RECLAIM_PAGES_PER_PASS must be >= 1")

    return issues


def validate_embedding_config():
    """Validate embedding configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_POOLING not in POOLING_MODES:
        issues.append(f"Invalid EMBED_POOLING: {EMBED_POOLING}")

    if EMBED_DIMENSION < 1:
        issues.append("EMBED_DIMENSION must be >= 1")

    return issues
