#!/usr/bin/env python3
"""
Store the demo corpus and resolve the fragment nearest to a query, with
background space reclamation running alongside.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vectorkv.core.config import (
    DB_PATH,
    EMBED_PROVIDER,
    debug_enabled,
    get_embedding_provider,
    get_pooling_mode,
    validate_embedding_config,
    validate_maintenance_config,
)
from vectorkv.core.db import KVStore
from vectorkv.core.errors import VectorKVError
from vectorkv.core.maintenance import MaintenanceTask
from vectorkv.demo import DEFAULT_QUERY, run_demo
from util.logging import logger


def main():
    parser = argparse.ArgumentParser(
        description="Embed a small corpus into the store and find the nearest fragment to a query",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables:
- DB_PATH=./data/vectorkv.db (database location)
- EMBED_PROVIDER=hash|sentence-transformers
- EMBED_MODEL_NAME=all-MiniLM-L6-v2
- EMBED_POOLING=mean|cls|max
- MAINTENANCE_INTERVAL_SEC=300
        """
    )
    parser.add_argument("--db-path", default=DB_PATH, help="Store file (default: %(default)s)")
    parser.add_argument("--query", default=DEFAULT_QUERY, help="Text to find the nearest fragment to")
    parser.add_argument(
        "--provider",
        choices=["hash", "sentence-transformers"],
        default=EMBED_PROVIDER,
        help="Embedding provider (default: %(default)s)"
    )
    parser.add_argument("--no-maintenance", action="store_true", help="Do not start background reclamation")
    args = parser.parse_args()

    if debug_enabled():
        logger.set_level(logging.DEBUG)

    issues = validate_embedding_config() + validate_maintenance_config()
    if issues:
        logger.error(f"Invalid configuration: {issues}")
        sys.exit(1)

    # Startup failures are fatal
    try:
        store = KVStore(args.db_path)
    except VectorKVError as e:
        logger.error(f"Error opening store: {e}")
        sys.exit(1)

    try:
        provider = get_embedding_provider(args.provider)
        provider.get_dimension()
    except VectorKVError as e:
        logger.error(f"Error loading embedding model: {e}")
        store.close()
        sys.exit(1)

    maintenance = MaintenanceTask(store)
    if not args.no_maintenance:
        maintenance.start()

    exit_code = 0
    try:
        result = run_demo(store, provider, args.query, pooling=get_pooling_mode())
        print(result.text)
    except VectorKVError as e:
        logger.error(f"Error ranking nearest: {e}")
        exit_code = 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = 130
    finally:
        maintenance.stop()
        store.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
