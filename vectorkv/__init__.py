"""
vectorkv - text fragments stored under their embedding vectors in SQLite,
with brute-force cosine nearest-neighbour lookup.
"""

__version__ = "1.0.0"
