"""
Error taxonomy shared by the codec, store adapter, embedding providers and
the nearest-neighbour resolver.
"""


class VectorKVError(Exception):
    """Base class for all vectorkv failures."""
    pass


class EncodingError(VectorKVError):
    """A vector could not be serialized into a store key."""
    pass


class DecodingError(VectorKVError):
    """A stored key is not a whole number of float64 values, or has the wrong dimension."""
    pass


class StoreError(VectorKVError):
    """Wraps any failure from the underlying SQLite engine."""
    pass


class ProviderError(VectorKVError):
    """Wraps any failure from an embedding provider."""
    pass


class NotFoundError(VectorKVError):
    """Nothing to rank, or a re-encoded key is missing from the store."""
    pass
