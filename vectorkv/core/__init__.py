"""
Storage foundation: configuration, SQLite key-value adapter, errors,
background maintenance.
"""
