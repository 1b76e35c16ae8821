"""Storage and versioning layer.

This package persists the ledger state in a key-value store, restores
audit snapshots, and exposes the single-writer SDK client.
"""
