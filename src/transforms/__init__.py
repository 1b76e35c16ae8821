"""State transforms.

This package holds pure operations over the ledger state: compaction,
legacy migration, power backfill, and price metrics.
"""
