"""Upload ingestion pipeline.

This package reads raw upload rows, normalizes them into miner records,
previews them against the snapshot, and applies confirmed batches.
"""
