"""Command-line interface for minerledger."""
