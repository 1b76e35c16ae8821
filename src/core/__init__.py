"""Shared foundations.

This package holds configuration, errors, logging, constants, and the
immutable models every other layer exchanges.
"""
