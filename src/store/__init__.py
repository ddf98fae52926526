"""Destination table storage.

This package holds the in-memory columnar table and its Arrow export.
"""
