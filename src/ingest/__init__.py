"""Ingestion engine.

This package resolves schemas, coerces values, and materializes
query results and JSON records into typed columnar tables.
"""
