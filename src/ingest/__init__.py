"""Tabular data ingestion.

This module loads delimited text files and in-memory records as
re-iterable, schema-bound row sources.
"""
