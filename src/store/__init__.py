"""Model persistence layer.

This module writes trained models as versioned single-file artifacts.
It validates and rebuilds them for evaluation and scoring.
"""
