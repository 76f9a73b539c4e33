"""Inference components.

This module scores single records and batches through trained models.
It turns scored rows back into typed prediction records.
"""
