"""Tabflow exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each lifecycle layer raises a specific error type for debuggability.
"""

from __future__ import annotations


class TabflowError(Exception):
    """Base exception for all Tabflow failures."""


class TabflowConfigError(TabflowError):
    """Raised for invalid runtime configuration."""


class TabflowRunSpecError(TabflowError):
    """Raised for invalid or unsupported run-spec configuration."""


class NotFoundError(TabflowError):
    """Raised when a data file or model artifact does not exist."""


class FormatError(TabflowError):
    """Raised when a delimited text row does not match its column spec."""


class SchemaError(TabflowError):
    """Raised when a referenced column is absent or has the wrong type."""


class TrainerError(TabflowError):
    """Raised when training rows cannot produce a model."""


class CorruptArtifactError(TabflowError):
    """Raised when a model artifact is structurally invalid."""


class VersionError(TabflowError):
    """Raised when a model artifact uses an unsupported format version."""


class ModelStoreError(TabflowError):
    """Raised when a model artifact cannot be written."""
