"""
Custom exception hierarchy for package validation.

Each exception type maps to one collaborator seam. The pipeline catches them
where a documented fallback exists (WAIT result, fail-closed comparison,
logged persistence failure), so none of them reaches the caller of run().
"""

from __future__ import annotations


class PackageValidationError(Exception):
    """Base exception for all package validation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(PackageValidationError):
    """An environment setting could not be parsed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("CONFIG_INVALID", message, details)


class ExtractionError(PackageValidationError):
    """The field extraction service failed or returned nothing usable."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("EXTRACTION_FAILED", message, details)


class ComparatorError(PackageValidationError):
    """The goods-description comparator failed, timed out, or answered garbage."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("COMPARATOR_FAILED", message, details)


class PersistenceError(PackageValidationError):
    """A finished verdict could not be stored."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PERSISTENCE_FAILED", message, details)
