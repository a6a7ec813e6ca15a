"""
Custom exceptions for StarXref.

This module defines domain-specific exceptions used throughout the application
to provide clear error context and enable precise error handling.
"""


class StarXrefError(Exception):
    """Base exception for all StarXref-specific errors."""
    pass


class InvalidPositionError(StarXrefError, ValueError):
    """Raised when an equatorial position is outside valid ranges."""
    pass


class CatalogParsingError(StarXrefError):
    """Raised when catalog parsing fails."""
    pass


class CrossMatchStoreError(StarXrefError):
    """Raised when the local cross-match store cannot be queried or built."""
    pass


class ConfigurationError(StarXrefError):
    """Raised when command line or runtime configuration is invalid."""
    pass


class ProviderUnavailableError(StarXrefError):
    """Raised when the primary astrometric provider is not open or its backend fails."""
    pass


__all__ = [
    'StarXrefError',
    'InvalidPositionError',
    'CatalogParsingError',
    'CrossMatchStoreError',
    'ConfigurationError',
    'ProviderUnavailableError'
]
