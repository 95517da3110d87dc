"""Exceptions shared across the configuration and key layers."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised at setup time when session options cannot be normalized.

    This is always fatal: a handle is never built from a configuration that
    failed validation.
    """
