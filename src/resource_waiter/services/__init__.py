"""
AWS Service Waiters Package.

This package contains service-specific finders, status refresh adapters and
waiters. Each module handles resources for one AWS service.
"""

from . import lexmodels, sesv2

__all__ = [
    "lexmodels",
    "sesv2",
]
