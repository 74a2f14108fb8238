"""
echotap Common Utilities

Shared utilities and helpers used across echotap modules.
"""

from .url_utils import URLParts

__all__ = [
    'URLParts'
]
