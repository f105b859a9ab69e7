"""
Utility functions for the graphcache package
"""

from .paths import join, short_model_name

__all__ = [
    'join',
    'short_model_name',
]
