"""
Registry of the Category -> Subcategory -> Topic hierarchy.
"""

from .store import RegistryStore

__all__ = [
    "RegistryStore",
]
