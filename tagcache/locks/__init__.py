"""
Advisory locks used for cache stampede protection.
"""

from .manager import LockManager

__all__ = ["LockManager"]
