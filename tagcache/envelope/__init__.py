"""
Envelope package: the stored wrapper of payload and tag snapshot.
"""

from .codec import Envelope, decode, encode

__all__ = ["Envelope", "decode", "encode"]
