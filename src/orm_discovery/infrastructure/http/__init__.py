"""
HTTP - authenticated request layer for the learning platform.
"""

from .client import PlatformHTTPClient

__all__ = ["PlatformHTTPClient"]
