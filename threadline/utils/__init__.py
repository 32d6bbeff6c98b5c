"""
Utility modules for the Threadline check service
"""

from .version import get_version, get_version_info

__all__ = ["get_version", "get_version_info"]
