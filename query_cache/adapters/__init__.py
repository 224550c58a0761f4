"""
Upstream clients used by bundled fetch functions.
"""

from .colors_client import ColorsClient

__all__ = ["ColorsClient"]
