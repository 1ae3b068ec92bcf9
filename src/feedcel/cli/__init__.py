"""
feedcel command-line interface.
"""

from feedcel import __version__

__all__ = ["__version__"]
