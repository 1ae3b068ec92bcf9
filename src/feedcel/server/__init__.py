"""
HTTP server exposing the filter pipeline.
"""

from feedcel.server.app import create_app

__all__ = ["create_app"]
