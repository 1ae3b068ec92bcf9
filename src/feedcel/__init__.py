"""
feedcel - filter syndicated feeds with typed CEL expressions.
"""

__version__ = "0.3.0"
