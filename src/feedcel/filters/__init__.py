"""
Item Filtering

Evaluates compiled expressions against canonical items and partitions a batch
into included and excluded items.

Key Components:
- evaluate: run one program against one item
- FilterResult: order-preserving partition of a batch
- log_and_exclude / raise_on_error: per-item error handlers
"""

from .base import ErrorHandler, FilterResult, log_and_exclude, raise_on_error
from .evaluator import evaluate

__all__ = [
    "ErrorHandler",
    "FilterResult",
    "log_and_exclude",
    "raise_on_error",
    "evaluate",
]
