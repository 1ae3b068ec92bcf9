"""
Core feedcel Package

Contains shared infrastructure: the exception hierarchy, configuration and
logging setup.
"""

from feedcel.core.exceptions import (
    FeedCELError,
    ConfigurationError,
    CompileError,
    FetchError,
    EvaluationError,
    EncodingError,
    ErrorCode,
    ErrorContext,
    RecoverySuggestion
)

__all__ = [
    'FeedCELError',
    'ConfigurationError',
    'CompileError',
    'FetchError',
    'EvaluationError',
    'EncodingError',
    'ErrorCode',
    'ErrorContext',
    'RecoverySuggestion',
]
