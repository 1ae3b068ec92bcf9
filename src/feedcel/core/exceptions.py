"""
Core Exception Hierarchy for feedcel

Provides error classification with error codes, recovery suggestions and
context information, so every boundary (CLI command, HTTP handler, pipeline)
can branch on the kind of failure instead of inspecting message text.
"""

import sys
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """Standard error codes for different error categories."""

    # Fetch errors (1000-1999)
    FETCH_CONNECTION_FAILED = 1001
    FETCH_TIMEOUT = 1002
    FETCH_HTTP_STATUS = 1003
    FETCH_UNPARSABLE = 1004
    FETCH_FILE_NOT_FOUND = 1005

    # Configuration errors (3000-3999)
    CONFIG_INVALID_FORMAT = 3001
    CONFIG_INVALID_VALUE = 3003
    CONFIG_FILE_NOT_FOUND = 3004
    CONFIG_ENVIRONMENT = 3007

    # Expression compile errors (4000-4999)
    COMPILE_SYNTAX = 4001
    COMPILE_UNDECLARED_REFERENCE = 4002
    COMPILE_TYPE_MISMATCH = 4003
    COMPILE_NON_BOOLEAN = 4004
    COMPILE_INVALID_ARGUMENT = 4005

    # Evaluation errors (5000-5999)
    EVALUATION_NO_SUCH_FIELD = 5001
    EVALUATION_FAILED = 5002

    # Encoding errors (6000-6999)
    ENCODING_FAILED = 6001
    OUTPUT_WRITE_FAILED = 6002

    # Generic/unknown errors (9000-9999)
    UNKNOWN_ERROR = 9000
    INTERNAL_ERROR = 9001


@dataclass
class ErrorContext:
    """Contextual information about an error occurrence."""

    operation: str = ""
    stage: str = ""
    source: Optional[str] = None
    item_index: Optional[int] = None
    item_url: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    system_info: Dict[str, Any] = field(default_factory=dict)
    user_context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecoverySuggestion:
    """Structured recovery suggestion for error resolution."""

    action: str
    description: str
    command: Optional[str] = None  # shell command that resolves it
    priority: int = 1  # lower sorts first

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FeedCELError(Exception):
    """
    Base exception for all feedcel errors.

    Carries an error code, recovery suggestions and context for debugging.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestions: Optional[List[RecoverySuggestion]] = None
    ):
        """
        Initialize feedcel error.

        Args:
            message: Human-readable error description
            error_code: Standardized error code
            context: Contextual information about the error
            cause: Original exception that caused this error
            recoverable: Whether processing can continue past this error
            suggestions: List of recovery suggestions
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []

        if not self.context.correlation_id:
            self.context.correlation_id = str(uuid.uuid4())[:8]

        if not self.context.system_info:
            self.context.system_info = {
                'platform': sys.platform,
                'python_version': sys.version.split()[0],
            }

    def add_suggestion(self, suggestion: RecoverySuggestion) -> None:
        """Add a recovery suggestion to the error."""
        self.suggestions.append(suggestion)
        self.suggestions.sort(key=lambda s: s.priority)

    def get_user_message(self) -> str:
        """Plain-text rendering for logs and non-terminal output."""
        lines = [f"Error: {self.message}"]
        if self.error_code is not ErrorCode.UNKNOWN_ERROR:
            lines.append(f"Error Code: {self.error_code.value} ({self.error_code.name})")
        for number, suggestion in enumerate(self.suggestions, 1):
            lines.append(f"  {number}. {suggestion.action}: {suggestion.description}")
            if suggestion.command:
                lines.append(f"     Command: {suggestion.command}")
        lines.append(f"Trace ID: {self.context.correlation_id}")
        return "\n".join(lines)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get comprehensive debug information."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'recoverable': self.recoverable,
            'context': self.context.to_dict(),
            'cause': {
                'type': type(self.cause).__name__ if self.cause else None,
                'message': str(self.cause) if self.cause else None,
            },
            'suggestions': [s.to_dict() for s in self.suggestions],
            'stack_trace': ''.join(traceback.format_exception(self)) if self.__traceback__ else None,
        }


class ConfigurationError(FeedCELError):
    """Environment or application configuration is malformed. Fatal."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if config_key:
            context.user_context['config_key'] = config_key
            context.user_context['config_value'] = config_value

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)

        if error_code == ErrorCode.CONFIG_FILE_NOT_FOUND:
            self.add_suggestion(RecoverySuggestion(
                action="Check the configuration path",
                description="Pass an existing YAML or JSON file with --config, or omit it to use defaults.",
            ))
        elif error_code == ErrorCode.CONFIG_INVALID_VALUE:
            self.add_suggestion(RecoverySuggestion(
                action="Check configuration values",
                description="Review the configuration file and FEEDCEL_* environment variables for invalid values.",
            ))


class CompileError(FeedCELError):
    """A filter expression was rejected before any item was evaluated."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.COMPILE_SYNTAX,
        expression: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext(operation="compile", stage="compile")
        if expression is not None:
            context.user_context['expression'] = expression
        if line is not None:
            context.user_context['line'] = line
            context.user_context['column'] = column

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)

        self.expression = expression
        self.line = line
        self.column = column

        if error_code == ErrorCode.COMPILE_UNDECLARED_REFERENCE:
            self.add_suggestion(RecoverySuggestion(
                action="Check field names",
                description="Item fields are URL, Title, Author, Tags, Categories, Content, "
                            "ContentLength, Published and Updated; variables are item and now.",
                command="feedcel interactive --feed <url>  (then :schema)",
            ))
        elif error_code == ErrorCode.COMPILE_NON_BOOLEAN:
            self.add_suggestion(RecoverySuggestion(
                action="Return a boolean",
                description="A filter expression must evaluate to true or false, e.g. item.Title.contains(\"Go\").",
            ))


class FetchError(FeedCELError):
    """The feed could not be retrieved or parsed. Terminal for the request."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FETCH_CONNECTION_FAILED,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext(operation="fetch", stage="fetch")
        if source:
            context.source = source
        if status_code is not None:
            context.user_context['status_code'] = status_code

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)

        self.source = source
        self.status_code = status_code

        if error_code == ErrorCode.FETCH_TIMEOUT:
            self.add_suggestion(RecoverySuggestion(
                action="Increase the fetch timeout",
                description="The feed did not respond before the deadline.",
                command="FEEDCEL_FETCH_TIMEOUT=30 feedcel filter --feed <url>",
            ))
        elif error_code == ErrorCode.FETCH_UNPARSABLE:
            self.add_suggestion(RecoverySuggestion(
                action="Check the feed document",
                description="The response is not a recognizable RSS, Atom or JSON feed.",
            ))


class EvaluationError(FeedCELError):
    """Evaluating a compiled program against one item failed."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.EVALUATION_FAILED,
        item_index: Optional[int] = None,
        item_url: Optional[str] = None,
        item_title: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext(operation="evaluate", stage="evaluate")
        context.item_index = item_index
        context.item_url = item_url
        if item_title is not None:
            context.user_context['item_title'] = item_title

        kwargs['context'] = context
        kwargs['error_code'] = error_code
        kwargs.setdefault('recoverable', True)

        super().__init__(message, **kwargs)

        self.item_index = item_index
        self.item_url = item_url
        self.item_title = item_title

    def describe_item(self) -> str:
        """Short label identifying the offending item."""
        if self.item_title:
            return repr(self.item_title)
        if self.item_url:
            return self.item_url
        if self.item_index is not None:
            return f"#{self.item_index}"
        return "<unknown item>"


class EncodingError(FeedCELError):
    """Serializing or writing out the filtered feed failed."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ENCODING_FAILED,
        output_format: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext(operation="render", stage="render")
        if output_format:
            context.user_context['format'] = output_format

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)

        self.output_format = output_format

        if error_code == ErrorCode.OUTPUT_WRITE_FAILED:
            self.add_suggestion(RecoverySuggestion(
                action="Check the output path",
                description="The parent directory must exist and the path must be a writable file.",
            ))

