"""
Configuration Models

Pydantic models for type-safe configuration management with validation,
defaults and field documentation.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

OUTPUT_FORMATS = ("json", "rss", "atom")
ERROR_POLICIES = ("exclude", "abort")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class FetchConfig(BaseModel):
    """Configuration for retrieving feeds."""

    timeout: float = Field(
        default=10.0,
        gt=0,
        le=300.0,
        description="Network timeout for one feed fetch (seconds)"
    )
    user_agent: Optional[str] = Field(
        default=None,
        description="Override the User-Agent header sent when fetching"
    )

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ServerConfig(BaseModel):
    """Configuration for the HTTP filtering proxy."""

    host: str = Field(
        default="127.0.0.1",
        description="Interface to bind"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port to listen on"
    )
    compile_error_status: int = Field(
        default=500,
        description="HTTP status returned when the filter expression does not compile"
    )

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator('compile_error_status')
    @classmethod
    def validate_compile_error_status(cls, v):
        """Only client or server error statuses make sense here."""
        if not 400 <= v <= 599:
            raise ValueError("compile_error_status must be a 4xx or 5xx status code")
        return v


class OutputConfig(BaseModel):
    """Configuration for filtered output."""

    default_format: str = Field(
        default="json",
        description="Format used when none is requested: json, rss or atom"
    )
    output_file: Optional[Path] = Field(
        default=None,
        description="Write the rendered feed to this file (CLI only)"
    )
    show_excluded: bool = Field(
        default=True,
        description="List excluded items in CLI output"
    )

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator('default_format')
    @classmethod
    def validate_default_format(cls, v):
        """Validate output format."""
        v = v.lower()
        if v not in OUTPUT_FORMATS:
            raise ValueError(f"default_format must be one of: {', '.join(OUTPUT_FORMATS)}")
        return v


class FilterConfig(BaseModel):
    """Configuration for expression evaluation."""

    default_expression: str = Field(
        default="true",
        description="Expression applied when a request supplies none"
    )
    on_error: str = Field(
        default="exclude",
        description="Per-item evaluation fault policy: exclude (log and continue) or abort"
    )

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator('on_error')
    @classmethod
    def validate_on_error(cls, v):
        v = v.lower()
        if v not in ERROR_POLICIES:
            raise ValueError(f"on_error must be one of: {', '.join(ERROR_POLICIES)}")
        return v


class AppConfig(BaseModel):
    """Root application configuration model."""

    fetch: FetchConfig = Field(default_factory=FetchConfig, description="Fetch configuration")
    server: ServerConfig = Field(default_factory=ServerConfig, description="HTTP server configuration")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output configuration")
    filter: FilterConfig = Field(default_factory=FilterConfig, description="Filter configuration")

    verbose: bool = Field(
        default=False,
        description="Enable verbose logging output"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed logging"
    )
    log_level: str = Field(
        default="WARNING",
        description="Base log level when neither verbose nor debug is set"
    )

    model_config = ConfigDict(
        extra="forbid",  # Forbid extra fields
        validate_assignment=True,  # Validate on assignment
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return v

    def effective_log_level(self) -> str:
        """Log level after applying the debug and verbose switches."""
        if self.debug:
            return "DEBUG"
        if self.verbose:
            return "INFO"
        return self.log_level
