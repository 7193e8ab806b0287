"""Public observability primitives: queue-backed logging with redaction."""

from vsix_manager.observability.logging import (
    LoggingConfig,
    LogRedactor,
    StructuredLoggingHandle,
    default_log_redactor,
    get_active_logging_handle,
    redact_text,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "default_log_redactor",
    "get_active_logging_handle",
    "redact_text",
    "setup_logging",
    "shutdown_logging",
]
