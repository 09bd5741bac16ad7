"""
Structured operation logging for the record store, corpus index, local cache and session state.
Every line follows the same "Operation: X, Status: Y, Details: {...}" shape so logs stay greppable.
"""

import logging
import os
from typing import Any, Dict, List

# Fields whose values never reach the log output
SENSITIVE_FIELDS = ['text', 'metadata', 'privateKey', 'taxId', 'accountNumber', 'secret', 'password']


class StructuredLogger:
    """Structured logger for store, corpus, cache and session operations."""

    def __init__(self, name: str = "verobrix"):
        self.logger = logging.getLogger(name)
        debug = os.getenv("DEBUG", "false").lower() == "true"
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {sanitize_payload(details)}"

        if status in ("failed", "rejected"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_store_operation(self, operation: str, collection: str, key: str = None, status: str = "success"):
        """Log a record store operation against a named collection."""
        details = {"collection": collection}
        if key is not None:
            details["key"] = key

        self.log_operation(f"store.{operation}", status, details)

    def log_migration_step(self, version: int, description: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a single schema migration step."""
        log_details = {"version": version, "description": description}
        if details:
            log_details.update(details)

        self.log_operation("store.migration", status, log_details)

    def log_corpus_ingest(self, added: int, updated: int, failed: int, status: str = "success"):
        """Log the outcome of a corpus ingestion batch."""
        log_details = {
            "added": added,
            "updated": updated,
            "failed": failed,
            "total": added + updated + failed
        }
        self.log_operation("corpus.ingest", status, log_details)

    def log_cache_operation(self, operation: str, collection: str, record_id: str = None, status: str = "success"):
        """Log a local cache operation."""
        details = {"collection": collection}
        if record_id is not None:
            details["id"] = record_id

        self.log_operation(f"cache.{operation}", status, details)

    def log_notification(self, operation: str, notification_id: str, notification_type: str = None):
        """Log notification lifecycle events."""
        details = {"id": notification_id}
        if notification_type:
            details["type"] = notification_type

        self.log_operation(f"session.notification.{operation}", "success", details)

    def log_feed_progress(self, feed_name: str, message: str):
        """Log a seeding progress message."""
        self.log_operation(f"feed.{feed_name}", "progress", {"message": message[:200]})

    def log_schema_validation_error(self, operation: str, errors: List[Any], source_record: Dict[str, Any] = None):
        """Log schema validation errors with sanitized details."""
        # Sanitize error details to avoid leaking record contents
        sanitized_errors = []
        for error in errors:
            if isinstance(error, dict):
                sanitized_error = {k: v for k, v in error.items() if k not in ('input', 'ctx', 'url')}
                sanitized_errors.append(sanitized_error)
            else:
                sanitized_errors.append(str(error)[:100])

        log_details = {
            "operation": operation,
            "errors": sanitized_errors,
            "error_count": len(sanitized_errors)
        }

        if source_record:
            # Only log identifiers, never record bodies
            for identifier in ("id", "citation"):
                if identifier in source_record:
                    log_details["target_identifier"] = source_record[identifier]
                    break

        self.log_operation("schema_validation.error", "rejected", log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def log_schema_validation_error(operation: str, errors: List[Any], source_record: Dict[str, Any] = None):
    """Log schema validation errors with sanitized details."""
    logger.log_schema_validation_error(operation, errors, source_record)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads before they are logged."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
