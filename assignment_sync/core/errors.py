"""
Error taxonomy and logging helpers for the assignment sync pipeline.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Union


# Configure sync-specific logger
sync_logger = logging.getLogger('assignment_sync')


class SyncErrorSeverity:
    """Error severity levels for sync operations."""
    LOW = "low"           # Degraded output, run continues
    MEDIUM = "medium"     # Stage skipped or item dropped
    HIGH = "high"         # Run aborted, operator action required
    CRITICAL = "critical" # Run aborted, output may be inconsistent


class SyncErrorCategory:
    """Error categories for better classification."""
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    DATA_VALIDATION = "data_validation"
    CONFIGURATION = "configuration"
    PERSISTENCE = "persistence"
    PROVIDER_ERROR = "provider_error"
    UNKNOWN = "unknown"


class SyncError(Exception):
    """Base exception for sync errors with enhanced metadata."""

    def __init__(
        self,
        message: str,
        category: str = SyncErrorCategory.UNKNOWN,
        severity: str = SyncErrorSeverity.MEDIUM,
        operation_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.operation_type = operation_type
        self.details = details or {}
        self.retryable = retryable
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            'message': self.message,
            'category': self.category,
            'severity': self.severity,
            'operation_type': self.operation_type,
            'details': self.details,
            'retryable': self.retryable,
            'timestamp': self.timestamp.isoformat(),
            'traceback': ''.join(
                traceback.format_exception(
                    type(self.original_exception),
                    self.original_exception,
                    self.original_exception.__traceback__
                )
            ) if self.original_exception else None
        }


class CredentialError(SyncError):
    """Missing, expired or unparsable bearer token, or a failed refresh."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=SyncErrorCategory.AUTHENTICATION,
            severity=SyncErrorSeverity.HIGH,
            retryable=True,
            **kwargs
        )


class ConfigurationError(SyncError):
    """Configuration-related errors."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=SyncErrorCategory.CONFIGURATION,
            severity=SyncErrorSeverity.HIGH,
            **kwargs
        )


class FetchError(SyncError):
    """Non-200 response or transport failure from the assignments API."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        details.update({'status': status, 'url': url})
        kwargs.setdefault('category', SyncErrorCategory.NETWORK)
        kwargs.setdefault('severity', SyncErrorSeverity.HIGH)
        super().__init__(message, details=details, **kwargs)
        self.status = status
        self.url = url


class AuthorizationError(FetchError):
    """HTTP 401/403 from the assignments API."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=SyncErrorCategory.AUTHENTICATION,
            retryable=True,
            **kwargs
        )


class SyncValidationError(SyncError):
    """Malformed operator input (date bounds, detail arguments)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=SyncErrorCategory.DATA_VALIDATION,
            severity=SyncErrorSeverity.HIGH,
            **kwargs
        )


class RemoteStoreError(SyncError):
    """Notion query or page creation failures."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details['status'] = status
        super().__init__(
            message,
            category=SyncErrorCategory.PROVIDER_ERROR,
            severity=SyncErrorSeverity.MEDIUM,
            details=details,
            **kwargs
        )
        self.status = status


def log_error(
    error: Union[SyncError, Exception],
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error at the level matching its severity.

    Args:
        error: The error to log
        context: Additional context information
    """
    if isinstance(error, SyncError):
        error_dict = error.to_dict()
    else:
        error_dict = {
            'message': str(error),
            'category': SyncErrorCategory.UNKNOWN,
            'severity': SyncErrorSeverity.MEDIUM,
        }

    if context:
        error_dict.update(context)

    severity = error_dict.get('severity', SyncErrorSeverity.MEDIUM)
    log_message = f"Sync Error [{severity.upper()}]: {error_dict['message']}"

    if severity == SyncErrorSeverity.CRITICAL:
        sync_logger.critical(log_message)
    elif severity == SyncErrorSeverity.HIGH:
        sync_logger.error(log_message)
    elif severity == SyncErrorSeverity.MEDIUM:
        sync_logger.warning(log_message)
    else:
        sync_logger.info(log_message)
