"""
Error taxonomy for the FedSync import pipeline.

Item-level errors (one malformed file, one failed transform, one failed
upsert) are caught at the item boundary by the orchestrator. Phase-level
and connectivity errors propagate and abort the run.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional


class FedSyncImportError(Exception):
    """Base class for all import errors."""

    code = "IMPORT_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for reports."""
        return {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(FedSyncImportError):
    """A source or transformed record failed its schema."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        issues: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if issues:
            details["issues"] = [
                i.to_dict() if hasattr(i, "to_dict") else i for i in issues
            ]
        super().__init__(message, details=details)
        self.issues = list(issues or [])


class TransformationError(FedSyncImportError):
    """Transform logic could not produce a record."""

    code = "TRANSFORMATION_ERROR"


class FileSystemError(FedSyncImportError):
    """I/O failure while reading listing files."""

    code = "FILE_SYSTEM_ERROR"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        not_found: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if path is not None:
            details["path"] = str(path)
        details["not_found"] = not_found
        super().__init__(message, details=details)
        self.path = path
        self.not_found = not_found


class ContentStoreError(FedSyncImportError):
    """A find/create/update call against the content store failed."""

    code = "CONTENT_STORE_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.status_code = status_code
        self.retryable = retryable


class ConfigurationError(FedSyncImportError):
    """Invalid run options or settings."""

    code = "CONFIGURATION_ERROR"


class ImportTimeoutError(FedSyncImportError):
    """A store call or the whole run exceeded its deadline."""

    code = "TIMEOUT_ERROR"


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether an error is worth retrying.

    Network and timeout failures are retryable; validation, transformation
    and configuration errors never are.
    """
    if isinstance(error, ContentStoreError):
        return error.retryable
    if isinstance(error, (ImportTimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    return False
