"""
Custom exceptions for the ingestion-and-review workflow.
Every error kind carries a human-readable message for the operator.
"""
from typing import Any, Dict, Optional


class SplitterException(Exception):
    """Base exception for all splitter client errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.
        
        Args:
            message: Error message shown to the operator
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SplitterException):
    """Raised when an upload is attempted without a complete selection."""
    pass


class TransportError(SplitterException):
    """Raised when a request to the processing service fails."""
    pass


class ServiceReportedError(SplitterException):
    """Raised when the processing service reports an error status."""
    pass


class NoDataError(SplitterException):
    """Raised when a report is requested without completed processing."""
    pass


class ProcessingTimeoutError(SplitterException):
    """Raised when the poll loop exceeds its attempt budget."""
    pass


class ConfigurationError(SplitterException):
    """Raised when configuration is invalid."""
    pass
