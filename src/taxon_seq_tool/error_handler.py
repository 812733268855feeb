"""Error types and per-taxon error handling."""

import json
import logging
import time
import traceback
from collections import Counter
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Optional

import requests


class TaxonSeqError(Exception):
    """Base class for errors raised while searching a taxon."""


class TaxonResolutionError(TaxonSeqError):
    """A taxon name could not be resolved to a taxonomy ID."""

    def __init__(self, name: str):
        super().__init__(f"No taxonomy ID found for taxon: {name}")
        self.name = name


class RemoteRequestError(TaxonSeqError):
    """An E-utilities request failed or returned an unusable response."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class SummaryParseError(TaxonSeqError):
    """A summary item is missing a field or has an unexpected value."""


class ErrorType(Enum):
    """Types of errors that can occur."""
    UNRESOLVED_TAXON = "unresolved_taxon"
    NETWORK_TIMEOUT = "network_timeout"
    API_RATE_LIMIT = "api_rate_limit"
    REMOTE_ERROR = "remote_error"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for an error."""
    error_type: ErrorType
    severity: ErrorSeverity
    message: str
    timestamp: float
    operation: str
    item_id: Optional[str] = None
    api_name: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    traceback: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['error_type'] = self.error_type.value
        data['severity'] = self.severity.value
        data['timestamp'] = datetime.fromtimestamp(self.timestamp).isoformat()
        return data


LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

SUGGESTIONS = {
    ErrorType.UNRESOLVED_TAXON: "Check the spelling of the taxon name or pass a taxonomy ID instead.",
    ErrorType.NETWORK_TIMEOUT: "NCBI did not answer in time. Re-run the failed taxa later.",
    ErrorType.API_RATE_LIMIT: "NCBI rate limit reached. Use an API key or fewer workers.",
    ErrorType.REMOTE_ERROR: "NCBI returned an error. Check the query filter and try again.",
    ErrorType.PARSE_ERROR: "Unexpected response from NCBI. The taxon was skipped.",
}


class ErrorHandler:
    """Classifies, logs and records errors raised while processing taxa."""

    def __init__(self, keep_tracebacks: bool = True):
        """
        Initialize error handler.

        Args:
            keep_tracebacks: Store formatted tracebacks for ERROR entries
        """
        self.keep_tracebacks = keep_tracebacks
        self.error_history: List[ErrorContext] = []
        self._lock = Lock()

        self.logger = logging.getLogger(__name__)
        self.error_logger = logging.getLogger(f"{__name__}.errors")

    def handle_error(self,
                     error: Exception,
                     operation: str,
                     item_id: Optional[str] = None,
                     api_name: Optional[str] = None,
                     **kwargs) -> ErrorContext:
        """
        Handle an error with appropriate logging.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            item_id: Optional item identifier (taxon label)
            api_name: Optional API name
            **kwargs: Additional context data

        Returns:
            ErrorContext with error details and suggestion
        """
        error_type = self._classify_error(error)
        severity = self._determine_severity(error_type)

        context = ErrorContext(
            error_type=error_type,
            severity=severity,
            message=str(error),
            timestamp=time.time(),
            operation=operation,
            item_id=item_id,
            api_name=api_name or getattr(error, 'endpoint', None),
            details=kwargs or None,
            traceback=self._format_traceback(error) if severity == ErrorSeverity.ERROR else None,
            suggestion=SUGGESTIONS.get(error_type)
        )

        self._log_error(context)

        with self._lock:
            self.error_history.append(context)

        return context

    def _format_traceback(self, error: Exception) -> Optional[str]:
        if not self.keep_tracebacks or error.__traceback__ is None:
            return None
        return ''.join(traceback.format_exception(type(error), error, error.__traceback__))

    def _classify_error(self, error: Exception) -> ErrorType:
        """Classify the error type based on exception."""
        if isinstance(error, TaxonResolutionError):
            return ErrorType.UNRESOLVED_TAXON

        if isinstance(error, SummaryParseError):
            return ErrorType.PARSE_ERROR

        status_code = getattr(error, 'status_code', None)
        if status_code == 429:
            return ErrorType.API_RATE_LIMIT

        if isinstance(error, (requests.Timeout, TimeoutError)):
            return ErrorType.NETWORK_TIMEOUT

        error_str = str(error).lower()

        if any(term in error_str for term in ['rate limit', 'too many requests', '429']):
            return ErrorType.API_RATE_LIMIT

        if any(term in error_str for term in ['timeout', 'timed out']):
            return ErrorType.NETWORK_TIMEOUT

        if isinstance(error, (RemoteRequestError, requests.RequestException)):
            return ErrorType.REMOTE_ERROR

        if isinstance(error, (KeyError, ValueError)) or any(term in error_str for term in ['parse', 'xml']):
            return ErrorType.PARSE_ERROR

        return ErrorType.UNKNOWN

    def _determine_severity(self, error_type: ErrorType) -> ErrorSeverity:
        """Expected per-taxon problems are warnings; the rest are errors."""
        if error_type in (ErrorType.UNRESOLVED_TAXON, ErrorType.NETWORK_TIMEOUT, ErrorType.API_RATE_LIMIT):
            return ErrorSeverity.WARNING
        return ErrorSeverity.ERROR

    def _log_error(self, context: ErrorContext):
        """Log at the level matching the severity, then the suggestion."""
        parts = [f"{context.operation} - {context.error_type.value}: {context.message}"]
        if context.item_id:
            parts.append(f"(taxon: {context.item_id})")
        if context.api_name:
            parts.append(f"[API: {context.api_name}]")
        message = ' '.join(parts)

        if context.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self.error_logger.log(LOG_LEVELS[context.severity], message)
            if context.traceback:
                self.error_logger.debug(f"Traceback:\n{context.traceback}")
        else:
            self.logger.log(LOG_LEVELS[context.severity], message)

        if context.suggestion:
            self.logger.info(f"Suggestion: {context.suggestion}")

    def _snapshot(self) -> List[ErrorContext]:
        with self._lock:
            return list(self.error_history)

    def get_error_summary(self) -> Dict[str, Any]:
        """Counts by type and severity plus the five most recent errors."""
        history = self._snapshot()

        return {
            'total_errors': len(history),
            'by_type': dict(Counter(e.error_type.value for e in history)),
            'by_severity': dict(Counter(e.severity.value for e in history)),
            'recent_errors': [
                {
                    'type': e.error_type.value,
                    'severity': e.severity.value,
                    'message': e.message,
                    'operation': e.operation,
                    'taxon': e.item_id,
                    'timestamp': datetime.fromtimestamp(e.timestamp).isoformat(),
                    'suggestion': e.suggestion
                }
                for e in history[-5:]
            ]
        }

    def export_error_report(self, output_file: str):
        """Write the summary and every recorded error as JSON."""
        report = {
            'generated_at': datetime.now().isoformat(),
            'summary': self.get_error_summary(),
            'detailed_errors': [e.to_dict() for e in self._snapshot()]
        }

        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)

        self.logger.info(f"Error report exported to {output_file}")

    def clear(self):
        """Forget all recorded errors."""
        with self._lock:
            self.error_history.clear()


# Global error handler instance
_error_handler = None


def get_error_handler() -> ErrorHandler:
    """Get global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def setup_error_handler(**kwargs) -> ErrorHandler:
    """Replace the global error handler."""
    global _error_handler
    _error_handler = ErrorHandler(**kwargs)
    return _error_handler
