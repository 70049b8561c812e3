"""
Error taxonomy for the reconciliation pipeline.

Only ParseError and RestoreFormatError abort an operation. Row-level
problems are raised as RowValidationError and counted by the caller.
Ambiguous SKUs are not errors: they become review candidates.
"""

from typing import Any, Dict, Optional


class ReconError(Exception):
    """Base class for all engine errors"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParseError(ReconError):
    """Report file or its header could not be read; the import is aborted"""


class RowValidationError(ReconError):
    """A single row is missing a required field or carries an unparseable value"""


class ReviewPendingError(ReconError):
    """Aggregation requested while mapping candidates are still pending"""


class ImportStateError(ReconError):
    """Operation not allowed in the import session's current state"""


class RestoreFormatError(ReconError):
    """Backup bundle is missing required keys or holds malformed records"""


class UnknownProductError(ReconError):
    """SKU is not present in the catalog"""
