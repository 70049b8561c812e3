"""
Report Quality Module
"""
from .validators import (
    ReportValidator,
    ValidationResult,
    ValidationSeverity,
    ValidationStatus,
    create_catalog_validator,
    create_mapping_validator,
    create_refunds_validator,
    create_sales_validator,
    create_shipments_validator,
)

__all__ = [
    "ReportValidator",
    "ValidationResult",
    "ValidationSeverity",
    "ValidationStatus",
    "create_catalog_validator",
    "create_mapping_validator",
    "create_refunds_validator",
    "create_sales_validator",
    "create_shipments_validator",
]
