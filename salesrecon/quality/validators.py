"""
Report Validation Module

Rule-based checks run over an uploaded report after its headers have been
mapped onto canonical field names, before any row is turned into a typed
record.

Severity decides the outcome:
- ERROR: the report cannot be imported (e.g. the SKU column is missing)
- WARNING: affected rows will be skipped and counted
- INFO: reported only
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # blocks the import
    WARNING = "warning"  # rows skipped, import continues
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    
    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100
    
    def errors(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed and c.severity == ValidationSeverity.ERROR]


def _blank(column: str) -> pl.Expr:
    return pl.col(column).is_null() | (pl.col(column).cast(pl.Utf8).str.strip_chars() == "")


class ReportValidator:
    """
    Validator for string-typed report frames.
    
    Example:
        validator = ReportValidator()
        validator.add_required_column("sku").add_not_blank_check("sku")
        result = validator.validate(df)
    """
    
    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # warnings fail the report
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []
    
    def add_required_column(self, column: str) -> "ReportValidator":
        """Report must carry the column at all"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            passed = column in df.columns
            return ValidationCheck(
                name=f"required_{column}",
                passed=passed,
                severity=ValidationSeverity.ERROR,
                message=f"Column '{column}' present" if passed else f"Column '{column}' not found",
                total_rows=len(df),
            )
        
        self._checks.append(check)
        return self
    
    def add_not_blank_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "ReportValidator":
        """Count rows whose value is null or whitespace"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return ValidationCheck(
                    name=f"not_blank_{column}",
                    passed=True,
                    severity=severity,
                    message=f"Column '{column}' not mapped",
                )
            
            blank_count = df.filter(_blank(column)).height
            total = len(df)
            passed = blank_count == 0
            
            return ValidationCheck(
                name=f"not_blank_{column}",
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {blank_count} blank values" if not passed else f"Column '{column}' has no blank values",
                details={"blank_count": blank_count},
                failed_rows=blank_count,
                total_rows=total,
            )
        
        self._checks.append(check)
        return self
    
    def add_numeric_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.INFO,
    ) -> "ReportValidator":
        """Count non-blank values that do not parse as numbers (they read as 0)"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return ValidationCheck(
                    name=f"numeric_{column}",
                    passed=True,
                    severity=severity,
                    message=f"Column '{column}' not mapped",
                )
            
            numeric = (
                pl.col(column)
                .cast(pl.Utf8)
                .str.replace_all(r"[^\d.\-]", "")
                .cast(pl.Float64, strict=False)
            )
            invalid = df.filter(~_blank(column) & numeric.is_null()).height
            passed = invalid == 0
            
            return ValidationCheck(
                name=f"numeric_{column}",
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} non-numeric values" if not passed else "All values numeric",
                details={"invalid_count": invalid},
                failed_rows=invalid,
                total_rows=len(df),
            )
        
        self._checks.append(check)
        return self
    
    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.
        
        Args:
            df: DataFrame to validate
            
        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.now(timezone.utc)
        results = [check_func(df) for check_func in self._checks]
        
        for result in results:
            if not result.passed and result.severity != ValidationSeverity.INFO:
                logger.warning(
                    "Report check failed",
                    check=result.name,
                    message=result.message,
                    severity=result.severity.value,
                )
        
        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)
        
        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED
        
        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )


# Pre-built validators per report kind
def create_sales_validator() -> ReportValidator:
    """Validator for sales transaction reports"""
    return (
        ReportValidator()
        .add_required_column("sku")
        .add_required_column("order_time")
        .add_not_blank_check("sku")
        .add_not_blank_check("order_time")
        .add_numeric_check("quantity")
        .add_numeric_check("revenue")
    )


def create_refunds_validator() -> ReportValidator:
    """Validator for refund reports"""
    return (
        ReportValidator()
        .add_required_column("sku")
        .add_required_column("amount")
        .add_required_column("refund_time")
        .add_not_blank_check("sku")
        .add_numeric_check("amount")
    )


def create_shipments_validator() -> ReportValidator:
    """Validator for container shipment reports"""
    return (
        ReportValidator()
        .add_required_column("container_id")
        .add_required_column("sku")
        .add_required_column("quantity")
        .add_not_blank_check("sku")
        .add_numeric_check("quantity")
    )


def create_catalog_validator() -> ReportValidator:
    """Validator for catalog / inventory reports"""
    return (
        ReportValidator()
        .add_required_column("sku")
        .add_not_blank_check("sku")
        .add_numeric_check("stock_level")
        .add_numeric_check("cost_price")
    )


def create_mapping_validator() -> ReportValidator:
    """Validator for platform SKU mapping reports"""
    return (
        ReportValidator()
        .add_required_column("sku")
        .add_required_column("alias")
        .add_not_blank_check("sku")
        .add_not_blank_check("alias")
    )
