"""
Unit Tests - Report Validation
"""
import polars as pl

from salesrecon.quality.validators import (
    ReportValidator,
    ValidationSeverity,
    ValidationStatus,
    create_sales_validator,
)


class TestReportValidator:
    """Tests for ReportValidator"""
    
    def test_required_column_fails(self):
        """Test a missing column is an error"""
        df = pl.DataFrame({"sku": ["A1"]})
        
        result = ReportValidator().add_required_column("order_time").validate(df)
        
        assert result.status == ValidationStatus.FAILED
        assert result.errors()[0].name == "required_order_time"
    
    def test_blank_values_are_warnings(self):
        """Test blank cells only produce a partial result"""
        df = pl.DataFrame({"sku": ["A1", None, "  "]})
        
        result = ReportValidator().add_not_blank_check("sku").validate(df)
        
        assert result.status == ValidationStatus.PARTIAL
        assert result.checks[0].failed_rows == 2
        assert result.errors() == []
    
    def test_strict_mode_fails_on_warnings(self):
        """Test strict mode turns warnings into failure"""
        df = pl.DataFrame({"sku": [None]})
        
        result = ReportValidator(strict_mode=True).add_not_blank_check("sku").validate(df)
        
        assert result.status == ValidationStatus.FAILED
    
    def test_numeric_check_ignores_currency(self):
        """Test currency-formatted numbers pass"""
        df = pl.DataFrame({"revenue": ["£10.00", "1,200.50", "abc", None]})
        
        result = ReportValidator().add_numeric_check("revenue").validate(df)
        
        check = result.checks[0]
        assert check.severity == ValidationSeverity.INFO
        assert check.failed_rows == 1
        assert result.status == ValidationStatus.PASSED
    
    def test_sales_validator(self):
        """Test pre-built sales validator accepts a minimal report"""
        df = pl.DataFrame({"sku": ["A1"], "order_time": ["2025-03-14"], "quantity": ["1"]})
        
        result = create_sales_validator().validate(df)
        
        assert result.status == ValidationStatus.PASSED
        assert result.success_rate == 100.0
