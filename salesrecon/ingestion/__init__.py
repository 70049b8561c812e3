"""
Report Ingestion Module
"""
from .row_reader import FileFormat, ReadResult, ReportKind, RowReader, detect_columns
from .rows import CatalogRow, MappingRow, RefundRow, SalesRow, ShipmentRow

__all__ = [
    "FileFormat",
    "ReadResult",
    "ReportKind",
    "RowReader",
    "detect_columns",
    "CatalogRow",
    "MappingRow",
    "RefundRow",
    "SalesRow",
    "ShipmentRow",
]
