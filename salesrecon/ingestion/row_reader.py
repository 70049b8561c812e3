"""
Report Row Reader

Turns an uploaded report (CSV, JSON or Parquet) into typed rows:
- Header auto-detection against candidate names per field
- Report-level validation before any row is parsed
- Row-level failures skipped and counted, never fatal
"""

import io
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

import polars as pl
import structlog

from salesrecon.domain.models import FeeCategory
from salesrecon.exceptions import ParseError, RowValidationError
from salesrecon.quality.validators import (
    ReportValidator,
    ValidationResult,
    create_catalog_validator,
    create_mapping_validator,
    create_refunds_validator,
    create_sales_validator,
    create_shipments_validator,
)
from .rows import CatalogRow, MappingRow, RefundRow, SalesRow, ShipmentRow

logger = structlog.get_logger(__name__)

T = TypeVar("T")

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    JSON = "json"
    PARQUET = "parquet"
    
    @classmethod
    def from_name(cls, filename: str) -> "FileFormat":
        suffix = Path(filename).suffix.lower().lstrip(".")
        try:
            return cls(suffix)
        except ValueError:
            raise ParseError(f"Unsupported file format: {suffix or filename}") from None


class ReportKind(str, Enum):
    """Report types the engine ingests"""
    SALES = "sales"
    REFUNDS = "refunds"
    SHIPMENTS = "shipments"
    CATALOG = "catalog"
    MAPPING = "mapping"


@dataclass(frozen=True)
class ColumnSpec:
    """Candidate header names for one canonical field"""
    candidates: Tuple[str, ...]
    fuzzy: bool = True
    percent: bool = False


def _fee(*candidates: str) -> ColumnSpec:
    return ColumnSpec(candidates)


SALES_COLUMNS: Dict[str, ColumnSpec] = {
    "sku": ColumnSpec(("skucode", "sku", "sellersku", "itemnumber")),
    "quantity": ColumnSpec(("skuquantity", "qty", "quantity", "units", "sold")),
    "revenue": ColumnSpec(("salesamt", "revenue", "totalprice", "grosssales", "price")),
    "order_time": ColumnSpec(("ordertime", "orderdate", "date", "created")),
    "platform": ColumnSpec(("platformnamelevel1", "platform", "source", "channel", "marketplace")),
    "platform_detail": ColumnSpec(("platformnamelevel2", "subsource"), fuzzy=False),
    "manager": ColumnSpec(("manager", "accountmanager", "owner"), fuzzy=False),
    "category": ColumnSpec(("maincategory", "category"), fuzzy=False),
    "subcategory": ColumnSpec(("subcategory",), fuzzy=False),
    "unit_cost": ColumnSpec(("cogs", "unitcost", "cost")),
    FeeCategory.SELLING.value: _fee("sellingfee", "commission", "referralfee"),
    FeeCategory.ADS.value: _fee("adsfee", "adspend", "ppc", "sponsored"),
    FeeCategory.EXTRA_FREIGHT.value: _fee("extrafreight", "shippingincome", "shippingcharge"),
    FeeCategory.POSTAGE.value: _fee("postage", "shipping", "freight", "delivery"),
    FeeCategory.OTHER.value: _fee("otherfee"),
    FeeCategory.SUBSCRIPTION.value: _fee("subscriptionfee"),
    FeeCategory.FULFILLMENT.value: _fee("wmsfee", "fulfillmentfee", "fulfillment", "pickpack"),
    "profit": ColumnSpec(("profitexclrn", "netprofit", "profitamount"), fuzzy=False),
    "margin_percent": ColumnSpec(("profitexclrn", "netpm", "profit", "margin"), fuzzy=False, percent=True),
    "order_id": ColumnSpec(("outerorderid", "orderid", "orderno", "ordernumber"), fuzzy=False),
    "logistics_service": ColumnSpec(("logisticsname", "shippingmethod", "courier"), fuzzy=False),
}

REFUND_COLUMNS: Dict[str, ColumnSpec] = {
    "sku": ColumnSpec(("productsku", "sku")),
    "amount": ColumnSpec(("refundamount", "refundvalue")),
    "quantity": ColumnSpec(("refundqty", "returnqty", "quantity")),
    "refund_time": ColumnSpec(("creationtime", "applicationtime", "date")),
    "reason": ColumnSpec(("platformaftersalesreason", "aftersalesreason", "returnreason", "reason")),
    "platform": ColumnSpec(("channel", "platform")),
}

SHIPMENT_COLUMNS: Dict[str, ColumnSpec] = {
    "container_id": ColumnSpec(("containerno", "containerid", "container")),
    "sku": ColumnSpec(("sku", "productcode")),
    "quantity": ColumnSpec(("quantity", "qty", "units")),
    "status": ColumnSpec(("shippingstatus", "status")),
    "eta": ColumnSpec(("eta", "expectedarrival")),
    "customs_date": ColumnSpec(("customsclearingdate", "customsdate", "clearancedate")),
}

CATALOG_COLUMNS: Dict[str, ColumnSpec] = {
    "sku": ColumnSpec(("sku", "skucode", "productcode")),
    "name": ColumnSpec(("productname", "name", "title")),
    "stock_level": ColumnSpec(("onhand", "stocklevel", "stock", "available")),
    "cost_price": ColumnSpec(("costprice", "unitcost", "cogs", "cost")),
    "lead_time_days": ColumnSpec(("leadtimedays", "leadtime")),
    "category": ColumnSpec(("maincategory", "category"), fuzzy=False),
    "subcategory": ColumnSpec(("subcategory",), fuzzy=False),
    "brand": ColumnSpec(("brand",)),
}

# Platform SKU first so a "Seller SKU" header is never taken as the master SKU
MAPPING_COLUMNS: Dict[str, ColumnSpec] = {
    "alias": ColumnSpec(("alias", "platformsku", "channelsku", "sellersku", "customlabel", "listingsku")),
    "sku": ColumnSpec(("mastersku", "sku", "skucode", "productsku"), fuzzy=False),
}

_KIND_CONFIG: Dict[ReportKind, Tuple[Dict[str, ColumnSpec], Callable[[], ReportValidator], Callable[[Dict[str, Any]], Any]]] = {
    ReportKind.SALES: (SALES_COLUMNS, create_sales_validator, SalesRow.from_record),
    ReportKind.REFUNDS: (REFUND_COLUMNS, create_refunds_validator, RefundRow.from_record),
    ReportKind.SHIPMENTS: (SHIPMENT_COLUMNS, create_shipments_validator, ShipmentRow.from_record),
    ReportKind.CATALOG: (CATALOG_COLUMNS, create_catalog_validator, CatalogRow.from_record),
    ReportKind.MAPPING: (MAPPING_COLUMNS, create_mapping_validator, MappingRow.from_record),
}


def normalize_header(header: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def _is_percent_header(header: str) -> bool:
    return "%" in header or "percent" in header.lower()


def detect_columns(headers: List[str], specs: Dict[str, ColumnSpec]) -> Dict[str, str]:
    """
    Map canonical field names to report headers.
    
    Exact (normalised) matches are tried before substring matches, and a
    percent-looking header only ever maps to a percent field. Each header is
    used at most once, in the order fields are declared.
    """
    normalized = [(h, normalize_header(h)) for h in headers]
    mapping: Dict[str, str] = {}
    used: set = set()
    
    def pick(spec: ColumnSpec, fuzzy: bool) -> Optional[str]:
        for candidate in spec.candidates:
            for original, norm in normalized:
                if original in used or _is_percent_header(original) != spec.percent:
                    continue
                if norm == candidate or (fuzzy and candidate in norm):
                    return original
        return None
    
    for name, spec in specs.items():
        found = pick(spec, fuzzy=False) or (pick(spec, fuzzy=True) if spec.fuzzy else None)
        if found:
            mapping[name] = found
            used.add(found)
    
    return mapping


@dataclass
class ReadResult(Generic[T]):
    """Rows read from one report plus what was skipped and why"""
    kind: ReportKind
    rows: List[T]
    total_rows: int
    column_map: Dict[str, str]
    validation: ValidationResult
    skip_reasons: Dict[str, int] = field(default_factory=dict)
    
    @property
    def skipped(self) -> int:
        return sum(self.skip_reasons.values())


class RowReader:
    """
    Report reader for one report kind.
    
    Example:
        reader = RowReader(ReportKind.SALES)
        result = reader.read_file("exports/orders_week_42.csv")
        session = service.begin_sales_import(result.rows)
    """
    
    def __init__(self, kind: ReportKind = ReportKind.SALES):
        self.kind = kind
        self.specs, self._validator_factory, self._row_factory = _KIND_CONFIG[kind]
    
    def _read_frame(self, source: Union[str, Path, io.BytesIO], file_format: FileFormat) -> pl.DataFrame:
        readers = {
            FileFormat.CSV: lambda: pl.read_csv(
                source,
                infer_schema_length=0,
                null_values=NULL_VALUES,
                truncate_ragged_lines=True,
            ),
            FileFormat.JSON: lambda: pl.read_json(source),
            FileFormat.PARQUET: lambda: pl.read_parquet(source),
        }
        try:
            df = readers[file_format]()
        except Exception as e:
            raise ParseError(f"Failed to read {file_format.value} report: {e}") from e
        return df.with_columns(pl.all().cast(pl.Utf8))
    
    def read_file(self, path: Union[str, Path]) -> ReadResult:
        """Read a report from disk; format follows the file extension"""
        path = Path(path)
        if not path.exists():
            raise ParseError(f"Report not found: {path}")
        return self.read_frame(self._read_frame(path, FileFormat.from_name(path.name)))
    
    def read_bytes(self, data: bytes, filename: str) -> ReadResult:
        """Read an uploaded report held in memory"""
        return self.read_frame(self._read_frame(io.BytesIO(data), FileFormat.from_name(filename)))
    
    def read_frame(self, df: pl.DataFrame) -> ReadResult:
        """Map headers, validate the frame and build typed rows"""
        if df.width == 0:
            raise ParseError("Report has no columns")
        
        column_map = detect_columns(df.columns, self.specs)
        mapped = df.select([pl.col(header).alias(name) for name, header in column_map.items()])
        
        validation = self._validator_factory().validate(mapped)
        errors = validation.errors()
        if errors:
            raise ParseError(
                f"{self.kind.value} report rejected: " + "; ".join(c.message for c in errors),
                details={"headers": df.columns},
            )
        
        rows: List[Any] = []
        skip_reasons: Counter = Counter()
        for record in mapped.iter_rows(named=True):
            try:
                rows.append(self._row_factory(record))
            except RowValidationError as e:
                skip_reasons[e.details.get("field", "row")] += 1
        
        logger.info(
            "Report read",
            kind=self.kind.value,
            total_rows=mapped.height,
            rows=len(rows),
            skipped=sum(skip_reasons.values()),
            columns=column_map,
        )
        
        return ReadResult(
            kind=self.kind,
            rows=rows,
            total_rows=mapped.height,
            column_map=column_map,
            validation=validation,
            skip_reasons=dict(skip_reasons),
        )
