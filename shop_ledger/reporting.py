"""
Report Export Module

Builds the exportable sales, inventory and financial reports and renders
them as JSON or as delimited text. The delimited form flattens each report
one level into rows of scalar columns.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import csv
import io
import json

from .analytics import AnalyticsEngine, ReportPeriod
from .errors import ValidationError
from .records import to_storable


class ReportType(Enum):
    """Types of exportable reports"""
    SALES = "sales"
    INVENTORY = "inventory"
    FINANCIAL = "financial"


class ReportFormat(Enum):
    """Output formats for reports"""
    JSON = "json"
    CSV = "csv"


@dataclass
class ExportedReport:
    """Rendered report ready to hand back to a caller"""
    report_type: ReportType
    format: ReportFormat
    content: Union[Dict[str, Any], str]
    filename: str

    @property
    def media_type(self) -> str:
        if self.format == ReportFormat.CSV:
            return "text/csv"
        return "application/json"


def _scalar(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


def _flatten_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    for key, value in entry.items():
        if isinstance(value, dict):
            for child_key, child_value in value.items():
                row[f"{key}_{child_key}"] = _scalar(child_value)
        else:
            row[key] = _scalar(value)
    return row


def flatten_report(report: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Turn a nested report into flat rows.

    Each row carries a ``section`` column naming the top-level key it came
    from. List sections give one row per entry, mapping sections one row.
    """
    report = to_storable(report)
    rows: List[Dict[str, Any]] = []
    for section, value in report.items():
        if isinstance(value, list):
            for entry in value:
                row = {"section": section}
                if isinstance(entry, dict):
                    row.update(_flatten_entry(entry))
                else:
                    row["value"] = _scalar(entry)
                rows.append(row)
        elif isinstance(value, dict):
            row = {"section": section}
            row.update(_flatten_entry(value))
            rows.append(row)
        else:
            rows.append({"section": section, "value": value})
    return rows


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """Render rows with a header made of every key seen across all rows"""
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    output = io.StringIO()
    if headers:
        writer = csv.DictWriter(output, fieldnames=headers, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

    csv_content = output.getvalue()
    output.close()
    return csv_content


def build_report(
    analytics: AnalyticsEngine,
    report_type: ReportType,
    period: ReportPeriod = ReportPeriod.MONTHLY,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> Dict[str, Any]:
    if report_type == ReportType.SALES:
        return analytics.sales_overview(period)
    if report_type == ReportType.INVENTORY:
        return analytics.inventory_report()
    if report_type == ReportType.FINANCIAL:
        return analytics.financial_report(start, end)
    raise ValidationError(f"Unsupported report type: {report_type}")


def export_report(
    analytics: AnalyticsEngine,
    report_type: Union[ReportType, str],
    format: Union[ReportFormat, str] = ReportFormat.JSON,
    period: ReportPeriod = ReportPeriod.MONTHLY,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> ExportedReport:
    """
    Export a report in the requested format.

    JSON keeps the aggregation shape (amounts as strings, dates ISO-8601);
    CSV flattens it via ``flatten_report``.
    """
    try:
        report_type = ReportType(report_type)
    except ValueError:
        raise ValidationError(f"Unsupported report type: {report_type}")
    try:
        format = ReportFormat(format)
    except ValueError:
        raise ValidationError(f"Unsupported export format: {format}")

    report = build_report(analytics, report_type, period, start, end)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")

    if format == ReportFormat.CSV:
        return ExportedReport(
            report_type=report_type,
            format=format,
            content=rows_to_csv(flatten_report(report)),
            filename=f"{report_type.value}-report-{stamp}.csv",
        )

    return ExportedReport(
        report_type=report_type,
        format=format,
        content=to_storable(report),
        filename=f"{report_type.value}-report-{stamp}.json",
    )
