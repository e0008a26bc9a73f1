"""
Tests for report export
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from shop_ledger.analytics import AnalyticsEngine, ReportPeriod
from shop_ledger.clients import Client
from shop_ledger.errors import ValidationError
from shop_ledger.products import Product
from shop_ledger.reporting import (
    ReportFormat, ReportType, export_report, flatten_report, rows_to_csv
)
from shop_ledger.storage import EntityStore
from shop_ledger.transactions import LineItem, Sale


@pytest.fixture
def analytics():
    store = EntityStore.seeded()
    store.clients.append(Client(id=1, name="Alice", loan=Decimal("40")))
    store.products.append(Product(id=2, name="Rice", price=Decimal("50"), stock=4))
    store.transactions.append(Sale(
        id=3,
        client_id=1,
        items=(LineItem(product_id=2, name="Rice", price=Decimal("50"), quantity=2),),
        total=Decimal("100"),
        paid=Decimal("60"),
        loan=Decimal("40"),
        date=datetime(2024, 5, 4, 10, tzinfo=timezone.utc),
    ))
    return AnalyticsEngine(store)


class TestCsvRendering:
    """Test flattening and delimited output"""

    def test_header_is_union_of_keys(self):
        rows = [{"section": "a", "x": 1}, {"section": "b", "y": 2}]
        lines = rows_to_csv(rows).splitlines()
        assert lines == ["section,x,y", "a,1,", "b,,2"]

    def test_empty_rows(self):
        assert rows_to_csv([]) == ""

    def test_flatten_nested_sections(self):
        report = {
            "summary": {"total": Decimal("10"), "counts": {"a": 1}},
            "rows": [{"name": "x", "detail": {"price": Decimal("2.50")}}],
        }
        rows = flatten_report(report)
        assert rows[0] == {"section": "summary", "total": "10", "counts_a": 1}
        assert rows[1] == {"section": "rows", "name": "x", "detail_price": "2.50"}


class TestExportReport:
    """Test report export in each format"""

    def test_sales_json(self, analytics):
        exported = export_report(analytics, "sales", "json", period=ReportPeriod.MONTHLY)
        assert exported.report_type == ReportType.SALES
        assert exported.media_type == "application/json"
        assert exported.filename.startswith("sales-report-")
        assert exported.filename.endswith(".json")
        bucket = exported.content["sales_overview"][0]
        assert bucket == {"period": "2024-05", "start": "2024-05-01",
                          "revenue": "60", "transactions": 1}

    def test_sales_csv(self, analytics):
        exported = export_report(analytics, ReportType.SALES, ReportFormat.CSV)
        assert exported.media_type == "text/csv"
        assert exported.filename.endswith(".csv")
        lines = exported.content.splitlines()
        assert lines[0].startswith("section,")
        assert any(line.startswith("sales_overview,") for line in lines[1:])
        assert any(line.startswith("top_products,") for line in lines[1:])

    def test_inventory_csv(self, analytics):
        exported = export_report(analytics, "inventory", "csv")
        assert "low_stock" in exported.content
        assert "Rice" in exported.content

    def test_financial_json(self, analytics):
        start = datetime(2024, 5, 1, tzinfo=timezone.utc)
        end = datetime(2024, 5, 31, tzinfo=timezone.utc)
        exported = export_report(analytics, "financial", "json", start=start, end=end)
        assert exported.content["revenue"]["total_sales"] == "60"
        assert exported.content["loans"]["total_outstanding"] == "40"

    def test_unknown_type_rejected(self, analytics):
        with pytest.raises(ValidationError, match="Unsupported report type"):
            export_report(analytics, "payroll")

    def test_unknown_format_rejected(self, analytics):
        with pytest.raises(ValidationError, match="Unsupported export format"):
            export_report(analytics, "sales", "xlsx")
