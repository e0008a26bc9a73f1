"""
Tests for sales bucketing, rankings, financial reports and dashboard figures
"""

import pytest
from datetime import datetime, timezone, date
from decimal import Decimal

from shop_ledger.analytics import (
    AnalyticsEngine, ReportPeriod, bucket_sales_by_period, client_loan_history,
    client_purchase_history, client_statistics, dashboard_summary, financial_report,
    inventory_report, parse_report_bound, sales_overview, search_clients,
    top_selling_products, average_sale
)
from shop_ledger.clients import Client
from shop_ledger.errors import ValidationError
from shop_ledger.notifications import NotificationType
from shop_ledger.products import Product
from shop_ledger.storage import EntityStore
from shop_ledger.transactions import LineItem, LoanPayment, Sale


def at(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_sale(sale_id, client_id, when, lines, paid=None):
    """lines: (product_id, name, price, quantity) tuples"""
    items = tuple(
        LineItem(product_id=pid, name=name, price=Decimal(price), quantity=quantity)
        for pid, name, price, quantity in lines
    )
    total = sum((item.line_total for item in items), Decimal("0"))
    paid = total if paid is None else Decimal(paid)
    return Sale(id=sale_id, client_id=client_id, items=items, total=total,
                paid=paid, loan=total - paid, date=when)


def make_payment(payment_id, client_id, when, amount, previous):
    amount, previous = Decimal(amount), Decimal(previous)
    return LoanPayment(id=payment_id, client_id=client_id, amount=amount,
                       previous_loan=previous, new_loan=previous - amount, date=when)


@pytest.fixture
def clients():
    return [
        Client(id=1, name="Alice", phone="0788111111", loan=Decimal("200")),
        Client(id=2, name="Bob", phone="0722333333"),
    ]


@pytest.fixture
def history():
    return [
        make_sale(10, 1, at(2024, 2, 10), [(100, "Rice", "50", 2)]),
        make_sale(11, 2, at(2024, 1, 5), [(101, "Soap", "25", 2)]),
        make_sale(12, 1, at(2024, 2, 20), [(100, "Rice", "50", 1), (102, "Oil", "80", 1)], paid="30"),
        make_payment(13, 1, at(2024, 2, 25), "50", "100"),
    ]


class TestBucketing:
    """Test time-bucketed revenue"""

    def test_monthly_buckets_in_chronological_order(self, history):
        buckets = bucket_sales_by_period(history, ReportPeriod.MONTHLY)
        assert [b["period"] for b in buckets] == ["2024-01", "2024-02"]
        assert [b["revenue"] for b in buckets] == [Decimal("50"), Decimal("130")]
        assert [b["transactions"] for b in buckets] == [1, 2]
        assert buckets[0]["start"] == date(2024, 1, 1)

    def test_loan_payments_are_not_revenue_buckets(self, history):
        buckets = bucket_sales_by_period(history, ReportPeriod.YEARLY)
        assert len(buckets) == 1
        assert buckets[0]["period"] == "2024"
        assert buckets[0]["transactions"] == 3

    def test_weekly_buckets_start_monday(self):
        sales = [make_sale(1, 1, at(2024, 1, 3), [(1, "Rice", "10", 1)])]
        bucket = bucket_sales_by_period(sales, ReportPeriod.WEEKLY)[0]
        assert bucket["start"] == date(2024, 1, 1)
        assert bucket["period"] == "Week of 2024-01-01"

    def test_weekly_buckets_sorted_by_start_not_label(self):
        sales = [
            make_sale(1, 1, at(2025, 1, 2), [(1, "Rice", "10", 1)]),
            make_sale(2, 1, at(2024, 12, 5), [(1, "Rice", "20", 1)]),
            make_sale(3, 1, at(2024, 12, 31), [(1, "Rice", "30", 1)]),
        ]
        buckets = bucket_sales_by_period(sales, ReportPeriod.WEEKLY)
        assert [b["start"] for b in buckets] == [date(2024, 12, 2), date(2024, 12, 30)]
        assert buckets[1]["revenue"] == Decimal("40")

    def test_daily_buckets_use_utc_day(self):
        late = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
        sales = [make_sale(1, 1, late, [(1, "Rice", "10", 1)])]
        assert bucket_sales_by_period(sales, ReportPeriod.DAILY)[0]["period"] == "2024-03-01"

    def test_empty_history(self):
        assert bucket_sales_by_period([], ReportPeriod.MONTHLY) == []


class TestRankings:
    """Test top products and client statistics"""

    def test_top_products_by_revenue(self, history):
        ranked = top_selling_products(history)
        assert [p["product_name"] for p in ranked] == ["Rice", "Oil", "Soap"]
        assert ranked[0]["quantity"] == 3
        assert ranked[0]["revenue"] == Decimal("150")

    def test_ties_keep_first_sale_order(self):
        sales = [
            make_sale(1, 1, at(2024, 1, 1), [(7, "Beans", "100", 1)]),
            make_sale(2, 1, at(2024, 1, 2), [(3, "Sugar", "50", 2)]),
        ]
        assert [p["product_name"] for p in top_selling_products(sales)] == ["Beans", "Sugar"]
        assert [p["product_name"] for p in top_selling_products(list(reversed(sales)))] == ["Sugar", "Beans"]

    def test_limit(self, history):
        assert len(top_selling_products(history, limit=1)) == 1

    def test_client_statistics(self, history, clients):
        stats = client_statistics(history, clients)
        alice = stats[0]
        assert alice["client_name"] == "Alice"
        assert alice["total_spent"] == Decimal("130")
        assert alice["transactions"] == 2
        assert alice["last_purchase"] == at(2024, 2, 20)
        assert stats[1]["client_name"] == "Bob"

    def test_unknown_client_name(self, history, clients):
        stats = client_statistics(history, clients[:1])
        assert stats[-1]["client_name"] == "Unknown"

    def test_average_sale(self):
        sales = [
            make_sale(1, 1, at(2024, 1, 1), [(1, "A", "10", 1)]),
            make_sale(2, 1, at(2024, 1, 1), [(1, "A", "10", 1)]),
            make_sale(3, 1, at(2024, 1, 1), [(1, "A", "11", 1)]),
        ]
        assert average_sale(sales) == Decimal("10.33")
        assert average_sale([]) == Decimal("0")

    def test_sales_overview_summary(self, history, clients):
        overview = sales_overview(history, clients, ReportPeriod.MONTHLY)
        assert overview["summary"]["total_revenue"] == Decimal("180")
        assert overview["summary"]["total_transactions"] == 3
        assert overview["summary"]["average_sale"] == Decimal("60.00")
        assert len(overview["sales_overview"]) == 2


class TestFinancialReport:
    """Test windowed revenue with the current loan overlay"""

    def test_window_is_inclusive(self, history, clients):
        now = at(2024, 3, 1)
        report = financial_report(history, clients, at(2024, 2, 10), at(2024, 2, 25), now)
        assert report["revenue"]["total_sales"] == Decimal("130")
        assert report["revenue"]["total_loan_payments"] == Decimal("50")
        assert report["revenue"]["gross_revenue"] == Decimal("180")
        assert report["transactions"]["total_sales"] == 2
        assert report["transactions"]["total_loan_payments"] == 1
        assert report["transactions"]["average_sale_value"] == Decimal("65.00")

    def test_loans_reflect_current_balances(self, history, clients):
        now = at(2024, 3, 1)
        report = financial_report(history, clients, at(2023, 1, 1), at(2023, 12, 31), now)
        assert report["revenue"]["gross_revenue"] == Decimal("0")
        assert report["loans"] == {
            "as_of": now,
            "active_loans": 1,
            "total_outstanding": Decimal("200"),
        }

    def test_defaults_cover_all_history(self, history, clients):
        report = financial_report(history, clients, now=at(2024, 3, 1))
        assert report["transactions"]["total_sales"] == 3

    def test_naive_bounds_taken_as_utc(self, history, clients):
        naive = financial_report(
            history, clients, datetime(2024, 2, 10, 12), datetime(2024, 2, 25, 12),
            now=datetime(2024, 3, 1, 12)
        )
        aware = financial_report(history, clients, at(2024, 2, 10), at(2024, 2, 25), at(2024, 3, 1))
        assert naive["revenue"] == aware["revenue"]
        assert naive["revenue"]["total_sales"] == Decimal("130")
        assert naive["period"] == aware["period"]

    def test_start_after_end_rejected(self, history, clients):
        with pytest.raises(ValidationError):
            financial_report(history, clients, at(2024, 3, 1), at(2024, 2, 1))

    def test_bare_end_date_covers_whole_day(self):
        start = parse_report_bound("2024-02-20")
        end = parse_report_bound("2024-02-20", end_of_day=True)
        assert start == datetime(2024, 2, 20, 0, 0, tzinfo=timezone.utc)
        assert end.date() == date(2024, 2, 20)
        assert end.hour == 23 and end.minute == 59

    def test_datetime_bounds_parsed(self):
        assert parse_report_bound("2024-02-20T10:00:00Z") == at(2024, 2, 20, 10)
        assert parse_report_bound(None) is None
        assert parse_report_bound("") is None

    def test_bad_bound_rejected(self):
        with pytest.raises(ValidationError, match="Invalid date"):
            parse_report_bound("yesterday")


class TestClientQueries:
    """Test per-client history and search"""

    def test_loan_history(self, history):
        entries = client_loan_history(history, 1)
        assert [e["id"] for e in entries] == [12, 13]
        assert entries[1]["type"] == "loan_payment"

    def test_purchase_history_newest_first(self, history):
        purchases = client_purchase_history(history, 1)
        assert [p["id"] for p in purchases] == [12, 10]
        item = purchases[0]["items"][1]
        assert item["product_name"] == "Oil"
        assert item["unit_price"] == Decimal("80")
        assert item["total_price"] == Decimal("80")

    def test_search_by_name_or_phone(self, clients):
        assert [c.name for c in search_clients(clients, "ali")] == ["Alice"]
        assert [c.name for c in search_clients(clients, "0722")] == ["Bob"]
        assert search_clients(clients, "zzz") == []


class TestInventoryAndDashboard:
    """Test stock report and landing-page figures"""

    @pytest.fixture
    def products(self):
        return [
            Product(id=1, name="Rice", price=Decimal("50"), stock=3),
            Product(id=2, name="Oil", price=Decimal("80"), stock=20),
            Product(id=3, name="Bread", price=Decimal("30")),
            Product(id=4, name="Salt", price=Decimal("10"), stock=0),
        ]

    def test_inventory_report(self, products):
        report = inventory_report(products, threshold=5)
        assert [p["name"] for p in report["low_stock"]] == ["Rice", "Salt"]
        assert report["summary"] == {
            "total_products": 4,
            "tracked_products": 3,
            "units_in_stock": 23,
            "stock_value": Decimal("1750"),
        }

    def test_dashboard_income_windows(self, clients, products):
        now = at(2024, 3, 13, 15)  # Wednesday
        transactions = [
            make_sale(1, 1, at(2024, 3, 13, 9), [(1, "Rice", "100", 1)]),
            make_sale(2, 1, at(2024, 3, 11), [(1, "Rice", "50", 1)]),
            make_sale(3, 2, at(2024, 3, 2), [(1, "Rice", "25", 1)]),
            make_sale(4, 2, at(2024, 2, 28), [(1, "Rice", "10", 1)]),
        ]
        summary = dashboard_summary(transactions, clients, products, [], now=now)
        assert summary["daily_income"] == Decimal("100")
        assert summary["weekly_income"] == Decimal("150")
        assert summary["monthly_income"] == Decimal("175")
        assert [c["name"] for c in summary["clients_with_loans"]] == ["Alice"]
        assert [p["name"] for p in summary["low_stock_products"]] == ["Rice", "Salt"]

    def test_engine_dashboard_notifications_newest_first(self):
        store = EntityStore.seeded()
        for index in range(12):
            store.notifications.append(f"event {index}", NotificationType.INFO)
        engine = AnalyticsEngine(store, recent_notifications_limit=10)
        notifications = engine.dashboard()["notifications"]
        assert len(notifications) == 10
        assert notifications[0]["message"] == "event 11"
        assert notifications[-1]["message"] == "event 2"

    def test_engine_reads_do_not_mutate_store(self):
        store = EntityStore.seeded()
        store.clients.append(Client(id=store.next_id(), name="Alice", loan=Decimal("5")))
        engine = AnalyticsEngine(store)
        before = store.to_dict()
        engine.sales_overview()
        engine.financial_report()
        engine.dashboard()
        assert store.to_dict() == before

    def test_engine_low_stock_threshold(self, products):
        store = EntityStore(products=products)
        engine = AnalyticsEngine(store, low_stock_threshold=5)
        assert [p.name for p in engine.low_stock_products()] == ["Rice", "Salt"]
        assert [p.name for p in engine.low_stock_products(threshold=25)] == ["Rice", "Oil", "Salt"]
