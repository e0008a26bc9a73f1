"""
Analytics Module

Read-only aggregations over the transaction history: revenue buckets, top
products, client statistics, financial reports and dashboard figures.

The module-level functions are pure: they take collections and return
plain dictionaries, never touching the store. ``AnalyticsEngine`` takes a
consistent snapshot of the store under its writer lock and feeds it to
them, so a report never observes a half-applied mutation.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from .clients import Client
from .errors import ValidationError
from .notifications import Notification
from .products import Product
from .records import parse_datetime
from .storage import EntityStore
from .transactions import LoanPayment, Sale, Transaction


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ZERO = Decimal('0')
CENT = Decimal('0.01')


class ReportPeriod(Enum):
    """Sales bucketing periods"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _sales(transactions: Iterable[Transaction]) -> List[Sale]:
    return [t for t in transactions if isinstance(t, Sale)]


def _loan_payments(transactions: Iterable[Transaction]) -> List[LoanPayment]:
    return [t for t in transactions if isinstance(t, LoanPayment)]


def _utc_date(moment: datetime) -> date:
    return moment.astimezone(timezone.utc).date()


def _average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / count).quantize(CENT, rounding=ROUND_HALF_UP)


def bucket_start(moment: datetime, period: ReportPeriod) -> date:
    """First calendar day of the bucket containing ``moment`` (UTC)"""
    day = _utc_date(moment)
    if period == ReportPeriod.DAILY:
        return day
    if period == ReportPeriod.WEEKLY:
        return day - timedelta(days=day.weekday())
    if period == ReportPeriod.MONTHLY:
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def bucket_label(start: date, period: ReportPeriod) -> str:
    if period == ReportPeriod.DAILY:
        return start.isoformat()
    if period == ReportPeriod.WEEKLY:
        return f"Week of {start.isoformat()}"
    if period == ReportPeriod.MONTHLY:
        return f"{start.year:04d}-{start.month:02d}"
    return f"{start.year:04d}"


def bucket_sales_by_period(transactions: Iterable[Transaction],
                           period: ReportPeriod = ReportPeriod.MONTHLY) -> List[Dict[str, Any]]:
    """
    Group sales into time buckets, summing paid revenue.

    Buckets are ordered by their start date, not by their display label.
    """
    buckets: Dict[date, Dict[str, Any]] = {}
    for sale in _sales(transactions):
        start = bucket_start(sale.date, period)
        bucket = buckets.get(start)
        if bucket is None:
            bucket = buckets[start] = {
                "period": bucket_label(start, period),
                "start": start,
                "revenue": ZERO,
                "transactions": 0,
            }
        bucket["revenue"] += sale.paid
        bucket["transactions"] += 1

    return [buckets[start] for start in sorted(buckets)]


def top_selling_products(transactions: Iterable[Transaction], limit: int = 10) -> List[Dict[str, Any]]:
    """
    Rank products by revenue from recorded line-item prices.

    Equal revenue keeps first-sale order.
    """
    products: Dict[Any, Dict[str, Any]] = {}
    for sale in _sales(transactions):
        for item in sale.items:
            key = item.product_id if item.product_id is not None else f"name:{item.name}"
            entry = products.get(key)
            if entry is None:
                entry = products[key] = {
                    "product_id": item.product_id,
                    "product_name": item.name,
                    "quantity": 0,
                    "revenue": ZERO,
                }
            entry["quantity"] += item.quantity
            entry["revenue"] += item.line_total

    ranked = sorted(products.values(), key=lambda entry: entry["revenue"], reverse=True)
    return ranked[:max(limit, 0)]


def client_statistics(transactions: Iterable[Transaction],
                      clients: Iterable[Client]) -> List[Dict[str, Any]]:
    """Per-client spend, purchase count and last purchase, biggest spenders first"""
    names = {client.id: client.name for client in clients}
    stats: Dict[int, Dict[str, Any]] = {}
    for sale in _sales(transactions):
        entry = stats.get(sale.client_id)
        if entry is None:
            entry = stats[sale.client_id] = {
                "client_id": sale.client_id,
                "client_name": names.get(sale.client_id, "Unknown"),
                "total_spent": ZERO,
                "transactions": 0,
                "last_purchase": sale.date,
            }
        entry["total_spent"] += sale.paid
        entry["transactions"] += 1
        if sale.date > entry["last_purchase"]:
            entry["last_purchase"] = sale.date

    return sorted(stats.values(), key=lambda entry: entry["total_spent"], reverse=True)


def average_sale(transactions: Iterable[Transaction]) -> Decimal:
    sales = _sales(transactions)
    return _average(sum((s.paid for s in sales), ZERO), len(sales))


def parse_report_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a report window bound.

    Bare dates cover the whole day: as a start bound they mean 00:00 UTC,
    as an end bound the last instant of that day.
    """
    if value is None or value == "":
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            moment = datetime.combine(day, time.max if end_of_day else time.min)
            return moment.replace(tzinfo=timezone.utc)
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def financial_report(
    transactions: Iterable[Transaction],
    clients: Iterable[Client],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Revenue and counts over an inclusive [start, end] window.

    The ``loans`` block is not part of the window: it reports the clients'
    balances as they stand at ``now``, whatever window was requested.
    Naive bounds are taken as UTC.
    """
    now = parse_datetime(now) if now else datetime.now(timezone.utc)
    start = parse_datetime(start) if start else EPOCH
    end = parse_datetime(end) if end else now
    if start > end:
        raise ValidationError("Start date must not be after end date")

    window = [t for t in transactions if start <= t.date <= end]
    sales = _sales(window)
    payments = _loan_payments(window)
    sales_revenue = sum((s.paid for s in sales), ZERO)
    payments_revenue = sum((p.amount for p in payments), ZERO)
    clients = list(clients)

    return {
        "period": {"start_date": start, "end_date": end},
        "revenue": {
            "total_sales": sales_revenue,
            "total_loan_payments": payments_revenue,
            "gross_revenue": sales_revenue + payments_revenue,
        },
        "transactions": {
            "total_sales": len(sales),
            "total_loan_payments": len(payments),
            "average_sale_value": _average(sales_revenue, len(sales)),
        },
        "loans": {
            "as_of": now,
            "active_loans": sum(1 for c in clients if c.has_loan),
            "total_outstanding": sum((c.loan for c in clients), ZERO),
        },
    }


def sales_overview(
    transactions: Iterable[Transaction],
    clients: Iterable[Client],
    period: ReportPeriod = ReportPeriod.MONTHLY,
    limit: int = 10
) -> Dict[str, Any]:
    transactions = list(transactions)
    buckets = bucket_sales_by_period(transactions, period)
    return {
        "sales_overview": buckets,
        "top_products": top_selling_products(transactions, limit),
        "client_stats": client_statistics(transactions, clients),
        "summary": {
            "total_revenue": sum((b["revenue"] for b in buckets), ZERO),
            "total_transactions": sum(b["transactions"] for b in buckets),
            "average_sale": average_sale(transactions),
        },
    }


def client_loan_history(transactions: Iterable[Transaction], client_id: int) -> List[Dict[str, Any]]:
    """Sales that created a loan plus every repayment, in log order"""
    return [
        t.to_dict() for t in transactions
        if t.client_id == client_id
        and (isinstance(t, LoanPayment) or t.loan > 0)
    ]


def client_purchase_history(transactions: Iterable[Transaction], client_id: int) -> List[Dict[str, Any]]:
    """Client's sales, newest first"""
    sales = [s for s in _sales(transactions) if s.client_id == client_id]
    sales.sort(key=lambda s: s.date, reverse=True)
    return [
        {
            "id": sale.id,
            "date": sale.date,
            "total": sale.total,
            "paid": sale.paid,
            "loan": sale.loan,
            "items": [
                {
                    "product_name": item.name,
                    "quantity": item.quantity,
                    "unit_price": item.price,
                    "total_price": item.line_total,
                    "type": item.type,
                }
                for item in sale.items
            ],
        }
        for sale in sales
    ]


def search_clients(clients: Iterable[Client], query: str) -> List[Client]:
    needle = query.lower()
    return [
        c for c in clients
        if needle in c.name.lower() or query in (c.phone or "")
    ]


def low_stock_products(products: Iterable[Product], threshold: int = 5) -> List[Product]:
    return [p for p in products if p.is_low_stock(threshold)]


def inventory_report(products: Iterable[Product], threshold: int = 5) -> Dict[str, Any]:
    products = list(products)
    tracked = [p for p in products if p.is_tracked]
    return {
        "products": [p.to_dict() for p in products],
        "low_stock": [p.to_dict() for p in low_stock_products(products, threshold)],
        "summary": {
            "total_products": len(products),
            "tracked_products": len(tracked),
            "units_in_stock": sum(p.stock for p in tracked),
            "stock_value": sum((p.price * p.stock for p in tracked), ZERO),
        },
    }


def _period_income(sales: List[Sale], since: date, now: datetime) -> Decimal:
    today = _utc_date(now)
    return sum((s.paid for s in sales if since <= _utc_date(s.date) <= today), ZERO)


def dashboard_summary(
    transactions: Iterable[Transaction],
    clients: Iterable[Client],
    products: Iterable[Product],
    notifications: List[Notification],
    now: Optional[datetime] = None,
    threshold: int = 5,
    recent_limit: int = 10
) -> Dict[str, Any]:
    """
    Landing-page figures.

    Income is summed over sales paid today, this ISO week and this month.
    ``notifications`` is expected in log order; the newest come first here.
    """
    now = parse_datetime(now) if now else datetime.now(timezone.utc)
    sales = _sales(transactions)
    return {
        "daily_income": _period_income(sales, bucket_start(now, ReportPeriod.DAILY), now),
        "weekly_income": _period_income(sales, bucket_start(now, ReportPeriod.WEEKLY), now),
        "monthly_income": _period_income(sales, bucket_start(now, ReportPeriod.MONTHLY), now),
        "clients_with_loans": [c.to_dict() for c in clients if c.has_loan],
        "low_stock_products": [p.to_dict() for p in low_stock_products(products, threshold)],
        "notifications": [
            n.to_dict() for n in reversed(notifications[-recent_limit:])
        ] if recent_limit > 0 else [],
    }


class AnalyticsEngine:
    """Runs the aggregations above over a consistent copy of the store"""

    def __init__(
        self,
        store: EntityStore,
        low_stock_threshold: int = 5,
        recent_notifications_limit: int = 10,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.low_stock_threshold = low_stock_threshold
        self.recent_notifications_limit = recent_notifications_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _view(self) -> EntityStore:
        return self.store.snapshot()

    def bucket_sales_by_period(self, period: ReportPeriod = ReportPeriod.MONTHLY) -> List[Dict[str, Any]]:
        return bucket_sales_by_period(self._view().transactions, period)

    def top_selling_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        return top_selling_products(self._view().transactions, limit)

    def client_statistics(self) -> List[Dict[str, Any]]:
        view = self._view()
        return client_statistics(view.transactions, view.clients)

    def sales_overview(self, period: ReportPeriod = ReportPeriod.MONTHLY) -> Dict[str, Any]:
        view = self._view()
        return sales_overview(view.transactions, view.clients, period)

    def financial_report(self, start: Optional[datetime] = None,
                         end: Optional[datetime] = None) -> Dict[str, Any]:
        view = self._view()
        return financial_report(view.transactions, view.clients, start, end, now=self._clock())

    def inventory_report(self) -> Dict[str, Any]:
        return inventory_report(self._view().products, self.low_stock_threshold)

    def dashboard(self) -> Dict[str, Any]:
        view = self._view()
        return dashboard_summary(
            view.transactions, view.clients, view.products,
            view.notifications.all(),
            now=self._clock(),
            threshold=self.low_stock_threshold,
            recent_limit=self.recent_notifications_limit,
        )

    def client_loan_history(self, client_id: int) -> List[Dict[str, Any]]:
        return client_loan_history(self._view().transactions, client_id)

    def client_purchase_history(self, client_id: int) -> List[Dict[str, Any]]:
        return client_purchase_history(self._view().transactions, client_id)

    def search_clients(self, query: str) -> List[Client]:
        return search_clients(self._view().clients, query)

    def low_stock_products(self, threshold: Optional[int] = None) -> List[Product]:
        if threshold is None:
            threshold = self.low_stock_threshold
        return low_stock_products(self._view().products, threshold)
