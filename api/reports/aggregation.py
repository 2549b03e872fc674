"""
Dashboard aggregation: bucketing sales into the selected time range and the
range-independent tallies (payment methods, best-selling products).

Everything here is pure; services.py reads the records and passes them in.
All calendar arithmetic happens in the shop's local time zone.
"""
import calendar
import math
from collections import OrderedDict
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pytz

from api.common.settings import APP_TIMEZONE, TOP_PRODUCTS_LIMIT, UNKNOWN_PRODUCT_NAME
from api.sales.schemas import PaymentMethod

WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


class TimeRange(str, Enum):
    TODAY = "today"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


RANGE_TITLES = {
    TimeRange.TODAY: "Today's Sales",
    TimeRange.WEEKLY: "Weekly Revenue",
    TimeRange.MONTHLY: "Monthly Revenue",
    TimeRange.YEARLY: "Yearly Revenue",
}


class RangeWindow:
    """
    The local calendar days covered by a range, and the chart labels for it.
    ``start`` is inclusive and ``end`` exclusive, both as aware datetimes.
    """

    def __init__(self, time_range: TimeRange, first_day: date, last_day: date,
                 labels: List[str], tz=APP_TIMEZONE):
        self.time_range = time_range
        self.first_day = first_day
        self.last_day = last_day
        self.labels = labels
        self.tz = tz
        self.start = tz.localize(datetime.combine(first_day, datetime.min.time()))
        self.end = tz.localize(datetime.combine(last_day + timedelta(days=1), datetime.min.time()))

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def bucket_index(self, day: date) -> Optional[int]:
        """Index of the bucket a local sale day falls in, or None if outside the window."""
        if not self.contains(day):
            return None

        if self.time_range == TimeRange.WEEKLY:
            return (day - self.first_day).days
        if self.time_range == TimeRange.MONTHLY:
            # 7-day windows anchored on the 1st: W1 is days 1-7, W2 days 8-14, ...
            return (day.day - 1) // 7
        if self.time_range == TimeRange.YEARLY:
            return day.month - 1
        return None


def range_window(time_range: TimeRange, now: datetime, tz=APP_TIMEZONE) -> RangeWindow:
    """
    Compute the window for a range around ``now``.

    today: the current day, no buckets
    weekly: Sunday to Saturday of the current week, 7 buckets
    monthly: the current month, one bucket per started 7-day window (W1..W5)
    yearly: the current year, 12 buckets
    """
    today = to_local(now, tz).date()

    if time_range == TimeRange.WEEKLY:
        # date.weekday() is Monday=0; weeks here start on Sunday
        first = today - timedelta(days=(today.weekday() + 1) % 7)
        return RangeWindow(time_range, first, first + timedelta(days=6), list(WEEKDAY_LABELS), tz)

    if time_range == TimeRange.MONTHLY:
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        buckets = math.ceil(days_in_month / 7)
        return RangeWindow(
            time_range,
            today.replace(day=1),
            today.replace(day=days_in_month),
            [f"W{i + 1}" for i in range(buckets)],
            tz
        )

    if time_range == TimeRange.YEARLY:
        return RangeWindow(
            time_range, date(today.year, 1, 1), date(today.year, 12, 31), list(MONTH_LABELS), tz
        )

    return RangeWindow(TimeRange.TODAY, today, today, [], tz)


def to_local(value: Any, tz=APP_TIMEZONE) -> Optional[datetime]:
    """
    Convert a stored timestamp to local time.

    Accepts datetimes and ISO-8601 strings; naive values are taken as UTC.
    Returns None for anything unparseable.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if not isinstance(value, datetime):
        return None

    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(tz)


def to_amount(value: Any) -> Optional[float]:
    """A finite float, or None."""
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) else None


def sanitize(values: Iterable[float]) -> List[float]:
    """Clamp negative and non-finite bucket values to zero."""
    return [v if isinstance(v, (int, float)) and math.isfinite(v) and v > 0 else 0.0 for v in values]


def aggregate_sales(sales: Iterable[Dict[str, Any]], window: RangeWindow) -> List[float]:
    """
    Sum sale totals into the window's buckets.

    Each sale is a dict with ``createdAt`` and ``totalAmount``. Sales outside the
    window, without a parseable timestamp, or without a finite amount are dropped.
    Returns the sanitized buckets (empty for the today range).
    """
    buckets = [0.0] * len(window.labels)

    for sale in sales:
        created_at = to_local(sale.get('createdAt'), window.tz)
        amount = to_amount(sale.get('totalAmount'))
        if created_at is None or amount is None:
            continue

        index = window.bucket_index(created_at.date())
        if index is not None and 0 <= index < len(buckets):
            buckets[index] += amount

    return sanitize(buckets)


def total_for_day(sales: Iterable[Dict[str, Any]], day: date, tz=APP_TIMEZONE) -> float:
    """Sum of finite sale totals whose local date is ``day``."""
    total = 0.0
    for sale in sales:
        created_at = to_local(sale.get('createdAt'), tz)
        amount = to_amount(sale.get('totalAmount'))
        if created_at is not None and amount is not None and created_at.date() == day:
            total += amount
    return total


def tally_payment_methods(methods: Iterable[Any]) -> Dict[str, int]:
    """Count sales per known payment method; anything else is ignored."""
    counts = OrderedDict((m.value, 0) for m in PaymentMethod)
    for method in methods:
        if method in counts:
            counts[method] += 1
    return dict(counts)


def rank_top_products(sale_items: Iterable[Dict[str, Any]], product_names: Dict[str, str] = None,
                      limit: int = TOP_PRODUCTS_LIMIT) -> List[Dict[str, Any]]:
    """
    Best-selling products by total quantity sold.

    Ties keep the order in which products were first seen. The name comes from the
    sale item snapshot, then the current product name, then a placeholder.
    """
    product_names = product_names or {}
    totals: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    for item in sale_items:
        product_id = item.get('productId')
        quantity = to_amount(item.get('quantity'))
        if not product_id or quantity is None:
            continue

        entry = totals.get(product_id)
        if entry is None:
            entry = {'id': product_id, 'name': None, 'quantity': 0}
            totals[product_id] = entry
        entry['quantity'] += int(quantity)
        if not entry['name'] and item.get('productName'):
            entry['name'] = item['productName']

    # sorted() is stable, so equal quantities stay in first-seen order
    ranked = sorted(totals.values(), key=lambda e: e['quantity'], reverse=True)[:limit]

    for entry in ranked:
        if not entry['name']:
            entry['name'] = product_names.get(entry['id']) or UNKNOWN_PRODUCT_NAME
    return ranked
