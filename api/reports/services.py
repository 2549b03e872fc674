"""
Services for handling reports business logic.
"""
import logging
from datetime import datetime
from typing import Optional

from firebase_admin import firestore

from api.common.cache import (
    DASHBOARD_CACHE_TTL, SALES_AGGREGATES_PREFIX, generate_cache_key, get_cache, set_cache,
)
from api.common.errors import TransportError
from api.common.settings import APP_TIMEZONE, LOW_STOCK_THRESHOLD, TOP_PRODUCTS_LIMIT
from api.reports.aggregation import (
    RANGE_TITLES, TimeRange, aggregate_sales, range_window, rank_top_products,
    tally_payment_methods, total_for_day,
)
from .schemas import DashboardResponse, RevenueSeriesSchema, SummaryResponse, TopProductSchema

logger = logging.getLogger(__name__)

# Firebase collections
PRODUCTS_COLLECTION = "products"
SALES_COLLECTION = "sales"
SALE_ITEMS_COLLECTION = "sale_items"


def get_firestore_client():
    """Get Firestore client instance."""
    return firestore.client()


def count_products(db) -> tuple:
    """Return (total products, products below the low-stock threshold)."""
    products_ref = db.collection(PRODUCTS_COLLECTION)
    total = products_ref.count().get()[0][0].value
    low_stock = products_ref.where("stockCount", "<", LOW_STOCK_THRESHOLD).count().get()[0][0].value
    return total, low_stock


def sales_in_window(db, window) -> list:
    """Sale headers created inside the window."""
    query = (
        db.collection(SALES_COLLECTION)
        .where("createdAt", ">=", window.start)
        .where("createdAt", "<", window.end)
    )
    return [doc.to_dict() for doc in query.stream()]


async def get_all_time_aggregates(db) -> dict:
    """
    Payment method counts and best sellers over every recorded sale.

    These scan whole collections, so the result is cached until the next checkout
    invalidates it or DASHBOARD_CACHE_TTL passes.
    """
    cache_key = generate_cache_key(SALES_AGGREGATES_PREFIX, {"top": TOP_PRODUCTS_LIMIT})
    cached = await get_cache(cache_key)
    if cached is not None:
        logger.debug("Using cached sales aggregates")
        return cached

    payment_methods = tally_payment_methods(
        (doc.to_dict() or {}).get("paymentMethod")
        for doc in db.collection(SALES_COLLECTION).stream()
    )

    sale_items = [doc.to_dict() or {} for doc in db.collection(SALE_ITEMS_COLLECTION).stream()]

    # Older sale items may lack the name snapshot; fall back to the product's current name
    product_names = {}
    if any(not item.get("productName") for item in sale_items):
        product_names = {
            doc.id: (doc.to_dict() or {}).get("name")
            for doc in db.collection(PRODUCTS_COLLECTION).stream()
        }

    aggregates = {
        "paymentMethods": payment_methods,
        "topProducts": rank_top_products(sale_items, product_names, TOP_PRODUCTS_LIMIT),
    }
    await set_cache(cache_key, aggregates, ttl=DASHBOARD_CACHE_TTL)
    return aggregates


async def get_summary(now: Optional[datetime] = None) -> SummaryResponse:
    """
    Home screen numbers: product count, low-stock count, and today's sales.

    Raises:
        TransportError: If a database read fails
    """
    now = now or datetime.now(APP_TIMEZONE)

    try:
        db = get_firestore_client()
        total_products, low_stock = count_products(db)

        window = range_window(TimeRange.TODAY, now)
        today_sales = sales_in_window(db, window)

        return SummaryResponse(
            totalProducts=total_products,
            lowStockItems=low_stock,
            todaySales=len(today_sales),
            todayRevenue=total_for_day(today_sales, window.first_day),
            date=now
        )

    except Exception as exc:
        logger.exception("Failed to build summary")
        raise TransportError(str(exc))


async def get_dashboard(time_range: TimeRange, now: Optional[datetime] = None) -> DashboardResponse:
    """
    Dashboard analytics for the selected range.

    Revenue is bucketed over the range window; today's revenue, the payment method
    tally and the top products do not depend on the range.

    Raises:
        TransportError: If a database read fails
    """
    now = now or datetime.now(APP_TIMEZONE)

    try:
        db = get_firestore_client()
        total_products, low_stock = count_products(db)

        today_window = range_window(TimeRange.TODAY, now)
        today_revenue = total_for_day(sales_in_window(db, today_window), today_window.first_day)

        window = range_window(time_range, now)
        if time_range == TimeRange.TODAY:
            buckets = []
            range_revenue = today_revenue
        else:
            buckets = aggregate_sales(sales_in_window(db, window), window)
            range_revenue = sum(buckets)

        aggregates = await get_all_time_aggregates(db)

        logger.debug("Dashboard %s: %d buckets, revenue %s", time_range.value, len(buckets), range_revenue)

        return DashboardResponse(
            range=time_range.value,
            title=RANGE_TITLES[time_range],
            windowStart=window.start,
            windowEnd=window.end,
            totalProducts=total_products,
            lowStockItems=low_stock,
            todayRevenue=today_revenue,
            rangeRevenue=range_revenue,
            revenue=RevenueSeriesSchema(labels=window.labels, data=buckets),
            paymentMethods=aggregates["paymentMethods"],
            topProducts=[TopProductSchema(**p) for p in aggregates["topProducts"]]
        )

    except Exception as exc:
        logger.exception("Failed to build dashboard for %s", time_range.value)
        raise TransportError(str(exc))
