"""
Reports management routers.
"""
from fastapi import APIRouter, Depends, Query, status

from api.auth.dependencies import get_session, require_admin
from api.auth.schemas import Session
from api.common.errors import PosError
from api.common.schemas import JSendResponse
from .aggregation import TimeRange
from .schemas import DashboardResponse, SummaryResponse
from .services import get_dashboard, get_summary

router = APIRouter()


@router.get("/summary", response_model=JSendResponse[SummaryResponse])
async def get_home_summary(session: Session = Depends(get_session)):
    """
    Get the home screen summary.

    Returns summary statistics including:
    - totalProducts: Number of products
    - lowStockItems: Products with stock below the low-stock threshold
    - todaySales / todayRevenue: Sales recorded today in the shop's time zone
    - date: Current local date time
    """
    try:
        return JSendResponse.success(await get_summary())
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=f"Failed to get summary: {str(e)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/dashboard", response_model=JSendResponse[DashboardResponse])
async def get_dashboard_report(
    range: TimeRange = Query(TimeRange.WEEKLY, description="today, weekly, monthly or yearly"),
    session: Session = Depends(require_admin)
):
    """
    Get dashboard analytics for the selected time range.

    Args:
        range: The time range to bucket revenue over (defaults to weekly)
        session: The admin's session (injected)

    Returns:
        JSendResponse containing revenue buckets, today's revenue, the payment
        method tally and the best-selling products
    """
    try:
        return JSendResponse.success(await get_dashboard(range))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=f"Failed to get dashboard: {str(e)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
