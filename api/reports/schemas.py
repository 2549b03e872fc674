"""
Schemas for reports operations.
"""
from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field


class SummaryResponse(BaseModel):
    """Home screen summary."""
    totalProducts: int = Field(..., description="Number of products in the catalog")
    lowStockItems: int = Field(..., description="Products with stock below the low-stock threshold")
    todaySales: int = Field(..., description="Number of sales recorded today")
    todayRevenue: float = Field(..., description="Revenue recorded today")
    date: datetime = Field(..., description="Local date time")


class RevenueSeriesSchema(BaseModel):
    """Chart data for the selected range; empty for the today range."""
    labels: List[str] = Field(default_factory=list, description="Bucket labels (Sun..Sat, W1..Wn, Jan..Dec)")
    data: List[float] = Field(default_factory=list, description="Revenue per bucket, never negative")


class TopProductSchema(BaseModel):
    id: str
    name: str
    quantity: int = Field(..., description="Units sold over all time")


class DashboardResponse(BaseModel):
    """Dashboard analytics for one time range."""
    range: str = Field(..., description="today, weekly, monthly or yearly")
    title: str = Field(..., description="Heading for the revenue card")
    windowStart: datetime = Field(..., description="First instant of the range (local time)")
    windowEnd: datetime = Field(..., description="First instant after the range (local time)")
    totalProducts: int
    lowStockItems: int
    todayRevenue: float
    rangeRevenue: float = Field(..., description="Sum of the revenue buckets (today's total for the today range)")
    revenue: RevenueSeriesSchema
    paymentMethods: Dict[str, int] = Field(..., description="Sales per payment method over all time")
    topProducts: List[TopProductSchema] = Field(..., description="Best sellers by units over all time")
