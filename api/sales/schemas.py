"""
This module defines the Pydantic models used for the cart, checkout and sales history.
These models are used for request and response validation and serialization.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from api.common.schemas import PaginationResponse


class PaymentMethod(str, Enum):
    """Payment methods accepted at the counter."""
    CASH = "Cash"
    GPAY = "GPay"
    PHONEPE = "PhonePe"


class ProductSnapshot(BaseModel):
    """
    The product as it was read when it was added to the cart.
    Its stockCount bounds the cart quantity; checkout re-reads the live stock.
    """
    id: str
    name: str
    price: float
    category: str = ""
    stockCount: int
    sku: Optional[str] = None


class CartLineData(BaseModel):
    product: ProductSnapshot
    quantity: int
    lineTotal: float


class CartData(BaseModel):
    """The signed-in user's sale in progress."""
    items: List[CartLineData] = []
    itemCount: int = 0
    total: float = 0
    paymentMethod: PaymentMethod = PaymentMethod.CASH
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None


class AddCartItemRequest(BaseModel):
    productId: str = Field(..., min_length=1)


class UpdateQuantityRequest(BaseModel):
    """Zero or a negative quantity removes the line."""
    quantity: int


class PaymentMethodRequest(BaseModel):
    paymentMethod: str


class CustomerRequest(BaseModel):
    customerName: Optional[str] = Field(None, max_length=100)
    customerPhone: Optional[str] = Field(None, max_length=20)


class PaymentMethodResult(BaseModel):
    """Whether the selection changed anything, plus the resulting cart."""
    changed: bool
    cart: CartData


class SaleItemData(BaseModel):
    id: Optional[str] = None
    saleId: str
    productId: str
    productName: str
    quantity: int
    price: float
    total: float


class SaleData(BaseModel):
    """A recorded sale header with its line items."""
    id: str
    customerName: str
    customerPhone: Optional[str] = None
    paymentMethod: str
    subtotal: float
    tax: float
    totalAmount: float
    createdAt: Optional[datetime] = None
    items: List[SaleItemData] = []

    @field_serializer('createdAt')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO format string."""
        return value.isoformat() if value else None


class SalesHistoryData(PaginationResponse[SaleData]):
    """
    Represents a paginated list of sales, newest first.
    """
    pass


class InvoiceData(BaseModel):
    """What the invoice view needs to render one sale."""
    invoiceNumber: str
    sale: SaleData


class CheckoutResultData(BaseModel):
    """Outcome of a checkout attempt."""
    status: str
    saleId: Optional[str] = None
    createdAt: Optional[datetime] = None
    subtotal: float
    tax: float
    totalAmount: float
    invoice: Optional[InvoiceData] = None

    @field_serializer('createdAt')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO format string."""
        return value.isoformat() if value else None
