"""
This module defines the Pydantic models used for product management.
These models are used for request and response validation and serialization.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from api.common.schemas import TimestampMixin, PaginationResponse


class ProductBase(BaseModel):
    """
    Base model for product data that is common to create, update and response models.
    """
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=100)
    stockCount: int = Field(0, ge=0)
    sku: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    imageUrl: Optional[str] = None

    @field_validator('name', 'category', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ProductCreate(ProductBase):
    """
    Represents the request data for creating a new product.
    """
    pass


class ProductUpdate(BaseModel):
    """
    Represents the request data for updating an existing product.
    All fields are optional as only provided fields will be updated.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    stockCount: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    imageUrl: Optional[str] = None

    @field_validator('name', 'category', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ProductInDB(TimestampMixin):
    """
    Represents a product as stored in the database, including all metadata.
    Stored documents are not re-validated against the input limits.
    """
    id: str
    name: str = ""
    price: float = 0
    category: str = ""
    stockCount: int = 0
    sku: Optional[str] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None


class ProductDetailData(BaseModel):
    """
    Container for a single product item.
    """
    item: ProductInDB


class ProductsData(PaginationResponse[ProductInDB]):
    """
    Represents a paginated list of products for response.
    """
    pass
