"""
This module defines the Pydantic models used for category management.
These models are used for request and response validation and serialization.
"""

from typing import Optional

from pydantic import BaseModel, Field

from api.common.schemas import TimestampMixin, PaginationResponse

CATEGORY_NAME_MAX_LENGTH = 100


class CategoryCreate(BaseModel):
    """
    Represents the request data for creating a new category.
    The name is trimmed and checked by the service.
    """
    name: str = Field(..., description="Category name")


class CategoryUpdate(BaseModel):
    """
    Represents the request data for renaming a category.
    """
    name: str = Field(..., description="New category name")


class CategoryInDB(TimestampMixin):
    """
    Represents a category as stored in the database, including all metadata.
    """
    id: str = Field(..., description="Unique category identifier")
    name: str = Field(..., description="Category name")
    productCount: Optional[int] = Field(default=0, description="Number of products in this category")


class CategoryDetailData(BaseModel):
    """
    Container for a single category item.
    """
    item: CategoryInDB


class CategoriesData(PaginationResponse[CategoryInDB]):
    """
    Represents a paginated list of categories.
    Inherits pagination fields from PaginationResponse and specifies
    CategoryInDB as the type for 'items'.
    """
    pass
