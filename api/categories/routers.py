"""
FastAPI routers for category management endpoints.
Handles HTTP requests and responses for category operations.
"""

from fastapi import APIRouter, Query, Path, Depends
from starlette import status

from api.auth.dependencies import get_session, require_admin
from api.auth.schemas import Session
from api.common.errors import PosError
from api.common.schemas import JSendResponse
from api.categories.schemas import (
    CategoryInDB, CategoriesData, CategoryCreate, CategoryUpdate, CategoryDetailData,
)
from api.categories.services import (
    get_categories, create_category, update_category, delete_category
)

router = APIRouter()


@router.get("", response_model=JSendResponse[CategoriesData])
async def list_categories(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        session: Session = Depends(get_session)
):
    """
    Get the categories ordered by name, with pagination.

    Args:
        page: The page number (starts at 1)
        size: Number of categories per page (max 1000)
        session: The signed-in user's session (injected)

    Returns:
        JSendResponse containing categories data and pagination info
    """
    try:
        offset = (page - 1) * size
        categories_data = await get_categories(size, offset)
        return JSendResponse.success(categories_data)
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.post("", response_model=JSendResponse[CategoryDetailData])
async def create_category_endpoint(
        category_data: CategoryCreate,
        session: Session = Depends(require_admin)
):
    """
    Create a new category.

    Args:
        category_data: The category name
        session: The admin's session (injected)

    Returns:
        JSendResponse containing the created category
    """
    try:
        category = await create_category(category_data.name)
        return JSendResponse.success(CategoryDetailData(item=category))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.put("/{category_id}", response_model=JSendResponse[CategoryInDB])
async def update_existing_category(
        category_id: str = Path(..., description="The ID of the category to rename"),
        category_data: CategoryUpdate = ...,
        session: Session = Depends(require_admin)
):
    """
    Rename a category. Products in the category follow the new name.
    """
    try:
        updated_category = await update_category(category_id, category_data.name)
        return JSendResponse.success(updated_category)
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.delete("/{category_id}", response_model=JSendResponse[dict])
async def delete_existing_category(
        category_id: str = Path(..., description="The ID of the category to delete"),
        session: Session = Depends(require_admin)
):
    """
    Delete a category. Refused while any product still uses it.
    """
    try:
        await delete_category(category_id)
        return JSendResponse.success({"message": "Category deleted successfully"})
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
