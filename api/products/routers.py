from fastapi import APIRouter, HTTPException, Query, Path, UploadFile, File, Depends
from starlette import status

from api.auth.dependencies import get_session, require_admin
from api.auth.schemas import Session
from api.common.errors import PosError
from api.common.schemas import JSendResponse
from api.common.storage import upload_image
from api.products.schemas import (
    ProductInDB, ProductsData, ProductCreate, ProductUpdate, ProductDetailData,
)
from api.products.services import (
    get_products, get_catalog, get_product_by_id, create_product,
    update_product, delete_product, search_products as search_products_service
)

router = APIRouter()


@router.get("", response_model=JSendResponse[ProductsData])
async def list_products(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        session: Session = Depends(get_session)
):
    """
    Get every product ordered by name, with pagination.

    Args:
        page: The page number (starts at 1)
        size: Number of products per page (max 1000)
        session: The signed-in user's session (injected)

    Returns:
        JSendResponse containing products data and pagination info
    """
    try:
        offset = (page - 1) * size
        products_data = await get_products(size, offset)
        return JSendResponse.success(products_data)
    except PosError as e:
        return JSendResponse.from_error(e)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/catalog", response_model=JSendResponse[ProductsData])
async def list_catalog(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        session: Session = Depends(get_session)
):
    """
    Get the products that can be sold right now (stock above zero), ordered by name.
    """
    try:
        offset = (page - 1) * size
        return JSendResponse.success(await get_catalog(size, offset))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/search", response_model=JSendResponse[ProductsData])
async def search_products(
        q: str = Query(..., description="Search query"),
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        session: Session = Depends(get_session)
):
    """
    Search for products by name, SKU, category or description.

    Args:
        q: The search query
        page: The page number (starts at 1)
        size: Number of products per page (max 1000)
        session: The signed-in user's session (injected)

    Returns:
        JSendResponse containing a list of matching products
    """
    try:
        offset = (page - 1) * size
        products_data = await search_products_service(q, size, offset)
        return JSendResponse.success(products_data)
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.post("/upload-image", response_model=JSendResponse[dict])
async def upload_product_image(
        file: UploadFile = File(...),
        session: Session = Depends(require_admin)
):
    """
    Upload an image for a product. The returned URL is then sent with the product create/update.
    """
    try:
        image_url = await upload_image(file)
        return JSendResponse.success({"imageUrl": image_url})
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/{product_id}", response_model=JSendResponse[ProductDetailData])
async def get_product(
        product_id: str = Path(..., description="The ID of the product to retrieve"),
        session: Session = Depends(get_session)
):
    """
    Get a product by ID.

    Args:
        product_id: The unique product identifier
        session: The signed-in user's session (injected)

    Returns:
        JSendResponse containing the product data
    """
    try:
        product = await get_product_by_id(product_id)
        return JSendResponse.success(ProductDetailData(item=product))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.post("", response_model=JSendResponse[ProductInDB])
async def create_product_endpoint(
        product_data: ProductCreate,
        session: Session = Depends(require_admin)
):
    """
    Create a new product. The category must already exist.

    Args:
        product_data: The product data to create
        session: The admin's session (injected)

    Returns:
        JSendResponse containing the created product
    """
    try:
        # Filter out None values to avoid overwriting with nulls
        data = {k: v for k, v in product_data.model_dump().items() if v is not None}
        created_product = await create_product(data)
        return JSendResponse.success(created_product)
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.put("/{product_id}", response_model=JSendResponse[ProductInDB])
async def update_existing_product(
        product_id: str = Path(..., description="The ID of the product to update"),
        product_data: ProductUpdate = ...,
        session: Session = Depends(require_admin)
):
    """
    Update an existing product.

    Args:
        product_id: The unique product identifier
        product_data: The product data to update
        session: The admin's session (injected)

    Returns:
        JSendResponse containing the updated product
    """
    try:
        data = {k: v for k, v in product_data.model_dump().items() if v is not None}
        updated_product = await update_product(product_id, data)
        return JSendResponse.success(updated_product)
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.delete("/{product_id}", response_model=JSendResponse[dict])
async def delete_existing_product(
        product_id: str = Path(..., description="The ID of the product to delete"),
        session: Session = Depends(require_admin)
):
    """
    Delete a product by ID.
    """
    try:
        await delete_product(product_id)
        return JSendResponse.success({"message": "Product deleted successfully"})
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
