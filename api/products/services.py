import logging

from firebase_admin import firestore

from api.common.errors import NotFoundError, PosError, TransportError, ValidationFailedError
from api.common.schemas import paginate
from api.common.search import search_products as rank_products
from api.common.storage import delete_image_by_url, mark_image_permanent
from api.products.schemas import ProductInDB, ProductsData

logger = logging.getLogger(__name__)

PRODUCTS_COLLECTION = 'products'
CATEGORIES_COLLECTION = 'categories'


def get_firestore_client():
    return firestore.client()


def doc_to_product(doc) -> ProductInDB:
    product_data = doc.to_dict() or {}
    product_data['id'] = doc.id
    return ProductInDB(**product_data)


def category_exists(db, name: str) -> bool:
    """Check whether a category with exactly this name exists."""
    matches = db.collection(CATEGORIES_COLLECTION).where('name', '==', name).limit(1).get()
    return len(list(matches)) > 0


async def get_products(limit: int = 100, offset: int = 0) -> ProductsData:
    """
    Service function to retrieve all products ordered by name, with pagination.

    Args:
        limit: Maximum number of products to return
        offset: Number of products to skip

    Returns:
        ProductsData object containing the paginated products

    Raises:
        TransportError: If the database read fails
    """
    try:
        db = get_firestore_client()
        products_ref = db.collection(PRODUCTS_COLLECTION)

        # Count total products for pagination info
        total = products_ref.count().get()[0][0].value

        query = products_ref.order_by('name')
        if offset > 0:
            query = query.offset(offset)
        query = query.limit(limit)

        product_items = [doc_to_product(doc) for doc in query.get()]

        page = offset // limit + 1
        pages = (total + limit - 1) // limit if limit > 0 else 0

        return ProductsData(
            items=product_items,
            total=total,
            page=page,
            size=limit,
            pages=pages
        )

    except Exception as exc:
        logger.exception("Failed to list products")
        raise TransportError(str(exc))


async def get_catalog(limit: int = 100, offset: int = 0) -> ProductsData:
    """
    Service function to retrieve the sellable catalog: products with stock left, ordered by name.

    Raises:
        TransportError: If the database read fails
    """
    try:
        db = get_firestore_client()
        in_stock = db.collection(PRODUCTS_COLLECTION).where('stockCount', '>', 0).get()

        # Firestore cannot order by name under an inequality on stockCount
        products = sorted((doc_to_product(doc) for doc in in_stock), key=lambda p: p.name.lower())
        return ProductsData(**paginate(products, limit, offset))

    except Exception as exc:
        logger.exception("Failed to load catalog")
        raise TransportError(str(exc))


async def search_products(query: str, limit: int = 100, offset: int = 0) -> ProductsData:
    """
    Service function to search for products by name, SKU, category or description.

    Results are ranked by relevance; an empty query lists every product.

    Raises:
        TransportError: If the database read fails
    """
    if not query or query.strip() == "":
        return await get_products(limit=limit, offset=offset)

    try:
        db = get_firestore_client()
        all_products = []
        for doc in db.collection(PRODUCTS_COLLECTION).get():
            product_data = doc.to_dict()
            if not product_data:
                continue
            product_data['id'] = doc.id
            all_products.append(product_data)

        ranked = rank_products(all_products, query)
        results = [ProductInDB(**product) for product, _ in ranked]
        return ProductsData(**paginate(results, limit, offset))

    except Exception as exc:
        logger.exception("Product search failed for %r", query)
        raise TransportError(str(exc))


async def get_product_by_id(product_id: str) -> ProductInDB:
    """
    Service function to retrieve a single product by ID.

    Raises:
        ValidationFailedError: If no product ID is given
        NotFoundError: If the product does not exist
        TransportError: If the database read fails
    """
    if not product_id:
        raise ValidationFailedError("Missing product ID parameter")

    try:
        db = get_firestore_client()
        doc = db.collection(PRODUCTS_COLLECTION).document(product_id).get()

        if not doc.exists:
            raise NotFoundError("Product not found")

        return doc_to_product(doc)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to read product %s", product_id)
        raise TransportError(str(exc))


async def create_product(product_data: dict) -> ProductInDB:
    """
    Service function to create a new product.

    Args:
        product_data: Validated product fields

    Returns:
        ProductInDB object containing the created product data

    Raises:
        ValidationFailedError: If the category does not exist
        TransportError: If the database write fails
    """
    try:
        db = get_firestore_client()

        if not category_exists(db, product_data['category']):
            raise ValidationFailedError(
                f"Category '{product_data['category']}' does not exist",
                details={"category": product_data['category']}
            )

        product_data['createdAt'] = firestore.SERVER_TIMESTAMP
        product_data['updatedAt'] = firestore.SERVER_TIMESTAMP

        new_product_ref = db.collection(PRODUCTS_COLLECTION).document()
        new_product_ref.set(product_data)

        created = doc_to_product(new_product_ref.get())
        logger.info("Created product %s (%s)", created.id, created.name)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to create product")
        raise TransportError(str(exc))

    if product_data.get('imageUrl'):
        await mark_image_permanent(product_data['imageUrl'])

    return created


async def update_product(product_id: str, product_data: dict) -> ProductInDB:
    """
    Service function to update an existing product. Only provided fields are written.

    A replaced image is kept until the write succeeds and then removed from storage.

    Raises:
        ValidationFailedError: If no product ID is given or the new category does not exist
        NotFoundError: If the product does not exist
        TransportError: If the database write fails
    """
    if not product_id:
        raise ValidationFailedError("Missing product ID parameter")

    try:
        db = get_firestore_client()
        product_ref = db.collection(PRODUCTS_COLLECTION).document(product_id)
        product = product_ref.get()

        if not product.exists:
            raise NotFoundError("Product not found")

        existing = product.to_dict() or {}
        update_data = product_data.copy()

        if 'category' in update_data and update_data['category'] != existing.get('category'):
            if not category_exists(db, update_data['category']):
                raise ValidationFailedError(
                    f"Category '{update_data['category']}' does not exist",
                    details={"category": update_data['category']}
                )

        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP
        product_ref.update(update_data)

        updated = doc_to_product(product_ref.get())

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to update product %s", product_id)
        raise TransportError(str(exc))

    old_image = existing.get('imageUrl')
    new_image = update_data.get('imageUrl')
    if new_image and new_image != old_image:
        await mark_image_permanent(new_image)
        if old_image:
            await delete_image_by_url(old_image)

    return updated


async def delete_product(product_id: str) -> bool:
    """
    Service function to hard-delete a product by ID.

    Past sale items keep their product name snapshot.

    Raises:
        ValidationFailedError: If no product ID is given
        NotFoundError: If the product does not exist
        TransportError: If the database delete fails
    """
    if not product_id:
        raise ValidationFailedError("Missing product ID parameter")

    try:
        db = get_firestore_client()
        product_ref = db.collection(PRODUCTS_COLLECTION).document(product_id)
        product = product_ref.get()

        if not product.exists:
            raise NotFoundError("Product not found")

        image_url = (product.to_dict() or {}).get('imageUrl')
        product_ref.delete()
        logger.info("Deleted product %s", product_id)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to delete product %s", product_id)
        raise TransportError(str(exc))

    if image_url:
        await delete_image_by_url(image_url)

    return True
