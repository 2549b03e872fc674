import logging
from collections import Counter

from firebase_admin import firestore

from api.categories.schemas import CategoryInDB, CategoriesData, CATEGORY_NAME_MAX_LENGTH
from api.common.errors import (
    ConflictError, NotFoundError, PosError, TransportError, ValidationFailedError,
)
from api.common.schemas import paginate

logger = logging.getLogger(__name__)

# Firestore rejects write batches larger than this
MAX_BATCH_WRITES = 500


def get_firestore_client():
    return firestore.client()


def clean_category_name(name: str) -> str:
    """
    Trim a category name and check its length.

    Raises:
        ValidationFailedError: If the trimmed name is empty or too long
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailedError("Category name is required")
    if len(name) > CATEGORY_NAME_MAX_LENGTH:
        raise ValidationFailedError(
            f"Category name must be at most {CATEGORY_NAME_MAX_LENGTH} characters"
        )
    return name


def name_taken(db, name: str) -> bool:
    existing = db.collection('categories').where('name', '==', name).limit(1).get()
    return len(list(existing)) > 0


async def get_categories(limit: int = 100, offset: int = 0) -> CategoriesData:
    """
    Service function to retrieve categories ordered by name, with the number of products in each.

    Args:
        limit: Maximum number of categories to return
        offset: Number of categories to skip

    Returns:
        CategoriesData object containing the paginated categories

    Raises:
        TransportError: If the database read fails
    """
    try:
        db = get_firestore_client()
        categories_docs = db.collection('categories').order_by('name').get()

        # Count products per category name in one pass
        product_counts = Counter(
            (doc.to_dict() or {}).get('category') for doc in db.collection('products').get()
        )

        category_items = []
        for doc in categories_docs:
            category_data = doc.to_dict()
            category_data['id'] = doc.id
            category_data['productCount'] = product_counts.get(category_data.get('name'), 0)
            category_items.append(CategoryInDB(**category_data))

        return CategoriesData(**paginate(category_items, limit, offset))

    except Exception as exc:
        logger.exception("Failed to list categories")
        raise TransportError(str(exc))


async def create_category(name: str) -> CategoryInDB:
    """
    Service function to create a new category.

    Raises:
        ValidationFailedError: If the name is empty after trimming
        ConflictError: If a category with the same name exists
        TransportError: If the database write fails
    """
    name = clean_category_name(name)

    try:
        db = get_firestore_client()

        if name_taken(db, name):
            raise ConflictError(f"Category '{name}' already exists", details={"name": name})

        new_category_ref = db.collection('categories').document()
        new_category_ref.set({
            'name': name,
            'createdAt': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
        })

        created_category = new_category_ref.get().to_dict()
        created_category['id'] = new_category_ref.id
        logger.info("Created category %s (%s)", new_category_ref.id, name)

        return CategoryInDB(**created_category)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to create category %r", name)
        raise TransportError(str(exc))


async def update_category(category_id: str, name: str) -> CategoryInDB:
    """
    Service function to rename a category.

    Products store the category by name, so every product in the old category is
    moved to the new name. The writes go out in batches of at most MAX_BATCH_WRITES,
    the first of which carries the rename.

    Raises:
        ValidationFailedError: If the name is empty after trimming
        NotFoundError: If the category does not exist
        ConflictError: If another category already has the new name
        TransportError: If the database write fails
    """
    name = clean_category_name(name)

    try:
        db = get_firestore_client()
        category_ref = db.collection('categories').document(category_id)
        category = category_ref.get()

        if not category.exists:
            raise NotFoundError("Category not found")

        old_name = (category.to_dict() or {}).get('name')

        if name != old_name:
            if name_taken(db, name):
                raise ConflictError(f"Category '{name}' already exists", details={"name": name})

            batch = db.batch()
            batch.update(category_ref, {'name': name, 'updatedAt': firestore.SERVER_TIMESTAMP})
            writes = 1

            products = db.collection('products').where('category', '==', old_name).get()
            moved = 0
            for product in products:
                if writes == MAX_BATCH_WRITES:
                    batch.commit()
                    batch = db.batch()
                    writes = 0
                batch.update(product.reference, {'category': name, 'updatedAt': firestore.SERVER_TIMESTAMP})
                writes += 1
                moved += 1
            batch.commit()
            logger.info("Renamed category %r to %r, moved %d products", old_name, name, moved)

        updated_category_dict = category_ref.get().to_dict()
        updated_category_dict['id'] = category_id
        return CategoryInDB(**updated_category_dict)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to update category %s", category_id)
        raise TransportError(str(exc))


async def delete_category(category_id: str) -> bool:
    """
    Service function to delete a category by ID.

    Raises:
        NotFoundError: If the category does not exist
        ConflictError: If any product still uses the category
        TransportError: If the database delete fails
    """
    try:
        db = get_firestore_client()
        category_ref = db.collection('categories').document(category_id)
        category = category_ref.get()

        if not category.exists:
            raise NotFoundError("Category not found")

        name = (category.to_dict() or {}).get('name')

        products_using_category = db.collection('products').where('category', '==', name).limit(1).get()
        if len(list(products_using_category)) > 0:
            raise ConflictError(
                "Cannot delete category that is being used by products",
                details={"name": name}
            )

        category_ref.delete()
        logger.info("Deleted category %s (%s)", category_id, name)
        return True

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to delete category %s", category_id)
        raise TransportError(str(exc))
