"""
This module contains the business logic for sales-related operations.
"""
import logging
from typing import List

from firebase_admin import firestore

from api.common.errors import NotFoundError, PosError, TransportError, ValidationFailedError
from api.common.settings import WALK_IN_CUSTOMER_NAME
from api.sales.cart import Cart
from api.sales.checkout import SALES_COLLECTION, SALE_ITEMS_COLLECTION, PRODUCTS_COLLECTION
from api.sales.schemas import InvoiceData, ProductSnapshot, SaleData, SaleItemData, SalesHistoryData

logger = logging.getLogger(__name__)


def get_firestore_client():
    return firestore.client()


async def get_product_snapshot(product_id: str) -> ProductSnapshot:
    """
    Read the fields the cart needs from a product.

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
            raise NotFoundError("Product not found", details={"productId": product_id})

        product_data = doc.to_dict() or {}
        return ProductSnapshot(
            id=doc.id,
            name=product_data.get('name', ''),
            price=product_data.get('price', 0),
            category=product_data.get('category', ''),
            stockCount=product_data.get('stockCount', 0),
            sku=product_data.get('sku')
        )

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to read product %s for the cart", product_id)
        raise TransportError(str(exc))


async def add_product_to_cart(cart: Cart, product_id: str) -> Cart:
    """
    Add one unit of a product to the cart, bounded by the product's current stock.
    """
    product = await get_product_snapshot(product_id)
    cart.add(product)
    return cart


def doc_to_sale(doc, items: List[SaleItemData]) -> SaleData:
    sale_data = doc.to_dict() or {}
    return SaleData(
        id=doc.id,
        customerName=sale_data.get('customerName') or WALK_IN_CUSTOMER_NAME,
        customerPhone=sale_data.get('customerPhone'),
        paymentMethod=sale_data.get('paymentMethod', ''),
        subtotal=sale_data.get('subtotal', 0),
        tax=sale_data.get('tax', 0),
        totalAmount=sale_data.get('totalAmount', 0),
        createdAt=sale_data.get('createdAt'),
        items=items
    )


def get_sale_items(db, sale_id: str) -> List[SaleItemData]:
    items = []
    for doc in db.collection(SALE_ITEMS_COLLECTION).where('saleId', '==', sale_id).get():
        item_data = doc.to_dict() or {}
        item_data['id'] = doc.id
        items.append(SaleItemData(**item_data))
    return items


async def get_sales_history(limit: int = 50, offset: int = 0) -> SalesHistoryData:
    """
    Service function to retrieve recorded sales, newest first, each with its line items.

    Args:
        limit: Maximum number of sales to return
        offset: Number of sales to skip

    Returns:
        SalesHistoryData object containing the paginated sales

    Raises:
        TransportError: If the database read fails
    """
    try:
        db = get_firestore_client()
        sales_ref = db.collection(SALES_COLLECTION)

        total = sales_ref.count().get()[0][0].value

        query = sales_ref.order_by('createdAt', direction="DESCENDING")
        if offset > 0:
            query = query.offset(offset)
        query = query.limit(limit)

        sales = [doc_to_sale(doc, get_sale_items(db, doc.id)) for doc in query.get()]

        page = offset // limit + 1
        pages = (total + limit - 1) // limit if limit > 0 else 0

        return SalesHistoryData(
            items=sales,
            total=total,
            page=page,
            size=limit,
            pages=pages
        )

    except Exception as exc:
        logger.exception("Failed to load sales history")
        raise TransportError(str(exc))


async def get_invoice(sale_id: str) -> InvoiceData:
    """
    Service function to build the invoice view of one sale.

    Raises:
        NotFoundError: If the sale does not exist
        TransportError: If the database read fails
    """
    try:
        db = get_firestore_client()
        doc = db.collection(SALES_COLLECTION).document(sale_id).get()

        if not doc.exists:
            raise NotFoundError("Sale not found", details={"saleId": sale_id})

        sale = doc_to_sale(doc, get_sale_items(db, sale_id))
        return InvoiceData(invoiceNumber=invoice_number(sale.id), sale=sale)

    except PosError:
        raise
    except Exception as exc:
        logger.exception("Failed to load invoice for sale %s", sale_id)
        raise TransportError(str(exc))


def invoice_number(sale_id: str) -> str:
    return sale_id[:8].upper()
