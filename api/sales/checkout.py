"""
Checkout: turns a cart into a recorded sale.

The sale header, its line items and the stock decrements are written in one
Firestore transaction. The transaction reads each product's live stock first;
if any product is short the whole sale is abandoned and nothing is written.
Firestore re-runs the transaction when a concurrent checkout touches the same
products, so the stock check always sees the committed value.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Optional, Tuple

from firebase_admin import firestore

from api.common.cache import invalidate_sales_aggregates
from api.common.errors import PosError, StockConflictError, TransportError, ValidationFailedError
from api.common.settings import TAX_RATE, WALK_IN_CUSTOMER_NAME
from api.sales.cart import Cart, CartLine
from api.sales.schemas import SaleData, SaleItemData

logger = logging.getLogger(__name__)

SALES_COLLECTION = 'sales'
SALE_ITEMS_COLLECTION = 'sale_items'
PRODUCTS_COLLECTION = 'products'

CENTS = Decimal("0.01")


class CheckoutStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    STOCK_CONFLICT = "stock_conflict"
    FAILED = "failed"


def get_firestore_client():
    return firestore.client()


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_totals(lines: Iterable[CartLine]) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Compute (subtotal, tax, total) for cart lines.

    subtotal is the rounded sum of price x quantity, tax is 18% of the subtotal
    rounded half-up to cents, and total is exactly subtotal + tax.
    """
    subtotal = round2(sum((line.line_total for line in lines), Decimal("0")))
    tax = round2(subtotal * Decimal(TAX_RATE))
    return subtotal, tax, subtotal + tax


class CheckoutResult:
    def __init__(self, status: CheckoutStatus, subtotal: Decimal, tax: Decimal, total: Decimal,
                 sale: Optional[SaleData] = None, error: Optional[PosError] = None):
        self.status = status
        self.subtotal = subtotal
        self.tax = tax
        self.total = total
        self.sale = sale
        self.error = error

    @property
    def succeeded(self) -> bool:
        return self.status == CheckoutStatus.SUCCEEDED


class CheckoutOrchestrator:
    """
    Runs one checkout at a time for a cart.

    States: IDLE -> SUBMITTING -> SUCCEEDED | STOCK_CONFLICT | FAILED.
    The cart is cleared on success and kept otherwise so the user can adjust it.
    """

    def __init__(self, db=None):
        self.db = db
        self.status = CheckoutStatus.IDLE

    def _transition(self, status: CheckoutStatus):
        logger.info("Checkout %s -> %s", self.status.value, status.value)
        self.status = status

    async def submit(self, cart: Cart) -> CheckoutResult:
        """
        Record the cart as a sale.

        Raises:
            ValidationFailedError: If the cart is empty (nothing is sent to the database)
        """
        if cart.is_empty:
            raise ValidationFailedError("Please add products to cart before checkout.")

        lines = cart.items()
        subtotal, tax, total = calculate_totals(lines)

        self._transition(CheckoutStatus.SUBMITTING)

        try:
            db = self.db or get_firestore_client()
            created_at = datetime.now(timezone.utc)
            sale = self._record_sale(db, cart, lines, subtotal, tax, total, created_at)
        except StockConflictError as e:
            logger.warning("Checkout stopped: %s", e.message)
            self._transition(CheckoutStatus.STOCK_CONFLICT)
            return CheckoutResult(self.status, subtotal, tax, total, error=e)
        except Exception as e:
            logger.exception("Checkout failed")
            self._transition(CheckoutStatus.FAILED)
            return CheckoutResult(self.status, subtotal, tax, total, error=TransportError(str(e)))

        self._transition(CheckoutStatus.SUCCEEDED)
        cart.clear()
        await invalidate_sales_aggregates()

        return CheckoutResult(self.status, subtotal, tax, total, sale=sale)

    def _record_sale(self, db, cart: Cart, lines, subtotal: Decimal, tax: Decimal,
                     total: Decimal, created_at: datetime) -> SaleData:
        sale_ref = db.collection(SALES_COLLECTION).document()
        sale_doc = {
            'customerName': cart.customer_name,
            'customerPhone': cart.customer_phone,
            'paymentMethod': cart.payment_method.value,
            'subtotal': float(subtotal),
            'tax': float(tax),
            'totalAmount': float(total),
            'createdAt': created_at,
        }

        @firestore.transactional
        def write_sale(transaction):
            # Firestore requires every read to happen before the first write
            checked = []
            for line in lines:
                product_ref = db.collection(PRODUCTS_COLLECTION).document(line.product.id)
                snapshot = product_ref.get(transaction=transaction)

                available = 0
                if snapshot.exists:
                    available = int((snapshot.to_dict() or {}).get('stockCount', 0))

                if available < line.quantity:
                    raise StockConflictError(line.product.id, line.product.name, line.quantity, available)

                checked.append((line, product_ref, available))

            transaction.set(sale_ref, sale_doc)

            items = []
            for line, product_ref, available in checked:
                item_ref = db.collection(SALE_ITEMS_COLLECTION).document()
                item = {
                    'saleId': sale_ref.id,
                    'productId': line.product.id,
                    'productName': line.product.name,
                    'quantity': line.quantity,
                    'price': line.product.price,
                    'total': float(line.line_total),
                }
                transaction.set(item_ref, item)
                transaction.update(product_ref, {
                    'stockCount': available - line.quantity,
                    'updatedAt': created_at,
                })
                items.append(SaleItemData(id=item_ref.id, **item))
            return items

        items = write_sale(db.transaction())
        logger.info("Recorded sale %s with %d items, total %s", sale_ref.id, len(items), total)

        return SaleData(
            id=sale_ref.id,
            customerName=sale_doc['customerName'] or WALK_IN_CUSTOMER_NAME,
            customerPhone=sale_doc['customerPhone'],
            paymentMethod=sale_doc['paymentMethod'],
            subtotal=sale_doc['subtotal'],
            tax=sale_doc['tax'],
            totalAmount=sale_doc['totalAmount'],
            createdAt=created_at,
            items=items
        )
