"""
The cart: a product to quantity mapping bounded by the stock seen when each
product was added, plus the customer and payment details of the sale in progress.

Carts live in process memory only and are never written to the database;
checkout turns a cart into a recorded sale.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Set, Union

from api.common.errors import NotFoundError, StockLimitExceededError, ValidationFailedError
from api.sales.schemas import CartData, CartLineData, PaymentMethod, ProductSnapshot

logger = logging.getLogger(__name__)


class CartLine:
    def __init__(self, product: ProductSnapshot, quantity: int = 1):
        self.product = product
        self.quantity = quantity

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.product.price)) * self.quantity

    def to_data(self) -> CartLineData:
        return CartLineData(
            product=self.product,
            quantity=self.quantity,
            lineTotal=float(self.line_total)
        )


class Cart:
    """
    Every line satisfies 1 <= quantity <= product.stockCount; an operation that
    would break this raises and leaves the cart unchanged.
    """

    def __init__(self):
        self.lines: Dict[str, CartLine] = {}
        self.payment_method = PaymentMethod.CASH
        self.customer_name: Optional[str] = None
        self.customer_phone: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def items(self) -> List[CartLine]:
        return list(self.lines.values())

    def add(self, product: ProductSnapshot) -> CartLine:
        """
        Add one unit of a product.

        Raises:
            StockLimitExceededError: If one more unit would exceed the product's stock
        """
        line = self.lines.get(product.id)
        current = line.quantity if line else 0

        if current + 1 > product.stockCount:
            raise StockLimitExceededError(product.id, product.name, product.stockCount)

        if line:
            # The latest read is the line's snapshot from now on
            line.product = product
            line.quantity += 1
        else:
            line = CartLine(product)
            self.lines[product.id] = line
        return line

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        """
        Set a line's quantity. Zero or less removes the line and returns None.

        Raises:
            NotFoundError: If the product is not in the cart
            StockLimitExceededError: If the quantity exceeds the product's stock
        """
        line = self.lines.get(product_id)
        if line is None:
            raise NotFoundError("Product is not in the cart", details={"productId": product_id})

        if quantity <= 0:
            self.remove(product_id)
            return None

        if quantity > line.product.stockCount:
            raise StockLimitExceededError(product_id, line.product.name, line.product.stockCount)

        line.quantity = quantity
        return line

    def remove(self, product_id: str):
        self.lines.pop(product_id, None)

    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines.values()), Decimal("0"))

    def select_payment_method(self, method: Union[PaymentMethod, str]) -> bool:
        """
        Select the payment method.

        Returns:
            True if the method changed, False if it was already selected

        Raises:
            ValidationFailedError: If the method is not one of the accepted ones
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationFailedError(
                f"Unknown payment method '{method}'. Use one of: {allowed}",
                details={"paymentMethod": str(method)}
            )

        if method == self.payment_method:
            return False

        self.payment_method = method
        return True

    def set_customer(self, name: Optional[str] = None, phone: Optional[str] = None):
        """Blank values are stored as None."""
        self.customer_name = name.strip() if name and name.strip() else None
        self.customer_phone = phone.strip() if phone and phone.strip() else None

    def clear(self):
        self.lines.clear()
        self.payment_method = PaymentMethod.CASH
        self.customer_name = None
        self.customer_phone = None

    def to_data(self) -> CartData:
        return CartData(
            items=[line.to_data() for line in self.lines.values()],
            itemCount=sum(line.quantity for line in self.lines.values()),
            total=float(self.total()),
            paymentMethod=self.payment_method,
            customerName=self.customer_name,
            customerPhone=self.customer_phone
        )


class CartRegistry:
    """One cart per signed-in user, kept for the life of the process."""

    def __init__(self):
        self._carts: Dict[str, Cart] = {}
        self._submitting: Set[str] = set()

    def begin_checkout(self, user_id: str) -> bool:
        """Mark the user's checkout as in flight. False if one already is."""
        if user_id in self._submitting:
            return False
        self._submitting.add(user_id)
        return True

    def end_checkout(self, user_id: str):
        self._submitting.discard(user_id)

    def get(self, user_id: str) -> Cart:
        cart = self._carts.get(user_id)
        if cart is None:
            cart = Cart()
            self._carts[user_id] = cart
        return cart

    def discard(self, user_id: str) -> bool:
        """Drop the user's cart. Returns True if there was one."""
        discarded = self._carts.pop(user_id, None) is not None
        if discarded:
            logger.debug("Discarded cart for user %s", user_id)
        return discarded


cart_registry = CartRegistry()


def get_cart_registry() -> CartRegistry:
    return cart_registry
