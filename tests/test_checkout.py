"""
Tests for the checkout orchestrator against the in-memory Firestore.
"""
from decimal import Decimal, ROUND_HALF_UP
from unittest.mock import MagicMock, patch

import pytest

from api.common.errors import ValidationFailedError
from api.sales.cart import Cart
from api.sales.checkout import CheckoutOrchestrator, CheckoutStatus, calculate_totals
from api.sales.schemas import ProductSnapshot


def snapshot(product_id, stock, price=100.0, name="Oil Filter"):
    return ProductSnapshot(id=product_id, name=name, price=price, category="Filters", stockCount=stock)


def cart_with(product, quantity, **customer):
    cart = Cart()
    cart.add(product)
    cart.update_quantity(product.id, quantity)
    if customer:
        cart.set_customer(customer.get("name"), customer.get("phone"))
    return cart


class TestCalculateTotals:
    def test_tax_is_eighteen_percent_rounded(self):
        cart = Cart()
        cart.add(snapshot("p1", 5, price=33.33))
        cart.update_quantity("p1", 3)

        subtotal, tax, total = calculate_totals(cart.items())

        assert subtotal == Decimal("99.99")
        assert tax == Decimal("18.00")
        assert total == Decimal("117.99")

    @pytest.mark.parametrize("price,quantity", [(0.05, 1), (19.99, 7), (1234.56, 2), (0.01, 3)])
    def test_total_is_subtotal_plus_tax(self, price, quantity):
        cart = Cart()
        cart.add(snapshot("p1", 10, price=price))
        cart.update_quantity("p1", quantity)

        subtotal, tax, total = calculate_totals(cart.items())

        assert tax == (subtotal * Decimal("0.18")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert total == subtotal + tax

    def test_half_cent_rounds_up(self):
        cart = Cart()
        cart.add(snapshot("p1", 1, price=0.25))

        _, tax, _ = calculate_totals(cart.items())

        # 0.25 * 0.18 = 0.045
        assert tax == Decimal("0.05")


class TestCheckoutOrchestrator:
    @pytest.mark.asyncio
    async def test_empty_cart_is_rejected_without_backend_calls(self, mock_firestore):
        orchestrator = CheckoutOrchestrator()

        with pytest.raises(ValidationFailedError):
            await orchestrator.submit(Cart())

        assert orchestrator.status == CheckoutStatus.IDLE
        mock_firestore.collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_sale_decrements_stock(self, fake_db):
        fake_db.add("products", {"name": "Oil Filter", "price": 100.0, "stockCount": 10}, doc_id="p1")
        cart = cart_with(snapshot("p1", 10), 4, name="Ravi")

        orchestrator = CheckoutOrchestrator()
        result = await orchestrator.submit(cart)

        assert result.status == CheckoutStatus.SUCCEEDED
        assert orchestrator.status == CheckoutStatus.SUCCEEDED
        assert fake_db.docs("products")["p1"]["stockCount"] == 6

        sales = fake_db.docs("sales")
        items = fake_db.docs("sale_items")
        assert len(sales) == 1
        assert len(items) == 1

        sale_id, sale = next(iter(sales.items()))
        item = next(iter(items.values()))
        assert sale["subtotal"] == 400.0
        assert sale["tax"] == 72.0
        assert sale["totalAmount"] == 472.0
        assert sale["paymentMethod"] == "Cash"
        assert sale["customerName"] == "Ravi"
        assert item == {
            "saleId": sale_id,
            "productId": "p1",
            "productName": "Oil Filter",
            "quantity": 4,
            "price": 100.0,
            "total": 400.0,
        }

        assert result.sale.id == sale_id
        assert result.sale.createdAt is not None
        assert cart.is_empty

    @pytest.mark.asyncio
    async def test_stock_conflict_writes_nothing(self, fake_db):
        fake_db.add("products", {"name": "Oil Filter", "price": 100.0, "stockCount": 2}, doc_id="p1")
        cart = cart_with(snapshot("p1", 5), 5)

        result = await CheckoutOrchestrator().submit(cart)

        assert result.status == CheckoutStatus.STOCK_CONFLICT
        assert result.error.kind == "stock_conflict"
        assert result.error.details["available"] == 2
        assert result.error.details["requested"] == 5
        assert "Oil Filter" in result.error.message

        assert fake_db.docs("products")["p1"]["stockCount"] == 2
        assert fake_db.docs("sales") == {}
        assert fake_db.docs("sale_items") == {}
        assert not cart.is_empty

    @pytest.mark.asyncio
    async def test_conflict_on_second_line_keeps_first_product_untouched(self, fake_db):
        fake_db.add("products", {"name": "Spark Plug", "price": 80.0, "stockCount": 10}, doc_id="p1")
        fake_db.add("products", {"name": "Air Filter", "price": 300.0, "stockCount": 1}, doc_id="p2")

        cart = Cart()
        cart.add(snapshot("p1", 10, price=80.0, name="Spark Plug"))
        cart.add(snapshot("p2", 3, price=300.0, name="Air Filter"))
        cart.update_quantity("p2", 3)

        result = await CheckoutOrchestrator().submit(cart)

        assert result.status == CheckoutStatus.STOCK_CONFLICT
        assert result.error.details["productId"] == "p2"
        assert fake_db.docs("products")["p1"]["stockCount"] == 10
        assert fake_db.docs("sales") == {}

    @pytest.mark.asyncio
    async def test_deleted_product_is_a_conflict(self, fake_db):
        cart = cart_with(snapshot("gone", 3), 1)

        result = await CheckoutOrchestrator().submit(cart)

        assert result.status == CheckoutStatus.STOCK_CONFLICT
        assert result.error.details["available"] == 0

    @pytest.mark.asyncio
    async def test_backend_failure_keeps_vendor_message(self):
        db = MagicMock()
        db.collection.side_effect = RuntimeError("deadline exceeded")
        cart = cart_with(snapshot("p1", 3), 1)

        result = await CheckoutOrchestrator(db=db).submit(cart)

        assert result.status == CheckoutStatus.FAILED
        assert result.error.kind == "transport"
        assert result.error.message == "deadline exceeded"
        assert not cart.is_empty

    @pytest.mark.asyncio
    async def test_success_invalidates_cached_aggregates(self, fake_db):
        fake_db.add("products", {"name": "Oil Filter", "price": 100.0, "stockCount": 1}, doc_id="p1")

        with patch("api.sales.checkout.invalidate_sales_aggregates") as mock_invalidate:
            mock_invalidate.return_value = 0
            await CheckoutOrchestrator().submit(cart_with(snapshot("p1", 1), 1))

        mock_invalidate.assert_called_once()
