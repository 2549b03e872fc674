"""
This module contains the FastAPI routers for the cart, checkout and sales history endpoints.
"""

from fastapi import APIRouter, Query, Path, Depends
from starlette import status

from api.auth.dependencies import get_session, require_admin
from api.auth.schemas import Session
from api.common.errors import ConflictError, PosError
from api.common.schemas import JSendResponse
from api.sales.cart import CartRegistry, get_cart_registry
from api.sales.checkout import CheckoutOrchestrator
from api.sales.schemas import (
    AddCartItemRequest, CartData, CheckoutResultData, CustomerRequest, InvoiceData,
    PaymentMethodRequest, PaymentMethodResult, SalesHistoryData, UpdateQuantityRequest,
)
from api.sales.services import add_product_to_cart, get_invoice, get_sales_history, invoice_number

router = APIRouter()


@router.get("/cart", response_model=JSendResponse[CartData])
async def view_cart(
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Get the signed-in user's cart with its running total.
    """
    return JSendResponse.success(carts.get(session.userId).to_data())


@router.post("/cart/items", response_model=JSendResponse[CartData])
async def add_cart_item(
        item: AddCartItemRequest,
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Add one unit of a product to the cart.

    Args:
        item: The product to add
        session: The signed-in user's session (injected)
        carts: The cart registry (injected)

    Returns:
        JSendResponse containing the updated cart, or a validation error when
        the product's stock would be exceeded
    """
    try:
        cart = await add_product_to_cart(carts.get(session.userId), item.productId)
        return JSendResponse.success(cart.to_data())
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.put("/cart/items/{product_id}", response_model=JSendResponse[CartData])
async def update_cart_item(
        product_id: str = Path(..., description="The product whose quantity to set"),
        update: UpdateQuantityRequest = ...,
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Set the quantity of a cart line. A quantity of zero or less removes the line.
    """
    try:
        cart = carts.get(session.userId)
        cart.update_quantity(product_id, update.quantity)
        return JSendResponse.success(cart.to_data())
    except PosError as e:
        return JSendResponse.from_error(e)


@router.delete("/cart/items/{product_id}", response_model=JSendResponse[CartData])
async def remove_cart_item(
        product_id: str = Path(..., description="The product to remove"),
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    cart = carts.get(session.userId)
    cart.remove(product_id)
    return JSendResponse.success(cart.to_data())


@router.put("/cart/payment-method", response_model=JSendResponse[PaymentMethodResult])
async def select_payment_method(
        selection: PaymentMethodRequest,
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Select Cash, GPay or PhonePe. Selecting the current method changes nothing.
    """
    try:
        cart = carts.get(session.userId)
        changed = cart.select_payment_method(selection.paymentMethod)
        return JSendResponse.success(PaymentMethodResult(changed=changed, cart=cart.to_data()))
    except PosError as e:
        return JSendResponse.from_error(e)


@router.put("/cart/customer", response_model=JSendResponse[CartData])
async def set_cart_customer(
        customer: CustomerRequest,
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Set the optional customer name and phone for the sale in progress.
    """
    cart = carts.get(session.userId)
    cart.set_customer(customer.customerName, customer.customerPhone)
    return JSendResponse.success(cart.to_data())


@router.delete("/cart", response_model=JSendResponse[CartData])
async def cancel_sale(
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Cancel the sale in progress and start over with an empty cart.
    """
    carts.discard(session.userId)
    return JSendResponse.success(carts.get(session.userId).to_data())


@router.post("/checkout", response_model=JSendResponse[CheckoutResultData])
async def checkout(
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Record the cart as a sale and decrement stock, all or nothing.

    Returns:
        JSendResponse containing the sale and its invoice on success. On a stock
        conflict the error names the product and the quantity still available,
        and the cart is kept so it can be adjusted.
    """
    if not carts.begin_checkout(session.userId):
        return JSendResponse.from_error(ConflictError("A checkout is already in progress"))

    try:
        result = await CheckoutOrchestrator().submit(carts.get(session.userId))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    finally:
        carts.end_checkout(session.userId)

    if result.error:
        response = JSendResponse.from_error(result.error)
        response.details["checkoutStatus"] = result.status.value
        return response

    return JSendResponse.success(CheckoutResultData(
        status=result.status.value,
        saleId=result.sale.id,
        createdAt=result.sale.createdAt,
        subtotal=float(result.subtotal),
        tax=float(result.tax),
        totalAmount=float(result.total),
        invoice=InvoiceData(invoiceNumber=invoice_number(result.sale.id), sale=result.sale)
    ))


@router.get("/history", response_model=JSendResponse[SalesHistoryData])
async def sales_history(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(50, ge=1, le=500, description="Items per page"),
        session: Session = Depends(require_admin)
):
    """
    Get recorded sales, newest first, each with its line items.

    Args:
        page: The page number (starts at 1)
        size: Number of sales per page (max 500)
        session: The admin's session (injected)

    Returns:
        JSendResponse containing sales and pagination info
    """
    try:
        offset = (page - 1) * size
        return JSendResponse.success(await get_sales_history(size, offset))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/{sale_id}/invoice", response_model=JSendResponse[InvoiceData])
async def sale_invoice(
        sale_id: str = Path(..., description="The ID of the sale"),
        session: Session = Depends(get_session)
):
    """
    Get the invoice view of one sale.
    """
    try:
        return JSendResponse.success(await get_invoice(sale_id))
    except PosError as e:
        return JSendResponse.from_error(e)
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
