from fastapi import APIRouter, Depends

from api.common.errors import PosError
from api.common.schemas import JSendResponse
from api.sales.cart import CartRegistry, get_cart_registry
from .dependencies import get_session
from .schemas import Session, SignOutResult
from .services import sign_out_user

router = APIRouter()


@router.get("/session", response_model=JSendResponse[Session])
async def current_session(session: Session = Depends(get_session)):
    """Who is signed in, their role, and when the session expires."""
    return JSendResponse.success(session)


@router.post("/signout", response_model=JSendResponse[SignOutResult])
async def sign_out(
        session: Session = Depends(get_session),
        carts: CartRegistry = Depends(get_cart_registry)
):
    """
    Sign out everywhere: revoke the user's refresh tokens and drop the sale in progress.
    """
    try:
        revoked = await sign_out_user(session.userId)
    except PosError as e:
        return JSendResponse.from_error(e)

    discarded = carts.discard(session.userId)

    return JSendResponse.success(SignOutResult(
        userId=session.userId,
        tokensRevoked=revoked,
        cartDiscarded=discarded
    ))
