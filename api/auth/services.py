import logging

from firebase_admin import auth

from api.common.errors import TransportError

logger = logging.getLogger(__name__)


async def sign_out_user(user_id: str) -> bool:
    """
    Revoke the user's refresh tokens so every device has to sign in again.

    Raises:
        TransportError: If Firebase Auth rejects the request
    """
    try:
        auth.revoke_refresh_tokens(user_id)
        logger.info("Revoked refresh tokens for user %s", user_id)
        return True
    except Exception as e:
        logger.error("Failed to revoke tokens for user %s: %s", user_id, e)
        raise TransportError(str(e))
