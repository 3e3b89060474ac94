"""Shopper authentication session held for the duration of a checkout."""

import structlog

logger = structlog.get_logger(__name__)

LOGIN_REDIRECT = "/login?callbackUrl=/checkout"


class AuthSession:
    """Bearer credential of the signed-in shopper.

    A rejected credential invalidates the session once: the token is dropped
    and the shopper is sent back to login. Later calls see an
    unauthenticated session and never reach the network.
    """

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.expired = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and not self.expired

    @property
    def redirect_to(self) -> str | None:
        return LOGIN_REDIRECT if self.expired else None

    def auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    def invalidate(self) -> bool:
        """Drop the credential. Returns False when it was already invalidated."""
        if self.expired:
            return False
        self.expired = True
        self.token = None
        logger.info("auth_session_invalidated")
        return True
