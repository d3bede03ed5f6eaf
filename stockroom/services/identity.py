from abc import ABC, abstractmethod
from typing import Optional
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from stockroom.config import get_settings, Settings
from stockroom.services.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class IdentityProvider(ABC):
    """Answers "who is acting?" for the ledger."""

    @abstractmethod
    def current_user(self) -> str:
        """Return the acting user id or raise NotAuthenticatedError."""


class StaticIdentity(IdentityProvider):
    """Fixed identity, e.g. for background jobs."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    def current_user(self) -> str:
        if not self.user_id:
            raise NotAuthenticatedError()
        return self.user_id


class TokenIdentity(IdentityProvider):
    """
    Identity carried by a bearer token from the external identity service.

    Only verification happens here: the token must be signed with the shared
    secret, unexpired, and carry the user id in its `sub` claim.
    """

    def __init__(self, token: Optional[str], settings: Settings = None):
        self.token = token
        self.settings = settings or get_settings()

    def current_user(self) -> str:
        if not self.token:
            raise NotAuthenticatedError()

        options = {"verify_aud": self.settings.IDENTITY_JWT_AUDIENCE is not None}
        try:
            payload = jwt.decode(
                self.token,
                self.settings.IDENTITY_JWT_SECRET,
                algorithms=[self.settings.IDENTITY_JWT_ALGORITHM],
                audience=self.settings.IDENTITY_JWT_AUDIENCE,
                options=options,
            )
        except JWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise NotAuthenticatedError("Could not validate credentials")

        user_id = payload.get("sub")
        if not user_id:
            raise NotAuthenticatedError("Could not validate credentials")
        return str(user_id)


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> IdentityProvider:
    """Dependency returning the identity of the current request."""
    token = credentials.credentials if credentials else None
    return TokenIdentity(token)
