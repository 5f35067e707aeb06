"""
Authentication: Firebase ID token verification and current identity dependency.

We only verify the bearer token here; the User profile in MongoDB is created
lazily by the operations that need it.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from gratias.api.dependencies import get_identity_provider
from gratias.errors import TokenVerificationError
from gratias.services.identity import FirebaseIdentityProvider

logger = logging.getLogger(__name__)
# auto_error=False so a missing header gets our own error body
security = HTTPBearer(auto_error=False)


class CurrentIdentity(BaseModel):
    identity: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    picture: Optional[str] = None


def _auth_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": f'Bearer error="{code}"'},
    )


async def get_current_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    identity_provider: Annotated[FirebaseIdentityProvider, Depends(get_identity_provider)],
) -> CurrentIdentity:
    """
    Dependency: verify the Firebase ID token and return the caller's identity.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise _auth_error(
            status.HTTP_401_UNAUTHORIZED,
            "missing_authorization_header",
            "Missing or invalid Authorization header. Use the format: Bearer <token>",
        )

    token = credentials.credentials
    logger.debug("Bearer token received (length=%d): %s...%s", len(token), token[:12], token[-12:])

    try:
        decoded = await identity_provider.verify_token(token)
    except TokenVerificationError as e:
        logger.warning("Token verification failed: %s (%s)", e.code, e.message)
        raise _auth_error(e.http_status, e.code, e.message)

    if decoded.get("disabled"):
        raise _auth_error(status.HTTP_403_FORBIDDEN, "account_disabled", "This user account has been disabled")

    return CurrentIdentity(
        identity=decoded["identity"],
        email=decoded.get("email"),
        email_verified=bool(decoded.get("email_verified")),
        name=decoded.get("name"),
        picture=decoded.get("picture"),
    )
