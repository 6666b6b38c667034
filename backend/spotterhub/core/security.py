"""
Identity extraction from identity-provider bearer tokens.

Sign-in happens at the external identity provider; this module only
validates the issued JWT and reads the user id, display name and role
claims from it. A request without a token is an anonymous identity,
not an error.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from pydantic import BaseModel

from spotterhub.core.config import settings

security = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """Caller identity for one request."""

    id: str | None = None
    name: str = "Anonymous"
    roles: list[str] = []

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()


def decode_token(token: str) -> Identity:
    """
    Decode and validate a JWT and return the identity it carries.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from e

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )

    roles = payload.get(settings.jwt_roles_claim) or []
    if isinstance(roles, str):
        roles = [roles]

    return Identity(
        id=str(subject),
        name=payload.get(settings.jwt_name_claim) or str(subject),
        roles=[str(r) for r in roles],
    )


def get_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    """FastAPI dependency resolving the caller's identity."""
    if creds is None:
        return Identity.anonymous()
    return decode_token(creds.credentials)


def get_identity_or_anonymous(
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    """
    Like ``get_identity``, but an invalid or expired token reads as
    anonymous instead of failing the request.

    For read-only lookups that must always answer.
    """
    if creds is None:
        return Identity.anonymous()
    try:
        return decode_token(creds.credentials)
    except HTTPException:
        return Identity.anonymous()


def create_token(
    user_id: str,
    name: str | None = None,
    roles: list[str] | None = None,
) -> str:
    """
    Issue a token in the identity provider's format.

    Used by local tooling and tests; production tokens come from
    the identity provider itself.
    """
    payload: dict = {"sub": user_id, settings.jwt_roles_claim: roles or []}
    if name:
        payload[settings.jwt_name_claim] = name
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
