"""Caller resolution: bearer token -> user -> verified seller profile."""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select

from app.core.exceptions import ForbiddenError
from app.core.rate_limit import remember_seller
from app.core.security import decode_access_token
from app.db.session import DbSession
from app.models.seller import SellerProfile, UserRole, VerificationStatus


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: Identifier of the user at the external auth provider.
        email: The user's email address, when the token carries one.
    """

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


async def get_current_user(request: Request) -> TokenData:
    """Get the current authenticated user from JWT token.

    Checks in order:
    1. Authorization: Bearer <token> header
    2. access_token cookie (HttpOnly)
    """
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return TokenData(user_id=str(user_id), email=payload.get("email"))


CurrentUser = Annotated[TokenData, Depends(get_current_user)]


def get_current_seller(request: Request, current_user: CurrentUser, db: DbSession) -> SellerProfile:
    """Resolve the caller's seller profile.

    Every procurement, warehouse and inventory procedure runs as a seller
    that is both a SELLER and VERIFIED.
    """
    seller = db.execute(
        select(SellerProfile).where(SellerProfile.user_id == current_user.user_id)
    ).scalar_one_or_none()
    if seller is None or seller.role != UserRole.SELLER:
        raise ForbiddenError("Seller access required")
    if seller.verification_status != VerificationStatus.VERIFIED:
        raise ForbiddenError("Seller account must be verified")
    remember_seller(request, seller.id)
    return seller


CurrentSeller = Annotated[SellerProfile, Depends(get_current_seller)]
