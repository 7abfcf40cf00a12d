"""FastAPI dependencies."""

from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wishlist_api.core.config import settings
from wishlist_api.core.gemini import GeminiOfferSource
from wishlist_api.core.offer_source import OfferSource
from wishlist_api.core.serpapi import SerpApiOfferSource
from wishlist_api.db.session import AsyncSessionLocal


def get_session_factory() -> async_sessionmaker:
    return AsyncSessionLocal


async def get_database(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    """Dependency for database session."""
    async with session_factory() as session:
        yield session


def get_offer_source() -> OfferSource:
    """
    Picks the OfferSource named by OFFER_SOURCE. Tests override this.
    """
    name = (settings.OFFER_SOURCE or "gemini").strip().lower()
    if name == "serpapi":
        return SerpApiOfferSource()
    if name == "gemini":
        return GeminiOfferSource()
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Unknown OFFER_SOURCE {settings.OFFER_SOURCE!r}",
    )


async def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    The auth gateway in front of this service sets X-User-Id after verifying
    the session.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return x_user_id.strip()


async def require_admin_api_key(x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key")) -> None:
    """
    Admin endpoints are open when ADMIN_API_KEY is unset (local dev);
    otherwise the header must match.

    Raises:
        HTTPException: 403 if the header is missing or wrong
    """
    if not settings.ADMIN_API_KEY:
        return
    if x_admin_api_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin API key")
