import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wishlist_api.api.deps import get_current_user_id, get_database
from wishlist_api.db import repository
from wishlist_api.schemas.stores import UserLocationIn, UserLocationOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users/location", tags=["location"])


@router.get("", response_model=UserLocationOut)
async def get_location(user_id: str = Depends(get_current_user_id), session: AsyncSession = Depends(get_database)):
    location = await repository.get_user_location(session, user_id)
    if location is None:
        raise HTTPException(status_code=404, detail="Location not set")
    return location


@router.post("", response_model=UserLocationOut)
async def save_location(
    body: UserLocationIn,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_database),
):
    """Create or replace the caller's shopping location."""
    return await repository.upsert_user_location(session, user_id, body)


@router.delete("")
async def clear_location(user_id: str = Depends(get_current_user_id), session: AsyncSession = Depends(get_database)):
    deleted = await repository.delete_user_location(session, user_id)
    logger.info("User location cleared: user=%s existed=%s", user_id, deleted)
    return {"ok": True, "deleted": deleted}
