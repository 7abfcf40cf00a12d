"""Store and shipping rule management routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wishlist_api.api.deps import get_database, require_admin_api_key
from wishlist_api.db import repository
from wishlist_api.db.repository import DuplicateShippingRuleError, DuplicateStoreError, StoreNotFoundError
from wishlist_api.schemas.stores import ShippingRule, ShippingRuleCreate, Store, StoreCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stores", tags=["stores"])


@router.post(
    "",
    response_model=Store,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_api_key)],
)
async def create_store(body: StoreCreate, session: AsyncSession = Depends(get_database)):
    logger.info("Creating store: %s (%s)", body.name, body.domain)
    try:
        return await repository.create_store(session, body)
    except DuplicateStoreError:
        raise HTTPException(status_code=409, detail=f"Store already exists for domain {body.domain}")


@router.post(
    "/{store_id}/shipping-rules",
    response_model=ShippingRule,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_api_key)],
)
async def add_shipping_rule(store_id: str, body: ShippingRuleCreate, session: AsyncSession = Depends(get_database)):
    logger.info("Creating shipping rule: store=%s country=%s", store_id, body.country_code)
    try:
        return await repository.add_shipping_rule(session, store_id, body)
    except StoreNotFoundError:
        raise HTTPException(status_code=404, detail="Store not found")
    except DuplicateShippingRuleError:
        raise HTTPException(status_code=409, detail=f"Store already has a shipping rule for {body.country_code.upper()}")


@router.get("/{domain}", response_model=Store)
async def get_store(domain: str, session: AsyncSession = Depends(get_database)):
    """Store record with its shipping rules, looked up by domain."""
    store = await repository.get_store_by_domain(session, domain)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    return store
