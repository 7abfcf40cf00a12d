"""
Wishlist Store Availability API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    python -m uvicorn wishlist_api.main:app --reload --host 0.0.0.0 --port 8000

✅ TEST LOCALLY:
    curl -i http://127.0.0.1:8000/health
    curl -i http://127.0.0.1:8000/docs
    curl -i -X POST http://127.0.0.1:8000/api/items/find-alternatives \
        -H 'Content-Type: application/json' \
        -d '{"title": "Sony WH-1000XM5", "countryCode": "JO", "city": "Amman"}'

✅ PRODUCTION:
    Build Command:
        pip install .

    Start Command:
        python -m uvicorn wishlist_api.main:app --host 0.0.0.0 --port $PORT
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ✅ Routers
from wishlist_api.api.routes_items import router as items_router
from wishlist_api.api.routes_location import router as location_router
from wishlist_api.api.routes_stores import router as stores_router
from wishlist_api.core.config import settings
from wishlist_api.core.logging_config import setup_logging
from wishlist_api.db.session import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()
    logger.info("Wishlist API started (version=%s build=%s)", settings.APP_VERSION, settings.BUILD_ID)
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Wishlist Store Availability API",
        version=settings.APP_VERSION,
        description="Finds other stores for wishlist items and filters them by where the user can get delivery",
        lifespan=lifespan,
    )

    # ✅ CORS
    # The mobile app does not need it; browsers and Swagger docs do
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ✅ Root (GET /)
    @app.get("/")
    def root():
        return {
            "name": "Wishlist Store Availability API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
        }

    # ✅ Health Check (GET /health)
    @app.get("/health")
    def health():
        return {"ok": True}

    # ✅ Version endpoint (GET /version)
    @app.get("/version")
    def version():
        return {"version": settings.APP_VERSION, "build": settings.BUILD_ID}

    # ✅ Mount routers
    app.include_router(items_router)
    app.include_router(location_router)
    app.include_router(stores_router)

    return app


app = create_app()
