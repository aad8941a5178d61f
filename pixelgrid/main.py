"""
Pixel Grid Animation Service

Stores 16x16 RGB animations authored in the browser and serves their
metadata and raw frame data back to clients and LED matrices. Every save
replaces the whole animation set.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables
load_dotenv()

from pixelgrid.config import LOG_LEVEL, SEED_ON_EMPTY
from pixelgrid.database import SessionLocal, init_db
from pixelgrid.errors import register_exception_handlers
from pixelgrid.routers import animations_router
from pixelgrid.store import AnimationStore
from pixelgrid.sync_engine import SyncEngine

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def create_app(
    store: Optional[AnimationStore] = None,
    seed_on_empty: Optional[bool] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        store: Store to load from and persist to. Defaults to the
            configured database, whose tables are created on startup.
        seed_on_empty: Override the SEED_ON_EMPTY setting.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup: load the cache; an inconsistent store aborts startup
        app_store = store
        if app_store is None:
            init_db()
            app_store = AnimationStore(SessionLocal)

        engine = SyncEngine(
            app_store,
            seed_on_empty=SEED_ON_EMPTY if seed_on_empty is None else seed_on_empty,
        )
        engine.initialize()
        app.state.engine = engine
        yield
        # Shutdown: nothing to release

    app = FastAPI(
        title="Pixel Grid Animation Service",
        version="0.1.0",
        description="""
Stores 16x16 RGB animations authored in the browser and serves their
metadata and raw frame data back to clients and LED matrices.
        """,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(animations_router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    uvicorn.run("pixelgrid.main:app", host=host, port=port, reload=debug)
