import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_admin.core.config import Config, config
from catalog_admin.core.db.engine import AsyncSessionLocal, check_database_connection
from catalog_admin.core.error_handler import global_exception_handler, http_exception_handler
from catalog_admin.core.storage import FileUploadClient, build_upload_client
from catalog_admin.core.store import EntityStoreClient
from catalog_admin.modules.image_sets import WorkspaceRegistry
from catalog_admin.modules.image_sets import router as image_sets_router

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Config] = None,
    store: Optional[EntityStoreClient] = None,
    uploader: Optional[FileUploadClient] = None,
) -> FastAPI:
    settings = settings or config
    store = store or EntityStoreClient(AsyncSessionLocal)
    uploader = uploader or build_upload_client(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Catalog Admin API...")
        yield
        # Unmount: release every local preview still held
        app.state.workspaces.close_all()
        logger.info("Catalog Admin API stopped")

    app = FastAPI(
        title="Catalog Admin API",
        description="Per-color product image management for the catalog",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.workspaces = WorkspaceRegistry(store, uploader, settings)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(image_sets_router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"database": await check_database_connection()}

    return app


app = create_app()
