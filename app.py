from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engine import DirectoryEngine
from logging_config import get_logger
from routers.rooms import rooms_router
from routers.servers import servers_router
from routers.stats import stats_router
from routers.users import users_router

logger = get_logger(__name__)


def create_app(engine: Optional[DirectoryEngine] = None) -> FastAPI:
    """Build the HTTP surface over a directory engine.

    Without an engine one is created at startup from configuration and
    closed at shutdown; a given engine is left open for its owner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is None:
            app.state.engine = DirectoryEngine()
        yield
        if engine is None:
            app.state.engine.close()

    app = FastAPI(title="Chat directory", lifespan=lifespan)
    if engine is not None:
        app.state.engine = engine

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(users_router)
    app.include_router(rooms_router)
    app.include_router(servers_router)
    app.include_router(stats_router)

    @app.get("/health")
    def health():
        return {"redis": app.state.engine.ping()}

    logger.info("FastAPI application initialized")
    return app
