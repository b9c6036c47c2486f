"""FastAPI tab API - tournament setup, draws, ballots, tabs and the elimination track."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from tabroom.models import create_engine, create_session_factory, init_db

from web.api.break_routes import router as break_router
from web.api.draw_routes import router as draw_router
from web.api.routes import router as api_router
from web.api.tab_routes import router as tab_router

logger = logging.getLogger("tabroom.api")


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Build the app with its own engine and session factory on app.state."""
    engine = create_engine(database_url or config.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(engine)
        logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
        yield
        await engine.dispose()

    app = FastAPI(title="Tabroom API", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    app.include_router(draw_router)
    app.include_router(tab_router)
    app.include_router(break_router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app
