import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from database import connect, ensure_indexes
from errors import register_exception_handlers
from routers import api_router

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API. Tests pass their own settings and an in-memory database."""
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    db = database if database is not None else connect(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.db is not None:
            ensure_indexes(app.state.db)
        logger.info("API starting (%s)", settings.environment)
        yield

    app = FastAPI(title="E-Commerce API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/")
    def read_root():
        return {"message": "E-Commerce API"}

    @app.get("/test")
    def database_status(request: Request):
        """Report whether the catalog database answers and which collections it holds."""
        db = request.app.state.db
        if db is None:
            return {"status": "ok", "database": "not configured", "collections": []}
        try:
            collections = sorted(db.list_collection_names())
        except PyMongoError as exc:
            logger.warning("Database status check failed: %s", exc)
            return {"status": "degraded", "database": db.name, "error": str(exc), "collections": []}
        return {"status": "ok", "database": db.name, "collections": collections}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
