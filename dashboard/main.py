from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from benchmarking.config import load_config_from_env
from dashboard.routers import benchmarks
from database.engine import create_store_engine, initialize_database, pool_status


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the benchmark API.

    Without an engine, one is created from the environment
    on startup and disposed on shutdown.
    """
    owns_engine = engine is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        initialize_database(app.state.engine)
        yield
        if owns_engine:
            app.state.engine.dispose()

    app = FastAPI(
        title="Metric Drift Lab API",
        description="Benchmarks derived-score maintenance strategies under definition changes.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS (Allow local frontend development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if engine is None:
        store = load_config_from_env().store
        engine = create_store_engine(
            store.database_url,
            pool_size=store.pool_size,
            max_overflow=store.max_overflow,
            pool_timeout=store.pool_timeout,
            pool_recycle=store.pool_recycle,
            echo=store.echo,
        )
    app.state.engine = engine

    app.include_router(benchmarks.router)

    @app.get("/")
    def root():
        return {
            "status": "ok",
            "message": "Metric Drift Lab API is running",
            "store": pool_status(app.state.engine),
        }

    return app

