import random
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from neural_echo.api import router
from neural_echo.config import EngineConfig, load_config
from neural_echo.engine import EngineContext
from neural_echo.errors import PersistenceError
from neural_echo.storage import JsonStateStore, StateStore


def create_app(
    data_dir: Path | None = None,
    *,
    store: StateStore | None = None,
    config: EngineConfig | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """Build the API app. The engine is loaded when the app starts up."""
    config = config or load_config()
    if store is None:
        store = JsonStateStore(data_dir or config.data_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = await EngineContext.load(store, config, rng=rng)
        yield

    app = FastAPI(title="Neural Echo", lifespan=lifespan)
    app.include_router(router, prefix="/api")

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app
