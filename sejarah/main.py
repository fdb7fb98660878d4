from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import redis
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sejarah.api.routes import router
from sejarah.content.singleton import init_content
from sejarah.engine import GameEngine
from sejarah.fsm import EngineNotReadyError
from sejarah.infra.redis_client import create_redis
from sejarah.progress_store import ProgressStore
from sejarah.settings import EngineSettings, load_env_file, server_address

logger = logging.getLogger(__name__)


def create_app(
    *,
    settings: EngineSettings | None = None,
    redis_factory: Callable[[], redis.Redis] = create_redis,
) -> FastAPI:
    """Build the HTTP adapter around exactly one GameEngine.

    The engine is created and loaded in the lifespan and lives on `app.state.engine`.
    """

    cfg = settings or EngineSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_content()

        r = redis_factory()
        store = ProgressStore(r=r, key=cfg.storage_key, retry_delays_s=cfg.save_retry_delays_s)
        engine = GameEngine(store=store, settings=cfg)
        app.state.engine = engine
        await engine.load()
        if engine.load_warning:
            logger.warning("Startup: %s", engine.load_warning)
        try:
            yield
        finally:
            await engine.shutdown()
            try:
                r.close()
            except Exception:
                # Some redis client versions don't require explicit close.
                pass

    app = FastAPI(title="dbp-sejarah", version="0.1.0", lifespan=lifespan)
    app.include_router(router)

    @app.exception_handler(EngineNotReadyError)
    async def _engine_not_ready(request: Request, exc: EngineNotReadyError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})

    @app.get("/info")
    async def info() -> dict[str, str]:
        return {"name": "dbp-sejarah", "version": "0.1.0"}

    return app


# Local .env, then logging
load_env_file(Path(__file__).resolve().parents[1])
logging.basicConfig(level=EngineSettings.from_env().log_level)

app = create_app()


def main() -> None:
    host, port = server_address()
    logger.info("Serving on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=EngineSettings.from_env().log_level.lower())


if __name__ == "__main__":
    main()
