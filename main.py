import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import get_settings
from routes import router
from store import Store

logger = logging.getLogger(__name__)


def create_app(settings=None):
    """Build the application; the store is opened when it starts serving."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # A store that cannot be opened stops the startup
        app.state.store = Store.init(
            settings.database_url,
            attempts=settings.store_init_attempts,
            wait=settings.store_init_wait,
        )
        try:
            yield
        finally:
            app.state.store.close()

    app = FastAPI(
        title=settings.service_name,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(router)
    return app


app = create_app()


def run():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting %s on %s:%s", settings.service_name, settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
