from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .console import ConsoleRenderer
from .logger import logger, set_console_level
from .pipeline import Pipeline
from .routers import stream, system


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        set_console_level(app_settings.verbosity)
        pipeline = Pipeline(app_settings)
        if app_settings.console:
            renderer = ConsoleRenderer()
            renderer.banner(app_settings)
            pipeline.dispatcher.on_event(renderer.render)

        logger.info("Starting up the log pipeline...")
        await pipeline.start()
        app.state.pipeline = pipeline
        logger.info("Startup complete.")
        try:
            yield
        finally:
            logger.info("Shutting down the log pipeline...")
            app.state.pipeline = None
            await pipeline.stop()

    app = FastAPI(lifespan=lifespan, title="MCP Monitor")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(system.router)
    app.include_router(stream.router)

    # Web UI, mounted last so /api and /ws take precedence
    if app_settings.static_path is not None:
        app.mount(
            "/",
            StaticFiles(directory=app_settings.static_path.resolve(), html=True),
            name="static",
        )
    return app
