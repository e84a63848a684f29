import logging
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.config import load_config
from src.db import create_tables
from src.errors import EconomyError
from src.routers import admin, economy
from src.seed import seed_demo_data
from src.services.container import EconomyServices, build_services
from src.services.market_refresh import run_refresh_job

logging.basicConfig(level=logging.INFO)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, optionally seed the demo catalog and start the market refresh job.
    This function is called to start the server.
    """
    services: EconomyServices = app.state.services
    config = services.config
    scheduler = AsyncIOScheduler()

    await create_tables(services.engine)
    if config.seed_demo_data:
        await seed_demo_data(services.session_factory)

    if config.enable_jobs:
        # refresh the stale part of the price cache
        scheduler.add_job(
            run_refresh_job,
            "interval",
            minutes=config.market_refresh_interval_minutes,
            args=[services.resolver, config.market_refresh_batch_size],
        )
        scheduler.start()
    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown()
        await services.resolver.drain()
        await services.claims.close()
        logging.info("Stop Server")


async def economy_error_handler(request: Request, exc: EconomyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "INTERNAL"})


def create_app(services: Optional[EconomyServices] = None) -> FastAPI:
    """Build the API around the given services, or around the configured database

    Args:
        services (Optional[EconomyServices]): Pre-wired services, used by tests

    Returns:
        FastAPI: The application
    """
    if services is None:
        services = build_services(load_config())

    app = FastAPI(lifespan=lifespan)
    app.state.services = services
    app.add_exception_handler(EconomyError, economy_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(economy.economy_router)
    app.include_router(admin.admin_router)
    return app


app = create_app()


# if __name__ == "__main__":
#     uvicorn.run(app, host="0.0.0.0", port=8080, reload=True)
