import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from prometheus_client import make_asgi_app
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse

from wealthboard.api import dependencies, routes
from wealthboard.core import exceptions
from wealthboard.core.config import settings
from wealthboard.core.context import set_request_id, set_user_id
from wealthboard.core.database import get_db_engine, get_session_factory
from wealthboard.core.logging import setup_logging

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/finance"

ERROR_STATUS = {
    exceptions.NotFoundError: 404,
    exceptions.InvalidFinancialDataError: 400,
}

def _init_database(app: FastAPI):
    engine = get_db_engine()
    app.state.engine = engine
    app.state.db_session_maker = get_session_factory(engine)
    logger.info("Database engine created")
    return engine

def _init_redis(app: FastAPI) -> Redis | None:
    if settings.GOALS.LAST_WRITE_STORE != "redis":
        return None
    redis = Redis.from_url(settings.ARQ.REDIS_URL, decode_responses=True)
    app.state.redis = redis
    logger.info("Redis last write store enabled")
    return redis

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Engine БД, опциональный Redis и координатор прогресса целей."""
    setup_logging()
    engine = _init_database(app)
    redis = _init_redis(app)
    app.state.goal_coordinator = dependencies.build_goal_coordinator(redis)
    logger.info("Wealthboard started in %s mode", settings.APP.ENV)

    try:
        yield
    finally:
        if redis is not None:
            try:
                await redis.aclose()
            except Exception as e:
                logger.error("Error closing Redis client: %s", e)

        await engine.dispose()
        logger.info("Wealthboard stopped")

app = FastAPI(
    title="Wealthboard Finance Service",
    version="1.0",
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    openapi_url=f"{API_PREFIX}/openapi.json",
)

@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """request_id для логов и ответа; user_id проставит зависимость."""
    req_id = set_request_id(request.headers.get("X-Request-Id"))
    set_user_id(None)
    response = await call_next(request)
    response.headers["X-Request-Id"] = req_id
    return response

@app.exception_handler(exceptions.WealthboardError)
async def service_exception_handler(request: Request, exc: exceptions.WealthboardError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning("Service error %s: %s", type(exc).__name__, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.critical("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

app.include_router(routes.router, prefix=API_PREFIX)
app.mount("/metrics", make_asgi_app())
