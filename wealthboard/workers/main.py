import logging

from arq.connections import RedisSettings
from arq.cron import cron

from wealthboard.api.dependencies import build_goal_coordinator
from wealthboard.core.config import settings
from wealthboard.core.database import get_db_engine, get_session_factory
from wealthboard.core.logging import setup_logging
from wealthboard.workers.tasks import snapshot_net_worth_task

logger = logging.getLogger(__name__)

async def on_startup(ctx):
    setup_logging()

    engine = get_db_engine()
    ctx["db_engine"] = engine
    ctx["db_session_maker"] = get_session_factory(engine)
    # arq кладет свой ArqRedis в ctx["redis"]; он же служит общим хранилищем cooldown.
    ctx["goal_coordinator"] = build_goal_coordinator(ctx.get("redis"))

    logger.info(
        "Snapshot worker ready, cron at %02d:%02d UTC",
        settings.WORKER.SNAPSHOT_HOUR,
        settings.WORKER.SNAPSHOT_MINUTE,
    )

async def on_shutdown(ctx):
    engine = ctx.pop("db_engine", None)
    if engine is not None:
        await engine.dispose()

class WorkerSettings:
    functions = [snapshot_net_worth_task]
    cron_jobs = [
        cron(
            snapshot_net_worth_task,
            hour=settings.WORKER.SNAPSHOT_HOUR,
            minute=settings.WORKER.SNAPSHOT_MINUTE,
            unique=True,
        ),
    ]
    on_startup = on_startup
    on_shutdown = on_shutdown
    queue_name = settings.ARQ.ARQ_QUEUE_NAME
    redis_settings = RedisSettings.from_dsn(settings.ARQ.REDIS_URL)
