import logging
from uuid import UUID

from wealthboard.core.config import settings
from wealthboard.infrastructure.db.uow import UnitOfWork
from wealthboard.services.service import FinanceService

logger = logging.getLogger(__name__)

async def snapshot_net_worth_task(ctx) -> int:
    """
    Ежедневный снимок чистого капитала всех пользователей с активами или долгами.
    Пользователи обходятся батчами по user_id; ошибка одного не прерывает обход.
    """
    db_maker = ctx.get("db_session_maker")
    if not db_maker:
        logger.warning("Net worth snapshot skipped: no database session factory")
        return 0

    batch_size = settings.WORKER.SNAPSHOT_BATCH_SIZE
    service = FinanceService(UnitOfWork(db_maker), ctx.get("goal_coordinator"))
    processed = 0
    failed = 0
    cursor: UUID | None = None

    while True:
        async with UnitOfWork(db_maker) as uow:
            user_ids = await uow.finance.list_user_ids_with_holdings(
                limit=batch_size,
                after=cursor,
            )
        if not user_ids:
            break
        cursor = user_ids[-1]

        for user_id in user_ids:
            try:
                await service.create_net_worth_snapshot(user_id)
            except Exception as e:
                failed += 1
                logger.error(
                    "Net worth snapshot failed for user %s: %s",
                    user_id,
                    e,
                    exc_info=True,
                )
            else:
                processed += 1

    logger.info("Net worth snapshots written: %s, failed: %s", processed, failed)
    return processed
