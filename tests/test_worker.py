import pytest
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from sqlalchemy import select

from wealthboard.core.config import settings
from wealthboard.infrastructure.db import models
from wealthboard.workers.main import WorkerSettings
from wealthboard.workers.tasks import snapshot_net_worth_task

@pytest.mark.asyncio
async def test_snapshot_task_without_session_maker():
    assert await snapshot_net_worth_task({}) == 0

@pytest.mark.asyncio
async def test_snapshot_task_processes_holders(session_maker, coordinator):
    holders = [uuid4(), uuid4()]
    async with session_maker() as session:
        session.add_all([
            models.Asset(user_id=holders[0], name="House", type="REAL_ESTATE", value=Decimal("1000")),
            models.Liability(user_id=holders[1], name="Card", type="credit_card", balance=Decimal("300")),
            models.Income(user_id=uuid4(), source="Salary", amount=Decimal("3000")),
        ])
        await session.commit()

    ctx = {"db_session_maker": session_maker, "goal_coordinator": coordinator}
    processed = await snapshot_net_worth_task(ctx)

    assert processed == 2, "Только пользователи с активами или долгами"
    async with session_maker() as session:
        snapshots = (await session.execute(select(models.NetWorthSnapshot))).scalars().all()
    assert {s.user_id for s in snapshots} == set(holders)
    assert {s.net_worth for s in snapshots} == {Decimal("1000"), Decimal("-300")}

@pytest.mark.asyncio
async def test_snapshot_task_continues_after_failure(session_maker, coordinator):
    async with session_maker() as session:
        session.add_all([
            models.Asset(user_id=uuid4(), name="Cash", type="CASH_EQUIVALENTS", value=Decimal("10")),
            models.Asset(user_id=uuid4(), name="Cash", type="CASH_EQUIVALENTS", value=Decimal("20")),
        ])
        await session.commit()

    ctx = {"db_session_maker": session_maker, "goal_coordinator": coordinator}
    with patch(
        "wealthboard.workers.tasks.FinanceService.create_net_worth_snapshot",
        side_effect=[RuntimeError("boom"), None],
    ):
        processed = await snapshot_net_worth_task(ctx)

    assert processed == 1, "Ошибка одного пользователя не останавливает батч"

def test_worker_schedules_daily_snapshot():
    assert snapshot_net_worth_task in WorkerSettings.functions
    job = WorkerSettings.cron_jobs[0]
    assert job.hour == 0
    assert job.minute == 5

@pytest.mark.asyncio
async def test_snapshot_task_pages_through_holders(session_maker, coordinator):
    async with session_maker() as session:
        session.add_all([
            models.Asset(user_id=uuid4(), name="Cash", type="CASH_EQUIVALENTS", value=Decimal(str(i)))
            for i in range(1, 4)
        ])
        await session.commit()

    ctx = {"db_session_maker": session_maker, "goal_coordinator": coordinator}
    with patch.object(settings.WORKER, "SNAPSHOT_BATCH_SIZE", 1):
        processed = await snapshot_net_worth_task(ctx)

    assert processed == 3, "Все батчи обходятся до конца"
