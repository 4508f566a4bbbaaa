from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from wealthboard.core.config import settings
from wealthboard.core.context import set_user_id
from wealthboard.infrastructure.db.uow import UnitOfWork
from wealthboard.services.goal_progress import (
    GoalProgressCoordinator,
    InMemoryLastWriteStore,
    LastWriteStore,
    RedisLastWriteStore,
)
from wealthboard.services.service import FinanceService

USER_ID_HEADER = "X-User-Id"

def build_goal_coordinator(redis=None) -> GoalProgressCoordinator:
    """
    Координатор прогресса с хранилищем из GOALS__LAST_WRITE_STORE.
    Redis нужен, когда несколько процессов обслуживают одного пользователя.
    """
    goals = settings.GOALS
    cooldown = timedelta(seconds=goals.PROGRESS_COOLDOWN_SECONDS)

    store: LastWriteStore
    if goals.LAST_WRITE_STORE == "redis":
        if redis is None:
            raise RuntimeError("Redis client required for redis last write store")
        store = RedisLastWriteStore(redis, cooldown=cooldown)
    else:
        store = InMemoryLastWriteStore(max_entries=goals.LAST_WRITE_MAX_ENTRIES)

    return GoalProgressCoordinator(
        store,
        cooldown=cooldown,
        min_change=Decimal(str(goals.PROGRESS_MIN_CHANGE)),
    )

def _app_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{name} not available",
        )
    return value

async def get_uow(request: Request) -> UnitOfWork:
    return UnitOfWork(_app_state(request, "db_session_maker"))

def get_goal_coordinator(request: Request) -> GoalProgressCoordinator:
    return _app_state(request, "goal_coordinator")

def get_finance_service(
    uow: UnitOfWork = Depends(get_uow),
    coordinator: GoalProgressCoordinator = Depends(get_goal_coordinator),
) -> FinanceService:
    return FinanceService(uow, coordinator)

async def get_current_user_id(request: Request) -> UUID:
    """
    Пользователь из заголовка X-User-Id, который проставляет API Gateway.
    Попадает в контекст логов текущего запроса.
    """
    raw = request.headers.get(USER_ID_HEADER)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User ID header missing",
        )

    try:
        user_id = UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid User ID format",
        )

    set_user_id(user_id)
    return user_id
