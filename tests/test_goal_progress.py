import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from wealthboard.domain.constants import PASSIVE_INCOME_GOAL_NAME
from wealthboard.domain.enums import GoalType, ProgressAction, SkipReason
from wealthboard.domain.schemas import dtos
from wealthboard.services.goal_progress import (
    GoalProgressCoordinator,
    InMemoryLastWriteStore,
    RedisLastWriteStore,
    decide_progress_update,
    find_passive_income_goal,
    get_last_write_key,
    is_passive_income_goal,
    resolve_passive_income_goal,
)

NOW = datetime(2025, 10, 29, 12, 0, tzinfo=timezone.utc)

class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: float):
        self.now += timedelta(seconds=seconds)

def _goal(current="0", target="1880", name=PASSIVE_INCOME_GOAL_NAME, **kwargs):
    return dtos.GoalRecord(
        goal_id=kwargs.pop("goal_id", uuid4()),
        name=name,
        type=GoalType.RETIREMENT,
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        **kwargs,
    )

# --- Поиск и создание цели ---

def test_resolve_creates_goal_from_expenses():
    goal = resolve_passive_income_goal([], Decimal("1880"))

    assert goal is not None
    assert goal.goal_id is None, "Новая цель еще не сохранена"
    assert goal.name == "Escape the Rat Race - Passive Income Goal"
    assert goal.type is GoalType.RETIREMENT
    assert goal.target_amount == Decimal("1880")
    assert goal.current_amount == 0
    assert goal.is_completed is False
    assert goal.is_passive_income is True

def test_resolve_without_expenses_returns_none():
    assert resolve_passive_income_goal([], 0) is None

def test_resolve_returns_existing_goal():
    existing = _goal(current="150", name="My rat race plan")
    other = _goal(name="Vacation")

    goal = resolve_passive_income_goal([other, existing], Decimal("5000"))
    assert goal.goal_id == existing.goal_id
    assert goal.target_amount == Decimal("1880"), "Существующая цель не пересоздается"

def test_find_prefers_flag_then_oldest():
    older = SimpleNamespace(name="Financial freedom", is_passive_income=False, created_at=NOW - timedelta(days=400))
    newer = SimpleNamespace(name="Passive income v2", is_passive_income=False, created_at=NOW)
    flagged = SimpleNamespace(name="Freedom", is_passive_income=True, created_at=NOW)

    assert find_passive_income_goal([newer, older]) is older, "Из совпавших по имени берется самая старая"
    assert find_passive_income_goal([newer, older, flagged]) is flagged
    assert find_passive_income_goal([SimpleNamespace(name="Vacation", is_passive_income=False)]) is None

def test_is_passive_income_goal_by_flag_or_name():
    assert is_passive_income_goal(_goal(name="Freedom", is_passive_income=True))
    assert is_passive_income_goal(_goal(name="Grow PASSIVE INCOME"))
    assert not is_passive_income_goal(_goal(name="New car"))

# --- Чистое решение ---

def test_decide_applies_significant_change():
    goal = _goal(current="0")
    decision = decide_progress_update(goal, Decimal("150"), None, NOW)

    assert decision.action is ProgressAction.APPLY
    assert decision.goal_id == goal.goal_id
    assert decision.new_current_amount == Decimal("150")
    assert decision.new_is_completed is False
    assert decision.new_updated_at == NOW

def test_decide_marks_completed_when_target_reached():
    decision = decide_progress_update(_goal(current="0"), Decimal("1880"), None, NOW)
    assert decision.new_is_completed is True

def test_decide_skips_change_of_exactly_one():
    decision = decide_progress_update(_goal(current="150"), Decimal("151.00"), None, NOW)
    assert decision.action is ProgressAction.SKIP
    assert decision.reason is SkipReason.INSIGNIFICANT

def test_decide_applies_change_above_one():
    decision = decide_progress_update(_goal(current="150"), Decimal("151.01"), None, NOW)
    assert decision.applied

def test_decide_rate_limit_checked_first():
    last = NOW - timedelta(seconds=2)
    decision = decide_progress_update(_goal(current="0"), Decimal("500"), last, NOW)
    assert decision.reason is SkipReason.RATE_LIMITED

def test_decide_cooldown_boundary():
    last = NOW - timedelta(seconds=5)
    decision = decide_progress_update(_goal(current="0"), Decimal("500"), last, NOW)
    assert decision.applied, "Ровно cooldown после записи - уже можно"

def test_decide_allows_decrease():
    decision = decide_progress_update(_goal(current="500"), Decimal("100"), None, NOW)
    assert decision.applied
    assert decision.new_current_amount == Decimal("100")

# --- Координатор ---

@pytest.mark.asyncio
async def test_coordinator_rate_limits_per_user():
    clock = FakeClock()
    store = InMemoryLastWriteStore()
    coordinator = GoalProgressCoordinator(store, clock=clock)
    user_id = uuid4()
    goal = _goal(current="0")

    first = await coordinator.update_progress(user_id, goal, Decimal("150"))
    assert first.applied

    clock.tick(2)
    second = await coordinator.update_progress(user_id, goal, Decimal("400"))
    assert second.reason is SkipReason.RATE_LIMITED

    clock.tick(4)
    third = await coordinator.update_progress(user_id, goal, Decimal("400"))
    assert third.applied, "После cooldown запись снова разрешена"

@pytest.mark.asyncio
async def test_coordinator_users_are_independent():
    store = InMemoryLastWriteStore()
    coordinator = GoalProgressCoordinator(store, clock=FakeClock())

    first = await coordinator.update_progress(uuid4(), _goal(), Decimal("150"))
    second = await coordinator.update_progress(uuid4(), _goal(), Decimal("150"))

    assert first.applied and second.applied

@pytest.mark.asyncio
async def test_insignificant_change_does_not_consume_cooldown():
    clock = FakeClock()
    store = InMemoryLastWriteStore()
    coordinator = GoalProgressCoordinator(store, clock=clock)
    user_id = uuid4()

    skipped = await coordinator.update_progress(user_id, _goal(current="150"), Decimal("150.50"))
    assert skipped.reason is SkipReason.INSIGNIFICANT
    assert await store.get(user_id) is None

    applied = await coordinator.update_progress(user_id, _goal(current="150"), Decimal("300"))
    assert applied.applied

@pytest.mark.asyncio
async def test_concurrent_updates_apply_once():
    store = InMemoryLastWriteStore()
    coordinator = GoalProgressCoordinator(store, clock=FakeClock())
    user_id = uuid4()
    goal = _goal(current="0")

    decisions = await asyncio.gather(
        *(coordinator.update_progress(user_id, goal, Decimal("150")) for _ in range(10))
    )

    applied = [d for d in decisions if d.applied]
    assert len(applied) == 1, "Ровно одна запись за окно cooldown"
    assert all(d.reason is SkipReason.RATE_LIMITED for d in decisions if not d.applied)

@pytest.mark.asyncio
async def test_lost_compare_and_set_is_rate_limited():
    store = MagicMock()
    store.get = AsyncMock(return_value=None)
    store.compare_and_set = AsyncMock(return_value=False)
    coordinator = GoalProgressCoordinator(store, clock=FakeClock())
    goal = _goal(current="0")

    decision = await coordinator.update_progress(uuid4(), goal, Decimal("150"))

    assert decision.action is ProgressAction.SKIP
    assert decision.reason is SkipReason.RATE_LIMITED
    assert decision.goal_id == goal.goal_id

@pytest.mark.asyncio
async def test_custom_thresholds():
    coordinator = GoalProgressCoordinator(
        InMemoryLastWriteStore(),
        cooldown=timedelta(seconds=60),
        min_change=Decimal("10"),
        clock=FakeClock(),
    )
    decision = await coordinator.update_progress(uuid4(), _goal(current="100"), Decimal("109"))
    assert decision.reason is SkipReason.INSIGNIFICANT

# --- Хранилища ---

@pytest.mark.asyncio
async def test_in_memory_store_compare_and_set():
    store = InMemoryLastWriteStore()
    user_id = uuid4()

    assert await store.compare_and_set(user_id, None, NOW)
    assert not await store.compare_and_set(user_id, None, NOW), "Ожидаемое значение устарело"
    assert await store.compare_and_set(user_id, NOW, NOW + timedelta(seconds=6))
    assert await store.get(user_id) == NOW + timedelta(seconds=6)

@pytest.mark.asyncio
async def test_in_memory_store_evicts_least_recent():
    store = InMemoryLastWriteStore(max_entries=2)
    first, second, third = uuid4(), uuid4(), uuid4()

    await store.compare_and_set(first, None, NOW)
    await store.compare_and_set(second, None, NOW)
    await store.get(first)
    await store.compare_and_set(third, None, NOW)

    assert len(store) == 2
    assert await store.get(second) is None, "Вытесняется давно не использованный"
    assert await store.get(first) == NOW

@pytest.mark.asyncio
async def test_redis_store_get_parses_timestamp():
    redis = MagicMock()
    redis.get = AsyncMock(return_value=NOW.isoformat().encode())
    store = RedisLastWriteStore(redis)
    user_id = uuid4()

    assert await store.get(user_id) == NOW
    redis.get.assert_awaited_once_with(get_last_write_key(user_id))

@pytest.mark.asyncio
async def test_redis_store_get_missing_key():
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    store = RedisLastWriteStore(redis)

    assert await store.get(uuid4()) is None

@pytest.mark.asyncio
async def test_redis_store_compare_and_set_uses_set_nx():
    redis = MagicMock()
    redis.set = AsyncMock(return_value=None)
    store = RedisLastWriteStore(redis, cooldown=timedelta(seconds=5))
    user_id = uuid4()

    result = await store.compare_and_set(user_id, None, NOW)

    assert result is False, "Ключ уже существует - запись проиграна"
    redis.set.assert_awaited_once_with(
        get_last_write_key(user_id),
        NOW.isoformat(),
        px=5000,
        nx=True,
    )

@pytest.mark.asyncio
async def test_redis_store_compare_and_set_success():
    redis = MagicMock()
    redis.set = AsyncMock(return_value=True)
    store = RedisLastWriteStore(redis)

    assert await store.compare_and_set(uuid4(), None, NOW) is True
