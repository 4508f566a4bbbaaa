import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Protocol
from uuid import UUID

from redis.asyncio import Redis

from wealthboard.domain.constants import (
    PASSIVE_INCOME_GOAL_DESCRIPTION,
    PASSIVE_INCOME_GOAL_MARKERS,
    PASSIVE_INCOME_GOAL_NAME,
)
from wealthboard.domain.enums import GoalType, ProgressAction, SkipReason
from wealthboard.domain.schemas import dtos
from wealthboard.services.calculations import ZERO, to_decimal
from wealthboard.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(seconds=5)
DEFAULT_MIN_CHANGE = Decimal("1")

def is_passive_income_goal(goal) -> bool:
    if getattr(goal, "is_passive_income", False):
        return True
    name = (goal.name or "").lower()
    return any(marker in name for marker in PASSIVE_INCOME_GOAL_MARKERS)

def _passive_goal_order(goal):
    created_at = getattr(goal, "created_at", None)
    return (not getattr(goal, "is_passive_income", False), created_at is None, created_at)

def find_passive_income_goal(goals: Iterable):
    """Тот же порядок, что и в репозитории: сначала отмеченные флагом, затем самые старые."""
    matches = [goal for goal in goals if is_passive_income_goal(goal)]
    if not matches:
        return None
    return min(matches, key=_passive_goal_order)

def resolve_passive_income_goal(
    existing_goals: Iterable,
    monthly_expenses_total,
) -> dtos.GoalRecord | None:
    """
    Возвращает существующую цель пассивного дохода или новую (goal_id=None),
    если ее нет и регулярные расходы больше нуля.
    """
    found = find_passive_income_goal(existing_goals)
    if found is not None:
        return dtos.GoalRecord.model_validate(found)

    expenses_total = to_decimal(monthly_expenses_total)
    if expenses_total <= 0:
        return None

    return dtos.GoalRecord(
        name=PASSIVE_INCOME_GOAL_NAME,
        type=GoalType.RETIREMENT,
        target_amount=expenses_total,
        current_amount=ZERO,
        description=PASSIVE_INCOME_GOAL_DESCRIPTION,
        is_completed=False,
        is_passive_income=True,
    )

def decide_progress_update(
    goal,
    new_passive_income,
    last_write_at: datetime | None,
    now: datetime,
    cooldown: timedelta = DEFAULT_COOLDOWN,
    min_change: Decimal = DEFAULT_MIN_CHANGE,
) -> dtos.ProgressDecision:
    """Чистое решение: rate limit пользователя, затем порог изменения."""
    goal_id = getattr(goal, "goal_id", None)

    if last_write_at is not None and now - last_write_at < cooldown:
        return dtos.ProgressDecision.skip(SkipReason.RATE_LIMITED, goal_id)

    new_amount = to_decimal(new_passive_income)
    if abs(to_decimal(goal.current_amount) - new_amount) <= min_change:
        return dtos.ProgressDecision.skip(SkipReason.INSIGNIFICANT, goal_id)

    return dtos.ProgressDecision(
        action=ProgressAction.APPLY,
        goal_id=goal_id,
        new_current_amount=new_amount,
        new_is_completed=new_amount >= to_decimal(goal.target_amount),
        new_updated_at=now,
    )

class LastWriteStore(Protocol):
    """Хранилище времени последней записи прогресса по пользователю."""

    async def get(self, user_id: UUID) -> datetime | None: ...

    async def compare_and_set(
        self,
        user_id: UUID,
        expected: datetime | None,
        new: datetime,
    ) -> bool: ...

class InMemoryLastWriteStore:
    """
    Хранилище в памяти процесса. Потеря при рестарте только ослабляет rate limit.
    При max_entries вытесняются давно не использованные пользователи (LRU).
    """

    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries
        self._entries: OrderedDict[UUID, datetime] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, user_id: UUID) -> datetime | None:
        with self._lock:
            value = self._entries.get(user_id)
            if value is not None:
                self._entries.move_to_end(user_id)
            return value

    async def compare_and_set(
        self,
        user_id: UUID,
        expected: datetime | None,
        new: datetime,
    ) -> bool:
        with self._lock:
            if self._entries.get(user_id) != expected:
                return False

            self._entries[user_id] = new
            self._entries.move_to_end(user_id)

            if self.max_entries and len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return True

def get_last_write_key(user_id: UUID) -> str:
    """Ключ Redis для времени последней записи прогресса."""
    return f"wealthboard:goals:last_write:{user_id}"

class RedisLastWriteStore:
    """
    Общее хранилище для нескольких процессов. TTL ключа равен cooldown:
    истекшая запись эквивалентна отсутствующей, поэтому compare-and-set
    сводится к SET NX.
    """

    def __init__(self, redis: Redis, cooldown: timedelta = DEFAULT_COOLDOWN):
        self.redis = redis
        self.ttl_ms = max(int(cooldown.total_seconds() * 1000), 1)

    async def get(self, user_id: UUID) -> datetime | None:
        raw = await self.redis.get(get_last_write_key(user_id))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return datetime.fromisoformat(raw)

    async def compare_and_set(
        self,
        user_id: UUID,
        expected: datetime | None,
        new: datetime,
    ) -> bool:
        # Живой ключ означает, что окно cooldown еще не истекло.
        stored = await self.redis.set(
            get_last_write_key(user_id),
            new.isoformat(),
            px=self.ttl_ms,
            nx=True,
        )
        return bool(stored)

class GoalProgressCoordinator:
    """
    Решает, записывать ли новый прогресс цели пассивного дохода.
    Сам I/O по цели не выполняет: возвращает решение вызывающему.
    """

    def __init__(
        self,
        store: LastWriteStore,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        min_change: Decimal = DEFAULT_MIN_CHANGE,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.cooldown = cooldown
        self.min_change = min_change
        self.clock = clock

    async def update_progress(
        self,
        user_id: UUID,
        goal,
        new_passive_income,
    ) -> dtos.ProgressDecision:
        now = self.clock()
        last_write_at = await self.store.get(user_id)

        decision = decide_progress_update(
            goal,
            new_passive_income,
            last_write_at,
            now,
            cooldown=self.cooldown,
            min_change=self.min_change,
        )

        if decision.action is not ProgressAction.APPLY:
            return decision

        if not await self.store.compare_and_set(user_id, last_write_at, now):
            logger.info(
                "Concurrent progress write detected for user %s",
                user_id,
            )
            return dtos.ProgressDecision.skip(
                SkipReason.RATE_LIMITED,
                decision.goal_id,
            )

        return decision
