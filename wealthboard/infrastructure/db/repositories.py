from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select, union, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wealthboard.core import exceptions
from wealthboard.domain.constants import PASSIVE_INCOME_GOAL_MARKERS
from wealthboard.infrastructure.db import models

class FinanceRepository:
    """Репозиторий финансовых данных пользователя."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_incomes(self, user_id: UUID) -> list[models.Income]:
        result = await self.db.execute(
            select(models.Income).where(models.Income.user_id == user_id)
        )
        return list(result.scalars().all())

    async def list_expenses(self, user_id: UUID) -> list[models.Expense]:
        result = await self.db.execute(
            select(models.Expense).where(models.Expense.user_id == user_id)
        )
        return list(result.scalars().all())

    async def list_assets(self, user_id: UUID) -> list[models.Asset]:
        result = await self.db.execute(
            select(models.Asset).where(models.Asset.user_id == user_id)
        )
        return list(result.scalars().all())

    async def list_liabilities(self, user_id: UUID) -> list[models.Liability]:
        result = await self.db.execute(
            select(models.Liability).where(models.Liability.user_id == user_id)
        )
        return list(result.scalars().all())

    async def get_liability(
        self,
        user_id: UUID,
        liability_id: UUID,
    ) -> models.Liability | None:
        result = await self.db.execute(
            select(models.Liability).where(
                models.Liability.liability_id == liability_id,
                models.Liability.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_current_budget(
        self,
        user_id: UUID,
        now: datetime,
    ) -> models.Budget | None:
        """Бюджет, период которого содержит now; при пересечении - самый поздний по start_date."""
        result = await self.db.execute(
            select(models.Budget)
            .where(
                models.Budget.user_id == user_id,
                models.Budget.start_date <= now,
                models.Budget.end_date >= now,
            )
            .order_by(
                models.Budget.start_date.desc(),
                models.Budget.created_at.desc(),
                models.Budget.budget_id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_goals(
        self,
        user_id: UUID,
        only_active: bool = False,
    ) -> list[models.FinancialGoal]:
        query = select(models.FinancialGoal).where(
            models.FinancialGoal.user_id == user_id
        )
        if only_active:
            query = query.where(models.FinancialGoal.is_completed.is_(False))

        result = await self.db.execute(
            query.order_by(models.FinancialGoal.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_passive_income_goal(
        self,
        user_id: UUID,
    ) -> models.FinancialGoal | None:
        name_matches = [
            models.FinancialGoal.name.ilike(f"%{marker}%")
            for marker in PASSIVE_INCOME_GOAL_MARKERS
        ]
        result = await self.db.execute(
            select(models.FinancialGoal)
            .where(
                models.FinancialGoal.user_id == user_id,
                or_(models.FinancialGoal.is_passive_income.is_(True), *name_matches),
            )
            .order_by(
                models.FinancialGoal.is_passive_income.desc(),
                models.FinancialGoal.created_at.asc(),
                models.FinancialGoal.goal_id.asc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    def create_goal(self, goal_model: models.FinancialGoal) -> models.FinancialGoal:
        self.db.add(goal_model)
        return goal_model

    async def create_passive_income_goal(
        self,
        goal_model: models.FinancialGoal,
    ) -> models.FinancialGoal:
        """
        Вставка отмеченной цели. У пользователя может быть только одна такая цель:
        если параллельный запрос успел первым, возвращается его цель.
        """
        self.create_goal(goal_model)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.find_passive_income_goal(goal_model.user_id)
            if existing is None:
                raise
            return existing

        return goal_model

    async def apply_goal_progress(
        self,
        goal_id: UUID,
        current_amount: Decimal,
        is_completed: bool,
        updated_at: datetime,
    ) -> models.FinancialGoal:
        stmt = (
            update(models.FinancialGoal)
            .where(models.FinancialGoal.goal_id == goal_id)
            .values(
                current_amount=current_amount,
                is_completed=is_completed,
                updated_at=updated_at,
            )
            .returning(models.FinancialGoal)
        )

        result = await self.db.execute(stmt)
        goal = result.scalar_one_or_none()

        if goal is None:
            raise exceptions.NotFoundError("Goal not found")

        return goal

    async def upsert_snapshot(
        self,
        user_id: UUID,
        snapshot_date: date,
        total_assets: Decimal,
        total_liabilities: Decimal,
        net_worth: Decimal,
    ) -> models.NetWorthSnapshot:
        result = await self.db.execute(
            select(models.NetWorthSnapshot)
            .where(
                models.NetWorthSnapshot.user_id == user_id,
                models.NetWorthSnapshot.date == snapshot_date,
            )
            .with_for_update()
        )
        snapshot = result.scalar_one_or_none()

        if snapshot is None:
            snapshot = models.NetWorthSnapshot(
                user_id=user_id,
                date=snapshot_date,
            )
            self.db.add(snapshot)

        snapshot.total_assets = total_assets
        snapshot.total_liabilities = total_liabilities
        snapshot.net_worth = net_worth

        await self.db.flush()
        return snapshot

    async def list_snapshots(
        self,
        user_id: UUID,
        since: date | None = None,
    ) -> list[models.NetWorthSnapshot]:
        query = select(models.NetWorthSnapshot).where(
            models.NetWorthSnapshot.user_id == user_id
        )
        if since is not None:
            query = query.where(models.NetWorthSnapshot.date >= since)

        result = await self.db.execute(query.order_by(models.NetWorthSnapshot.date.asc()))
        return list(result.scalars().all())

    async def list_user_ids_with_holdings(
        self,
        limit: int = 500,
        after: UUID | None = None,
    ) -> list[UUID]:
        """Пользователи с активами или обязательствами, батчами по user_id."""
        holders = union(
            select(models.Asset.user_id),
            select(models.Liability.user_id),
        ).subquery()

        query = select(holders.c.user_id)
        if after is not None:
            query = query.where(holders.c.user_id > after)

        result = await self.db.execute(
            query.order_by(holders.c.user_id.asc()).limit(limit)
        )
        return list(result.scalars().all())
