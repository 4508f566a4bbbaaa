import logging
from decimal import Decimal
from uuid import UUID, uuid4

from wealthboard.core import exceptions, metrics
from wealthboard.domain.enums import HistoryPeriod, SkipReason
from wealthboard.domain.schemas import dtos
from wealthboard.infrastructure.db import models, uow
from wealthboard.services import calculations
from wealthboard.services.goal_progress import (
    GoalProgressCoordinator,
    resolve_passive_income_goal,
)
from wealthboard.utils.time import months_before, utc_now, utc_today

logger = logging.getLogger(__name__)

HISTORY_MONTHS = {
    HistoryPeriod.SIX_MONTHS: 6,
    HistoryPeriod.ONE_YEAR: 12,
}

def _records(schema, rows) -> list:
    """ORM-строки в записи расчетного слоя; валидация на границе с хранилищем."""
    return [schema.model_validate(row) for row in rows]

class FinanceService:
    """Сервис финансовых сводок и цели пассивного дохода."""

    def __init__(
        self,
        uow_finance: uow.UnitOfWork,
        coordinator: GoalProgressCoordinator,
    ):
        self.uow_finance = uow_finance
        self.coordinator = coordinator

    async def compute_financial_summary(self, user_id: UUID) -> dtos.FinancialSummary:
        async with self.uow_finance:
            incomes = await self.uow_finance.finance.list_incomes(user_id)
            expenses = await self.uow_finance.finance.list_expenses(user_id)
            assets = await self.uow_finance.finance.list_assets(user_id)
            liabilities = await self.uow_finance.finance.list_liabilities(user_id)

        return calculations.financial_summary(
            _records(dtos.IncomeEntry, incomes),
            _records(dtos.ExpenseEntry, expenses),
            _records(dtos.AssetRecord, assets),
            _records(dtos.LiabilityRecord, liabilities),
        )

    @staticmethod
    def compute_budget_summary(budget) -> dtos.BudgetSummary:
        if budget is None:
            return calculations.budget_summary(None)
        return calculations.budget_summary(dtos.BudgetRecord.model_validate(budget))

    async def get_budget_summary(self, user_id: UUID) -> dtos.BudgetSummary:
        async with self.uow_finance:
            budget = await self.uow_finance.finance.get_current_budget(user_id, utc_now())
            summary = self.compute_budget_summary(budget)

        return summary

    async def compute_escape_progress(self, user_id: UUID) -> Decimal:
        async with self.uow_finance:
            incomes = await self.uow_finance.finance.list_incomes(user_id)
            expenses = await self.uow_finance.finance.list_expenses(user_id)

        passive_income = calculations.passive_income_total(
            income for income in _records(dtos.IncomeEntry, incomes) if income.is_active
        )
        return calculations.escape_rat_race_progress(
            passive_income,
            calculations.total_monthly_expenses(_records(dtos.ExpenseEntry, expenses)),
        )

    async def get_passive_income_goal(self, user_id: UUID) -> dtos.GoalRecord | None:
        """
        Та же цель, которую обновляет maybe_update_passive_income_goal.
        Создается при первом обращении, если есть регулярные расходы.
        """
        async with self.uow_finance:
            existing = await self.uow_finance.finance.find_passive_income_goal(user_id)
            if existing is not None:
                return dtos.GoalRecord.model_validate(existing)

            expenses = await self.uow_finance.finance.list_expenses(user_id)
            goal = resolve_passive_income_goal(
                [],
                calculations.total_monthly_expenses(_records(dtos.ExpenseEntry, expenses)),
            )
            if goal is None:
                return None

            created = models.FinancialGoal(
                goal_id=uuid4(),
                user_id=user_id,
                name=goal.name,
                type=goal.type.value,
                target_amount=goal.target_amount,
                current_amount=goal.current_amount,
                target_date=goal.target_date,
                description=goal.description,
                is_completed=goal.is_completed,
                is_passive_income=goal.is_passive_income,
                updated_at=utc_now(),
            )
            stored = await self.uow_finance.finance.create_passive_income_goal(created)
            record = dtos.GoalRecord.model_validate(stored)

        if stored is not created:
            logger.info(
                "Passive income goal for user %s was created by a concurrent request",
                user_id,
            )
            return record

        metrics.PASSIVE_INCOME_GOALS_CREATED_TOTAL.inc()
        logger.info(
            "Passive income goal %s created for user %s with target %s",
            record.goal_id,
            user_id,
            record.target_amount,
        )
        return record

    async def maybe_update_passive_income_goal(
        self,
        user_id: UUID,
        new_passive_income: Decimal,
    ) -> dtos.ProgressDecision:
        new_passive_income = calculations.to_decimal(new_passive_income)
        if new_passive_income < 0:
            raise exceptions.InvalidFinancialDataError("Passive income must be non-negative")

        async with self.uow_finance:
            goal = await self.uow_finance.finance.find_passive_income_goal(user_id)

            if goal is None:
                decision = dtos.ProgressDecision.skip(SkipReason.NO_GOAL)
            else:
                decision = await self.coordinator.update_progress(
                    user_id,
                    goal,
                    new_passive_income,
                )

            if decision.applied:
                await self.uow_finance.finance.apply_goal_progress(
                    goal.goal_id,
                    decision.new_current_amount,
                    decision.new_is_completed,
                    decision.new_updated_at,
                )

        if decision.applied:
            metrics.GOAL_PROGRESS_UPDATES_TOTAL.labels(outcome="applied").inc()
            logger.info(
                "Passive income goal %s updated to %s",
                decision.goal_id,
                decision.new_current_amount,
            )
        else:
            metrics.GOAL_PROGRESS_UPDATES_TOTAL.labels(outcome=decision.reason.value).inc()
            logger.info(
                "Passive income progress update skipped for user %s: %s",
                user_id,
                decision.reason.value,
            )

        return decision

    async def get_goals_progress(self, user_id: UUID) -> list[dtos.GoalProgress]:
        async with self.uow_finance:
            goals = await self.uow_finance.finance.list_goals(user_id, only_active=True)

        today = utc_today()
        return [
            calculations.goal_progress(goal, today)
            for goal in _records(dtos.GoalRecord, goals)
        ]

    async def get_total_goal_progress(self, user_id: UUID) -> dtos.TotalGoalProgress:
        async with self.uow_finance:
            goals = await self.uow_finance.finance.list_goals(user_id)

        return calculations.total_goal_progress(_records(dtos.GoalRecord, goals))

    async def get_portfolio_allocation(self, user_id: UUID) -> dtos.PortfolioAllocation:
        async with self.uow_finance:
            assets = await self.uow_finance.finance.list_assets(user_id)

        return calculations.portfolio_allocation(_records(dtos.AssetRecord, assets))

    async def get_liability_payoff(
        self,
        user_id: UUID,
        liability_id: UUID,
    ) -> dtos.PayoffProjection | None:
        async with self.uow_finance:
            liability = await self.uow_finance.finance.get_liability(user_id, liability_id)

        if liability is None:
            raise exceptions.NotFoundError("Liability not found")

        liability = dtos.LiabilityRecord.model_validate(liability)
        if not liability.minimum_payment or liability.interest_rate is None:
            return None

        return calculations.liability_payoff(
            liability.balance,
            liability.interest_rate,
            liability.minimum_payment,
        )

    async def get_wealth_insights(self, user_id: UUID) -> list[dtos.WealthInsight]:
        async with self.uow_finance:
            assets = await self.uow_finance.finance.list_assets(user_id)
            liabilities = await self.uow_finance.finance.list_liabilities(user_id)
            expenses = await self.uow_finance.finance.list_expenses(user_id)

        return calculations.wealth_insights(
            _records(dtos.AssetRecord, assets),
            _records(dtos.LiabilityRecord, liabilities),
            calculations.total_monthly_expenses(_records(dtos.ExpenseEntry, expenses)),
        )

    async def _current_net_worth(self, user_id: UUID) -> tuple[Decimal, Decimal]:
        """Активы и обязательства; вызывается внутри открытого unit of work."""
        assets = await self.uow_finance.finance.list_assets(user_id)
        liabilities = await self.uow_finance.finance.list_liabilities(user_id)

        return (
            calculations.total_asset_value(_records(dtos.AssetRecord, assets)),
            calculations.total_liability_balance(_records(dtos.LiabilityRecord, liabilities)),
        )

    async def create_net_worth_snapshot(self, user_id: UUID) -> dtos.NetWorthPoint:
        async with self.uow_finance:
            total_assets, total_liabilities = await self._current_net_worth(user_id)

            snapshot = await self.uow_finance.finance.upsert_snapshot(
                user_id,
                utc_today(),
                total_assets,
                total_liabilities,
                calculations.net_worth(total_assets, total_liabilities),
            )
            point = dtos.NetWorthPoint.model_validate(snapshot)

        metrics.NET_WORTH_SNAPSHOTS_TOTAL.inc()
        return point

    async def get_net_worth_history(
        self,
        user_id: UUID,
        period: HistoryPeriod = HistoryPeriod.SIX_MONTHS,
    ) -> list[dtos.NetWorthPoint]:
        today = utc_today()
        months = HISTORY_MONTHS.get(period)
        since = months_before(today, months) if months else None

        async with self.uow_finance:
            snapshots = await self.uow_finance.finance.list_snapshots(user_id, since)

            if snapshots:
                return _records(dtos.NetWorthPoint, snapshots)

            total_assets, total_liabilities = await self._current_net_worth(user_id)

        return [
            dtos.NetWorthPoint(
                snapshot_date=today,
                total_assets=total_assets,
                total_liabilities=total_liabilities,
                net_worth=calculations.net_worth(total_assets, total_liabilities),
            )
        ]

    async def get_performance_metrics(self, user_id: UUID) -> dtos.PerformanceMetrics:
        today = utc_today()

        async with self.uow_finance:
            snapshots = await self.uow_finance.finance.list_snapshots(user_id)
            total_assets, total_liabilities = await self._current_net_worth(user_id)

        return calculations.performance_metrics(
            calculations.net_worth(total_assets, total_liabilities),
            _records(dtos.NetWorthPoint, snapshots),
            months_before(today, 12),
        )
