from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from wealthboard.core.schemas import CamelModel
from wealthboard.domain.enums import (
    AssetType,
    Frequency,
    GoalType,
    InsightType,
    ProgressAction,
    SkipReason,
    Trend,
)

# --- Входные записи ---

class IncomeEntry(CamelModel):
    source: str = Field(..., min_length=1, max_length=255, description="Источник дохода")
    amount: Decimal = Field(..., ge=0, description="Сумма")
    frequency: Frequency = Field(Frequency.MONTHLY, description="Периодичность")
    is_active: bool = Field(True, description="Учитывается ли доход")

class ExpenseEntry(CamelModel):
    category: str = Field(..., min_length=1, max_length=255, description="Категория расхода")
    amount: Decimal = Field(..., ge=0, description="Сумма")
    frequency: Frequency = Field(Frequency.MONTHLY, description="Периодичность")
    is_recurring: bool = Field(True, description="Регулярный ли расход")

class AssetRecord(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: AssetType
    value: Decimal = Field(..., ge=0)
    cost_basis: Optional[Decimal] = Field(None, ge=0)
    growth: Optional[Decimal] = Field(None, description="Рост, %")

class LiabilityRecord(CamelModel):
    liability_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., max_length=100)
    balance: Decimal = Field(..., ge=0)
    interest_rate: Optional[Decimal] = Field(None, ge=0, description="Годовая ставка, %")
    minimum_payment: Optional[Decimal] = Field(None, ge=0)
    due_date: Optional[date] = None

class BudgetCategoryRecord(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    allocated_amount: Decimal = Field(..., ge=0)
    spent_amount: Decimal = Field(Decimal("0"), ge=0)
    color: str = "#3B82F6"

class BudgetRecord(CamelModel):
    budget_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    total_amount: Decimal = Field(..., ge=0)
    start_date: datetime
    end_date: datetime
    categories: list[BudgetCategoryRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_period(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

class GoalRecord(CamelModel):
    goal_id: Optional[UUID] = Field(None, description="None для еще не сохраненной цели")
    name: str = Field(..., min_length=1, max_length=255)
    type: GoalType
    target_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    target_date: Optional[date] = None
    description: Optional[str] = None
    is_completed: bool = False
    is_passive_income: bool = False
    updated_at: Optional[datetime] = None

# --- Производные сводки ---

class FinancialSummary(CamelModel):
    total_income: Decimal
    total_expenses: Decimal
    cash_flow: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal

class BudgetSummary(CamelModel):
    total_budgeted: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    progress_percentage: Decimal = Decimal("0")
    categories_over_budget: int = 0
    categories_on_track: int = 0

class GoalProgress(CamelModel):
    goal_id: Optional[UUID] = None
    name: str
    type: GoalType
    current_amount: Decimal
    target_amount: Decimal
    progress_percentage: Decimal
    target_date: Optional[date] = None
    months_remaining: Optional[int] = None
    on_track: bool

class AllocationItem(CamelModel):
    type: AssetType
    value: Decimal
    percentage: Decimal
    count: int

class PortfolioAllocation(CamelModel):
    allocation: list[AllocationItem]
    total_value: Decimal

class PayoffProjection(CamelModel):
    months_to_payoff: Optional[int] = Field(None, description="None, если платеж не покрывает проценты")
    total_interest: Optional[Decimal] = None
    total_payments: Optional[Decimal] = None

class NetWorthPoint(CamelModel):
    snapshot_date: date = Field(..., alias="date")
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal

class PerformanceMetrics(CamelModel):
    current_net_worth: Decimal
    yearly_growth: Decimal = Field(Decimal("0"), description="Рост к снимку годичной давности, %")
    yearly_growth_amount: Decimal = Decimal("0")
    monthly_trend: Trend = Trend.STABLE
    snapshot_count: int = 0

class WealthInsight(CamelModel):
    type: InsightType
    title: str
    description: str

class TotalGoalProgress(CamelModel):
    total_current: Decimal = Decimal("0")
    total_target: Decimal = Decimal("0")
    overall_progress: Decimal = Decimal("0")
    completed_goals: int = 0
    active_goals: int = 0
    total_goals: int = 0

class ProgressDecision(CamelModel):
    """Решение о записи прогресса цели пассивного дохода."""
    action: ProgressAction
    reason: Optional[SkipReason] = None
    goal_id: Optional[UUID] = None
    new_current_amount: Optional[Decimal] = None
    new_is_completed: Optional[bool] = None
    new_updated_at: Optional[datetime] = None

    @property
    def applied(self) -> bool:
        return self.action is ProgressAction.APPLY

    @classmethod
    def skip(cls, reason: SkipReason, goal_id: UUID | None = None) -> "ProgressDecision":
        return cls(action=ProgressAction.SKIP, reason=reason, goal_id=goal_id)
