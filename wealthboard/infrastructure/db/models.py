from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship, validates

from wealthboard.domain.enums import Frequency
from wealthboard.infrastructure.db.base import Base

def _non_negative(key: str, value) -> Decimal | None:
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value < 0:
        raise ValueError(f"{key} must be non-negative")
    return value

class Income(Base):
    __tablename__ = "incomes"

    income_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    source = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(String(20), nullable=False, default=Frequency.MONTHLY.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @validates("amount")
    def validate_amount(self, key, value):
        return _non_negative(key, value)

class Expense(Base):
    __tablename__ = "expenses"

    expense_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    category = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(String(20), nullable=False, default=Frequency.MONTHLY.value)
    is_recurring = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @validates("amount")
    def validate_amount(self, key, value):
        return _non_negative(key, value)

class Asset(Base):
    __tablename__ = "assets"

    asset_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    cost_basis = Column(Numeric(14, 2), nullable=True)
    growth = Column(Numeric(6, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @validates("value", "cost_basis")
    def validate_amounts(self, key, value):
        return _non_negative(key, value)

class Liability(Base):
    __tablename__ = "liabilities"

    liability_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=False)
    balance = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    minimum_payment = Column(Numeric(12, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @validates("balance", "minimum_payment")
    def validate_amounts(self, key, value):
        return _non_negative(key, value)

class Budget(Base):
    __tablename__ = "budgets"

    budget_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    categories = relationship(
        "BudgetCategory",
        back_populates="budget",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_budgets_user_period", "user_id", "start_date", "end_date"),
    )

class BudgetCategory(Base):
    __tablename__ = "budget_categories"

    category_id = Column(Uuid, primary_key=True, default=uuid4)
    budget_id = Column(
        Uuid,
        ForeignKey("budgets.budget_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    allocated_amount = Column(Numeric(12, 2), nullable=False)
    spent_amount = Column(Numeric(12, 2), nullable=False, default=0)
    color = Column(String(16), nullable=False, default="#3B82F6")

    budget = relationship("Budget", back_populates="categories")

    @validates("allocated_amount", "spent_amount")
    def validate_amounts(self, key, value):
        return _non_negative(key, value)

class FinancialGoal(Base):
    __tablename__ = "financial_goals"

    goal_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False, default=0)
    target_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    is_passive_income = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @validates("target_amount", "current_amount")
    def validate_amounts(self, key, value):
        return _non_negative(key, value)

    # одна отмеченная цель пассивного дохода на пользователя
    __table_args__ = (
        Index(
            "uq_financial_goals_passive_income_user",
            "user_id",
            unique=True,
            postgresql_where=is_passive_income.is_(True),
            sqlite_where=is_passive_income.is_(True),
        ),
    )

class NetWorthSnapshot(Base):
    __tablename__ = "net_worth_snapshots"

    snapshot_id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False)
    date = Column(Date, nullable=False)
    total_assets = Column(Numeric(14, 2), nullable=False)
    total_liabilities = Column(Numeric(14, 2), nullable=False)
    net_worth = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_net_worth_snapshots_user_date"),
    )
