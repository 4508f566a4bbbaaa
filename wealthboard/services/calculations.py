"""
Чистые финансовые расчеты: нормализация периодичности, чистый капитал,
денежный поток, прогресс бюджета и целей, кредитные и пенсионные проекции.

Функции не выполняют I/O и определены для всех валидных входных данных:
вырожденные делители дают 0 (или бесконечность для недостижимых сроков).
"""
import math
from datetime import date, datetime
from decimal import Decimal, Overflow
from typing import Any, Iterable

from wealthboard.domain.enums import AssetType, Frequency, IncomeClass, InsightType, Trend
from wealthboard.domain.schemas import dtos
from wealthboard.services.classification import classify_income

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
MONTHS_IN_YEAR = Decimal("12")
INFINITY = Decimal("Infinity")
NEST_EGG_MULTIPLIER = Decimal("25")

# (множитель, делитель) к месячному эквиваленту
MONTHLY_FACTORS: dict[Frequency, tuple[Decimal, Decimal]] = {
    Frequency.WEEKLY: (Decimal("4.33"), ONE),
    Frequency.BI_WEEKLY: (Decimal("2.17"), ONE),
    Frequency.MONTHLY: (ONE, ONE),
    Frequency.QUARTERLY: (ONE, Decimal("3")),
    Frequency.YEARLY: (ONE, MONTHS_IN_YEAR),
}

def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))

def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return part / whole * HUNDRED

def _capped_percent(part: Decimal, whole: Decimal) -> Decimal:
    return min(_percent(part, whole), HUNDRED)

# --- Доходы и расходы ---

def monthly_amount(amount: Any, frequency: Frequency | str) -> Decimal:
    multiplier, divisor = MONTHLY_FACTORS[Frequency(frequency)]
    return to_decimal(amount) * multiplier / divisor

def total_monthly_income(incomes: Iterable) -> Decimal:
    return sum(
        (monthly_amount(i.amount, i.frequency) for i in incomes if i.is_active),
        ZERO,
    )

def total_monthly_expenses(expenses: Iterable) -> Decimal:
    return sum(
        (monthly_amount(e.amount, e.frequency) for e in expenses if e.is_recurring),
        ZERO,
    )

def income_total_by_class(incomes: Iterable, income_class: IncomeClass) -> Decimal:
    """Флаг is_active не проверяется: фильтрация на стороне вызывающего."""
    return sum(
        (
            monthly_amount(i.amount, i.frequency)
            for i in incomes
            if classify_income(i.source) is income_class
        ),
        ZERO,
    )

def passive_income_total(incomes: Iterable) -> Decimal:
    return income_total_by_class(incomes, IncomeClass.PASSIVE)

def active_income_total(incomes: Iterable) -> Decimal:
    return income_total_by_class(incomes, IncomeClass.ACTIVE)

def net_worth(total_assets: Any, total_liabilities: Any) -> Decimal:
    return to_decimal(total_assets) - to_decimal(total_liabilities)

def cash_flow(monthly_income: Any, monthly_expenses: Any) -> Decimal:
    return to_decimal(monthly_income) - to_decimal(monthly_expenses)

def total_asset_value(assets: Iterable) -> Decimal:
    return sum((to_decimal(a.value) for a in assets), ZERO)

def total_liability_balance(liabilities: Iterable) -> Decimal:
    return sum((to_decimal(l.balance) for l in liabilities), ZERO)

def financial_summary(incomes, expenses, assets, liabilities) -> dtos.FinancialSummary:
    income = total_monthly_income(incomes)
    spending = total_monthly_expenses(expenses)
    assets_total = total_asset_value(assets)
    liabilities_total = total_liability_balance(liabilities)

    return dtos.FinancialSummary(
        total_income=income,
        total_expenses=spending,
        cash_flow=cash_flow(income, spending),
        total_assets=assets_total,
        total_liabilities=liabilities_total,
        net_worth=net_worth(assets_total, liabilities_total),
    )

# --- Бюджет ---

def budget_progress_percent(spent: Any, allocated: Any) -> Decimal:
    """Прогресс для отображения, ограничен 100% даже при перерасходе."""
    return _capped_percent(to_decimal(spent), to_decimal(allocated))

def remaining_budget(allocated: Any, spent: Any) -> Decimal:
    return max(to_decimal(allocated) - to_decimal(spent), ZERO)

def budget_summary(budget) -> dtos.BudgetSummary:
    if budget is None:
        return dtos.BudgetSummary()

    total_budgeted = to_decimal(budget.total_amount)
    total_spent = sum((to_decimal(c.spent_amount) for c in budget.categories), ZERO)

    over_budget = sum(
        1
        for c in budget.categories
        if to_decimal(c.spent_amount) > to_decimal(c.allocated_amount)
    )

    return dtos.BudgetSummary(
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        remaining=total_budgeted - total_spent,
        progress_percentage=budget_progress_percent(total_spent, total_budgeted),
        categories_over_budget=over_budget,
        categories_on_track=len(budget.categories) - over_budget,
    )

# --- Пассивный доход ---

def escape_rat_race_progress(passive_income: Any, monthly_expenses: Any) -> Decimal:
    return _capped_percent(to_decimal(passive_income), to_decimal(monthly_expenses))

def right_side_quadrant_percent(
    business_income: Any,
    investor_income: Any,
    total_income: Any,
) -> Decimal:
    return _percent(
        to_decimal(business_income) + to_decimal(investor_income),
        to_decimal(total_income),
    )

def financial_independence_progress(current_net_worth: Any, target_amount: Any) -> Decimal:
    return _capped_percent(to_decimal(current_net_worth), to_decimal(target_amount))

# --- Коэффициенты ---

def debt_to_income_ratio(monthly_debt_payments: Any, monthly_income: Any) -> Decimal:
    return _percent(to_decimal(monthly_debt_payments), to_decimal(monthly_income))

def emergency_fund_months(emergency_fund: Any, monthly_expenses: Any) -> Decimal:
    expenses = to_decimal(monthly_expenses)
    if expenses == 0:
        return ZERO
    return to_decimal(emergency_fund) / expenses

def savings_rate_percent(monthly_income: Any, monthly_expenses: Any) -> Decimal:
    income = to_decimal(monthly_income)
    return _percent(income - to_decimal(monthly_expenses), income)

def allocation_percent(asset_value: Any, total_portfolio_value: Any) -> Decimal:
    return _percent(to_decimal(asset_value), to_decimal(total_portfolio_value))

def investment_return_percent(current_value: Any, initial_value: Any) -> Decimal:
    initial = to_decimal(initial_value)
    return _percent(to_decimal(current_value) - initial, initial)

def annualized_return_percent(current_value: Any, initial_value: Any, years: Any) -> Decimal:
    current = to_decimal(current_value)
    initial = to_decimal(initial_value)
    years = to_decimal(years)

    if initial == 0 or years == 0:
        return ZERO
    ratio = current / initial
    if ratio <= 0:
        return -HUNDRED
    return (ratio ** (ONE / years) - ONE) * HUNDRED

# --- Проекции ---

def compound_interest(
    principal: Any,
    annual_rate_percent: Any,
    years: Any,
    compounding_per_year: int = 12,
) -> Decimal:
    """Бесконечность, если результат выходит за пределы Decimal."""
    n = to_decimal(compounding_per_year)
    rate = to_decimal(annual_rate_percent) / HUNDRED
    principal = to_decimal(principal)

    try:
        return principal * (ONE + rate / n) ** (n * to_decimal(years))
    except Overflow:
        return INFINITY if principal > 0 else ZERO

def loan_monthly_payment(principal: Any, annual_rate_percent: Any, years: Any) -> Decimal:
    principal = to_decimal(principal)
    payments = to_decimal(years) * MONTHS_IN_YEAR
    monthly_rate = to_decimal(annual_rate_percent) / HUNDRED / MONTHS_IN_YEAR

    if payments == 0:
        return ZERO
    if monthly_rate == 0:
        return principal / payments

    try:
        growth = (ONE + monthly_rate) ** payments
        return principal * monthly_rate * growth / (growth - ONE)
    except Overflow:
        # бесконечный срок: платеж сводится к процентам
        return principal * monthly_rate

def months_to_goal(
    current_amount: Any,
    target_amount: Any,
    monthly_contribution: Any,
    annual_return_percent: Any = 0,
) -> Decimal:
    """Число месяцев до цели; Decimal('Infinity') если цель недостижима."""
    current = to_decimal(current_amount)
    target = to_decimal(target_amount)
    contribution = to_decimal(monthly_contribution)

    if contribution <= 0:
        return INFINITY
    if current >= target:
        return ZERO

    remaining = target - current
    monthly_rate = to_decimal(annual_return_percent) / HUNDRED / MONTHS_IN_YEAR

    if monthly_rate == 0:
        return remaining / contribution

    log_arg = ONE + remaining * monthly_rate / contribution
    if log_arg <= 0 or ONE + monthly_rate <= 0:
        return INFINITY

    return log_arg.ln() / (ONE + monthly_rate).ln()

def retirement_readiness_percent(
    current_age: Any,
    retirement_age: Any,
    current_savings: Any,
    monthly_contribution: Any,
    target_annual_retirement_income: Any,
    expected_annual_return_percent: Any = 7,
) -> Decimal:
    """Проекция накоплений к пенсии относительно правила 4% (25 годовых доходов). Не ограничена 100%."""
    months = (to_decimal(retirement_age) - to_decimal(current_age)) * MONTHS_IN_YEAR
    monthly_rate = to_decimal(expected_annual_return_percent) / HUNDRED / MONTHS_IN_YEAR
    savings = to_decimal(current_savings)
    contribution = to_decimal(monthly_contribution)

    if monthly_rate == 0:
        future_value = savings + contribution * months
    else:
        try:
            growth = (ONE + monthly_rate) ** months
            future_value = savings * growth + contribution * (growth - ONE) / monthly_rate
        except Overflow:
            future_value = INFINITY

    required_nest_egg = to_decimal(target_annual_retirement_income) * NEST_EGG_MULTIPLIER
    return _percent(future_value, required_nest_egg)

def liability_payoff(
    balance: Any,
    annual_rate_percent: Any,
    monthly_payment: Any,
) -> dtos.PayoffProjection:
    balance = to_decimal(balance)
    payment = to_decimal(monthly_payment)
    monthly_rate = to_decimal(annual_rate_percent) / HUNDRED / MONTHS_IN_YEAR

    if payment <= 0:
        return dtos.PayoffProjection()

    if monthly_rate == 0:
        return dtos.PayoffProjection(
            months_to_payoff=math.ceil(balance / payment),
            total_interest=ZERO,
            total_payments=balance,
        )

    log_arg = ONE - balance * monthly_rate / payment
    if log_arg <= 0:
        return dtos.PayoffProjection()

    months = math.ceil(-log_arg.ln() / (ONE + monthly_rate).ln())
    total_payments = payment * months

    return dtos.PayoffProjection(
        months_to_payoff=months,
        total_interest=total_payments - balance,
        total_payments=total_payments,
    )

# --- Цели и портфель ---

def goal_progress(goal, today: date | datetime) -> dtos.GoalProgress:
    """
    on_track - эвристика продукта (progress >= 100 - months*10),
    ожидает уточнения со стороны продукта.
    """
    if isinstance(today, datetime):
        today = today.date()

    current = to_decimal(goal.current_amount)
    target = to_decimal(goal.target_amount)
    progress = _percent(current, target)

    months_remaining = None
    if goal.target_date:
        months_remaining = math.ceil((goal.target_date - today).days / 30)
        on_track = progress >= HUNDRED - months_remaining * 10
    else:
        on_track = progress > 0

    return dtos.GoalProgress(
        goal_id=getattr(goal, "goal_id", None),
        name=goal.name,
        type=goal.type,
        current_amount=current,
        target_amount=target,
        progress_percentage=min(progress, HUNDRED),
        target_date=goal.target_date,
        months_remaining=months_remaining,
        on_track=on_track,
    )

def portfolio_allocation(assets: Iterable) -> dtos.PortfolioAllocation:
    assets = list(assets)
    total_value = total_asset_value(assets)

    allocation = []
    for asset_type in AssetType:
        typed = [a for a in assets if AssetType(a.type) is asset_type]
        value = total_asset_value(typed)
        if value <= 0:
            continue
        allocation.append(
            dtos.AllocationItem(
                type=asset_type,
                value=value,
                percentage=allocation_percent(value, total_value),
                count=len(typed),
            )
        )

    return dtos.PortfolioAllocation(allocation=allocation, total_value=total_value)

def total_goal_progress(goals: Iterable) -> dtos.TotalGoalProgress:
    goals = list(goals)
    total_current = sum((to_decimal(g.current_amount) for g in goals), ZERO)
    total_target = sum((to_decimal(g.target_amount) for g in goals), ZERO)
    completed = sum(1 for g in goals if g.is_completed)

    return dtos.TotalGoalProgress(
        total_current=total_current,
        total_target=total_target,
        overall_progress=_capped_percent(total_current, total_target),
        completed_goals=completed,
        active_goals=len(goals) - completed,
        total_goals=len(goals),
    )

# --- Динамика капитала и рекомендации ---

REAL_ESTATE_HIGH_PERCENT = Decimal("70")
REAL_ESTATE_LOW_PERCENT = Decimal("30")
EMERGENCY_FUND_MIN_MONTHS = Decimal("3")
EMERGENCY_FUND_TARGET_MONTHS = Decimal("6")
HIGH_INTEREST_RATE_PERCENT = Decimal("15")

def net_worth_trend(snapshots: Iterable) -> Trend:
    """Направление по двум последним снимкам."""
    recent = sorted(snapshots, key=lambda s: s.snapshot_date)[-2:]
    if len(recent) < 2:
        return Trend.STABLE

    growth = to_decimal(recent[1].net_worth) - to_decimal(recent[0].net_worth)
    if growth > 0:
        return Trend.UP
    if growth < 0:
        return Trend.DOWN
    return Trend.STABLE

def performance_metrics(
    current_net_worth: Any,
    snapshots: Iterable,
    year_ago: date,
) -> dtos.PerformanceMetrics:
    """
    Годовой рост считается к последнему снимку не позже year_ago.
    Без такого снимка или при неположительном капитале в нем рост равен 0.
    """
    snapshots = list(snapshots)
    current = to_decimal(current_net_worth)

    baseline = max(
        (s for s in snapshots if s.snapshot_date <= year_ago),
        key=lambda s: s.snapshot_date,
        default=None,
    )

    metrics = dtos.PerformanceMetrics(
        current_net_worth=current,
        monthly_trend=net_worth_trend(snapshots),
        snapshot_count=len(snapshots),
    )

    if baseline is not None and to_decimal(baseline.net_worth) > 0:
        previous = to_decimal(baseline.net_worth)
        metrics.yearly_growth_amount = current - previous
        metrics.yearly_growth = _percent(current - previous, previous)

    return metrics

def wealth_insights(
    assets: Iterable,
    liabilities: Iterable,
    monthly_expenses: Any,
) -> list[dtos.WealthInsight]:
    assets = list(assets)
    liabilities = list(liabilities)
    insights = []

    total_assets = total_asset_value(assets)
    real_estate = total_asset_value(
        a for a in assets if AssetType(a.type) is AssetType.REAL_ESTATE
    )
    real_estate_percent = allocation_percent(real_estate, total_assets)

    if real_estate_percent > REAL_ESTATE_HIGH_PERCENT:
        insights.append(dtos.WealthInsight(
            type=InsightType.WARNING,
            title="High Real Estate Concentration",
            description=(
                f"Real estate makes up {real_estate_percent:.1f}% of your assets. "
                "Consider diversifying into other investment types."
            ),
        ))
    elif real_estate_percent < REAL_ESTATE_LOW_PERCENT and real_estate > 0:
        insights.append(dtos.WealthInsight(
            type=InsightType.POSITIVE,
            title="Well-Diversified Portfolio",
            description=(
                f"Good diversification with {real_estate_percent:.1f}% "
                "in real estate and other investments."
            ),
        ))

    expenses = to_decimal(monthly_expenses)
    if expenses > 0:
        cash = total_asset_value(
            a for a in assets if AssetType(a.type) is AssetType.CASH_EQUIVALENTS
        )
        months = emergency_fund_months(cash, expenses)
        if months < EMERGENCY_FUND_MIN_MONTHS:
            insights.append(dtos.WealthInsight(
                type=InsightType.WARNING,
                title="Emergency Fund Below Target",
                description=(
                    f"You have {months:.1f} months of expenses saved. Aim for 3-6 months."
                ),
            ))
        elif months >= EMERGENCY_FUND_TARGET_MONTHS:
            insights.append(dtos.WealthInsight(
                type=InsightType.POSITIVE,
                title="Strong Emergency Fund",
                description=f"Excellent! You have {months:.1f} months of expenses saved.",
            ))

    high_interest = [
        l for l in liabilities
        if l.interest_rate is not None
        and to_decimal(l.interest_rate) > HIGH_INTEREST_RATE_PERCENT
    ]
    if high_interest:
        insights.append(dtos.WealthInsight(
            type=InsightType.WARNING,
            title="High-Interest Debt Detected",
            description=(
                f"You have ${total_liability_balance(high_interest):,.2f} in high-interest debt. "
                "Consider prioritizing payoff."
            ),
        ))

    worth = net_worth(total_assets, total_liability_balance(liabilities))
    if worth > 0 and not insights:
        insights.append(dtos.WealthInsight(
            type=InsightType.POSITIVE,
            title="Strong Financial Foundation",
            description=(
                f"Your net worth of ${worth:,.2f} shows excellent financial progress. Keep it up!"
            ),
        ))

    return insights
