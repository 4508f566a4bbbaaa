from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from wealthboard.api import dependencies
from wealthboard.domain.enums import HistoryPeriod
from wealthboard.domain.schemas import api as schemas
from wealthboard.domain.schemas import dtos
from wealthboard.services import calculations
from wealthboard.services.service import FinanceService

router = APIRouter(tags=["Finance"])

@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Health check финансового сервиса",
)
async def health_check(request: Request) -> dict:
    app = request.app
    status_map = {"db": "unknown", "redis": "skipped"}
    has_error = False

    if not getattr(app.state, "engine", None):
        status_map["db"] = "disconnected"
        has_error = True
    else:
        try:
            async with app.state.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            status_map["db"] = "ok"
        except Exception:
            status_map["db"] = "failed"
            has_error = True

    redis = getattr(app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            status_map["redis"] = "ok"
        except Exception:
            status_map["redis"] = "failed"
            has_error = True

    if has_error:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "components": status_map},
        )

    return {"status": "ok", "components": status_map}

@router.get(
    "/summary",
    response_model=dtos.FinancialSummary,
    summary="Финансовая сводка",
)
async def get_financial_summary(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.compute_financial_summary(user_id)

@router.get(
    "/budget/summary",
    response_model=dtos.BudgetSummary,
    summary="Сводка текущего бюджета",
)
async def get_budget_summary(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_budget_summary(user_id)

@router.get(
    "/escape-progress",
    response_model=schemas.EscapeProgressResponse,
    summary="Прогресс выхода из крысиных бегов",
)
async def get_escape_progress(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    progress = await service.compute_escape_progress(user_id)
    return schemas.EscapeProgressResponse(progress_percentage=progress)

@router.get(
    "/goals/passive-income",
    response_model=Optional[dtos.GoalRecord],
    summary="Цель пассивного дохода (создается при первом обращении)",
)
async def get_passive_income_goal(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_passive_income_goal(user_id)

@router.post(
    "/goals/passive-income/progress",
    response_model=dtos.ProgressDecision,
    summary="Обновление прогресса цели пассивного дохода",
)
async def update_passive_income_progress(
    request: schemas.PassiveIncomeProgressRequest = Body(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.maybe_update_passive_income_goal(user_id, request.passive_income)

@router.get(
    "/goals/progress",
    response_model=List[dtos.GoalProgress],
    summary="Прогресс активных целей",
)
async def get_goals_progress(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_goals_progress(user_id)

@router.get(
    "/goals/total-progress",
    response_model=dtos.TotalGoalProgress,
    summary="Суммарный прогресс по всем целям",
)
async def get_total_goal_progress(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_total_goal_progress(user_id)

@router.get(
    "/assets/allocation",
    response_model=dtos.PortfolioAllocation,
    summary="Распределение активов по типам",
)
async def get_portfolio_allocation(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_portfolio_allocation(user_id)

@router.get(
    "/liabilities/{liability_id}/payoff",
    response_model=Optional[dtos.PayoffProjection],
    summary="Прогноз погашения обязательства",
)
async def get_liability_payoff(
    liability_id: UUID = Path(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_liability_payoff(user_id, liability_id)

@router.post(
    "/net-worth/snapshots",
    response_model=dtos.NetWorthPoint,
    status_code=status.HTTP_201_CREATED,
    summary="Снимок чистого капитала за сегодня",
)
async def create_net_worth_snapshot(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.create_net_worth_snapshot(user_id)

@router.get(
    "/net-worth/history",
    response_model=List[dtos.NetWorthPoint],
    summary="История чистого капитала",
)
async def get_net_worth_history(
    period: HistoryPeriod = Query(HistoryPeriod.SIX_MONTHS),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_net_worth_history(user_id, period)

@router.get(
    "/net-worth/performance",
    response_model=dtos.PerformanceMetrics,
    summary="Годовой рост и тренд чистого капитала",
)
async def get_performance_metrics(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_performance_metrics(user_id)

@router.get(
    "/net-worth/insights",
    response_model=List[dtos.WealthInsight],
    summary="Рекомендации по структуре капитала",
)
async def get_wealth_insights(
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: FinanceService = Depends(dependencies.get_finance_service),
):
    return await service.get_wealth_insights(user_id)

@router.post(
    "/calculators/loan-payment",
    response_model=schemas.LoanPaymentResponse,
    summary="Ежемесячный платеж по кредиту",
)
async def calculate_loan_payment(request: schemas.LoanPaymentRequest = Body(...)):
    return schemas.LoanPaymentResponse(
        monthly_payment=calculations.loan_monthly_payment(
            request.principal,
            request.annual_rate_percent,
            request.years,
        )
    )

@router.post(
    "/calculators/compound-interest",
    response_model=schemas.CompoundInterestResponse,
    summary="Сложный процент",
)
async def calculate_compound_interest(request: schemas.CompoundInterestRequest = Body(...)):
    return schemas.CompoundInterestResponse(
        future_value=calculations.compound_interest(
            request.principal,
            request.annual_rate_percent,
            request.years,
            request.compounding_per_year,
        )
    )

@router.post(
    "/calculators/months-to-goal",
    response_model=schemas.MonthsToGoalResponse,
    summary="Срок достижения цели",
)
async def calculate_months_to_goal(request: schemas.MonthsToGoalRequest = Body(...)):
    months = calculations.months_to_goal(
        request.current_amount,
        request.target_amount,
        request.monthly_contribution,
        request.annual_return_percent,
    )
    reachable = months.is_finite()
    return schemas.MonthsToGoalResponse(
        months=months if reachable else None,
        reachable=reachable,
    )

@router.post(
    "/calculators/retirement-readiness",
    response_model=schemas.RetirementReadinessResponse,
    summary="Готовность к пенсии",
)
async def calculate_retirement_readiness(
    request: schemas.RetirementReadinessRequest = Body(...),
):
    return schemas.RetirementReadinessResponse(
        readiness_percentage=calculations.retirement_readiness_percent(
            request.current_age,
            request.retirement_age,
            request.current_savings,
            request.monthly_contribution,
            request.target_annual_retirement_income,
            request.expected_annual_return_percent,
        )
    )
