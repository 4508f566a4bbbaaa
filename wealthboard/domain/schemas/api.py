from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from wealthboard.core.schemas import CamelModel, CamelRequest

MAX_AMOUNT = Decimal("1000000000000")
MAX_RATE_PERCENT = Decimal("100")
MAX_YEARS = Decimal("100")

class PassiveIncomeProgressRequest(CamelRequest):
    passive_income: Decimal = Field(..., ge=0, description="Текущий пассивный доход в месяц")

class EscapeProgressResponse(CamelModel):
    progress_percentage: Decimal = Field(..., description="Пассивный доход / расходы, %")

class LoanPaymentRequest(CamelRequest):
    principal: Decimal = Field(..., ge=0, le=MAX_AMOUNT, description="Сумма кредита")
    annual_rate_percent: Decimal = Field(..., ge=0, le=MAX_RATE_PERCENT, description="Годовая ставка, %")
    years: Decimal = Field(..., gt=0, le=MAX_YEARS, description="Срок в годах")

class LoanPaymentResponse(CamelModel):
    monthly_payment: Decimal

class CompoundInterestRequest(CamelRequest):
    principal: Decimal = Field(..., ge=0, le=MAX_AMOUNT)
    annual_rate_percent: Decimal = Field(..., ge=0, le=MAX_RATE_PERCENT)
    years: Decimal = Field(..., ge=0, le=MAX_YEARS)
    compounding_per_year: int = Field(12, ge=1, le=365)

class CompoundInterestResponse(CamelModel):
    future_value: Decimal

class MonthsToGoalRequest(CamelRequest):
    current_amount: Decimal = Field(..., ge=0)
    target_amount: Decimal = Field(..., ge=0)
    monthly_contribution: Decimal = Field(..., description="<= 0 означает недостижимую цель")
    annual_return_percent: Decimal = Field(Decimal("0"), gt=-100, le=MAX_RATE_PERCENT)

class MonthsToGoalResponse(CamelModel):
    months: Optional[Decimal] = Field(None, description="null, если цель недостижима")
    reachable: bool

class RetirementReadinessRequest(CamelRequest):
    current_age: int = Field(..., ge=0, le=120)
    retirement_age: int = Field(..., ge=0, le=120)
    current_savings: Decimal = Field(..., ge=0)
    monthly_contribution: Decimal = Field(..., ge=0)
    target_annual_retirement_income: Decimal = Field(..., gt=0)
    expected_annual_return_percent: Decimal = Field(Decimal("7"), gt=-100, le=MAX_RATE_PERCENT)

    @model_validator(mode="after")
    def check_ages(self):
        if self.retirement_age <= self.current_age:
            raise ValueError("retirement_age must be greater than current_age")
        return self

class RetirementReadinessResponse(CamelModel):
    readiness_percentage: Decimal
