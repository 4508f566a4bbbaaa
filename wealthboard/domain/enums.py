from enum import Enum

class Frequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

class AssetType(str, Enum):
    REAL_ESTATE = "REAL_ESTATE"
    INVESTMENTS = "INVESTMENTS"
    CASH_EQUIVALENTS = "CASH_EQUIVALENTS"
    STOCKS_FUNDS_CDS = "STOCKS_FUNDS_CDS"
    BUSINESS = "BUSINESS"
    PERSONAL_PROPERTY = "PERSONAL_PROPERTY"

class GoalType(str, Enum):
    SAVINGS = "SAVINGS"
    DEBT_PAYOFF = "DEBT_PAYOFF"
    INVESTMENT = "INVESTMENT"
    RETIREMENT = "RETIREMENT"
    EMERGENCY_FUND = "EMERGENCY_FUND"
    MAJOR_PURCHASE = "MAJOR_PURCHASE"

class IncomeClass(str, Enum):
    PASSIVE = "passive"
    ACTIVE = "active"
    NEITHER = "neither"

class ProgressAction(str, Enum):
    APPLY = "apply"
    SKIP = "skip"

class SkipReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    INSIGNIFICANT = "insignificant"
    NO_GOAL = "no_goal"

class HistoryPeriod(str, Enum):
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    ALL = "ALL"

class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"

class InsightType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
