PASSIVE_INCOME_GOAL_MARKERS = ("passive income", "rat race", "financial freedom")
PASSIVE_INCOME_GOAL_NAME = "Escape the Rat Race - Passive Income Goal"
PASSIVE_INCOME_GOAL_DESCRIPTION = (
    "Achieve financial freedom by generating passive income equal to monthly expenses"
)
