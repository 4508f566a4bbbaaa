from prometheus_client import Counter

GOAL_PROGRESS_UPDATES_TOTAL = Counter(
    "goal_progress_updates_total",
    "Outcomes of passive income goal progress updates",
    ["outcome"],
)

PASSIVE_INCOME_GOALS_CREATED_TOTAL = Counter(
    "passive_income_goals_created_total",
    "Total number of auto-created passive income goals",
)

NET_WORTH_SNAPSHOTS_TOTAL = Counter(
    "net_worth_snapshots_total",
    "Total number of net worth snapshots written",
)
