import calendar
from datetime import date, datetime, timezone

def utc_now() -> datetime:
    """Возвращает текущее время в UTC с time zone info."""
    return datetime.now(timezone.utc)

def utc_today() -> date:
    """Текущая дата по UTC: граница суток для снимков капитала."""
    return utc_now().date()

def months_before(day: date, months: int) -> date:
    """Та же дата N месяцев назад; день прижимается к концу короткого месяца."""
    index = day.year * 12 + day.month - 1 - months
    year, month_zero = divmod(index, 12)
    last_day = calendar.monthrange(year, month_zero + 1)[1]
    return date(year, month_zero + 1, min(day.day, last_day))
