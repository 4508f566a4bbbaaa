import pytest

from wealthboard.domain.enums import IncomeClass
from wealthboard.services.classification import classify_income

@pytest.mark.parametrize(
    "source, expected",
    [
        ("Dividend Payout", IncomeClass.PASSIVE),
        ("Semi-Annual Dividend Payout", IncomeClass.PASSIVE),
        ("RENTAL property", IncomeClass.PASSIVE),
        ("Savings interest", IncomeClass.PASSIVE),
        ("Capital Gains 2025", IncomeClass.PASSIVE),
        ("Salary", IncomeClass.ACTIVE),
        ("Part-Time Job", IncomeClass.ACTIVE),
        ("Hourly wage", IncomeClass.ACTIVE),
        ("Freelance design", IncomeClass.ACTIVE),
        ("Lottery Winnings", IncomeClass.NEITHER),
        ("", IncomeClass.NEITHER),
    ],
)
def test_classify_income(source, expected):
    assert classify_income(source) is expected

def test_passive_wins_over_active():
    assert classify_income("Consulting business profit") is IncomeClass.PASSIVE, \
        "При совпадении с обеими группами источник считается пассивным"

def test_classify_income_handles_none():
    assert classify_income(None) is IncomeClass.NEITHER
