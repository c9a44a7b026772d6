from datetime import date, timedelta
from typing import Optional

from models import Income, IncomeFrequency
from periods import add_months


_MONTH_STEPS = {
    IncomeFrequency.monthly: 1,
    IncomeFrequency.quarterly: 3,
    IncomeFrequency.yearly: 12,
}


def calculate_next_date(from_date: date, frequency: IncomeFrequency) -> date:
    if frequency == IncomeFrequency.weekly:
        return from_date + timedelta(weeks=1)
    # Month arithmetic snaps to the end of shorter months (Jan 31 -> Feb 28/29).
    return add_months(from_date, _MONTH_STEPS[frequency])


def derive_next_expected_date(income: Income) -> Optional[date]:
    """Fill next_expected_date once for recurring income that has none yet."""
    if (
        income.is_recurring
        and income.recurring_frequency is not None
        and income.next_expected_date is None
    ):
        income.next_expected_date = calculate_next_date(
            income.date, income.recurring_frequency
        )
    return income.next_expected_date
