import math
from datetime import date
from typing import Iterable, Optional

from bucks.i18n import LANGUAGES
from bucks.log import get_logger
from bucks.models import (
    BudgetState, RecurringItem, PunctualItem, Daily, Monthly
)
from bucks.recurrence import occurrences, OccurrenceCache


log = get_logger(__name__)


# ===== DERIVED COSTS =====
def cost_per_month(item: RecurringItem) -> float:
    """Approximate monthly cost. Occurrence ratios are truncated, so Daily(40) costs 0."""
    rule = item.recurrence
    if isinstance(rule, Daily):
        times = 30 // rule.interval_days
    elif isinstance(rule, Monthly):
        times = 1 // rule.interval_months
    else:
        times = 1 // (12 * rule.interval_years)
    return round(item.cost * times, 2)


def cost_per_year(item: RecurringItem) -> float:
    rule = item.recurrence
    if isinstance(rule, Daily):
        times = 365 // rule.interval_days
    elif isinstance(rule, Monthly):
        times = 12 // rule.interval_months
    else:
        times = 1 // rule.interval_years
    return round(item.cost * times, 2)


def cost_until(
        item: RecurringItem,
        horizon: date,
        today: date,
        cache: Optional[OccurrenceCache] = None,
) -> float:
    return round(item.cost * occurrences(item.recurrence, today, horizon, cache), 2)


def punctual_cost_until(item: PunctualItem, horizon: date, today: date) -> float:
    if today <= item.date <= horizon:
        return item.cost
    return 0.0


# ===== BALANCE PROJECTION =====
def year_end(today: date) -> date:
    return date(today.year, 12, 31)


def monthly_costs(state: BudgetState) -> float:
    return round(sum(cost_per_month(s) for s in state.subscriptions.values()), 2)


def yearly_costs(state: BudgetState) -> float:
    return round(sum(cost_per_year(s) for s in state.subscriptions.values()), 2)


def monthly_balance(state: BudgetState) -> float:
    """Income streams minus subscriptions, both as monthly equivalents."""
    amount = 0.0
    for income in state.incomes.values():
        amount += cost_per_month(income)
    for subscription in state.subscriptions.values():
        amount -= cost_per_month(subscription)
    return round(amount, 2)


def cost_to_year_end(
        recurring: Iterable[RecurringItem],
        punctual: Iterable[PunctualItem],
        today: date,
        cache: Optional[OccurrenceCache] = None,
) -> float:
    horizon = year_end(today)
    amount = 0.0
    for item in recurring:
        amount += cost_until(item, horizon, today, cache)
    for item in punctual:
        amount += punctual_cost_until(item, horizon, today)
    return round(amount, 2)


def expenses_to_year_end(state: BudgetState, today: date, cache: Optional[OccurrenceCache] = None) -> float:
    return cost_to_year_end(state.subscriptions.values(), state.fixed_expenses.values(), today, cache)


def incomes_to_year_end(state: BudgetState, today: date, cache: Optional[OccurrenceCache] = None) -> float:
    return cost_to_year_end(state.incomes.values(), state.p_incomes.values(), today, cache)


def total_year_end_balance(state: BudgetState, today: date, cache: Optional[OccurrenceCache] = None) -> float:
    """Savings plus projected income minus projected expenses. Negative means a deficit."""
    balance = state.initial_savings
    balance += incomes_to_year_end(state, today, cache)
    balance -= expenses_to_year_end(state, today, cache)
    return round(balance, 2)


def statistics(state: BudgetState, today: date, cache: Optional[OccurrenceCache] = None) -> dict[str, float]:
    """Figures for the stats table.

    The per-month figures use the truncated ratios of ``cost_per_month``, so yearly
    items and anything rarer than monthly add nothing to ``avg_cost_month`` and
    ``balance_eom``. They are still counted in full in the year-end figures.
    """
    if cache is None:
        cache = {}
    return {
        "initial_savings": state.initial_savings,
        "avg_cost_month": monthly_costs(state),
        "cost_year": yearly_costs(state),
        "total_cost_til_eoy": expenses_to_year_end(state, today, cache),
        "total_income_til_eoy": incomes_to_year_end(state, today, cache),
        "balance_eoy": total_year_end_balance(state, today, cache),
        "balance_eom": monthly_balance(state),
    }


# ===== LIFECYCLE =====
def sweep_expired(state: BudgetState, today: date) -> list[PunctualItem]:
    """Drop punctual items dated before ``today`` and fold them into the savings."""
    expired = []

    for item_id, expense in list(state.fixed_expenses.items()):
        if expense.date < today:
            state.initial_savings = round(state.initial_savings - expense.cost, 2)
            del state.fixed_expenses[item_id]
            expired.append(expense)
            log.info("punctual_item_expired", kind="expense", id=item_id, cost=expense.cost)

    for item_id, income in list(state.p_incomes.items()):
        if income.date < today:
            state.initial_savings = round(state.initial_savings + income.cost, 2)
            del state.p_incomes[item_id]
            expired.append(income)
            log.info("punctual_item_expired", kind="income", id=item_id, cost=income.cost)

    return expired


# ===== COLLECTIONS =====
def add_subscription(state: BudgetState, item: RecurringItem) -> RecurringItem:
    state.subscriptions[item.id] = item
    return item


def add_income(state: BudgetState, item: RecurringItem) -> RecurringItem:
    state.incomes[item.id] = item
    return item


def add_fixed_expense(state: BudgetState, item: PunctualItem) -> PunctualItem:
    state.fixed_expenses[item.id] = item
    return item


def add_punctual_income(state: BudgetState, item: PunctualItem) -> PunctualItem:
    state.p_incomes[item.id] = item
    return item


def remove_subscription(state: BudgetState, item_id: str) -> bool:
    return state.subscriptions.pop(item_id, None) is not None


def remove_income(state: BudgetState, item_id: str) -> bool:
    return state.incomes.pop(item_id, None) is not None


def remove_fixed_expense(state: BudgetState, item_id: str) -> bool:
    return state.fixed_expenses.pop(item_id, None) is not None


def remove_punctual_income(state: BudgetState, item_id: str) -> bool:
    return state.p_incomes.pop(item_id, None) is not None


def remove_item(state: BudgetState, item_id: str) -> bool:
    for remove in (remove_subscription, remove_income, remove_fixed_expense, remove_punctual_income):
        if remove(state, item_id):
            return True
    return False


def set_initial_savings(state: BudgetState, amount: float) -> None:
    amount = float(amount)
    if not math.isfinite(amount):
        raise ValueError(f"Savings must be a finite number, got {amount}")
    state.initial_savings = round(amount, 2)


def set_lang(state: BudgetState, lang: str) -> None:
    if lang not in LANGUAGES:
        raise ValueError(f"Unsupported language {lang!r}, use one of: {', '.join(LANGUAGES)}")
    state.lang = lang
