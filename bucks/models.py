from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional, Union
from uuid import uuid4


RecurrenceKind = Literal["day", "month", "year"]
MAX_INTERVAL = 255


class BucksError(Exception):
    pass


class InvalidRuleError(BucksError, ValueError):
    """A recurrence rule with a zero interval or an out-of-range anchor."""


class ConfigIOError(BucksError):
    """The state file is missing or cannot be read."""


class MalformedStateError(BucksError):
    """The state file was read but does not hold a valid budget document."""


class PersistenceWriteError(BucksError):
    """The state file could not be written."""


def _check_range(field_name: str, value, low: int, high: Optional[int] = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRuleError(f"{field_name} must be an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidRuleError(f"{field_name} must be {bound}, got {value}")


@dataclass(frozen=True)
class Daily:
    interval_days: int

    def __post_init__(self):
        _check_range("interval_days", self.interval_days, 1, MAX_INTERVAL)

    @property
    def kind(self) -> RecurrenceKind:
        return "day"


@dataclass(frozen=True)
class Monthly:
    anchor_day: int
    interval_months: int

    def __post_init__(self):
        _check_range("anchor_day", self.anchor_day, 1, 31)
        _check_range("interval_months", self.interval_months, 1, MAX_INTERVAL)

    @property
    def kind(self) -> RecurrenceKind:
        return "month"


@dataclass(frozen=True)
class Yearly:
    anchor_day: int
    anchor_month: int
    interval_years: int

    def __post_init__(self):
        _check_range("anchor_day", self.anchor_day, 1, 31)
        _check_range("anchor_month", self.anchor_month, 1, 12)
        _check_range("interval_years", self.interval_years, 1, MAX_INTERVAL)

    @property
    def kind(self) -> RecurrenceKind:
        return "year"


RecurrenceRule = Union[Daily, Monthly, Yearly]


def rule_from_kind(kind: RecurrenceKind, days: int, months: int, years: int) -> RecurrenceRule:
    """Build a rule from the creation-form fields.

    ``days`` is the interval for daily rules and the anchor day otherwise,
    ``months`` is the interval for monthly rules and the anchor month for
    yearly ones.
    """
    if kind == "day":
        return Daily(days)
    if kind == "month":
        return Monthly(days, months)
    if kind == "year":
        return Yearly(days, months, years)
    raise InvalidRuleError(f"Unknown recurrence kind: {kind!r}")


def _new_id() -> str:
    return str(uuid4())


def _check_cost(cost: float) -> float:
    if isinstance(cost, bool) or not isinstance(cost, (int, float)):
        raise ValueError(f"Cost must be a number, got {cost!r}")
    if not math.isfinite(cost):
        raise ValueError(f"Cost must be a finite number, got {cost}")
    if cost < 0:
        raise ValueError(f"Cost cannot be negative, got {cost}")
    return round(float(cost), 2)


@dataclass(frozen=True)
class RecurringItem:
    """A subscription or a recurring income stream."""
    name: str
    cost: float
    recurrence: RecurrenceRule
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        object.__setattr__(self, "cost", _check_cost(self.cost))


@dataclass(frozen=True)
class PunctualItem:
    """A one-off expense or income due on ``date``."""
    name: str
    cost: float
    date: date
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        object.__setattr__(self, "cost", _check_cost(self.cost))


@dataclass
class BudgetState:
    initial_savings: float = 0.0
    subscriptions: dict[str, RecurringItem] = field(default_factory=dict)
    incomes: dict[str, RecurringItem] = field(default_factory=dict)
    fixed_expenses: dict[str, PunctualItem] = field(default_factory=dict)
    p_incomes: dict[str, PunctualItem] = field(default_factory=dict)
    lang: str = "en"
