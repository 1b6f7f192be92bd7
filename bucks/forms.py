from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Literal, Optional, Union

from bucks.models import PunctualItem, RecurringItem, RecurrenceKind, rule_from_kind


FormKind = Literal["subscription", "income", "fixed_expense", "punctual_income"]
FORM_KINDS: tuple[FormKind, ...] = ("subscription", "income", "fixed_expense", "punctual_income")
RECURRING_FORMS = ("subscription", "income")


@dataclass
class RecurringDraft:
    name: str = ""
    cost: float = 10.0
    recurrence: RecurrenceKind = "month"
    days: int = 1
    months: int = 1
    years: int = 1

    def build(self) -> RecurringItem:
        rule = rule_from_kind(self.recurrence, self.days, self.months, self.years)
        return RecurringItem(name=self.name, cost=self.cost, recurrence=rule)


@dataclass
class PunctualDraft:
    name: str = ""
    cost: float = 0.0
    date: date = field(default_factory=date.today)

    def build(self) -> PunctualItem:
        return PunctualItem(name=self.name, cost=self.cost, date=self.date)


Draft = Union[RecurringDraft, PunctualDraft]


def _parse_field(draft: Draft, name: str, value: str):
    if name == "name":
        return value
    if name == "cost":
        cost = float(value)
        if not math.isfinite(cost):
            raise ValueError("Cost must be a finite number")
        if cost < 0:
            raise ValueError("Cost cannot be negative")
        return cost
    if isinstance(draft, RecurringDraft):
        if name == "recurrence":
            if value not in ("day", "month", "year"):
                raise ValueError("Recurrence must be one of: day, month, year")
            return value
        if name in ("days", "months", "years"):
            return int(value)
    elif name == "date":
        return date.fromisoformat(value)
    raise ValueError(f"Unknown field: {name}")


class FormSession:
    """At most one creation form is open at a time, holding its draft fields.

    ``submit`` emits the finished item and closes the form; ``cancel`` throws
    the draft away.
    """

    def __init__(self):
        self.kind: Optional[FormKind] = None
        self.draft: Optional[Draft] = None

    @property
    def is_open(self) -> bool:
        return self.kind is not None

    def open(self, kind: FormKind, today: date) -> Draft:
        if kind not in FORM_KINDS:
            raise ValueError(f"Unknown form: {kind}. Use one of: {', '.join(FORM_KINDS)}")
        self.kind = kind
        self.draft = RecurringDraft() if kind in RECURRING_FORMS else PunctualDraft(date=today)
        return self.draft

    def set(self, name: str, value: str) -> Draft:
        if not self.is_open:
            raise ValueError("No form is open")
        self.draft = replace(self.draft, **{name: _parse_field(self.draft, name, value)})
        return self.draft

    def submit(self) -> tuple[FormKind, Union[RecurringItem, PunctualItem]]:
        if not self.is_open:
            raise ValueError("No form is open")
        # Validation errors propagate and leave the form open
        item = self.draft.build()
        kind = self.kind
        self.cancel()
        return kind, item

    def cancel(self) -> None:
        self.kind = None
        self.draft = None
