from datetime import date, timedelta
from dateutil.relativedelta import relativedelta

from bucks.i18n import translate
from bucks.models import Daily, Monthly, Yearly, RecurrenceRule, InvalidRuleError


# Caller-owned memo of (rule, start, end) -> count
OccurrenceCache = dict[tuple[RecurrenceRule, date, date], int]


def _anchored(base: date, step_months: int, day: int) -> date:
    # relativedelta applies the month shift first and then clamps ``day`` to the month length
    return base + relativedelta(months=step_months, day=day)


def _count_anchored(start: date, end: date, first: date, step: int, day: int) -> int:
    times = 0
    k = 0
    candidate = first

    if candidate < start:
        k = 1
        candidate = _anchored(first, step, day)
    else:
        times += 1

    target = end + timedelta(days=1)
    while candidate < target:
        times += 1
        k += 1
        candidate = _anchored(first, k * step, day)

    return times


def occurrences(
        rule: RecurrenceRule,
        start: date,
        end: date,
        cache: OccurrenceCache | None = None,
) -> int:
    """Count the scheduled dates of ``rule`` between ``start`` and ``end``.

    ``end`` is inclusive. For monthly and yearly rules an anchor that lands
    exactly on ``start`` seeds the count and is then counted again by the
    walk, so ``Monthly(1, 1)`` from 2021-01-01 to 2022-01-01 yields 14.

    >>> occurrences(Monthly(1, 1), date(2021, 1, 1), date(2022, 1, 1))
    14
    """
    key = (rule, start, end)
    if cache is not None and key in cache:
        return cache[key]

    if end < start:
        times = 0
    elif isinstance(rule, Daily):
        times = ((end + timedelta(days=1)) - start).days // rule.interval_days
    elif isinstance(rule, Monthly):
        first = start + relativedelta(day=rule.anchor_day)
        times = _count_anchored(start, end, first, rule.interval_months, rule.anchor_day)
    elif isinstance(rule, Yearly):
        first = start + relativedelta(month=rule.anchor_month, day=rule.anchor_day)
        times = _count_anchored(start, end, first, rule.interval_years * 12, rule.anchor_day)
    else:
        raise InvalidRuleError(f"Not a recurrence rule: {rule!r}")

    if cache is not None:
        cache[key] = times
    return times


def describe(rule: RecurrenceRule, lang: str = "en") -> str:
    if isinstance(rule, Daily):
        return translate("recurrence.day", lang, days=rule.interval_days)
    if isinstance(rule, Monthly):
        return translate("recurrence.month", lang, months=rule.interval_months, day=rule.anchor_day)
    return translate(
        "recurrence.year", lang,
        years=rule.interval_years, day=rule.anchor_day, month=rule.anchor_month
    )
