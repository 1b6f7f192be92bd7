import unittest
import io
import json
import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from unittest.mock import patch

from bucks.models import (
    Daily, Monthly, Yearly, RecurringItem, PunctualItem, BudgetState,
    InvalidRuleError, ConfigIOError, MalformedStateError, PersistenceWriteError,
    rule_from_kind
)
from bucks.recurrence import occurrences, describe
from bucks.logic import (
    cost_per_month, cost_per_year, cost_until, punctual_cost_until,
    monthly_costs, yearly_costs, monthly_balance, year_end,
    expenses_to_year_end, incomes_to_year_end, total_year_end_balance, statistics,
    sweep_expired, add_subscription, add_income, add_fixed_expense, add_punctual_income,
    remove_subscription, remove_fixed_expense, remove_item, set_initial_savings, set_lang
)
from bucks.storage import (
    state_to_dict, state_from_dict, read_state, load_state, write_state, save_state,
    open_state, config_dir, config_file, CONFIG_DIR_ENV, CONFIG_NAME
)
from bucks.forms import FormSession, RecurringDraft, PunctualDraft
from bucks.i18n import translate
from bucks.cli import BudgetCLI, format_money


class TestRecurrenceRules(unittest.TestCase):
    def test_valid_rules(self):
        """Rules keep their fields and know their kind"""
        self.assertEqual(Daily(3).interval_days, 3)
        self.assertEqual(Monthly(31, 2).anchor_day, 31)
        rule = Yearly(29, 2, 4)
        self.assertEqual((rule.anchor_day, rule.anchor_month, rule.interval_years), (29, 2, 4))
        self.assertEqual([Daily(1).kind, Monthly(1, 1).kind, rule.kind], ["day", "month", "year"])

    def test_invalid_rules(self):
        """Zero intervals and out-of-range anchors fail at construction"""
        for build in (
                lambda: Daily(0),
                lambda: Monthly(1, 0),
                lambda: Monthly(0, 1),
                lambda: Monthly(32, 1),
                lambda: Yearly(1, 13, 1),
                lambda: Yearly(1, 0, 1),
                lambda: Yearly(1, 1, 0),
                lambda: Daily(True),
                lambda: Monthly("1", 1),
        ):
            with self.assertRaises(InvalidRuleError):
                build()

        # Also a ValueError, so form handlers can catch it generically
        with self.assertRaises(ValueError):
            Daily(-1)

    def test_intervals_capped(self):
        """Intervals above 255 are rejected"""
        for build in (lambda: Daily(256), lambda: Monthly(1, 256), lambda: Yearly(1, 1, 256), lambda: Yearly(1, 1, 9000)):
            with self.assertRaises(InvalidRuleError):
                build()
        self.assertEqual(Yearly(1, 1, 255).interval_years, 255)

    def test_longest_interval_still_projects(self):
        """The widest allowed intervals count without leaving the calendar"""
        today = date(2026, 10, 18)
        state = BudgetState()
        add_subscription(state, RecurringItem("Rare", 10.0, Yearly(1, 1, 255)))
        add_subscription(state, RecurringItem("Slow", 10.0, Monthly(1, 255)))
        add_income(state, RecurringItem("Sparse", 10.0, Daily(255)))
        self.assertEqual(occurrences(Yearly(1, 1, 255), today, date(2300, 12, 31)), 1)
        self.assertIn("balance_eoy", statistics(state, today))

    def test_rules_are_hashable_values(self):
        """Equal rules compare and hash alike"""
        self.assertEqual(Monthly(1, 1), Monthly(1, 1))
        self.assertEqual(len({Monthly(1, 1), Monthly(1, 1), Daily(1)}), 2)

    def test_rule_from_kind(self):
        """Form fields map onto the matching rule variant"""
        self.assertEqual(rule_from_kind("day", 5, 1, 1), Daily(5))
        self.assertEqual(rule_from_kind("month", 15, 3, 1), Monthly(15, 3))
        self.assertEqual(rule_from_kind("year", 29, 2, 2), Yearly(29, 2, 2))
        with self.assertRaises(InvalidRuleError):
            rule_from_kind("week", 1, 1, 1)

    def test_describe(self):
        """Rules render as localized sentences"""
        self.assertEqual(describe(Daily(3)), "Each 3 days")
        self.assertEqual(describe(Monthly(15, 2)), "Each 2 months on day 15")
        self.assertEqual(describe(Yearly(1, 6, 1)), "Each 1 years on day 1 of month 6")
        self.assertEqual(describe(Monthly(15, 2), "es"), "Cada 2 meses el día 15")


class TestOccurrences(unittest.TestCase):
    def test_documented_monthly_example(self):
        """An anchor on the start date is counted twice, giving 14"""
        self.assertEqual(occurrences(Monthly(1, 1), date(2021, 1, 1), date(2022, 1, 1)), 14)

    def test_twelve_month_window(self):
        """A year-long window starting the day after the anchor holds 12 occurrences"""
        for day in range(1, 29):
            start = date(2021, 1, day) + timedelta(days=1)
            end = date(2022, 1, day)
            self.assertEqual(occurrences(Monthly(day, 1), start, end), 12, f"day={day}")

    def test_daily_inclusive_day_count(self):
        """Daily(1) counts every day of the window, both ends included"""
        start = date(2021, 1, 1)
        for end in (date(2021, 1, 1), date(2021, 3, 1), date(2024, 2, 29)):
            self.assertEqual(occurrences(Daily(1), start, end), (end - start).days + 1)
        self.assertEqual(occurrences(Daily(1), date(2021, 1, 1), date(2021, 3, 1)), 60)

    def test_daily_truncates(self):
        """Partial intervals are dropped"""
        self.assertEqual(occurrences(Daily(7), date(2021, 1, 1), date(2021, 1, 31)), 4)
        self.assertEqual(occurrences(Daily(40), date(2021, 1, 1), date(2021, 1, 31)), 0)

    def test_empty_window(self):
        """An end before the start yields nothing"""
        for rule in (Daily(1), Monthly(1, 1), Yearly(1, 1, 1)):
            self.assertEqual(occurrences(rule, date(2021, 5, 1), date(2021, 4, 30)), 0)

    def test_monotonic_in_end_date(self):
        """Moving the end date forward never lowers the count"""
        start = date(2021, 3, 10)
        for rule in (Daily(3), Monthly(10, 1), Monthly(31, 2), Yearly(15, 6, 1)):
            previous = 0
            for offset in range(0, 800, 3):
                count = occurrences(rule, start, start + timedelta(days=offset))
                self.assertGreaterEqual(count, previous, f"{rule} at +{offset}")
                previous = count

    def test_anchor_day_clamps_to_month_end(self):
        """Day 31 becomes the last day of shorter months without drifting"""
        rule = Monthly(31, 1)
        # seed Jan 31, then Jan 31, Feb 28, Mar 31, Apr 30
        self.assertEqual(occurrences(rule, date(2021, 1, 1), date(2021, 4, 30)), 5)
        # Mar 31 is past Mar 30, so Feb 28 must not have pulled March back to the 28th
        self.assertEqual(occurrences(rule, date(2021, 1, 1), date(2021, 3, 30)), 3)

    def test_first_candidate_clamped_in_short_month(self):
        """Starting in February with anchor 30 uses Feb 28 as the first candidate"""
        self.assertEqual(occurrences(Monthly(30, 1), date(2021, 2, 1), date(2021, 2, 28)), 2)

    def test_yearly(self):
        """Yearly rules step by whole years from the anchor"""
        # seed 2021-06-15, then 2021, 2023, 2025
        self.assertEqual(occurrences(Yearly(15, 6, 2), date(2021, 1, 1), date(2026, 12, 31)), 4)
        # anchor already passed this year
        self.assertEqual(occurrences(Yearly(1, 1, 1), date(2021, 1, 2), date(2021, 12, 31)), 0)

    def test_yearly_leap_day_anchor(self):
        """Feb 29 anchors fall on Feb 28 in common years"""
        self.assertEqual(occurrences(Yearly(29, 2, 1), date(2021, 3, 1), date(2024, 2, 29)), 3)
        self.assertEqual(occurrences(Yearly(29, 2, 1), date(2021, 3, 1), date(2024, 2, 28)), 2)

    def test_cache(self):
        """A caller-owned cache stores results without changing them"""
        cache = {}
        args = (Monthly(1, 1), date(2021, 1, 1), date(2022, 1, 1))
        self.assertEqual(occurrences(*args, cache=cache), 14)
        self.assertEqual(cache[args], 14)
        self.assertEqual(occurrences(*args, cache=cache), occurrences(*args))


class TestItems(unittest.TestCase):
    def test_recurring_item_creation(self):
        """Test RecurringItem dataclass"""
        item = RecurringItem("Netflix", 12.99, Monthly(5, 1))
        self.assertEqual(item.name, "Netflix")
        self.assertEqual(item.cost, 12.99)
        self.assertEqual(item.recurrence, Monthly(5, 1))
        self.assertTrue(item.id)
        self.assertNotEqual(item.id, RecurringItem("Netflix", 12.99, Monthly(5, 1)).id)

    def test_cost_rounding_and_validation(self):
        """Costs are rounded to cents and must not be negative"""
        self.assertEqual(RecurringItem("", 9.999, Daily(1)).cost, 10.0)
        with self.assertRaises(ValueError):
            RecurringItem("Refund", -1.0, Daily(1))
        with self.assertRaises(ValueError):
            PunctualItem("Refund", -1.0, date(2025, 1, 1))

    def test_non_finite_costs_rejected(self):
        """NaN and infinite costs are refused"""
        for cost in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValueError):
                RecurringItem("Bad", cost, Daily(1))
            with self.assertRaises(ValueError):
                PunctualItem("Bad", cost, date(2025, 1, 1))

    def test_cost_per_month(self):
        """Occurrence ratios are truncated before multiplying"""
        self.assertEqual(cost_per_month(RecurringItem("", 100.0, Daily(40))), 0.0)
        self.assertEqual(cost_per_month(RecurringItem("", 5.0, Daily(10))), 15.0)
        self.assertEqual(cost_per_month(RecurringItem("", 12.5, Monthly(1, 1))), 12.5)
        self.assertEqual(cost_per_month(RecurringItem("", 12.5, Monthly(1, 2))), 0.0)
        self.assertEqual(cost_per_month(RecurringItem("", 120.0, Yearly(1, 1, 1))), 0.0)

    def test_cost_per_year(self):
        """Yearly costs use truncated occurrence ratios"""
        self.assertEqual(cost_per_year(RecurringItem("", 1.0, Daily(1))), 365.0)
        self.assertEqual(cost_per_year(RecurringItem("", 100.0, Daily(40))), 900.0)
        self.assertEqual(cost_per_year(RecurringItem("", 10.0, Monthly(1, 1))), 120.0)
        self.assertEqual(cost_per_year(RecurringItem("", 10.0, Monthly(1, 5))), 20.0)
        self.assertEqual(cost_per_year(RecurringItem("", 100.0, Yearly(1, 1, 1))), 100.0)
        self.assertEqual(cost_per_year(RecurringItem("", 100.0, Yearly(1, 1, 2))), 0.0)

    def test_cost_until_uses_exact_count(self):
        """Cost until a horizon multiplies by the real occurrence count"""
        item = RecurringItem("Gym", 10.0, Monthly(1, 1))
        self.assertEqual(cost_until(item, date(2022, 1, 1), date(2021, 1, 1)), 140.0)
        # Daily(40) costs nothing per month but still counts real occurrences
        daily = RecurringItem("Filter", 100.0, Daily(40))
        self.assertEqual(cost_until(daily, date(2021, 12, 31), date(2021, 1, 1)), 900.0)

    def test_punctual_cost_until(self):
        """One-off items count only inside the window"""
        item = PunctualItem("Car", 300.0, date(2025, 11, 2))
        self.assertEqual(punctual_cost_until(item, date(2025, 12, 31), date(2025, 10, 18)), 300.0)
        self.assertEqual(punctual_cost_until(item, date(2025, 12, 31), date(2025, 11, 2)), 300.0)
        self.assertEqual(punctual_cost_until(item, date(2025, 12, 31), date(2025, 11, 3)), 0.0)
        self.assertEqual(punctual_cost_until(item, date(2025, 11, 1), date(2025, 10, 18)), 0.0)


class TestBalanceProjection(unittest.TestCase):
    def setUp(self):
        self.today = date(2025, 10, 18)
        self.state = BudgetState(initial_savings=1000.0)
        add_income(self.state, RecurringItem("Salary", 2000.0, Monthly(1, 1)))
        add_subscription(self.state, RecurringItem("Phone", 15.0, Monthly(5, 1)))
        add_subscription(self.state, RecurringItem("Filter", 100.0, Daily(40)))
        add_punctual_income(self.state, PunctualItem("Bonus", 500.0, date(2025, 11, 20)))
        add_punctual_income(self.state, PunctualItem("Next year", 999.0, date(2026, 1, 5)))
        add_fixed_expense(self.state, PunctualItem("Insurance", 250.0, date(2025, 12, 31)))

    def test_year_end(self):
        """Test the projection horizon"""
        self.assertEqual(year_end(self.today), date(2025, 12, 31))

    def test_monthly_figures(self):
        """Test monthly costs and balance"""
        self.assertEqual(monthly_costs(self.state), 15.0)
        self.assertEqual(yearly_costs(self.state), 1080.0)
        self.assertEqual(monthly_balance(self.state), 1985.0)

    def test_year_end_projection(self):
        """Test income and expense totals until December 31"""
        # Salary on Nov 1 and Dec 1, plus the bonus
        self.assertEqual(incomes_to_year_end(self.state, self.today), 4500.0)
        # Phone twice, the filter once in 75 days, the insurance
        self.assertEqual(expenses_to_year_end(self.state, self.today), 380.0)
        self.assertEqual(total_year_end_balance(self.state, self.today), 5120.0)

    def test_deficit_is_negative(self):
        """A projected shortfall is reported as a negative balance"""
        state = BudgetState(initial_savings=-10.0)
        add_subscription(state, RecurringItem("Rent", 800.0, Monthly(1, 1)))
        self.assertLess(total_year_end_balance(state, self.today), 0)

    def test_statistics(self):
        """Test the figures shown in the stats table"""
        figures = statistics(self.state, self.today)
        self.assertEqual(figures["initial_savings"], 1000.0)
        self.assertEqual(figures["avg_cost_month"], 15.0)
        self.assertEqual(figures["balance_eoy"], 5120.0)
        self.assertEqual(figures["balance_eom"], 1985.0)

    def test_projection_does_not_mutate(self):
        """Computing figures leaves the state untouched"""
        before = state_to_dict(self.state)
        statistics(self.state, self.today)
        self.assertEqual(state_to_dict(self.state), before)


class TestSweeper(unittest.TestCase):
    def setUp(self):
        self.today = date(2025, 1, 1)
        self.state = BudgetState(initial_savings=100.0)
        self.old_expense = add_fixed_expense(self.state, PunctualItem("Old bill", 50.0, date(2020, 1, 1)))
        self.old_income = add_punctual_income(self.state, PunctualItem("Old gift", 20.0, date(2020, 6, 1)))
        self.due_today = add_fixed_expense(self.state, PunctualItem("Today", 5.0, date(2025, 1, 1)))
        self.future = add_fixed_expense(self.state, PunctualItem("Later", 7.0, date(2026, 1, 1)))

    def test_expired_items_fold_into_savings(self):
        """Past expenses are subtracted and past incomes added to savings"""
        expired = sweep_expired(self.state, self.today)
        self.assertEqual(set(i.id for i in expired), {self.old_expense.id, self.old_income.id})
        self.assertEqual(self.state.initial_savings, 70.0)
        self.assertNotIn(self.old_expense.id, self.state.fixed_expenses)
        self.assertNotIn(self.old_income.id, self.state.p_incomes)

    def test_items_dated_today_survive(self):
        """Items due today or later are kept"""
        sweep_expired(self.state, self.today)
        self.assertIn(self.due_today.id, self.state.fixed_expenses)
        self.assertIn(self.future.id, self.state.fixed_expenses)

    def test_idempotent(self):
        """A second sweep changes nothing"""
        sweep_expired(self.state, self.today)
        once = state_to_dict(self.state)
        self.assertEqual(sweep_expired(self.state, self.today), [])
        self.assertEqual(state_to_dict(self.state), once)


class TestCollections(unittest.TestCase):
    def setUp(self):
        self.state = BudgetState(initial_savings=10.0, lang="es")
        self.sub = add_subscription(self.state, RecurringItem("Netflix", 12.99, Monthly(1, 1)))
        self.inc = add_income(self.state, RecurringItem("Salary", 1500.0, Monthly(28, 1)))
        self.exp = add_fixed_expense(self.state, PunctualItem("Car", 300.0, date(2026, 1, 1)))
        self.pin = add_punctual_income(self.state, PunctualItem("Gift", 50.0, date(2026, 2, 1)))

    def test_items_keyed_by_id(self):
        """Items are stored under their own id"""
        self.assertIs(self.state.subscriptions[self.sub.id], self.sub)
        self.assertIs(self.state.p_incomes[self.pin.id], self.pin)

    def test_delete_leaves_everything_else(self):
        """Deleting by id only removes that item"""
        before = state_to_dict(self.state)
        self.assertTrue(remove_item(self.state, self.exp.id))
        after = state_to_dict(self.state)

        del before["fixed_expenses"][self.exp.id]
        self.assertEqual(after, before)

    def test_typed_removal(self):
        """Typed removal only searches its own collection"""
        self.assertFalse(remove_fixed_expense(self.state, self.sub.id))
        self.assertTrue(remove_subscription(self.state, self.sub.id))
        self.assertFalse(remove_subscription(self.state, self.sub.id))
        self.assertFalse(remove_item(self.state, "missing"))

    def test_non_finite_savings_rejected(self):
        """NaN and infinite savings are refused and leave the old value"""
        for amount in (float("nan"), float("inf"), "-inf"):
            with self.assertRaises(ValueError):
                set_initial_savings(self.state, amount)
        self.assertEqual(self.state.initial_savings, 10.0)

    def test_settings(self):
        """Test savings and language settings"""
        set_initial_savings(self.state, -20.25)
        self.assertEqual(self.state.initial_savings, -20.25)
        set_lang(self.state, "en")
        self.assertEqual(self.state.lang, "en")
        with self.assertRaises(ValueError):
            set_lang(self.state, "fr")


class TestStorage(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / CONFIG_NAME
        self.state = BudgetState(initial_savings=-42.5, lang="es")
        add_subscription(self.state, RecurringItem("Netflix", 12.99, Monthly(1, 1)))
        add_subscription(self.state, RecurringItem("", 3.0, Daily(3)))
        add_income(self.state, RecurringItem("Rent out", 400.0, Yearly(29, 2, 1)))
        add_fixed_expense(self.state, PunctualItem("Car", 300.0, date(2026, 11, 2)))
        add_punctual_income(self.state, PunctualItem("Gift", 50.0, date(2026, 12, 24)))

    def tearDown(self):
        self.tmp.cleanup()

    def test_round_trip(self):
        """Encoding then decoding gives back the same state"""
        self.assertEqual(state_from_dict(state_to_dict(self.state)), self.state)

    def test_document_format(self):
        """Test the JSON layout of rules, dates and settings"""
        data = state_to_dict(self.state)
        sub = next(s for s in data["subscriptions"].values() if s["name"] == "Netflix")
        self.assertEqual(sub["recurrence"], {"Month": [1, 1]})
        daily = next(s for s in data["subscriptions"].values() if s["name"] == "")
        self.assertEqual(daily["recurrence"], {"Day": 3})
        income = next(iter(data["incomes"].values()))
        self.assertEqual(income["recurrence"], {"Year": [29, 2, 1]})
        expense = next(iter(data["fixed_expenses"].values()))
        self.assertEqual(expense["date"], "2026-11-02")
        self.assertEqual(data["lang"], "es")
        self.assertEqual(data["initial_savings"], -42.5)

    def test_save_and_load(self):
        """Test saving and loading the state file"""
        self.assertTrue(save_state(self.state, self.path))
        self.assertEqual(load_state(self.path), self.state)
        self.assertEqual(json.loads(self.path.read_text())["lang"], "es")
        self.assertFalse(self.path.with_suffix(".tmp").exists())

    def test_missing_file_falls_back(self):
        """A missing file loads as an empty state"""
        missing = Path(self.tmp.name) / "nope" / CONFIG_NAME
        with self.assertRaises(ConfigIOError):
            read_state(missing)
        self.assertEqual(load_state(missing), BudgetState())

    def test_malformed_json_falls_back(self):
        """Broken JSON loads as an empty state"""
        self.path.write_text("{not json")
        with self.assertRaises(MalformedStateError):
            read_state(self.path)
        self.assertEqual(load_state(self.path), BudgetState())

    def test_invalid_schema_falls_back(self):
        """An invalid rule in the file loads as an empty state"""
        data = state_to_dict(self.state)
        item = next(iter(data["subscriptions"].values()))
        item["recurrence"] = {"Day": 0}
        self.path.write_text(json.dumps(data))
        with self.assertRaises(MalformedStateError):
            read_state(self.path)
        self.assertEqual(load_state(self.path), BudgetState())

    def test_schema_errors(self):
        """Invalid documents raise MalformedStateError"""
        for data in (
                [],
                {"initial_savings": "lots"},
                {"subscriptions": []},
                {"subscriptions": {"a": {"id": "a", "cost": 1.0, "recurrence": {"Week": 1}}}},
                {"subscriptions": {"a": {"id": "b", "cost": 1.0, "recurrence": {"Day": 1}}}},
                {"fixed_expenses": {"a": {"id": "a", "cost": 1.0, "date": "tomorrow"}}},
                {"p_incomes": {"a": {"id": "a", "cost": -1.0, "date": "2025-01-01"}}},
                {"incomes": {"a": {"id": "a", "recurrence": {"Day": 1}}}},
        ):
            with self.assertRaises(MalformedStateError, msg=repr(data)):
                state_from_dict(data)

    def test_missing_collections_default_empty(self):
        """Absent collections load as empty dicts"""
        state = state_from_dict({"initial_savings": 5})
        self.assertEqual(state, BudgetState(initial_savings=5.0))

    def test_write_failure_is_not_fatal(self):
        """A failed write is reported without raising"""
        with patch("bucks.storage.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(PersistenceWriteError):
                write_state(self.state, self.path)
            self.assertFalse(save_state(self.state, self.path))
        self.assertFalse(self.path.exists())
        self.assertFalse(self.path.with_suffix(".tmp").exists())

    def test_open_state_sweeps_and_saves(self):
        """A punctual item from 2020 is folded into savings once and the file updated"""
        state = BudgetState(initial_savings=100.0)
        old = add_fixed_expense(state, PunctualItem("Old", 30.0, date(2020, 1, 1)))
        save_state(state, self.path)

        loaded = open_state(date(2025, 1, 1), self.path)
        self.assertEqual(loaded.initial_savings, 70.0)
        self.assertNotIn(old.id, loaded.fixed_expenses)

        on_disk = read_state(self.path)
        self.assertEqual(on_disk, loaded)
        self.assertEqual(open_state(date(2025, 1, 1), self.path).initial_savings, 70.0)

    def test_oversized_interval_rejected(self):
        """A rule too wide to project loads as an empty state"""
        data = {"subscriptions": {"a": {"id": "a", "name": "", "cost": 1.0, "recurrence": {"Year": [1, 1, 9000]}}}}
        with self.assertRaises(MalformedStateError):
            state_from_dict(data)
        self.path.write_text(json.dumps(data))
        self.assertEqual(load_state(self.path), BudgetState())

    def test_non_finite_numbers_rejected(self):
        """NaN or Infinity in the file is malformed and never written back"""
        for data in (
                {"initial_savings": float("nan")},
                {"initial_savings": float("inf")},
                {"fixed_expenses": {"a": {"id": "a", "cost": float("nan"), "date": "2026-01-01"}}},
        ):
            with self.assertRaises(MalformedStateError, msg=repr(data)):
                state_from_dict(data)

        self.path.write_text('{"initial_savings": NaN}')
        self.assertEqual(load_state(self.path), BudgetState())

        self.state.initial_savings = float("inf")
        with self.assertRaises(PersistenceWriteError):
            write_state(self.state, self.path)
        self.assertFalse(self.path.exists())
        self.assertFalse(self.path.with_suffix(".tmp").exists())

    def test_open_state_always_saves(self):
        """Opening the state writes it back even when nothing expired"""
        self.assertFalse(self.path.exists())
        state = open_state(date(2025, 1, 1), self.path)
        self.assertEqual(read_state(self.path), state)

    def test_config_dir_override(self):
        """The environment variable moves the config directory"""
        with patch.dict(os.environ, {CONFIG_DIR_ENV: self.tmp.name}):
            self.assertEqual(config_dir(), Path(self.tmp.name))
            self.assertEqual(config_file(), Path(self.tmp.name) / CONFIG_NAME)
            self.assertTrue(save_state(self.state))
            self.assertEqual(load_state(), self.state)


class TestForms(unittest.TestCase):
    def setUp(self):
        self.forms = FormSession()
        self.today = date(2025, 10, 18)

    def test_starts_closed(self):
        """No form is open at first"""
        self.assertFalse(self.forms.is_open)
        with self.assertRaises(ValueError):
            self.forms.submit()
        with self.assertRaises(ValueError):
            self.forms.set("name", "x")

    def test_recurring_defaults(self):
        """Recurring forms start with monthly defaults"""
        draft = self.forms.open("subscription", self.today)
        self.assertEqual(draft, RecurringDraft(name="", cost=10.0, recurrence="month", days=1, months=1, years=1))

    def test_punctual_defaults_to_today(self):
        """Punctual forms start dated today"""
        draft = self.forms.open("fixed_expense", self.today)
        self.assertEqual(draft, PunctualDraft(name="", cost=0.0, date=self.today))

    def test_submit_recurring(self):
        """Test submitting a recurring income form"""
        self.forms.open("income", self.today)
        self.forms.set("name", "Salary")
        self.forms.set("cost", "1500.5")
        self.forms.set("recurrence", "year")
        self.forms.set("days", "15")
        self.forms.set("months", "6")
        kind, item = self.forms.submit()
        self.assertEqual(kind, "income")
        self.assertEqual(item.name, "Salary")
        self.assertEqual(item.cost, 1500.5)
        self.assertEqual(item.recurrence, Yearly(15, 6, 1))
        self.assertFalse(self.forms.is_open)

    def test_submit_punctual(self):
        """Test submitting a punctual income form"""
        self.forms.open("punctual_income", self.today)
        self.forms.set("date", "2025-12-24")
        self.forms.set("cost", "50")
        kind, item = self.forms.submit()
        self.assertEqual(kind, "punctual_income")
        self.assertEqual(item.date, date(2025, 12, 24))
        self.assertEqual(item.cost, 50.0)

    def test_invalid_rule_keeps_form_open(self):
        """A rejected rule leaves the draft open for fixing"""
        self.forms.open("subscription", self.today)
        self.forms.set("recurrence", "day")
        self.forms.set("days", "0")
        with self.assertRaises(InvalidRuleError):
            self.forms.submit()
        self.assertTrue(self.forms.is_open)

    def test_bad_fields(self):
        """Unknown fields and bad values are rejected"""
        self.forms.open("fixed_expense", self.today)
        for name, value in (("cost", "-1"), ("cost", "abc"), ("date", "soon"), ("days", "1"), ("color", "red")):
            with self.assertRaises(ValueError):
                self.forms.set(name, value)
        with self.assertRaises(ValueError):
            self.forms.open("loan", self.today)

    def test_non_finite_cost_rejected(self):
        """A NaN or infinite cost cannot be entered"""
        self.forms.open("subscription", self.today)
        for value in ("nan", "inf", "-inf"):
            with self.assertRaises(ValueError):
                self.forms.set("cost", value)
        self.assertEqual(self.forms.draft.cost, 10.0)

    def test_cancel_discards(self):
        """Cancelling throws the draft away"""
        self.forms.open("subscription", self.today)
        self.forms.set("name", "Draft")
        self.forms.cancel()
        self.assertFalse(self.forms.is_open)
        self.assertIsNone(self.forms.draft)


class TestTranslations(unittest.TestCase):
    def test_fallbacks(self):
        """Missing translations fall back to English, then to the key"""
        self.assertEqual(translate("kind.day", "es"), "Día")
        self.assertEqual(translate("kind.day", "fr"), "Day")
        self.assertEqual(translate("missing.key", "es"), "missing.key")

    def test_format_money(self):
        """Test currency formatting"""
        self.assertEqual(format_money(12.5), "12.50€")
        self.assertEqual(format_money(12.5, signed=True), "+12.50€")
        self.assertEqual(format_money(-3, signed=True), "-3.00€")


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / CONFIG_NAME
        self.state = BudgetState()
        self.cli = BudgetCLI(self.state, today=date(2025, 10, 18), path=self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cmd(self, line):
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            self.cli.onecmd(line)
        return out.getvalue()

    def test_create_and_delete_subscription(self):
        """Test creating, listing and deleting a subscription"""
        self.run_cmd("new subscription")
        self.run_cmd("set name Netflix Premium")
        self.run_cmd("set cost 12.99")
        output = self.run_cmd("submit")
        self.assertIn("✓ Added subscription", output)

        item = next(iter(self.state.subscriptions.values()))
        self.assertEqual(item.name, "Netflix Premium")
        self.assertEqual(item.recurrence, Monthly(1, 1))
        self.assertEqual(read_state(self.path), self.state)

        self.assertIn("Netflix Premium", self.run_cmd("list subscriptions"))
        self.assertIn("✓ Deleted", self.run_cmd(f"delete {item.id}"))
        self.assertEqual(self.state.subscriptions, {})
        self.assertEqual(read_state(self.path).subscriptions, {})
        self.assertIn("Item not found", self.run_cmd(f"delete {item.id}"))

    def test_invalid_submit_reports_error(self):
        """An invalid form is reported and nothing is added"""
        self.run_cmd("new income")
        self.run_cmd("set recurrence day")
        self.run_cmd("set days 0")
        self.assertIn("Invalid input", self.run_cmd("submit"))
        self.assertEqual(self.state.incomes, {})
        self.assertIn("Form discarded", self.run_cmd("cancel"))

    def test_savings_and_stats(self):
        """Test setting savings and printing statistics"""
        self.run_cmd("savings 250")
        self.assertEqual(self.state.initial_savings, 250.0)
        output = self.run_cmd("stats")
        self.assertIn("Balance at the end of the year", output)
        self.assertIn("+250.00€", output)
        self.assertIn("Invalid input", self.run_cmd("savings lots"))

    def test_language_switch(self):
        """Test switching the language"""
        self.run_cmd("lang es")
        self.assertEqual(self.state.lang, "es")
        self.assertIn("Balance a final de año", self.run_cmd("stats"))
        self.assertIn("Invalid input", self.run_cmd("lang fr"))
        self.assertEqual(read_state(self.path).lang, "es")

    def test_save_failure_warns(self):
        """A failed save prints a warning and keeps the change"""
        with patch("bucks.storage.os.replace", side_effect=OSError("read-only")):
            output = self.run_cmd("savings 10")
        self.assertIn("Warning", output)
        self.assertEqual(self.state.initial_savings, 10.0)

    def test_non_finite_input_reported(self):
        """NaN and infinity are reported as invalid and never reach the file"""
        self.run_cmd("new subscription")
        self.assertIn("Invalid input", self.run_cmd("set cost nan"))
        self.run_cmd("submit")
        self.assertIn("Invalid input", self.run_cmd("savings inf"))
        self.assertEqual(self.state.initial_savings, 0.0)
        item = next(iter(self.state.subscriptions.values()))
        self.assertEqual(item.cost, 10.0)
        self.assertNotIn("NaN", self.path.read_text())

    def test_exit(self):
        """Test the exit command"""
        with patch("sys.stdout", new_callable=io.StringIO):
            self.assertTrue(self.cli.onecmd("exit"))


if __name__ == "__main__":
    unittest.main()
