import cmd
from datetime import date
from pathlib import Path
from typing import Optional

from bucks.forms import FormSession, FORM_KINDS
from bucks.i18n import translate, LANGUAGES
from bucks.logic import (
    add_subscription,
    add_income,
    add_fixed_expense,
    add_punctual_income,
    remove_item,
    set_initial_savings,
    set_lang,
    statistics,
)
from bucks.models import BudgetState
from bucks.recurrence import describe
from bucks.storage import save_state


CURRENCY = "€"

ADDERS = {
    "subscription": add_subscription,
    "income": add_income,
    "fixed_expense": add_fixed_expense,
    "punctual_income": add_punctual_income,
}


def format_money(amount: float, signed: bool = False) -> str:
    """Format an amount with two decimals and the currency suffix, e.g. '+12.50€'."""
    return f"{amount:+.2f}{CURRENCY}" if signed else f"{amount:.2f}{CURRENCY}"


class BudgetCLI(cmd.Cmd):
    prompt = "(bucks) "

    def __init__(self, state: BudgetState, today: Optional[date] = None, path: Optional[Path] = None):
        super().__init__()
        self.intro = "Welcome to NixBucks. Type 'help' for commands."
        self.state = state
        self.today = today or date.today()
        self.path = path
        self.forms = FormSession()
        self.cache = {}

    def t(self, key: str, **kwargs) -> str:
        return translate(key, self.state.lang, **kwargs)

    def _save(self):
        if not save_state(self.state, self.path):
            print("Warning: could not save your data, changes are only kept in memory")

    # ===== TABLES =====
    def do_list(self, arg):
        """List items: list [subscriptions|incomes|fixed_expenses|p_incomes]"""
        sections = {
            "subscriptions": self._print_recurring,
            "incomes": self._print_recurring,
            "fixed_expenses": self._print_punctual,
            "p_incomes": self._print_punctual,
        }
        wanted = arg.split() or list(sections)

        for name in wanted:
            if name not in sections:
                print(f"Unknown collection: {name}. Use one of: {', '.join(sections)}")
                return
            sections[name](name)

    def _print_recurring(self, name):
        title = "title.subscriptions" if name == "subscriptions" else "title.income_streams"
        print(f"\n{' ' + self.t(title) + ' ':-^60}")
        print(f"  {self.t('table.concept'):<20} {self.t('table.cost'):>10}  {self.t('table.recurrence')}")
        for item in getattr(self.state, name).values():
            print(f"  {item.name:<20} {format_money(item.cost):>10}  {describe(item.recurrence, self.state.lang)}")
            print(f"    id: {item.id}")

    def _print_punctual(self, name):
        title = "title.fixed_expenses" if name == "fixed_expenses" else "title.punctual_income"
        print(f"\n{' ' + self.t(title) + ' ':-^60}")
        print(f"  {self.t('table.concept'):<20} {self.t('table.cost'):>10}  {self.t('table.date')}")
        for item in getattr(self.state, name).values():
            print(f"  {item.name:<20} {format_money(item.cost):>10}  {item.date.isoformat()}")
            print(f"    id: {item.id}")

    def do_stats(self, arg):
        """Show projected balances: stats"""
        figures = statistics(self.state, self.today, self.cache)
        print(f"\n{' ' + self.t('title.stats') + ' ':-^60}")
        for key, amount in figures.items():
            print(f"  {self.t('stats.' + key):<40} {format_money(amount, signed=True):>14}")

    # ===== FORMS =====
    def do_new(self, arg):
        """Open a creation form: new <subscription|income|fixed_expense|punctual_income>"""
        try:
            self.forms.open(arg.strip(), self.today)
            self._print_draft()
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_set(self, arg):
        """Set a field of the open form: set <field> <value>"""
        name, _, value = arg.strip().partition(" ")
        if not name:
            print("Usage: set <field> <value>")
            return
        try:
            self.forms.set(name, value.strip())
            self._print_draft()
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_submit(self, arg):
        """Create the item described by the open form: submit"""
        try:
            kind, item = self.forms.submit()
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        ADDERS[kind](self.state, item)
        self._save()
        print(f"✓ Added {kind.replace('_', ' ')} '{item.name}' ({item.id})")

    def do_cancel(self, arg):
        """Discard the open form: cancel"""
        if self.forms.is_open:
            self.forms.cancel()
            print("Form discarded")
        else:
            print("No form is open")

    def _print_draft(self):
        if not self.forms.is_open:
            return
        print(f"New {self.forms.kind.replace('_', ' ')}:")
        for key, value in vars(self.forms.draft).items():
            print(f"  {key}: {value}")

    # ===== EDITING =====
    def do_delete(self, arg):
        """Delete an item: delete <ID>"""
        item_id = arg.strip()
        if not item_id:
            print("Usage: delete <ID>")
            return

        if remove_item(self.state, item_id):
            self._save()
            print(f"✓ Deleted {item_id}")
        else:
            print("Item not found")

    def do_savings(self, arg):
        """Show or set the initial savings: savings [amount]"""
        if not arg.strip():
            print(f"{self.t('stats.initial_savings')}: {format_money(self.state.initial_savings, signed=True)}")
            return
        try:
            set_initial_savings(self.state, float(arg))
        except ValueError as e:
            print(f"Invalid input: {e}")
            return
        self._save()
        print(f"✓ {self.t('stats.initial_savings')}: {format_money(self.state.initial_savings, signed=True)}")

    def do_lang(self, arg):
        """Show or switch the language: lang [en|es]"""
        if not arg.strip():
            names = {"en": self.t("english"), "es": self.t("spanish")}
            for code in LANGUAGES:
                marker = "*" if code == self.state.lang else " "
                print(f" {marker} {code}  {names[code]}")
            return
        try:
            set_lang(self.state, arg.strip())
        except ValueError as e:
            print(f"Invalid input: {e}")
            return
        self._save()
        print(f"✓ Language: {self.state.lang}")

    # ===== UTILITIES =====
    def do_exit(self, arg):
        """Exit the program"""
        print("Goodbye!")
        return True

    def complete_new(self, text, line, begidx, endidx):
        return [kind for kind in FORM_KINDS if kind.startswith(text)]
