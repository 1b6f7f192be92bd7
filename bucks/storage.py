import json
import math
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from .log import get_logger
from .logic import sweep_expired
from .models import (
    BudgetState, RecurringItem, PunctualItem, Daily, Monthly, Yearly, RecurrenceRule,
    ConfigIOError, MalformedStateError, PersistenceWriteError
)


QUALIFIER = "com"
ORGANIZATION = "margual56"
APPLICATION = "NixBucks"
CONFIG_NAME = "config.json"
CONFIG_DIR_ENV = "NIXBUCKS_CONFIG_DIR"

log = get_logger(__name__)


def config_dir() -> Path:
    """Per-platform config directory for the (qualifier, organization, application) triple."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
        return base / ORGANIZATION / APPLICATION / "config"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / f"{QUALIFIER}.{ORGANIZATION}.{APPLICATION}"

    base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APPLICATION.lower()


def config_file() -> Path:
    return config_dir() / CONFIG_NAME


# ===== ENCODING =====
def recurrence_to_json(rule: RecurrenceRule) -> dict:
    if isinstance(rule, Daily):
        return {"Day": rule.interval_days}
    if isinstance(rule, Monthly):
        return {"Month": [rule.anchor_day, rule.interval_months]}
    return {"Year": [rule.anchor_day, rule.anchor_month, rule.interval_years]}


def state_to_dict(state: BudgetState) -> dict:
    return {
        "initial_savings": state.initial_savings,
        "subscriptions": {
            item_id: _recurring_to_dict(item) for item_id, item in state.subscriptions.items()
        },
        "incomes": {
            item_id: _recurring_to_dict(item) for item_id, item in state.incomes.items()
        },
        "fixed_expenses": {
            item_id: _punctual_to_dict(item) for item_id, item in state.fixed_expenses.items()
        },
        "p_incomes": {
            item_id: _punctual_to_dict(item) for item_id, item in state.p_incomes.items()
        },
        "lang": state.lang,
    }


def _recurring_to_dict(item: RecurringItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "cost": item.cost,
        "recurrence": recurrence_to_json(item.recurrence),
    }


def _punctual_to_dict(item: PunctualItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "cost": item.cost,
        "date": item.date.isoformat(),
    }


# ===== DECODING =====
def recurrence_from_json(data) -> RecurrenceRule:
    if not isinstance(data, dict) or len(data) != 1:
        raise MalformedStateError(f"Invalid recurrence: {data!r}")

    (tag, value), = data.items()
    # InvalidRuleError is a ValueError, state_from_dict turns it into MalformedStateError
    if tag == "Day":
        return Daily(value)
    if tag == "Month" and isinstance(value, list) and len(value) == 2:
        return Monthly(*value)
    if tag == "Year" and isinstance(value, list) and len(value) == 3:
        return Yearly(*value)
    raise MalformedStateError(f"Invalid recurrence: {data!r}")


def _collection(data: dict, key: str, build) -> dict:
    raw = data.get(key, {})
    if not isinstance(raw, dict):
        raise MalformedStateError(f"'{key}' must be an object")

    items = {}
    for item_id, item_data in raw.items():
        item = build(item_data)
        if item.id != item_id:
            raise MalformedStateError(f"Item key {item_id!r} does not match its id {item.id!r}")
        items[item_id] = item
    return items


def _recurring_from_json(data: dict) -> RecurringItem:
    return RecurringItem(
        id=data["id"],
        name=data.get("name", ""),
        cost=data["cost"],
        recurrence=recurrence_from_json(data["recurrence"]),
    )


def _punctual_from_json(data: dict) -> PunctualItem:
    return PunctualItem(
        id=data["id"],
        name=data.get("name", ""),
        cost=data["cost"],
        date=date.fromisoformat(data["date"]),
    )


def state_from_dict(data: dict) -> BudgetState:
    if not isinstance(data, dict):
        raise MalformedStateError("State document must be a JSON object")

    try:
        savings = data.get("initial_savings", 0.0)
        if isinstance(savings, bool) or not isinstance(savings, (int, float)):
            raise MalformedStateError(f"Invalid initial_savings: {savings!r}")
        if not math.isfinite(savings):
            raise MalformedStateError(f"Invalid initial_savings: {savings!r}")

        return BudgetState(
            initial_savings=float(savings),
            subscriptions=_collection(data, "subscriptions", _recurring_from_json),
            incomes=_collection(data, "incomes", _recurring_from_json),
            fixed_expenses=_collection(data, "fixed_expenses", _punctual_from_json),
            p_incomes=_collection(data, "p_incomes", _punctual_from_json),
            lang=str(data.get("lang", "en")),
        )
    except MalformedStateError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedStateError(f"Invalid state document: {e}") from e


# ===== FILE I/O =====
def read_state(path: Optional[Path] = None) -> BudgetState:
    path = path or config_file()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigIOError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedStateError(f"{path} is not valid JSON: {e}") from e

    return state_from_dict(data)


def load_state(path: Optional[Path] = None) -> BudgetState:
    """Read the state file, falling back to an empty state when it is missing or corrupt."""
    path = path or config_file()
    try:
        state = read_state(path)
    except ConfigIOError as e:
        log.info("state_fallback", path=str(path), reason=str(e))
        return BudgetState()
    except MalformedStateError as e:
        log.warning("state_fallback", path=str(path), reason=str(e))
        return BudgetState()

    log.info(
        "state_loaded", path=str(path),
        subscriptions=len(state.subscriptions), incomes=len(state.incomes),
        fixed_expenses=len(state.fixed_expenses), p_incomes=len(state.p_incomes)
    )
    return state


def write_state(state: BudgetState, path: Optional[Path] = None) -> None:
    """Overwrite the state file with the whole document."""
    path = path or config_file()
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        json_str = json.dumps(state_to_dict(state), indent=2, ensure_ascii=False, allow_nan=False)
        tmp.write_text(json_str, encoding="utf-8")
        os.replace(tmp, path)
    except (OSError, ValueError) as e:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            pass
        raise PersistenceWriteError(f"Cannot write {path}: {e}") from e


def save_state(state: BudgetState, path: Optional[Path] = None) -> bool:
    path = path or config_file()
    try:
        write_state(state, path)
    except PersistenceWriteError as e:
        log.error("state_save_failed", path=str(path), reason=str(e))
        return False

    log.debug("state_saved", path=str(path))
    return True


def open_state(today: date, path: Optional[Path] = None) -> BudgetState:
    """Load the state, expire past punctual items and persist the result right away."""
    state = load_state(path)
    sweep_expired(state, today)
    save_state(state, path)
    return state
