import argparse
import logging
from datetime import date
from pathlib import Path

from bucks.cli import BudgetCLI
from bucks.log import setup_logging
from bucks.storage import open_state, config_file


def main(argv=None):
    parser = argparse.ArgumentParser(prog="bucks", description="Track subscriptions, incomes and projected savings.")
    parser.add_argument("--config", type=Path, default=None, help=f"State file (default: {config_file()})")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="Pretend today is YYYY-MM-DD")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log state loading and saving")
    args = parser.parse_args(argv)

    setup_logging(logging.INFO if args.verbose else logging.WARNING)

    today = args.today or date.today()
    state = open_state(today, args.config)
    BudgetCLI(state, today=today, path=args.config).cmdloop()


if __name__ == "__main__":
    main()
