#!/usr/bin/env python3
"""Command-line interface for moneymate."""

import argparse
import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from moneymate.config import get_api_key, get_backend_url, get_user_id, load_config
from moneymate.errors import MoneymateError
from moneymate.insights import (
    Timeframe,
    filter_by_timeframe,
    filter_transactions,
    max_monthly_value,
    monthly_summaries,
    net_balance,
    spending_breakdown,
)
from moneymate.models import Category, Frequency, RecurringTemplate, TransactionInstance
from moneymate.services import (
    GoalService,
    RecurringTransactionService,
    TransactionService,
    coerce_amount,
)
from moneymate.store import RestRowStore, RowStore


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="moneymate",
        description="Track transactions, savings goals and recurring payments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  moneymate setup
  moneymate add 12.50 want -d "Lunch"
  moneymate recurring add Rent 1500 need monthly --start 2024-01-01
  moneymate due
  moneymate process-due --dry-run
  moneymate goals contribute <goal-id> 50
  moneymate insights --timeframe year
        """,
    )
    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument("--user-id", help="User id (or configure in config.json)")
    parser.add_argument("--url", help="Backend REST URL (or configure in config.json)")
    parser.add_argument("--api-key", help="Backend API key (or configure in config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", metavar="command")

    commands.add_parser("setup", help="Run interactive setup wizard")
    commands.add_parser("show-config", help="Show current configuration")
    commands.add_parser("due", help="List recurring templates that are due today")

    process = commands.add_parser("process-due", help="Create transactions for due templates")
    process.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created without writing anything",
    )

    recurring = commands.add_parser("recurring", help="Manage recurring templates")
    recurring_cmds = recurring.add_subparsers(dest="action", metavar="action", required=True)
    recurring_cmds.add_parser("list", help="List templates")
    rec_add = recurring_cmds.add_parser("add", help="Define a template")
    rec_add.add_argument("name")
    rec_add.add_argument("amount")
    rec_add.add_argument("category", choices=[c.value for c in Category])
    rec_add.add_argument("frequency", choices=[f.value for f in Frequency])
    rec_add.add_argument("--start", default=None, help="Start date (default: today)")
    rec_add.add_argument("--end", default=None, help="Optional end date")
    rec_add.add_argument("-d", "--description", default=None)
    for action, help_text in (
        ("pause", "Stop a template from becoming due"),
        ("resume", "Let a paused template become due again"),
        ("delete", "Delete a template"),
    ):
        sub = recurring_cmds.add_parser(action, help=help_text)
        sub.add_argument("id")

    transactions = commands.add_parser("transactions", help="List or delete transactions")
    tx_cmds = transactions.add_subparsers(dest="action", metavar="action", required=True)
    tx_list = tx_cmds.add_parser("list", help="List transactions")
    tx_list.add_argument("--category", choices=["all"] + [c.value for c in Category])
    tx_list.add_argument("--search", help="Match description or amount")
    tx_delete = tx_cmds.add_parser("delete", help="Delete a transaction")
    tx_delete.add_argument("id")

    add = commands.add_parser("add", help="Record a transaction")
    add.add_argument("amount")
    add.add_argument("category", choices=[c.value for c in Category])
    add.add_argument("-d", "--description", default=None)

    goals = commands.add_parser("goals", help="Manage savings goals")
    goal_cmds = goals.add_subparsers(dest="action", metavar="action", required=True)
    goal_cmds.add_parser("list", help="List goals with progress")
    goal_add = goal_cmds.add_parser("add", help="Create a goal")
    goal_add.add_argument("name")
    goal_add.add_argument("target")
    goal_add.add_argument("--deadline", default=None)
    goal_contribute = goal_cmds.add_parser("contribute", help="Add money to a goal")
    goal_contribute.add_argument("id")
    goal_contribute.add_argument("amount")
    goal_delete = goal_cmds.add_parser("delete", help="Delete a goal")
    goal_delete.add_argument("id")

    insights = commands.add_parser("insights", help="Spending breakdown and monthly totals")
    insights.add_argument(
        "--timeframe",
        choices=[t.value for t in Timeframe],
        default=Timeframe.MONTH.value,
        help="Look-back window (default: month)",
    )

    return parser


def format_money(amount: Decimal) -> str:
    """Format an amount as dollars."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _print_template(template: RecurringTemplate) -> None:
    frequency = template.frequency.value if isinstance(template.frequency, Frequency) else (
        f"{template.frequency} (invalid)"
    )
    status = "active" if template.is_active else "paused"
    last = template.last_processed.isoformat() if template.last_processed else "never"
    print(
        f"  {template.id}  {template.name:<20} {format_money(template.amount):>12}  "
        f"{template.category.value:<6} {frequency:<8} {status:<6} last: {last}"
    )


def _bar(value: Decimal, scale: Decimal, width: int = 20) -> str:
    """Text bar for value relative to the largest monthly figure."""
    if scale <= 0:
        return ""
    return "#" * int(value / scale * width)


def _print_transaction(tx: TransactionInstance) -> None:
    when = tx.created_at.strftime("%Y-%m-%d %H:%M") if tx.created_at else "-"
    print(
        f"  {tx.id}  {when}  {format_money(tx.signed_amount):>12}  "
        f"{tx.category.value:<6} {tx.description[:40]}"
    )


def make_store(args: argparse.Namespace, config: dict[str, Any] | None) -> RowStore:
    """Create the backend client from flags, environment and config."""
    url = get_backend_url(config, args.url)
    api_key = get_api_key(config, args.api_key)
    if not url or not api_key:
        raise MoneymateError(
            "Backend URL and API key required. Use --url/--api-key or run 'moneymate setup'"
        )
    return RestRowStore(url, api_key)


def _run_recurring(args: argparse.Namespace, service: RecurringTransactionService) -> int:
    if args.action == "list":
        templates = service.list_all()
        print(f"{len(templates)} recurring template(s):")
        for template in templates:
            _print_template(template)
    elif args.action == "add":
        template = service.create(
            name=args.name,
            amount=args.amount,
            category=args.category,
            frequency=args.frequency,
            start_date=args.start or date.today(),
            description=args.description,
            end_date=args.end,
        )
        print(f"Created recurring template {template.id}", file=sys.stderr)
    elif args.action in ("pause", "resume"):
        service.set_active(args.id, args.action == "resume")
        print(f"Template {args.id} {args.action}d", file=sys.stderr)
    else:
        service.delete(args.id)
        print(f"Deleted template {args.id}", file=sys.stderr)
    return 0


def _run_process_due(args: argparse.Namespace, service: RecurringTransactionService) -> int:
    if args.dry_run:
        due = service.due()
        print("Dry run - transactions that would be created:\n", file=sys.stderr)
        for template in due:
            _print_template(template)
        print(f"\nWould create: {len(due)} transaction(s)", file=sys.stderr)
        return 0

    result = service.process_due(datetime.now().astimezone())
    print("\nProcessing complete:", file=sys.stderr)
    print(f"  Created: {result.count}", file=sys.stderr)
    print(f"  Not due: {result.skipped}", file=sys.stderr)
    if result.errors:
        print(f"  Errors: {len(result.errors)}", file=sys.stderr)
        for error in result.errors:
            print(f"    - {error}", file=sys.stderr)

    return 0 if not result.errors else 1


def _run_goals(args: argparse.Namespace, service: GoalService) -> int:
    if args.action == "list":
        goals = service.list_all()
        print(f"{len(goals)} goal(s):")
        for goal in goals:
            deadline = f"  due {goal.deadline.isoformat()}" if goal.deadline else ""
            print(
                f"  {goal.id}  {goal.name:<20} {format_money(goal.current_amount)} / "
                f"{format_money(goal.target_amount)}  {goal.progress_percentage:>3}%{deadline}"
            )
    elif args.action == "add":
        goal = service.create(args.name, args.target, args.deadline)
        print(f"Created goal {goal.id}", file=sys.stderr)
    elif args.action == "contribute":
        goal, _ = service.contribute(args.id, args.amount)
        print(
            f"Added {format_money(coerce_amount(args.amount))} to {goal.name} "
            f"({goal.progress_percentage}%)",
            file=sys.stderr,
        )
    else:
        service.delete(args.id)
        print(f"Deleted goal {args.id}", file=sys.stderr)
    return 0


def _run_insights(args: argparse.Namespace, service: TransactionService) -> int:
    transactions = filter_by_timeframe(service.list_all(), args.timeframe)
    if not transactions:
        print("No transactions in this timeframe.")
        return 0

    breakdown = spending_breakdown(transactions)
    print(f"Insights ({args.timeframe}):")
    print(f"  Income:   {format_money(breakdown.income)}")
    print(f"  Expenses: {format_money(breakdown.total_expenses)}")
    print(f"  Savings rate: {breakdown.savings_rate:.1f}%")
    print("\nSpending by category:")
    for category in (Category.NEED, Category.WANT, Category.GOAL):
        amount = breakdown.amount_for(category)
        if amount > 0:
            share = breakdown.percentage_of_expenses(category)
            print(f"  {category.label:<8} {format_money(amount):>12}  {share:.1f}%")

    print("\nMonthly:")
    summaries = monthly_summaries(transactions)
    scale = max_monthly_value(summaries)
    for summary in summaries:
        print(
            f"  {summary.label}  in {format_money(summary.income):>12}  "
            f"out {format_money(summary.expenses):>12}  saved {format_money(summary.savings):>12}"
            f"  |{_bar(summary.expenses, scale)}"
        )
    return 0


def run_command(args: argparse.Namespace, store: RowStore, user_id: str) -> int:
    """Dispatch a data command against a store."""
    recurring = RecurringTransactionService(store, user_id)
    transactions = TransactionService(store, user_id)
    goals = GoalService(store, user_id)

    if args.command == "due":
        due = recurring.due()
        print(f"{len(due)} recurring template(s) due today:")
        for template in due:
            _print_template(template)
        return 0

    if args.command == "process-due":
        return _run_process_due(args, recurring)

    if args.command == "recurring":
        return _run_recurring(args, recurring)

    if args.command == "transactions":
        if args.action == "delete":
            transactions.delete(args.id)
            print(f"Deleted transaction {args.id}", file=sys.stderr)
            return 0
        all_transactions = transactions.list_all()
        shown = filter_transactions(all_transactions, args.category, args.search)
        print(f"{len(shown)} of {len(all_transactions)} transaction(s), "
              f"balance {format_money(net_balance(all_transactions))}:")
        for tx in shown:
            _print_transaction(tx)
        return 0

    if args.command == "add":
        tx = transactions.add(args.amount, args.category, args.description)
        print(f"Recorded {tx.kind.value} of {format_money(tx.amount)} ({tx.id})", file=sys.stderr)
        return 0

    if args.command == "goals":
        return _run_goals(args, goals)

    return _run_insights(args, transactions)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    # Handle setup first (before loading config)
    if args.command == "setup":
        from moneymate.setup import run_setup

        run_setup(url=args.url, api_key=args.api_key, user_id=args.user_id)
        return 0

    config: dict[str, Any] | None = load_config(args.config)

    if args.command == "show-config":
        from moneymate.setup import show_current_config

        if config:
            show_current_config(config)
        else:
            print("No configuration found.")
            print("Run 'moneymate setup' to create one.")
        return 0

    user_id = get_user_id(config, args.user_id)
    if not user_id:
        print("Error: user id required. Use --user-id or configure in config.json",
              file=sys.stderr)
        return 1

    try:
        store = make_store(args, config)
        return run_command(args, store, user_id)
    except MoneymateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
