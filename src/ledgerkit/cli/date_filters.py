"""CLI helpers for report date ranges.

Report commands accept either an explicit ``--start-date``/``--end-date``
pair (both optional, both open-ended) or exactly one period flag such as
``--last-month``. Range ordering is validated by the ledger services.
"""

from datetime import date

import click

from ledgerkit.utils.date_parser import get_date_range, parse_date

PERIOD_FLAGS = (
    ("this_month", "--this-month", "Filter to current month"),
    ("this_year", "--this-year", "Filter to current year"),
    ("this_week", "--this-week", "Filter to current week"),
    ("last_month", "--last-month", "Filter to previous month"),
    ("last_year", "--last-year", "Filter to previous year"),
    ("last_week", "--last-week", "Filter to previous week"),
)


def date_range_options(command):
    """Add --start-date/--end-date and the period flags to a command."""
    for _, flag, help_text in reversed(PERIOD_FLAGS):
        command = click.option(flag, is_flag=True, help=help_text)(command)
    command = click.option(
        "--end-date", help="Last date included (YYYY-MM-DD, DD/MM/YYYY or 'today')"
    )(command)
    command = click.option(
        "--start-date", help="First date included (YYYY-MM-DD, DD/MM/YYYY or 'last month')"
    )(command)
    return command


def pop_period_flags(kwargs: dict) -> dict[str, bool]:
    """Remove the period flags from command kwargs, keyed by period name."""
    return {name.replace("_", "-"): kwargs.pop(name) for name, _, _ in PERIOD_FLAGS}


def _fail(ctx, message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def _parse_bound(ctx, label: str, value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        _fail(ctx, f"Invalid {label} date: {e}")


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Resolve a report range from one period flag or explicit dates."""
    chosen = [period for period, is_set in period_flags.items() if is_set]

    if len(chosen) > 1:
        flags = ", ".join(f"--{period}" for period in chosen)
        _fail(ctx, f"Only one period option can be specified at a time (got {flags}).")

    if chosen:
        if start_date or end_date:
            _fail(ctx, f"--{chosen[0]} cannot be combined with --start-date or --end-date.")
        return get_date_range(chosen[0])

    return _parse_bound(ctx, "start", start_date), _parse_bound(ctx, "end", end_date)
