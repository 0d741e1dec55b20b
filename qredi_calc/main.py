"""Command‑line interface for the Qredi simulator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can normalize a quoted rate, compute the interest of a loan
with either interest strategy, simulate a credit from an extraction reply (or
by asking the extraction service directly) and build or read share links.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import click

from .data_models import LoanTerms, RateSpec
from .engine import DEFAULT_STRATEGY, STRATEGIES, amortization_schedule, compute_interest, simulate
from .errors import SimulatorError
from .extraction import DEFAULT_EXTRACTION_URL, ExtractionClient
from .formatter import format_currency, format_rate, print_schedule, print_summary, result_to_dict
from .rates import normalize
from .sharing import DEFAULT_SHORTENER_URL, LinkShortener, build_share_url, decode_share_payload

STRATEGY_CHOICE = click.Choice(sorted(STRATEGIES))


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "2m" meaning 2_000_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def load_json_file(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError as exc:
        raise click.BadParameter(f"{path} is not valid JSON: {exc}")


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


@click.group()
def cli() -> None:
    """A credit simulator that normalizes rates and computes interest."""
    pass


@cli.command()
@click.option("--value", "-v", "value", required=True, help="Rate value in percent (2 means 2%)")
@click.option("--kind", "-k", "kind", required=True, help="Rate kind: nominal or effective")
@click.option("--period", "-p", "period", required=True, help="Base period, e.g. mensual or monthly")
@click.option("--compounding", "-c", "compounding", help="Compounding period (nominal rates)")
def rate(value: str, kind: str, period: str, compounding: Optional[str]) -> None:
    """Convert a quoted rate into the annual effective rate (TEA)."""
    spec = RateSpec(value=value, kind=kind, base_period=period, compounding_period=compounding)
    try:
        tea = normalize(spec)
    except SimulatorError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"TEA: {format_rate(tea)}")


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--days", "-d", "days", required=True, type=float, help="Loan term in days")
@click.option("--tea", "-r", "tea", required=True, type=float, help="Annual effective rate (percent)")
@click.option("--strategy", "strategy", type=STRATEGY_CHOICE, default=DEFAULT_STRATEGY, help="Interest strategy")
@click.option("--schedule", "show_schedule", is_flag=True, help="Print the monthly amortization schedule")
@click.option("--currency", "currency", default="COP", help="Currency code shown in amounts")
def interest(principal: str, days: float, tea: float, strategy: str, show_schedule: bool, currency: str) -> None:
    """Compute the total interest of a loan."""
    terms = LoanTerms(principal=parse_amount(principal), term_days=days, annual_effective_rate_percent=tea)
    try:
        result = compute_interest(terms, strategy)
        schedule = amortization_schedule(terms) if show_schedule else None
    except SimulatorError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Total interest: {format_currency(result.total_interest, currency)}")
    if result.installment is not None:
        click.echo(f"Installment: {format_currency(result.installment, currency)} x {result.months} months")
    if schedule:
        print_schedule(schedule)


@cli.command(name="simulate")
@click.option("--json", "json_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Saved extraction reply")
@click.option("--message", "-m", "message", help="Credit description sent to the extraction service")
@click.option("--api-url", "api_url", envvar="QREDI_EXTRACTION_URL", default=DEFAULT_EXTRACTION_URL, show_default=True, help="Extraction service URL")
@click.option("--strategy", "strategy", type=STRATEGY_CHOICE, default=DEFAULT_STRATEGY, help="Interest strategy")
@click.option("--currency", "currency", default="COP", help="Currency code shown in amounts")
@click.option("--output", "output", type=click.Path(dir_okay=False, path_type=Path), help="Output file path (.json)")
def simulate_command(
    json_path: Optional[Path],
    message: Optional[str],
    api_url: str,
    strategy: str,
    currency: str,
    output: Optional[Path],
) -> None:
    """Simulate a credit from an extraction reply or a free-text description."""
    if bool(json_path) == bool(message):
        raise click.UsageError("Pass exactly one of --json or --message")
    try:
        if json_path:
            data = load_json_file(json_path)
            if not isinstance(data, dict):
                raise click.BadParameter("The extraction reply must be a JSON object")
        else:
            reply = ExtractionClient(api_url).extract(message)
            if not reply.complete:
                click.echo(reply.follow_up)
                return
            data = reply.terms
        result = simulate(data, strategy)
    except SimulatorError as exc:
        raise click.ClickException(str(exc))

    if output:
        if output.suffix.lower() != ".json":
            raise click.BadParameter("Simulation export must use .json extension")
        export_to_json(output, {"terms": data, "result": result_to_dict(result, currency)})
        click.echo(f"Simulation exported to {output}")
    else:
        print_summary(result, currency)


@cli.command()
@click.argument("records_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--base-url", "base_url", envvar="QREDI_PUBLIC_URL", default="http://localhost:8710", show_default=True, help="Public address of the web front end")
@click.option("--shorten", "shorten", is_flag=True, help="Shorten the link")
@click.option("--shortener-url", "shortener_url", envvar="QREDI_SHORTENER_URL", default=DEFAULT_SHORTENER_URL, help="Link shortening API")
@click.option("--shortener-token", "shortener_token", envvar="QREDI_SHORTENER_TOKEN", help="Link shortening API token")
def share(records_path: Path, base_url: str, shorten: bool, shortener_url: str, shortener_token: Optional[str]) -> None:
    """Build a share link from a JSON array of originalMessage/rawApiResponse records."""
    records = load_json_file(records_path)
    if isinstance(records, dict):
        records = [records]
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise click.BadParameter("Expected a JSON array of records")
    try:
        url = build_share_url(base_url, records)
    except SimulatorError as exc:
        raise click.ClickException(str(exc))
    if shorten:
        url = LinkShortener(shortener_url, shortener_token).shorten(url)
    click.echo(url)


@cli.command()
@click.argument("data")
@click.option("--strategy", "strategy", type=STRATEGY_CHOICE, default=DEFAULT_STRATEGY, help="Interest strategy")
@click.option("--currency", "currency", default="COP", help="Currency code shown in amounts")
def decode(data: str, strategy: str, currency: str) -> None:
    """Decode a share link's data parameter and recalculate every credit."""
    try:
        records = decode_share_payload(data)
    except SimulatorError as exc:
        raise click.ClickException(str(exc))
    for index, record in enumerate(records, start=1):
        click.echo(f"Credit {index}: {record.original_message or '(no message)'}")
        try:
            result = simulate(record.raw_api_response, strategy)
        except SimulatorError as exc:
            click.echo(f"  Error: {exc}")
            continue
        click.echo(f"  TEA: {format_rate(result.annual_effective_rate_percent)}")
        click.echo(f"  Interest: {format_currency(result.total_interest, currency)}")


if __name__ == "__main__":
    cli()
