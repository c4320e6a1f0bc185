"""
voltledger show - summarize the ledger state held in a journal.

Usage:
    voltledger show <journal>
    voltledger show <journal> --device 0xa11ce
    voltledger show <journal> --format json
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from voltledger.cli.formatting import banner, error, paint, row, set_color
from voltledger.core.exceptions import NoReadings, VoltLedgerError
from voltledger.core.ledger import ReadingLedger
from voltledger.core.models import format_voltage


@click.command(name="show")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--device",
    type=str,
    default=None,
    metavar="DEVICE",
    help="Show every reading of one device instead of the summary.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def show_command(journal: str, device: Optional[str], fmt: str, no_color: bool) -> None:
    """
    Replay JOURNAL and print the ledger it describes.

    Exits 2 if the journal cannot be read or replayed.
    """
    set_color(not no_color)

    journal_path = Path(journal)
    if not journal_path.exists():
        error(f"Journal not found: {journal}")
        sys.exit(2)

    try:
        ledger = ReadingLedger.open(journal_path=journal_path)
    except (VoltLedgerError, OSError) as e:
        error(str(e))
        sys.exit(2)

    if device is not None:
        _show_device(ledger, device, fmt)
    else:
        _show_summary(ledger, fmt)


def _show_summary(ledger: ReadingLedger, fmt: str) -> None:
    stats = ledger.get_stats()
    if fmt == "json":
        click.echo(json.dumps(stats, indent=2))
        return

    lines = banner("Ledger Summary")
    lines += [
        row("Journal", stats["journal"]),
        row("Owner", stats["owner"]),
        row("Readings", f"{stats['total_readings']:,}"),
        row("Events", f"{stats['next_sequence']:,}"),
        row("Authorized", ", ".join(stats["authorized_devices"]) or "-"),
        "",
    ]
    for name, count in stats["readings_by_device"].items():
        voltage, timestamp = ledger.get_latest_reading(name)
        marker = "" if ledger.registry.is_authorized(name) else paint("  (deauthorized)", dim=True)
        lines.append(row(
            name,
            f"{count:,} readings  ·  latest {format_voltage(voltage)} V @ {timestamp}{marker}",
        ))
    lines.append("")
    for line in lines:
        click.echo(line)


def _show_device(ledger: ReadingLedger, device: str, fmt: str) -> None:
    indices    = ledger.get_device_indices(device)
    authorized = ledger.registry.is_authorized(device)

    if fmt == "json":
        click.echo(json.dumps({
            "device":     device,
            "authorized": authorized,
            "readings": [
                {"index": i, **ledger.get_reading(i).to_dict()} for i in indices
            ],
        }, indent=2))
        return

    click.echo(row("Device", device))
    click.echo(row("Authorized", "yes" if authorized else "no"))
    try:
        voltage, timestamp = ledger.get_latest_reading(device)
    except NoReadings:
        click.echo(row("Latest", "no readings"))
        return
    click.echo(row("Latest", f"{format_voltage(voltage)} V @ {timestamp}"))

    click.echo()
    for i in indices:
        reading = ledger.get_reading(i)
        click.echo(f"  {i:>8}  {format_voltage(reading.voltage):>10} V  {reading.timestamp}")
