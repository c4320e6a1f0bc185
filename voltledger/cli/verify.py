"""
voltledger/cli/verify.py

voltledger verify - journal verification
========================================

Usage:
    voltledger verify <journal>                  Human output (default)
    voltledger verify <journal> --format json    Machine-readable JSON
    voltledger verify <journal> --quiet          Exit code only
    voltledger verify <journal> --no-color       Disable ANSI

Checks, in order:
    1. Every line parses and carries the journal fields
    2. Line 0 is a genesis entry with an owner
    3. Sequence numbers run 0, 1, 2, ... without gaps
    4. Every causal_hash matches SHA-256(JCS(previous entry))
    5. Replaying the events rebuilds a consistent ledger
       (no reading from an unauthorized device, indices contiguous,
        voltages in range, no double authorize/deauthorize)

Exit codes:
    0  Journal fully valid
    1  Journal has violations
    2  Error  (file missing or unreadable)

An empty file is reported as a missing genesis entry (exit 1).
"""

import json
import sys
from pathlib import Path
from typing import List

import click

from voltledger.cli.formatting import banner, error, paint, row, rule, set_color, verdict
from voltledger.core.exceptions import VoltLedgerError
from voltledger.core.ledger import ReadingLedger
from voltledger.storage.journal import Journal, JournalReport, JournalViolation


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(journal: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """
    Verify a ledger journal - hash chain, genesis, replay.

    JOURNAL is the path to a .jsonl journal file.
    """
    set_color(not no_color)

    journal_path = Path(journal)
    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal}", fmt, quiet)
        sys.exit(2)

    try:
        report = Journal(journal_path).verify()
    except OSError as e:
        _emit_error(f"Cannot read journal: {e}", fmt, quiet)
        sys.exit(2)

    replayed = None
    if report.chain_valid:
        try:
            replayed = ReadingLedger.open(journal_path=journal_path)
        except VoltLedgerError as e:
            report.violations.append(
                JournalViolation(line=0, kind="replay", detail=str(e))
            )
            report.chain_valid = False
        except OSError as e:
            _emit_error(f"Cannot read journal: {e}", fmt, quiet)
            sys.exit(2)

    valid = not report.violations

    if quiet:
        sys.exit(0 if valid else 1)

    if fmt == "json":
        out = report.to_dict()
        out["valid"] = valid
        out["total_readings"] = replayed.total_count() if replayed else None
        click.echo(json.dumps({"voltledger_verify": out}, indent=2))
    else:
        for line in _human_report(report, replayed, valid):
            click.echo(line)

    sys.exit(0 if valid else 1)


def _human_report(report: JournalReport, replayed, valid: bool) -> List[str]:
    kinds = {v.kind for v in report.violations}
    lines = banner("Journal Verification")

    lines += [
        row("Journal", report.path),
        row("Entries", f"{report.total_entries:,}"),
        row("Owner", report.owner or "-"),
        "",
    ]

    if "genesis" in kinds:
        lines.append(row("Genesis", paint("missing or malformed", fg="red"), passed=False))
    else:
        lines.append(row("Genesis", "present", passed=True))

    if kinds & {"parse", "schema", "sequence_gap"}:
        lines.append(row("Entries", paint("unreadable or out of sequence", fg="red"), passed=False))
    else:
        lines.append(row("Entries", "well-formed, no sequence gaps", passed=True))

    if "chain_break" in kinds:
        lines.append(row("Chain", paint("hash chain broken", fg="red"), passed=False))
    else:
        lines.append(row("Chain", "intact, every causal hash matches", passed=True))

    if "replay" in kinds:
        lines.append(row("Replay", paint("events do not rebuild a valid ledger", fg="red"), passed=False))
    elif replayed is not None:
        lines.append(row("Replay", f"{replayed.total_count():,} readings rebuilt", passed=True))

    if report.head_hash:
        short = report.head_hash[:16] + "..." + report.head_hash[-8:]
        lines.append(row("Chain head", paint(short, fg="cyan")))

    if report.entry_type_counts:
        counts = "  ".join(
            f"{paint(k, fg='cyan')}: {v:,}"
            for k, v in sorted(report.entry_type_counts.items())
        )
        lines.append(row("Entry types", counts))
    lines.append("")

    if report.violations:
        lines.append(rule())
        for v in report.violations:
            lines.append(
                f"  {paint(str(v.line), fg='red'):>6}  {paint(f'{v.kind:<14}', fg='yellow')}  {v.detail}"
            )
        lines += [rule(), ""]

    if valid:
        lines += verdict(True, "VALID  ·  0 violations")
    else:
        lines += verdict(False, f"INVALID  ·  {len(report.violations)} violation(s)")
    return lines


def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    """Emit error in the requested format."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "voltledger_verify": {"error": msg, "valid": False}
        }))
    else:
        error(msg)
