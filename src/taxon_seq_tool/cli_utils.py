"""CLI utility functions and helpers."""

import click

from .models import TaxonOutcome

# Global flag for quiet mode
_quiet_mode = False


def set_quiet_mode(quiet: bool) -> None:
    """Set the global quiet mode flag."""
    global _quiet_mode
    _quiet_mode = quiet


def echo(message: str = "", err: bool = False, **kwargs) -> None:
    """Echo wrapper that respects quiet mode."""
    if _quiet_mode and not err:
        return
    click.echo(message, err=err, **kwargs)


def secho(message: str = "", err: bool = False, **kwargs) -> None:
    """Styled echo wrapper that respects quiet mode."""
    if _quiet_mode and not err:
        return
    click.secho(message, err=err, **kwargs)


def outcome_line(outcome: TaxonOutcome) -> str:
    """One-line status for a finished taxon."""
    if not outcome.success:
        return f"✗ {outcome.label}: {outcome.error}"

    line = f"✓ {outcome.label}: {len(outcome.result)} records"
    if outcome.fallback is not None and outcome.fallback.found:
        line += f" (via {outcome.fallback.name}, {outcome.fallback.kind.value} fallback)"
    return line
