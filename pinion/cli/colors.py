"""
Pinion CLI - styled output helpers built on Click.

All output respects click.style colour handling (NO_COLOR / TERM=dumb).
"""

from __future__ import annotations

import click

_CHECK = "✓"
_CROSS = "✗"


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red."""
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    click.echo(click.style(message, fg="yellow"))


def info(message: str) -> None:
    click.echo(click.style(message, fg="cyan"))


def kv(key: str, value: str, width: int = 10) -> None:
    """Aligned key-value pair."""
    click.echo(f"  {click.style(key.ljust(width), dim=True)} {value}")
