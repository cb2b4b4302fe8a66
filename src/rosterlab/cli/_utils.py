"""CLI helper utilities for rosterlab."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import typer
from rich.logging import RichHandler

from rosterlab.optimization.heuristics.config import ALGORITHM_NAMES


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; ``verbose`` lowers the threshold to DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=False)],
        force=True,
    )


def parse_role_weights(weight_args: Sequence[str] | None) -> dict[str, float]:
    """Parse ``ROLE=value`` weight overrides into a dictionary."""
    weights: dict[str, float] = {}
    if not weight_args:
        return weights
    for arg in weight_args:
        if "=" not in arg:
            raise typer.BadParameter(f"Role weight must be in ROLE=value format (got '{arg}')")
        role, raw_value = arg.split("=", 1)
        role = role.strip()
        if not role:
            raise typer.BadParameter(f"Role weight missing role code in '{arg}'")
        try:
            value = float(raw_value)
        except ValueError as exc:
            raise typer.BadParameter(
                f"Role weight for '{role}' must be numeric (got '{raw_value}')"
            ) from exc
        if value <= 0:
            raise typer.BadParameter(f"Role weight for '{role}' must be positive")
        weights[role] = value
    return weights


def parse_algorithms(names: Sequence[str] | None) -> list[str] | None:
    """Normalise repeated/comma-separated ``--algorithm`` values; ``None`` keeps the preset's list."""
    if not names:
        return None
    parsed: list[str] = []
    for entry in names:
        parsed.extend(part.strip().lower().replace("-", "_") for part in entry.split(",") if part.strip())
    unknown = sorted(set(parsed) - set(ALGORITHM_NAMES))
    if unknown:
        raise typer.BadParameter(
            f"Unknown algorithm(s): {', '.join(unknown)}. Valid: {', '.join(ALGORITHM_NAMES)}"
        )
    return list(dict.fromkeys(parsed))


__all__ = ["configure_logging", "parse_role_weights", "parse_algorithms"]
