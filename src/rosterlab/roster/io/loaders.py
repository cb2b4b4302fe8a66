"""Roster loading utilities (YAML / JSON requests + CSV candidate tables)."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import pandas as pd
import yaml
from pydantic import TypeAdapter

from rosterlab.roster.contract.models import ActivityConfig, Candidate, RosterRequest

__all__ = ["load_roster", "read_csv", "candidates_from_frame", "BUILTIN_ACTIVITIES"]

RATING_PREFIX = "rating_"

BUILTIN_ACTIVITIES = {"volleyball": ActivityConfig.volleyball}


def read_csv(path: Path) -> pd.DataFrame:
    """Load a CSV file using pandas with UTF-8 defaults."""
    return pd.read_csv(path)


def _as_optional_string(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if pd.isna(cast("Any", value)):
        return None
    return str(value)


def _as_identifier(value: object) -> int | str | None:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if pd.isna(value):
            return None
        return int(value) if value.is_integer() else str(value)
    if hasattr(value, "item"):
        return _as_identifier(cast("Any", value).item())
    return _as_optional_string(value)


def candidates_from_frame(frame: pd.DataFrame) -> list[Candidate]:
    """Convert an ``id,name,roles,rating_<ROLE>...`` table into candidates.

    ``roles`` may be separated by ``|`` or ``,``; blank rating cells are skipped.
    """
    missing = {"id", "roles"} - set(frame.columns)
    if missing:
        raise ValueError(f"Candidate table missing columns: {', '.join(sorted(missing))}")
    rating_columns = [column for column in frame.columns if str(column).startswith(RATING_PREFIX)]
    rows: list[dict[str, object]] = []
    for record in cast(list[dict[str, object]], frame.to_dict("records")):
        roles_value = _as_optional_string(record.get("roles")) or ""
        ratings: dict[str, float] = {}
        for column in rating_columns:
            value = record.get(column)
            if value is None or pd.isna(cast("Any", value)):
                continue
            ratings[str(column)[len(RATING_PREFIX) :]] = float(cast("Any", value))
        rows.append(
            {
                "id": _as_identifier(record.get("id")),
                "name": _as_optional_string(record.get("name")) or "",
                "roles": [part.strip() for part in re.split(r"[|,]", roles_value) if part.strip()],
                "ratings": ratings,
            }
        )
    return TypeAdapter(list[Candidate]).validate_python(rows)


def _activity(value: object) -> ActivityConfig:
    if value is None:
        return ActivityConfig()
    if isinstance(value, str):
        try:
            return BUILTIN_ACTIVITIES[value.strip().lower()]()
        except KeyError as exc:
            raise ValueError(f"Unknown activity '{value}'") from exc
    if isinstance(value, Mapping):
        base = value.get("preset")
        if base is not None:
            merged = _activity(base).model_dump()
            merged.update({key: item for key, item in value.items() if key != "preset"})
            return ActivityConfig.model_validate(merged)
        return ActivityConfig.model_validate(dict(value))
    raise ValueError(f"Unsupported activity definition: {value!r}")


def _load_mapping(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        if path.suffix.lower() == ".json":
            data = json.load(handle)
        else:
            data = yaml.safe_load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Roster file {path} must contain a mapping at the top level")
    return data


def load_roster(path: str | Path, *, activity: str | None = None) -> RosterRequest:
    """Load a roster request.

    Parameters
    ----------
    path:
        A ``.yaml``/``.yml``/``.json`` request file, or a ``.csv`` candidate table.
    activity:
        Built-in activity name used for CSV input, or to override the file's ``activity`` entry.

    Returns
    -------
    RosterRequest
        Validated request. YAML/JSON files may list candidates inline under ``candidates`` or point
        at a CSV table via ``candidates_csv`` (resolved relative to the file).
    """
    base_path = Path(path).resolve()
    if not base_path.exists():
        raise FileNotFoundError(base_path)
    if base_path.suffix.lower() == ".csv":
        return RosterRequest(
            activity=_activity(activity),
            candidates=candidates_from_frame(read_csv(base_path)),
        )

    meta = _load_mapping(base_path)
    candidates: list[Candidate] = []
    if "candidates_csv" in meta:
        table = base_path.parent / str(meta["candidates_csv"])
        if not table.exists():
            raise FileNotFoundError(table)
        candidates.extend(candidates_from_frame(read_csv(table)))
    if meta.get("candidates"):
        candidates.extend(TypeAdapter(list[Candidate]).validate_python(meta["candidates"]))
    return RosterRequest(
        activity=_activity(activity or meta.get("activity")),
        composition=meta.get("composition") or {},
        group_count=int(meta.get("group_count", 2)),
        candidates=candidates,
        settings=meta.get("settings"),
    )
