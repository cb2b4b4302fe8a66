"""Roster file readers."""

from .loaders import BUILTIN_ACTIVITIES, candidates_from_frame, load_roster, read_csv

__all__ = ["load_roster", "read_csv", "candidates_from_frame", "BUILTIN_ACTIVITIES"]
