"""Roster contract models (Pydantic schemas, validators)."""

from .models import ActivityConfig, Candidate, RosterRequest

__all__ = ["Candidate", "ActivityConfig", "RosterRequest"]
