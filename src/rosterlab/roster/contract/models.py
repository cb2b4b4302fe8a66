"""Pydantic models describing roster inputs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rosterlab.core.types import DEFAULT_RATING, CandidateId


class Candidate(BaseModel):
    """A person (or entity) that can be placed into a group.

    Attributes
    ----------
    id:
        Unique identifier. Integers and strings are both accepted; blank strings are rejected.
    name:
        Display name. Optional.
    roles:
        Ordered, de-duplicated role codes the candidate is eligible for.
    ratings:
        Strength per role code. Roles without an entry fall back to ``DEFAULT_RATING``.
    """

    model_config = ConfigDict(frozen=True)

    id: CandidateId
    name: str = ""
    roles: tuple[str, ...]
    ratings: dict[str, float] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_present(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Candidate.id must be provided")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("roles", mode="before")
    @classmethod
    def _roles_unique(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [part.strip() for part in value.split("|")]
        seen: list[str] = []
        for role in value or ():
            role = str(role).strip()
            if role and role not in seen:
                seen.append(role)
        if not seen:
            raise ValueError("Candidate.roles must list at least one role")
        return tuple(seen)

    @field_validator("ratings")
    @classmethod
    def _ratings_non_negative(cls, value: dict[str, float]) -> dict[str, float]:
        for role, rating in value.items():
            if rating < 0:
                raise ValueError(f"Candidate rating for role '{role}' must be non-negative")
        return value

    def rating_for(self, role: str) -> float:
        """Return the rating for ``role`` or ``DEFAULT_RATING`` when none was supplied."""
        rating = self.ratings.get(role)
        return float(rating) if rating else DEFAULT_RATING

    @property
    def is_specialist(self) -> bool:
        return len(self.roles) == 1


class ActivityConfig(BaseModel):
    """Per-activity role vocabulary, quotas and weights.

    Attributes
    ----------
    name:
        Human readable activity label.
    role_names:
        Mapping of role code to display name.
    role_display_order:
        Order used when presenting a group.
    default_composition:
        Role quota per group used when a request does not override it.
    role_weights:
        Multiplier applied to ratings of each role. Missing roles default to 1.0.
    role_priority:
        Fill order for the greedy / round-robin / snake / random seed generators. Falls back to
        ``role_display_order``.
    """

    name: str = "custom"
    role_names: dict[str, str] = Field(default_factory=dict)
    role_display_order: list[str] = Field(default_factory=list)
    default_composition: dict[str, int] = Field(default_factory=dict)
    role_weights: dict[str, float] = Field(default_factory=dict)
    role_priority: list[str] | None = None

    @field_validator("default_composition")
    @classmethod
    def _counts_non_negative(cls, value: dict[str, int]) -> dict[str, int]:
        for role, count in value.items():
            if count < 0:
                raise ValueError(f"Composition count for role '{role}' must be non-negative")
        return value

    @field_validator("role_weights")
    @classmethod
    def _weights_positive(cls, value: dict[str, float]) -> dict[str, float]:
        for role, weight in value.items():
            if weight <= 0:
                raise ValueError(f"Role weight for '{role}' must be positive")
        return value

    @model_validator(mode="after")
    def _backfill(self) -> "ActivityConfig":
        for role in [*self.role_names, *self.default_composition]:
            self.role_weights.setdefault(role, 1.0)
        if not self.role_display_order:
            self.role_display_order.extend(self.role_names or self.default_composition)
        return self

    def display_name(self, role: str) -> str:
        return self.role_names.get(role, role)

    def weight_for(self, role: str) -> float:
        return self.role_weights.get(role, 1.0)

    def priority_order(self, composition: dict[str, int]) -> list[str]:
        """Return the seed fill order restricted to roles with a positive quota."""
        base = self.role_priority or self.role_display_order
        order = [role for role in base if composition.get(role, 0) > 0]
        order.extend(role for role, count in composition.items() if count > 0 and role not in order)
        return order

    @classmethod
    def volleyball(cls) -> "ActivityConfig":
        """Indoor volleyball: 7 per side including a libero."""
        return cls(
            name="Volleyball",
            role_names={
                "S": "Setter",
                "OPP": "Opposite",
                "OH": "Outside Hitter",
                "MB": "Middle Blocker",
                "L": "Libero",
            },
            role_display_order=["S", "OPP", "OH", "MB", "L"],
            default_composition={"S": 1, "OPP": 1, "OH": 2, "MB": 2, "L": 1},
            role_weights={"S": 1.2, "OPP": 1.1, "OH": 1.0, "MB": 1.0, "L": 0.9},
            role_priority=["MB", "S", "L", "OPP", "OH"],
        )


class RosterRequest(BaseModel):
    """A complete optimization request as read from a roster file."""

    activity: ActivityConfig = Field(default_factory=ActivityConfig)
    composition: dict[str, int] = Field(default_factory=dict)
    group_count: int = 2
    candidates: list[Candidate] = Field(default_factory=list)
    settings: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _default_composition(self) -> "RosterRequest":
        if not self.composition:
            self.composition = dict(self.activity.default_composition)
        for role in self.composition:
            self.activity.role_weights.setdefault(role, 1.0)
        return self


__all__ = ["Candidate", "ActivityConfig", "RosterRequest"]
