"""Pydantic data models: the shared business objects.

Both the MCP tools and the plain HTTP routes use these models as the common
interface for classification, scoring, and milestone reporting. JSON output
uses camelCase keys; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArcadeModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BadgeCategory(str, Enum):
    """Closed set of badge categories."""

    GAME = "game"
    TRIVIA = "trivia"
    SKILL = "skill"
    SPECIAL = "special"
    UNKNOWN = "unknown"


class Badge(ArcadeModel):
    """A single achievement earned by a learner."""

    name: str
    type: BadgeCategory
    earned_date: datetime


class MilestoneTier(ArcadeModel):
    """Progress toward one milestone tier."""

    tier: int = Field(ge=1, description="Ordinal tier identifier, 1..N")
    requirements: dict[BadgeCategory, int]
    reached: bool
    missing: dict[BadgeCategory, int] = Field(description="Badges still needed per category, floored at zero")
    bonus_points: float = 0.0


class MilestoneProgress(ArcadeModel):
    """Tier-by-tier milestone report for a facilitator."""

    tiers: list[MilestoneTier]
    counts: dict[BadgeCategory, int] = Field(default_factory=dict)
    current_tier: int = Field(0, ge=0, description="Highest tier reached, 0 if none")
    bonus_points: float = 0.0

    @property
    def next_tier(self) -> Optional[MilestoneTier]:
        return next((t for t in self.tiers if not t.reached), None)


class CalculationResult(ArcadeModel):
    """Response envelope: points always, milestone progress only for facilitators."""

    points: float = Field(ge=0.0)
    badge_count: int = 0
    category_counts: dict[BadgeCategory, int] = Field(default_factory=dict)
    milestone_progress: Optional[MilestoneProgress] = None


class UserBadges(ArcadeModel):
    """One named user's badges, for batch scoring."""

    name: str
    badges: list[Badge]
    is_facilitator: bool = False


class UserResult(ArcadeModel):
    name: str
    result: CalculationResult
