"""Program policy tables: classification rules, point weights, milestone tiers.

These are configuration, not logic. The built-in tables track the current
Arcade program rules; a JSON file named by ARCADE_RULES_PATH (or passed to
load_rules) overrides any of them without touching the scoring code.

Rules file shape (every key optional):

    {
      "classification": [{"pattern": "trivia", "category": "trivia"},
                         {"pattern": "\\blevel\\s*\\d", "category": "game", "kind": "regex"}],
      "weights": {"game": 1, "trivia": 1, "skill": 0.5, "special": 2},
      "milestones": [{"tier": 1, "requirements": {"game": 6, "trivia": 5, "skill": 14}, "bonusPoints": 2}],
      "fallback": "unknown"
    }
"""

from __future__ import annotations

import json
import logging
import os
import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import ConfigDict, Field, field_validator, model_validator

from .models import ArcadeModel, BadgeCategory

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "ARCADE_RULES_PATH"


class RulesError(ValueError):
    """The configured tables are internally inconsistent."""


class MatchKind(str, Enum):
    CONTAINS = "contains"
    REGEX = "regex"


# Opening phrases of skill badge titles ("Get Started with Cloud Storage",
# "Analyze BigQuery Data in Connected Sheets", "Build a Secure Google Cloud Network").
SKILL_TITLE_PATTERN = (
    r"^\s*(get started with|analyze|build|implement|develop|create|prepare|set up|"
    r"monitor|use|deploy|manage|configure|automate|secure|perform|engineer|migrate|"
    r"optimize|protect|mitigate|streamline|integrate|inspect|classify|explore|"
    r"enhance|store|share|connect|run|work with|cloud|networking|kubernetes|app)\b"
)

# First match wins: trivia before game because trivia badges also carry "Skills Boost".
DEFAULT_CLASSIFICATION: list[dict] = [
    {"pattern": "trivia", "category": BadgeCategory.TRIVIA},
    {"pattern": r"\bspecial\b", "category": BadgeCategory.SPECIAL, "kind": MatchKind.REGEX},
    {"pattern": "skills boost", "category": BadgeCategory.GAME},
    {"pattern": "arcade", "category": BadgeCategory.GAME},
    {"pattern": r"\blevel\s*\d", "category": BadgeCategory.GAME, "kind": MatchKind.REGEX},
    {"pattern": "base camp", "category": BadgeCategory.GAME},
    {"pattern": SKILL_TITLE_PATTERN, "category": BadgeCategory.SKILL, "kind": MatchKind.REGEX},
]

DEFAULT_WEIGHTS: dict[BadgeCategory, float] = {
    BadgeCategory.GAME: 1.0,
    BadgeCategory.TRIVIA: 1.0,
    BadgeCategory.SKILL: 0.5,
    BadgeCategory.SPECIAL: 2.0,
}

DEFAULT_MILESTONES: list[dict] = [
    {"tier": 1, "requirements": {BadgeCategory.GAME: 6, BadgeCategory.TRIVIA: 5, BadgeCategory.SKILL: 14}, "bonus_points": 2},
    {"tier": 2, "requirements": {BadgeCategory.GAME: 8, BadgeCategory.TRIVIA: 6, BadgeCategory.SKILL: 28}, "bonus_points": 8},
    {"tier": 3, "requirements": {BadgeCategory.GAME: 10, BadgeCategory.TRIVIA: 7, BadgeCategory.SKILL: 38}, "bonus_points": 15},
    {"tier": 4, "requirements": {BadgeCategory.GAME: 12, BadgeCategory.TRIVIA: 8, BadgeCategory.SKILL: 52}, "bonus_points": 25},
]


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


class ClassificationRule(ArcadeModel):
    """One (pattern, category) pair; patterns match case-insensitively."""

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(min_length=1)
    category: BadgeCategory
    kind: MatchKind = MatchKind.CONTAINS

    @field_validator("pattern")
    @classmethod
    def _pattern_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("pattern must not be blank")
        return value

    @model_validator(mode="after")
    def _regex_compiles(self) -> "ClassificationRule":
        if self.kind == MatchKind.REGEX:
            try:
                _compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid regex {self.pattern!r}: {exc}") from exc
        return self

    def matches(self, name: str) -> bool:
        if self.kind == MatchKind.REGEX:
            return _compile(self.pattern).search(name) is not None
        return self.pattern.casefold() in name.casefold()


class MilestoneTierRule(ArcadeModel):
    """Per-category minimum badge counts for one tier."""

    model_config = ConfigDict(frozen=True)

    tier: int = Field(ge=1)
    requirements: dict[BadgeCategory, int]
    bonus_points: float = Field(0.0, ge=0.0)

    @field_validator("requirements")
    @classmethod
    def _requirements_non_negative(cls, value: dict[BadgeCategory, int]) -> dict[BadgeCategory, int]:
        for category, count in value.items():
            if count < 0:
                raise ValueError(f"requirement for {category.value} must be >= 0, got {count}")
        return value


class ArcadeRules(ArcadeModel):
    """The complete policy: classification table, weight table, tier table."""

    model_config = ConfigDict(frozen=True)

    classification: list[ClassificationRule]
    weights: dict[BadgeCategory, float]
    milestones: list[MilestoneTierRule]
    fallback: BadgeCategory = BadgeCategory.UNKNOWN

    @field_validator("weights")
    @classmethod
    def _weights_non_negative(cls, value: dict[BadgeCategory, float]) -> dict[BadgeCategory, float]:
        for category, weight in value.items():
            if weight < 0:
                raise ValueError(f"weight for {category.value} must be >= 0, got {weight}")
        return value

    @model_validator(mode="after")
    def _tiers_ascending(self) -> "ArcadeRules":
        previous: Optional[MilestoneTierRule] = None
        for index, tier in enumerate(self.milestones, start=1):
            if tier.tier != index:
                raise ValueError(f"milestone tiers must be numbered 1..N in order; found tier {tier.tier} at position {index}")
            if previous is not None:
                for category in set(previous.requirements) | set(tier.requirements):
                    before = previous.requirements.get(category, 0)
                    after = tier.requirements.get(category, 0)
                    if after < before:
                        raise ValueError(
                            f"tier {tier.tier} requires fewer {category.value} badges ({after}) than tier {previous.tier} ({before})"
                        )
            previous = tier
        return self


def default_rules() -> ArcadeRules:
    """Return the built-in program tables."""
    return ArcadeRules(
        classification=DEFAULT_CLASSIFICATION,
        weights=DEFAULT_WEIGHTS,
        milestones=DEFAULT_MILESTONES,
    )


def load_rules(path: Optional[Union[str, Path]] = None) -> ArcadeRules:
    """Load rules from a JSON file, falling back to defaults for omitted keys.

    Args:
        path: Rules file. Defaults to the ARCADE_RULES_PATH environment variable;
              when neither is set the built-in tables are returned.

    Raises:
        pydantic.ValidationError: the file describes an inconsistent policy.
        OSError / json.JSONDecodeError: the file cannot be read.
    """
    if path is None:
        path = os.environ.get(RULES_PATH_ENV) or None
    if path is None:
        return default_rules()

    overrides = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(overrides, dict):
        raise RulesError(f"Rules file {path} must contain a JSON object")

    data = default_rules().model_dump()
    data.update(overrides)
    rules = ArcadeRules.model_validate(data)
    logger.info(
        "Loaded rules from %s (%d classification rules, %d tiers)",
        path, len(rules.classification), len(rules.milestones),
    )
    return rules


_active_rules: Optional[ArcadeRules] = None


def get_rules() -> ArcadeRules:
    """Active rule set for this process, loaded on first use."""
    global _active_rules
    if _active_rules is None:
        _active_rules = load_rules()
    return _active_rules
