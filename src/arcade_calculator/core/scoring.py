"""Arcade scoring and milestone engine.

Turns a list of classified badges into a point total and, for facilitators,
a tier-by-tier milestone report. Everything here is pure: the same badges
and the same rules always give the same result.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

from .models import (
    Badge,
    BadgeCategory,
    CalculationResult,
    MilestoneProgress,
    MilestoneTier,
    UserBadges,
    UserResult,
)
from .rules import ArcadeRules, RulesError, get_rules

logger = logging.getLogger(__name__)


def tally_badges(badges: Iterable[Badge]) -> dict[BadgeCategory, int]:
    """Count badges per category. Duplicates count separately."""
    return dict(Counter(badge.type for badge in badges))


def calculate_points(badges: Sequence[Badge], rules: Optional[ArcadeRules] = None) -> float:
    """Weighted sum of badge values.

    Categories missing from the weight table (the fallback category by
    default) are worth nothing.
    """
    if rules is None:
        rules = get_rules()
    return float(sum(rules.weights.get(badge.type, 0.0) for badge in badges))


def calculate_milestone_progress(
    badges: Sequence[Badge],
    rules: Optional[ArcadeRules] = None,
) -> MilestoneProgress:
    """Evaluate every milestone tier against the badge tally.

    A tier is reached when each of its required categories meets the minimum.
    Unreached tiers report how many badges are still missing per category.
    """
    if rules is None:
        rules = get_rules()
    counts = tally_badges(badges)

    tiers = []
    for tier_rule in rules.milestones:
        missing = {
            category: max(required - counts.get(category, 0), 0)
            for category, required in tier_rule.requirements.items()
        }
        tiers.append(MilestoneTier(
            tier=tier_rule.tier,
            requirements=dict(tier_rule.requirements),
            reached=not any(missing.values()),
            missing=missing,
            bonus_points=tier_rule.bonus_points,
        ))

    # Reached tiers must form a prefix of the ladder
    seen_unreached = False
    for tier in tiers:
        if not tier.reached:
            seen_unreached = True
        elif seen_unreached:
            raise RulesError(f"Milestone tier {tier.tier} is reached but a lower tier is not; tier table is malformed")

    reached = [t for t in tiers if t.reached]
    current = reached[-1] if reached else None
    return MilestoneProgress(
        tiers=tiers,
        counts=counts,
        current_tier=current.tier if current else 0,
        bonus_points=current.bonus_points if current else 0.0,
    )


def calculate_arcade_points(
    badges: Sequence[Badge],
    is_facilitator: bool,
    rules: Optional[ArcadeRules] = None,
) -> CalculationResult:
    """Score a badge collection; milestone progress only for facilitators."""
    if rules is None:
        rules = get_rules()

    points = calculate_points(badges, rules)
    milestone_progress = calculate_milestone_progress(badges, rules) if is_facilitator else None

    logger.debug(
        "Scored %d badges: %.1f points (facilitator=%s)",
        len(badges), points, is_facilitator,
    )
    return CalculationResult(
        points=points,
        badge_count=len(badges),
        category_counts=tally_badges(badges),
        milestone_progress=milestone_progress,
    )


def calculate_points_for_users(
    users: Iterable[UserBadges],
    rules: Optional[ArcadeRules] = None,
) -> list[UserResult]:
    """Score several users at once, each with their own facilitator flag."""
    if rules is None:
        rules = get_rules()
    return [
        UserResult(name=user.name, result=calculate_arcade_points(user.badges, user.is_facilitator, rules))
        for user in users
    ]
