"""Tests for points, milestone progress, and the facilitator orchestration."""

import random

import pytest

from arcade_calculator.core.models import BadgeCategory, UserBadges
from arcade_calculator.core.rules import (
    ArcadeRules,
    MilestoneTierRule,
    RulesError,
    default_rules,
)
from arcade_calculator.core.scoring import (
    calculate_arcade_points,
    calculate_milestone_progress,
    calculate_points,
    calculate_points_for_users,
    tally_badges,
)

GAME = BadgeCategory.GAME
TRIVIA = BadgeCategory.TRIVIA
SKILL = BadgeCategory.SKILL


def _badges(badge_factory, game=0, trivia=0, skill=0, special=0, unknown=0):
    spec = [
        (GAME, game), (TRIVIA, trivia), (SKILL, skill),
        (BadgeCategory.SPECIAL, special), (BadgeCategory.UNKNOWN, unknown),
    ]
    return [
        badge_factory(f"{category.value} {i}", category)
        for category, count in spec
        for i in range(count)
    ]


class TestCalculatePoints:
    def test_sample_badges(self, sample_badges):
        assert calculate_points(sample_badges) == 3.0

    def test_empty(self):
        assert calculate_points([]) == 0

    def test_unknown_is_worth_nothing(self, badge_factory):
        assert calculate_points(_badges(badge_factory, unknown=5)) == 0

    def test_special_weight(self, badge_factory):
        assert calculate_points(_badges(badge_factory, special=2, skill=1)) == 4.5

    def test_duplicates_count(self, sample_badges):
        assert calculate_points(sample_badges + sample_badges) == 6.0

    def test_order_independent(self, badge_factory):
        badges = _badges(badge_factory, game=3, trivia=2, skill=7, special=1, unknown=2)
        expected = calculate_points(badges)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(badges)
            rng.shuffle(shuffled)
            assert calculate_points(shuffled) == expected

    def test_appending_never_decreases(self, badge_factory):
        pool = _badges(badge_factory, game=2, trivia=2, skill=2, special=1, unknown=2)
        running = []
        previous = calculate_points(running)
        for badge in pool:
            running.append(badge)
            current = calculate_points(running)
            assert current >= previous >= 0
            previous = current

    def test_custom_weights(self, sample_badges):
        data = default_rules().model_dump()
        data["weights"] = {"skill": 3}
        rules = ArcadeRules.model_validate(data)
        assert calculate_points(sample_badges, rules) == 6.0


class TestMilestoneProgress:
    def test_sample_badges_tier_one_deficit(self, sample_badges):
        progress = calculate_milestone_progress(sample_badges)
        tier_one = progress.tiers[0]
        assert tier_one.tier == 1
        assert not tier_one.reached
        assert tier_one.missing == {GAME: 5, TRIVIA: 4, SKILL: 12}
        assert progress.current_tier == 0
        assert progress.bonus_points == 0
        assert progress.counts == {GAME: 1, TRIVIA: 1, SKILL: 2}

    def test_empty_deficits_equal_requirements(self):
        progress = calculate_milestone_progress([])
        assert len(progress.tiers) == 4
        for tier in progress.tiers:
            assert not tier.reached
            assert tier.missing == tier.requirements

    def test_exact_threshold_reaches_tier(self, badge_factory):
        progress = calculate_milestone_progress(_badges(badge_factory, game=6, trivia=5, skill=14))
        assert progress.tiers[0].reached
        assert progress.tiers[0].missing == {GAME: 0, TRIVIA: 0, SKILL: 0}
        assert not progress.tiers[1].reached
        assert progress.current_tier == 1
        assert progress.bonus_points == 2
        assert progress.next_tier.tier == 2

    def test_one_short_in_one_category(self, badge_factory):
        progress = calculate_milestone_progress(_badges(badge_factory, game=12, trivia=8, skill=13))
        assert progress.current_tier == 0
        assert progress.tiers[0].missing == {GAME: 0, TRIVIA: 0, SKILL: 1}

    def test_all_tiers(self, badge_factory):
        progress = calculate_milestone_progress(_badges(badge_factory, game=20, trivia=20, skill=60))
        assert all(t.reached for t in progress.tiers)
        assert progress.current_tier == 4
        assert progress.bonus_points == 25
        assert progress.next_tier is None

    def test_special_does_not_count_as_game(self, badge_factory):
        progress = calculate_milestone_progress(_badges(badge_factory, special=6, trivia=5, skill=14))
        assert progress.tiers[0].missing[GAME] == 6

    @pytest.mark.parametrize("game,trivia,skill", [
        (0, 0, 0), (6, 5, 14), (8, 5, 30), (10, 7, 38), (9, 9, 60), (12, 8, 52), (3, 20, 100),
    ])
    def test_prefix_closed(self, badge_factory, game, trivia, skill):
        progress = calculate_milestone_progress(_badges(badge_factory, game=game, trivia=trivia, skill=skill))
        reached = [t.reached for t in progress.tiers]
        assert reached == sorted(reached, reverse=True)

    def test_malformed_table_detected(self, badge_factory):
        rules = ArcadeRules.model_construct(
            classification=[],
            weights={},
            milestones=[
                MilestoneTierRule(tier=1, requirements={GAME: 5}),
                MilestoneTierRule(tier=2, requirements={GAME: 1}),
            ],
            fallback=BadgeCategory.UNKNOWN,
        )
        with pytest.raises(RulesError):
            calculate_milestone_progress(_badges(badge_factory, game=2), rules)


class TestCalculateArcadePoints:
    def test_regular_user_has_no_milestones(self, sample_badges):
        result = calculate_arcade_points(sample_badges, False)
        assert result.points == 3.0
        assert result.milestone_progress is None
        assert "milestoneProgress" not in result.to_json_dict()

    def test_facilitator_has_milestones(self, sample_badges):
        regular = calculate_arcade_points(sample_badges, False)
        result = calculate_arcade_points(sample_badges, True)
        assert result.points == regular.points
        assert result.milestone_progress is not None
        assert result.milestone_progress.tiers[0].missing[SKILL] == 12

    def test_empty_facilitator(self):
        result = calculate_arcade_points([], True)
        assert result.points == 0
        assert result.badge_count == 0
        assert result.milestone_progress.current_tier == 0

    def test_json_shape(self, sample_badges):
        data = calculate_arcade_points(sample_badges, True).to_json_dict()
        assert data["points"] == 3.0
        assert data["badgeCount"] == 4
        assert data["categoryCounts"] == {"game": 1, "trivia": 1, "skill": 2}
        tier = data["milestoneProgress"]["tiers"][0]
        assert tier["requirements"] == {"game": 6, "trivia": 5, "skill": 14}
        assert tier["missing"]["skill"] == 12
        assert tier["bonusPoints"] == 2
        assert data["milestoneProgress"]["currentTier"] == 0

    def test_tally(self, sample_badges):
        assert tally_badges(sample_badges) == {GAME: 1, TRIVIA: 1, SKILL: 2}


def test_calculate_points_for_users(sample_badges):
    results = calculate_points_for_users([
        UserBadges(name="John", badges=sample_badges, is_facilitator=False),
        UserBadges(name="Jane", badges=sample_badges, is_facilitator=True),
    ])
    assert [r.name for r in results] == ["John", "Jane"]
    assert results[0].result.milestone_progress is None
    assert results[1].result.milestone_progress is not None
    assert results[0].result.points == results[1].result.points == 3.0
