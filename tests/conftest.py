from datetime import datetime, timezone

import pytest

from arcade_calculator.core import rules as rules_module
from arcade_calculator.core.models import Badge, BadgeCategory
from arcade_calculator.core.rules import RULES_PATH_ENV


@pytest.fixture(autouse=True)
def default_rules_env(monkeypatch):
    """Every test starts from the built-in tables."""
    monkeypatch.delenv(RULES_PATH_ENV, raising=False)
    monkeypatch.setattr(rules_module, "_active_rules", None)


def make_badge(name: str, category: BadgeCategory, day: int = 1) -> Badge:
    return Badge(name=name, type=category, earned_date=datetime(2025, 1, day, tzinfo=timezone.utc))


@pytest.fixture
def sample_badges() -> list[Badge]:
    """One game, one trivia, two skill badges."""
    return [
        make_badge("Skills Boost Love Beyond", BadgeCategory.GAME, 15),
        make_badge("Skills Boost Trivia Challenge", BadgeCategory.TRIVIA, 20),
        make_badge("Analyze BigQuery Data in Connected Sheets", BadgeCategory.SKILL, 25),
        make_badge("Get Started with Cloud Storage", BadgeCategory.SKILL, 30),
    ]


@pytest.fixture
def badge_factory():
    return make_badge
