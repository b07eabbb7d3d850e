"""Badge classifier: free-text badge name to BadgeCategory.

Total and deterministic. Rules are tried in table order and the first match
wins; anything unmatched falls back to rules.fallback.
"""

from __future__ import annotations

from typing import Optional

from .models import BadgeCategory
from .rules import ArcadeRules, get_rules


def determine_badge_type(name: str, rules: Optional[ArcadeRules] = None) -> BadgeCategory:
    """Classify a badge by its display name."""
    if rules is None:
        rules = get_rules()
    if not isinstance(name, str) or not name.strip():
        return rules.fallback

    for rule in rules.classification:
        if rule.matches(name):
            return rule.category
    return rules.fallback
