"""Boundary parsing: loosely-shaped badge records to strict Badge values.

Scraped fields and caller-supplied JSON land here before they reach the
scoring engine. Records that cannot be narrowed raise BadgeParseError; the
list helpers drop them and log a warning.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from .classifier import determine_badge_type
from .models import Badge
from .rules import ArcadeRules

logger = logging.getLogger(__name__)

# Profile pages print US Eastern dates: "Earned Dec 17, 2024 EST"
EARNED_PATTERN = re.compile(r"Earned\s+(.+?)\s+(EST|EDT)\b")
EARNED_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y")
TZ_OFFSETS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
}

NAME_KEYS = ("name", "badgeName", "badge_name")
DATE_KEYS = ("earnedDate", "earned_date", "date")


class BadgeParseError(ValueError):
    """A raw record cannot be turned into a Badge."""


def _parse_profile_date(text: str) -> Optional[datetime]:
    match = EARNED_PATTERN.search(text)
    if not match:
        return None
    date_str, zone = match.groups()
    date_str = " ".join(date_str.split())
    for fmt in EARNED_DATE_FORMATS:
        try:
            local = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        return local.replace(tzinfo=TZ_OFFSETS[zone]).astimezone(timezone.utc)
    return None


def parse_earned_date(value: Any) -> Optional[datetime]:
    """Parse an earned date into an aware UTC datetime, or None.

    Accepts profile text ("Earned Apr 3, 2025 EDT"), ISO-8601 strings
    (naive values are taken as UTC), and datetime objects.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        from_profile = _parse_profile_date(text)
        if from_profile is not None:
            return from_profile
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _first(record: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def parse_badge_record(record: Any, rules: Optional[ArcadeRules] = None) -> Badge:
    """Narrow one raw record into a Badge, classifying it by name.

    Raises:
        BadgeParseError: missing/blank name or unparseable earned date.
    """
    if not isinstance(record, dict):
        raise BadgeParseError(f"Badge record must be an object, got {type(record).__name__}")

    name = _first(record, NAME_KEYS)
    if not isinstance(name, str) or not name.strip():
        raise BadgeParseError("Badge record has no name")
    name = name.strip()

    raw_date = _first(record, DATE_KEYS)
    earned = parse_earned_date(raw_date)
    if earned is None:
        raise BadgeParseError(f"Badge {name!r} has an unparseable earned date: {raw_date!r}")

    return Badge(name=name, type=determine_badge_type(name, rules), earned_date=earned)


def badges_from_records(records: Iterable[Any], rules: Optional[ArcadeRules] = None) -> list[Badge]:
    """Parse many records, dropping the ones that fail."""
    badges = []
    for record in records:
        try:
            badges.append(parse_badge_record(record, rules))
        except BadgeParseError as exc:
            logger.warning("Dropping badge record: %s", exc)
    return badges
