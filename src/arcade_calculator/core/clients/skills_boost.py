"""Google Cloud Skills Boost public profile client.

Fetches a public profile page and extracts the earned badges from its markup.
No authentication required.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from ..models import Badge
from ..parsing import badges_from_records
from ..rules import ArcadeRules

logger = logging.getLogger(__name__)

BADGE_SELECTOR = ".profile-badge"
NAME_SELECTOR = ".ql-title-medium.l-mts"
DATE_SELECTOR = ".ql-body-medium.l-mbs"

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def extract_badge_records(html: str) -> list[dict]:
    """Pull raw {name, earnedDate} strings out of profile markup."""
    soup = BeautifulSoup(html, "html.parser")
    records = []
    for element in soup.select(BADGE_SELECTOR):
        name_el = element.select_one(NAME_SELECTOR)
        date_el = element.select_one(DATE_SELECTOR)
        records.append({
            "name": name_el.get_text(strip=True) if name_el else "",
            "earnedDate": date_el.get_text(" ", strip=True) if date_el else "",
        })
    return records


def extract_badges(html: str, rules: Optional[ArcadeRules] = None) -> list[Badge]:
    """Extract and classify badges; entries without a name or date are dropped."""
    records = extract_badge_records(html)
    badges = badges_from_records(records, rules)
    logger.info("Extracted %d badges (%d badge elements on page)", len(badges), len(records))
    return badges


async def fetch_profile_html(profile_url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """GET the profile page, raising httpx.HTTPError on failure."""
    if client is not None:
        response = await client.get(profile_url)
        response.raise_for_status()
        return response.text

    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True) as client:
        response = await client.get(profile_url)
        response.raise_for_status()
        return response.text


async def fetch_profile_badges(
    profile_url: str,
    client: Optional[httpx.AsyncClient] = None,
    rules: Optional[ArcadeRules] = None,
) -> list[Badge]:
    """Fetch a public profile and return its classified badges."""
    html = await fetch_profile_html(profile_url, client)
    return extract_badges(html, rules)
