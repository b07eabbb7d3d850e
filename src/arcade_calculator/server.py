"""Arcade Calculator MCP Server.

FastMCP server with badge scoring tools, plus plain HTTP routes for the
web frontend:

    GET /api/health
    GET /api/calculate-points?profileUrl=...&isFacilitator=true

Run: arcade-calculator-mcp   (MCP_TRANSPORT=stdio for MCP over stdio)
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import httpx
import uvicorn
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from .core.classifier import determine_badge_type
from .core.clients import skills_boost
from .core.models import CalculationResult, UserBadges
from .core.parsing import badges_from_records
from .core.rules import get_rules
from .core.scoring import calculate_arcade_points, calculate_points_for_users

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DEFAULT_PORT = 3001

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)
OFFLINE = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Load the rule tables up front so a bad rules file fails the session early."""
    rules = get_rules()
    logger.info(
        "Arcade rules active: %d classification rules, %d milestone tiers",
        len(rules.classification), len(rules.milestones),
    )
    yield


mcp = FastMCP(
    "Arcade Calculator",
    instructions="Classify Google Cloud Skills Boost badges, total Arcade points, and track facilitator milestone progress from a public profile.",
    lifespan=lifespan,
)


def _is_profile_url(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _parse_flag(value: Optional[str]) -> bool:
    """Query-string flag: only the exact string "true" enables it."""
    return value == "true"


def _user_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or value == "false":
        return False
    if value == "true":
        return True
    raise ValueError(f"isFacilitator must be true or false, got {value!r}")


def _result_summary(result: CalculationResult) -> str:
    summary = f"{result.points:g} Arcade points from {result.badge_count} badges."
    progress = result.milestone_progress
    if progress is None:
        return summary

    if progress.current_tier:
        summary += f" Milestone {progress.current_tier} reached (+{progress.bonus_points:g} bonus)."
    else:
        summary += " No milestone reached yet."

    upcoming = progress.next_tier
    if upcoming is not None:
        needed = ", ".join(
            f"{count} {category.value}" for category, count in upcoming.missing.items() if count
        )
        summary += f" Milestone {upcoming.tier} needs {needed} more."
    return summary


# ─── HTTP routes ─────────────────────────────────────────────────────────────


@mcp.custom_route("/api/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


@mcp.custom_route("/api/calculate-points", methods=["GET"])
async def calculate_points_route(request: Request) -> JSONResponse:
    """Scrape a public profile and return its CalculationResult."""
    profile_url = request.query_params.get("profileUrl")
    is_facilitator = _parse_flag(request.query_params.get("isFacilitator"))
    logger.info("Received request with profileUrl=%s isFacilitator=%s", profile_url, is_facilitator)

    if not _is_profile_url(profile_url):
        return JSONResponse({"error": "Profile URL is required"}, status_code=400)

    try:
        badges = await skills_boost.fetch_profile_badges(profile_url)
        result = calculate_arcade_points(badges, is_facilitator)
    except httpx.HTTPError as exc:
        logger.error("Failed to fetch profile %s: %s", profile_url, exc, exc_info=True)
        return JSONResponse({"error": "Failed to fetch profile"}, status_code=502)
    except Exception as exc:
        logger.error("Error calculating points: %s", exc, exc_info=True)
        return JSONResponse({"error": "Failed to calculate points"}, status_code=500)

    logger.info("Calculation result: %s", _result_summary(result))
    return JSONResponse(result.to_json_dict())


# ─── Tool 1: Profile points ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def arcade_calculate_points(profile_url: str, is_facilitator: bool = False) -> dict:
    """Arcade points for a public Skills Boost profile, with milestone progress for facilitators.

    Args:
        profile_url: Public profile URL (https://www.cloudskillsboost.google/public_profiles/...).
        is_facilitator: Also report facilitator milestone progress. Default False.
    """
    if not _is_profile_url(profile_url):
        raise ValueError("profile_url must be an http(s) URL of a public profile")

    badges = await skills_boost.fetch_profile_badges(profile_url)
    result = calculate_arcade_points(badges, is_facilitator)
    return {
        "title": "Arcade Points",
        "profile_url": profile_url,
        "result": result.to_json_dict(),
        "badges": [b.to_json_dict() for b in badges],
        "summary": _result_summary(result),
    }


# ─── Tool 2: Score supplied badges ───────────────────────────────────────────


@mcp.tool(annotations=OFFLINE)
async def arcade_score_badges(badges: list[dict], is_facilitator: bool = False) -> dict:
    """Score a badge list you already have, without fetching a profile.

    Args:
        badges: Records like {"name": "Get Started with Cloud Storage", "earnedDate": "2025-01-30T00:00:00Z"}.
                "badgeName" is accepted for the name. Records without a name or a
                parseable date are skipped.
        is_facilitator: Also report facilitator milestone progress. Default False.
    """
    parsed = badges_from_records(badges)
    result = calculate_arcade_points(parsed, is_facilitator)
    return {
        "title": "Arcade Points",
        "result": result.to_json_dict(),
        "badges": [b.to_json_dict() for b in parsed],
        "skipped": len(badges) - len(parsed),
        "summary": _result_summary(result),
    }


# ─── Tool 3: Score several users ─────────────────────────────────────────────


@mcp.tool(annotations=OFFLINE)
async def arcade_score_users(users: list[dict]) -> dict:
    """Score several users at once.

    Args:
        users: Records like {"name": "Jane", "isFacilitator": true, "badges": [...]},
               where badges use the same shape as arcade_score_badges.
    """
    batch = []
    for user in users:
        if not isinstance(user, dict):
            raise ValueError(f"every user must be an object, got {type(user).__name__}")
        name = user.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("every user needs a name")
        badges = user.get("badges") or []
        if not isinstance(badges, list):
            raise ValueError(f"badges for {name.strip()!r} must be a list")
        flag = user["isFacilitator"] if "isFacilitator" in user else user.get("is_facilitator")
        batch.append(UserBadges(
            name=name.strip(),
            badges=badges_from_records(badges),
            is_facilitator=_user_flag(flag),
        ))

    results = calculate_points_for_users(batch)
    return {
        "title": "Arcade Points by User",
        "results": [r.to_json_dict() for r in results],
        "summary": " | ".join(f"{r.name}: {r.result.points:g}" for r in results) or "No users given",
    }


# ─── Tool 4: Classify ────────────────────────────────────────────────────────


@mcp.tool(annotations=OFFLINE)
async def arcade_classify_badge(name: str) -> dict:
    """Which Arcade category a badge name falls into, and what it is worth.

    Args:
        name: Badge display name, e.g. 'Skills Boost Trivia Challenge'.
    """
    rules = get_rules()
    category = determine_badge_type(name, rules)
    points = rules.weights.get(category, 0.0)
    return {
        "name": name,
        "type": category.value,
        "points": points,
        "summary": f"'{name}' is a {category.value} badge worth {points:g} points.",
    }


# ─── Tool 5: Rules ───────────────────────────────────────────────────────────


@mcp.tool(annotations=OFFLINE)
async def arcade_rules() -> dict:
    """The active classification rules, point weights, and milestone tiers."""
    rules = get_rules()
    return {
        "title": "Arcade Rules",
        "rules": rules.to_json_dict(),
        "summary": f"{len(rules.classification)} classification rules, {len(rules.weights)} weighted categories, {len(rules.milestones)} milestone tiers.",
    }


def create_http_app() -> Starlette:
    """Streamable-HTTP MCP app with the HTTP routes, wrapped in CORS."""
    origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    app = mcp.streamable_http_app()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


def main():
    """Entry point for the CLI command."""
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper(), format=LOG_FORMAT)
    get_rules()

    if os.environ.get("MCP_TRANSPORT", "http").lower() == "stdio":
        mcp.run()
        return

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", str(DEFAULT_PORT)))
    logger.info("Server running on %s:%d", host, port)
    uvicorn.run(create_http_app(), host=host, port=port)


if __name__ == "__main__":
    main()
