"""Core business logic: classification, scoring, milestones, and data models.

This module is framework-agnostic. It has no dependency on MCP, Starlette,
or any server framework; the server only calls into it.
"""

from .classifier import determine_badge_type
from .scoring import (
    calculate_arcade_points,
    calculate_milestone_progress,
    calculate_points,
    calculate_points_for_users,
)

__all__ = [
    "calculate_arcade_points",
    "calculate_milestone_progress",
    "calculate_points",
    "calculate_points_for_users",
    "determine_badge_type",
]
