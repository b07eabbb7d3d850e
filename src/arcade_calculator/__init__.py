"""Arcade Calculator MCP server.

Classify Google Cloud Skills Boost badges, total Arcade points, and track
facilitator milestone progress from a public profile.
"""

__version__ = "0.1.0"
