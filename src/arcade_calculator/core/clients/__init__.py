"""Upstream page clients."""
