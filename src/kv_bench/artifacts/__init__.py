"""Artifact lifecycle helpers (reset and size accounting)."""

from .manager import ensure_present, remove_all, total_size

__all__ = ["ensure_present", "remove_all", "total_size"]
