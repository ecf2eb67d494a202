"""
Shared utility functions for the task API.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "user", "task")

    Returns:
        A unique ID like "task_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def is_valid_id(value: str, prefix: str = "") -> bool:
    """Check that a value has the shape produced by generate_id(prefix)."""
    pattern = rf"{re.escape(prefix)}_[0-9a-f]{{12}}" if prefix else r"[0-9a-f]{12}"
    return isinstance(value, str) and re.fullmatch(pattern, value) is not None


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)
