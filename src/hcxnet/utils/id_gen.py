"""
ID generators used across hcxnet:
- UUID v4 for api-call and correlation identifiers
"""

from __future__ import annotations
import uuid


def generate_uuid() -> str:
    """Generate a UUIDv4 string."""
    return str(uuid.uuid4())


def is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()
