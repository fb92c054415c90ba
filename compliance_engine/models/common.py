"""Shared helpers for model defaults."""

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
