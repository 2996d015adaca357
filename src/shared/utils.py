"""Shared utility functions."""
import uuid


def generate_id() -> str:
    """Return a fresh random identifier for extracted records."""
    return str(uuid.uuid4())
