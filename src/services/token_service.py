"""Secure token generation for ticket credentials."""

import uuid


def generate_secure_token() -> str:
    """Return a fresh, globally-unique opaque token (UUID4) for one ticket."""
    return str(uuid.uuid4())
