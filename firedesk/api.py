"""
FIREDESK - Shared HTTP Helpers
"""
from fastapi import Request

from .errors import ValidationError


async def read_json(request: Request) -> dict:
    """
    Parse a command body. An empty body reads as {}; anything that is not a
    JSON object fails with InvalidBody.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError.single("body", "InvalidBody", "Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise ValidationError.single("body", "InvalidBody", "Request body must be a JSON object.")
    return data
