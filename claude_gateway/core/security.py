"""Security utilities"""
from typing import Optional

API_KEY_HEADER = "x-api-key"


def verify_api_key(provided_key: Optional[str], expected_key: str) -> bool:
    """Check the caller's credential against the shared secret (exact match)"""
    if not provided_key:
        return False
    return provided_key == expected_key
