"""Shared API utilities."""
from typing import Optional

from hub.models import Profile


def profile_display_name(profile: Optional[Profile], email: str) -> str:
    """Return human-readable name for a principal. Falls back to the email's local part."""
    if profile:
        name = (profile.full_name or "").strip()
        if name:
            return name
    return email.split("@", 1)[0] or "Student"
