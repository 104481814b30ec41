"""Role names and signup role resolution."""
from __future__ import annotations

import config

ADMIN = "admin"
PRESIDENT = "president"
STUDENT = "student"
ROLES = (ADMIN, PRESIDENT, STUDENT)

# Roles allowed to organize events and post announcements
OFFICER_ROLES = (ADMIN, PRESIDENT)


def role_for_email(email: str) -> str:
    """Return the signup role for an email address.

    Staff domain addresses become admins; every other address is a student.
    Subdomains do not match, so student.<staff domain> stays a student.
    President is never derived here, only granted by an admin later.
    """
    domain = email.strip().lower().rpartition("@")[2]
    if config.STAFF_EMAIL_DOMAIN and domain == config.STAFF_EMAIL_DOMAIN:
        return ADMIN
    return STUDENT
