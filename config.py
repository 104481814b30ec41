"""Configuration for Campus Event Hub."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'campushub.db'}",
)

# Accounts under this email domain are admins at signup; everyone else is a student.
STAFF_EMAIL_DOMAIN = os.getenv("STAFF_EMAIL_DOMAIN", "iul.ac.in").strip().lower().lstrip("@")

# Individual registrations on paid events are auto-approved unless this is turned off
AUTO_APPROVE_PAID_INDIVIDUAL = _parse_bool(os.getenv("AUTO_APPROVE_PAID_INDIVIDUAL", "true"))

# Web auth (JWT secret)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-long-random-string")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Uploaded images (event banners, payment QR codes, team logos, receipts)
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(Path(__file__).parent / "uploads")))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
