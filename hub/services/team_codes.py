"""Team join code generation."""
from __future__ import annotations

import hashlib
import secrets
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hub.models import Team

CODE_LENGTH = 6


def random_code() -> str:
    """Hash a random value and keep the first six hex characters, upper-cased."""
    digest = hashlib.md5(secrets.token_bytes(16)).hexdigest()
    return digest[:CODE_LENGTH].upper()


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def code_in_use(session: AsyncSession, code: str) -> bool:
    return await session.scalar(select(Team.id).where(Team.team_code == code)) is not None


async def generate_team_code(session: AsyncSession, candidate: Callable[[], str] = random_code) -> str:
    """Return a code no existing team uses.

    Retries without limit; 16**6 codes is plenty for campus-scale team counts,
    and the unique index on teams.team_code rejects any race that slips through.
    """
    while True:
        code = candidate()
        if not await code_in_use(session, code):
            return code
