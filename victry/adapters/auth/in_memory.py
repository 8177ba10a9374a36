"""Auth client that records reset requests instead of sending emails.

Used when no Supabase project is configured (local development, tests).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from victry.adapters.auth.base import AbstractAuthClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentReset:
    email: str
    redirect_to: str


class InMemoryAuthClient(AbstractAuthClient):
    def __init__(self) -> None:
        self.sent: list[SentReset] = []

    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        self.sent.append(SentReset(email=email, redirect_to=redirect_to))
        logger.info("auth.password_reset_recorded", extra={"redirect_to": redirect_to})
