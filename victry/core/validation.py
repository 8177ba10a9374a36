"""Input format checks shared by routes and services."""

from __future__ import annotations

import re

# RFC 5322 style: dotted local part or quoted string, domain name or bracketed IPv4
_EMAIL_RE = re.compile(
    r'^(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))'
    r"@((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$"
)


def is_valid_email(email: str | None) -> bool:
    """Return True when ``email`` looks like a deliverable address.

    Examples:
        >>> is_valid_email("ada@example.com")
        True
        >>> is_valid_email("ada@localhost")
        False
    """
    if not email:
        return False
    return _EMAIL_RE.match(email) is not None
