"""Share token generation.

Tokens carry 256 bits of entropy. This module does not check uniqueness;
the share_links.token unique constraint does, and callers retry with a
fresh token when an insert collides.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

from docsign.config import settings
from docsign.utils.clock import utcnow

TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2


def issue_token() -> str:
    """Return a fresh 64-character lowercase hex token."""
    return secrets.token_hex(TOKEN_BYTES)


def default_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry used when the owner asks for the standard link lifetime."""
    return (now or utcnow()) + timedelta(days=settings.SHARE_LINK_EXPIRE_DAYS)


def looks_like_token(value: str) -> bool:
    """Cheap shape check so obviously bogus tokens skip the database."""
    if len(value) != TOKEN_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return value == value.lower()
