"""
Shared Pydantic types for schema validation.

UUIDStr: Accepts both str and uuid.UUID objects, coercing UUID to str.
SQLAlchemy UUID columns return uuid.UUID objects and responses carry ids as
strings.

UTCDateTime: Attaches UTC to the naive datetimes SQLite hands back.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated
from pydantic import BeforeValidator

from docsign.utils.clock import ensure_utc

# Coerces uuid.UUID objects to str for JSON serialization
UUIDStr = Annotated[str, BeforeValidator(lambda v: str(v) if not isinstance(v, str) else v)]

UTCDateTime = Annotated[datetime, BeforeValidator(lambda v: ensure_utc(v) if isinstance(v, datetime) else v)]

# Status and kind columns come back as str enums; responses carry the plain value
EnumStr = Annotated[str, BeforeValidator(lambda v: v.value if isinstance(v, Enum) else v)]
