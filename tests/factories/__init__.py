"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation. Factories build
unsaved model instances; persist() adds and commits them.
"""

from .user import UserFactory, InactiveUserFactory
from .document import DocumentFactory, ShareLinkFactory, SignatureFactory, PDF_BYTES


async def persist(db, obj):
    """Add, commit and refresh a factory-built instance."""
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


__all__ = [
    "UserFactory",
    "InactiveUserFactory",
    "DocumentFactory",
    "ShareLinkFactory",
    "SignatureFactory",
    "persist",
    "PDF_BYTES",
]
