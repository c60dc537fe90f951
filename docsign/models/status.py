"""Status vocabulary shared by share links and signatures."""

import enum

from sqlalchemy import Enum as SAEnum


class LinkStatus(str, enum.Enum):
    pending = "pending"
    viewed = "viewed"
    signed = "signed"
    declined = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_LINK_STATUSES


class SignatureStatus(str, enum.Enum):
    pending = "pending"
    signed = "signed"
    rejected = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not SignatureStatus.pending


class LinkEvent(str, enum.Enum):
    """Things that can happen to a signing event."""

    open = "open"          # recipient resolves the link
    expire = "expire"      # expiry detected on access
    sign = "sign"          # recipient submits a signature
    decline = "decline"    # recipient refuses to sign


class PlacementType(str, enum.Enum):
    signature = "signature"
    initial = "initial"


class RenderKind(str, enum.Enum):
    text = "text"
    image = "image"


TERMINAL_LINK_STATUSES = frozenset({LinkStatus.signed, LinkStatus.declined})
ACTIVE_LINK_STATUSES = (LinkStatus.pending, LinkStatus.viewed)


def enum_column(enum_cls: type[enum.Enum]) -> SAEnum:
    """Portable VARCHAR-backed enum column storing member values."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
