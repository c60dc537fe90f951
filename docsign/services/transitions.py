"""Transition rules for a signing event.

A signing event is observed through two records: the recipient's share link
and the signature placement being signed. Both move through the tables below
and nothing else may change their status.

    pending --open-->    viewed
    viewed  --open-->    viewed      (idempotent)
    pending|viewed --expire-->  declined   [terminal]
    pending|viewed --sign-->    signed     [terminal]
    pending|viewed --decline--> declined   [terminal]

signed and declined accept no event except open, which is a plain re-read.
"""

from typing import Optional

from docsign.exceptions import InvalidTransitionError
from docsign.models.status import LinkStatus, LinkEvent, SignatureStatus

LINK_TRANSITIONS: dict[tuple[LinkStatus, LinkEvent], LinkStatus] = {
    (LinkStatus.pending, LinkEvent.open): LinkStatus.viewed,
    (LinkStatus.viewed, LinkEvent.open): LinkStatus.viewed,
    (LinkStatus.pending, LinkEvent.expire): LinkStatus.declined,
    (LinkStatus.viewed, LinkEvent.expire): LinkStatus.declined,
    (LinkStatus.pending, LinkEvent.sign): LinkStatus.signed,
    (LinkStatus.viewed, LinkEvent.sign): LinkStatus.signed,
    (LinkStatus.pending, LinkEvent.decline): LinkStatus.declined,
    (LinkStatus.viewed, LinkEvent.decline): LinkStatus.declined,
}

# Opening or expiring a link says nothing about the placement itself
SIGNATURE_TRANSITIONS: dict[tuple[SignatureStatus, LinkEvent], SignatureStatus] = {
    (SignatureStatus.pending, LinkEvent.open): SignatureStatus.pending,
    (SignatureStatus.pending, LinkEvent.expire): SignatureStatus.pending,
    (SignatureStatus.pending, LinkEvent.sign): SignatureStatus.signed,
    (SignatureStatus.pending, LinkEvent.decline): SignatureStatus.rejected,
}

_SIGNATURE_FOR_LINK = {
    LinkStatus.pending: SignatureStatus.pending,
    LinkStatus.viewed: SignatureStatus.pending,
    LinkStatus.signed: SignatureStatus.signed,
    LinkStatus.declined: SignatureStatus.rejected,
}

_LINK_FOR_SIGNATURE = {
    SignatureStatus.signed: LinkStatus.signed,
    SignatureStatus.rejected: LinkStatus.declined,
}

_EVENT_FOR_SIGNATURE_STATUS = {
    SignatureStatus.signed: LinkEvent.sign,
    SignatureStatus.rejected: LinkEvent.decline,
}


def next_link_status(current: LinkStatus | str, event: LinkEvent | str) -> LinkStatus:
    """Status a share link moves to when event happens.

    Raises InvalidTransitionError for any write against a terminal link.
    """
    current = LinkStatus(current)
    event = LinkEvent(event)

    if current.is_terminal:
        if event is LinkEvent.open:
            return current
        raise InvalidTransitionError(f"Share link is already {current.value}")

    return LINK_TRANSITIONS[(current, event)]


def next_signature_status(current: SignatureStatus | str, event: LinkEvent | str) -> SignatureStatus:
    """Status a signature moves to when event happens."""
    current = SignatureStatus(current)
    event = LinkEvent(event)

    if current.is_terminal:
        raise InvalidTransitionError(f"Signature is already {current.value}")

    return SIGNATURE_TRANSITIONS[(current, event)]


def signature_status_for(link_status: LinkStatus | str) -> SignatureStatus:
    """Signature status that agrees with a link status for the same event."""
    return _SIGNATURE_FOR_LINK[LinkStatus(link_status)]


def link_status_for(signature_status: SignatureStatus | str) -> Optional[LinkStatus]:
    """Terminal link status matching a terminal signature, None while pending."""
    return _LINK_FOR_SIGNATURE.get(SignatureStatus(signature_status))


def event_for_signature_status(status: SignatureStatus | str) -> Optional[LinkEvent]:
    """Event an owner triggers by requesting a signature status directly."""
    return _EVENT_FOR_SIGNATURE_STATUS.get(SignatureStatus(status))

