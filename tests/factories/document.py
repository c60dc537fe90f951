"""
Document, share link and signature factories.

Owner and document ids are passed in by the caller; there are no
sub-factories, so every test decides which rows it persists.
"""

import uuid

import factory
from faker import Faker

from docsign.models.document import Document, ShareLink
from docsign.models.signature import Signature
from docsign.models.status import LinkStatus, PlacementType, RenderKind, SignatureStatus
from docsign.services.token_issuer import issue_token

fake = Faker()

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


class DocumentFactory(factory.Factory):
    class Meta:
        model = Document

    id = factory.LazyFunction(uuid.uuid4)
    original_name = factory.LazyFunction(lambda: f"{fake.word()}.pdf")
    file_name = factory.Sequence(lambda n: f"document-{n}-{uuid.uuid4().hex[:8]}.pdf")
    file_path = factory.LazyAttribute(lambda obj: f"/uploads/{obj.file_name}")
    mime_type = "application/pdf"
    size = factory.LazyFunction(lambda: fake.random_int(min=100, max=50_000))
    is_finalized = False


class ShareLinkFactory(factory.Factory):
    class Meta:
        model = ShareLink

    id = factory.LazyFunction(uuid.uuid4)
    token = factory.LazyFunction(issue_token)
    recipient_email = factory.LazyFunction(lambda: fake.email().lower())
    expires_at = None
    status = LinkStatus.pending


class SignatureFactory(factory.Factory):
    """Placement ready to be signed.

    Usage:
        SignatureFactory(document_id=doc.id, user_id=owner.id)
    """

    class Meta:
        model = Signature

    id = factory.LazyFunction(uuid.uuid4)
    x = factory.LazyFunction(lambda: float(fake.random_int(min=0, max=500)))
    y = factory.LazyFunction(lambda: float(fake.random_int(min=0, max=700)))
    page = 1
    placement_type = PlacementType.signature
    render_kind = RenderKind.text
    value = factory.LazyFunction(fake.name)
    status = SignatureStatus.pending
