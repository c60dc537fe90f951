from fastapi import APIRouter
from docsign.api.v1 import (
    auth,
    documents,
    share,
    signatures,
    audit,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(share.router, prefix="/share", tags=["share"])
api_router.include_router(signatures.router, prefix="/signatures", tags=["signatures"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
