"""
FastAPI dependencies: service factories and caller authentication.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from advdesk.errors import Unauthenticated
from advdesk.models.tenant import AuthContext
from advdesk.pipeline.orchestrator import PipelineOrchestrator, get_pipeline_orchestrator
from advdesk.services.accounts import AccountService, get_account_service
from advdesk.services.knowledge import KnowledgeService, get_knowledge_service
from advdesk.storage.blobs import LocalBlobStore, get_blob_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_orchestrator() -> PipelineOrchestrator:
    return get_pipeline_orchestrator()


def get_accounts() -> AccountService:
    return get_account_service()


def get_knowledge() -> KnowledgeService:
    return get_knowledge_service()


def get_blobs() -> LocalBlobStore:
    return get_blob_store()


async def get_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    accounts: AccountService = Depends(get_accounts),
) -> AuthContext:
    """Resolve the bearer token to the caller's tenant and role."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    return await accounts.authenticate(credentials.credentials)
