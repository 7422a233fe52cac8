"""
Business logic services for ADVDESK.
"""

from advdesk.services.llm_service import LLMService, get_llm_service
from advdesk.services.multimodal_service import ContentPart, MultimodalService, get_multimodal_service
from advdesk.services.providers import AIProviders, get_ai_providers
from advdesk.services.attachments import AttachmentPreprocessor
from advdesk.services.knowledge import KnowledgeService, get_knowledge_service
from advdesk.services.rate_limiter import RateLimiter, get_rate_limiter
from advdesk.services.accounts import AccountService, get_account_service

__all__ = [
    "LLMService",
    "get_llm_service",
    "ContentPart",
    "MultimodalService",
    "get_multimodal_service",
    "AIProviders",
    "get_ai_providers",
    "AttachmentPreprocessor",
    "KnowledgeService",
    "get_knowledge_service",
    "RateLimiter",
    "get_rate_limiter",
    "AccountService",
    "get_account_service",
]
