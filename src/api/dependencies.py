"""FastAPI dependencies for injection."""
from functools import lru_cache

from fastapi import Depends

from core.auth import get_authorization, get_current_user_id
from core.config import Settings, get_settings
from db.session import get_session_factory
from services.checkout import CheckoutGateway
from services.entity_store import EntityStore, InMemoryEntityStore
from services.ingestion import BookmarkIngestionService
from services.normalizer import DanglingReferencePolicy
from services.sql_entity_store import SqlEntityStore
from services.summarizer import SummarizationClient, Summarizer
from services.tag_inference import TagInferenceClient, TagInferrer


@lru_cache
def get_memory_store() -> InMemoryEntityStore:
    """Process-wide in-memory store, used when no database is configured."""
    return InMemoryEntityStore()


def get_entity_store(settings: Settings = Depends(get_settings)) -> EntityStore:
    """Select the entity store for the configured backend."""
    if settings.use_sql_store:
        return SqlEntityStore(get_session_factory())
    return get_memory_store()


def get_policy(settings: Settings = Depends(get_settings)) -> DanglingReferencePolicy:
    """Configured dangling-reference policy."""
    return DanglingReferencePolicy(settings.dangling_reference_policy)


def get_summarizer(settings: Settings = Depends(get_settings)) -> Summarizer:
    """Summarization client for the configured agent service."""
    return SummarizationClient.from_settings(settings)


def get_tag_inferrer(settings: Settings = Depends(get_settings)) -> TagInferrer | None:
    """Tag inference client, or None when inference is disabled."""
    if not settings.tag_inference_enabled:
        return None
    return TagInferenceClient.from_settings(settings)


def get_ingestion_service(
    store: EntityStore = Depends(get_entity_store),
    summarizer: Summarizer = Depends(get_summarizer),
    tag_inferrer: TagInferrer | None = Depends(get_tag_inferrer),
    policy: DanglingReferencePolicy = Depends(get_policy),
) -> BookmarkIngestionService:
    """Ingestion service wired to the request's collaborators."""
    return BookmarkIngestionService(store, summarizer, tag_inferrer, policy)


def get_checkout_gateway(settings: Settings = Depends(get_settings)) -> CheckoutGateway:
    """Checkout gateway for the configured payment provider."""
    return CheckoutGateway.from_settings(settings)


__all__ = [
    "get_authorization",
    "get_checkout_gateway",
    "get_current_user_id",
    "get_entity_store",
    "get_ingestion_service",
    "get_memory_store",
    "get_policy",
    "get_settings",
    "get_summarizer",
    "get_tag_inferrer",
]
