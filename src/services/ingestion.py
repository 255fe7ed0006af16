"""
The "add bookmark" flow: URL in, persisted and hydrated bookmark out.

Each request walks VALIDATING -> SUMMARIZING -> PERSISTING -> HYDRATING -> DONE,
or ends in ABORTED on an unrecoverable failure. Summarization and tag
inference are enrichment: their failures are recorded as diagnostics and the
flow continues. Persistence defines the bookmark's identity: its failure
aborts the request and nothing is left visible.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import HttpUrl, TypeAdapter, ValidationError

from schemas.bookmark import BookmarkDraft, BookmarkFieldsUpdate, HydratedBookmark, StoredBookmark
from schemas.validators import TAG_PATTERN, slugify_tag, validate_title_length
from services.diagnostics import Diagnostic, DiagnosticKind
from services.entity_store import EntityStore
from services.exceptions import (
    BookmarkServiceError,
    DanglingReferenceError,
    InvalidInputError,
    NotFoundError,
    PersistenceFailedError,
    UpstreamUnavailableError,
)
from services.normalizer import (
    DanglingReferencePolicy,
    ResolvedEntities,
    hydrate,
    hydrate_bookmark,
    resolve_references,
)
from services.summarizer import Summarizer
from services.tag_inference import Suggestion, TagInferrer

logger = logging.getLogger(__name__)

_HTTP_URL = TypeAdapter(HttpUrl)


class IngestionState(StrEnum):
    """Stage of an ingest request."""

    VALIDATING = "validating"
    SUMMARIZING = "summarizing"
    PERSISTING = "persisting"
    HYDRATING = "hydrating"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class IngestionRun:
    """Per-request state: current stage and the diagnostics recorded so far."""

    user_id: str
    state: IngestionState = IngestionState.VALIDATING
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def advance(self, state: IngestionState) -> None:
        """Move to the next stage."""
        logger.debug("Ingest for user %s: %s -> %s", self.user_id, self.state, state)
        self.state = state

    def record(self, diagnostic: Diagnostic) -> None:
        """Record a degraded outcome."""
        self.diagnostics.append(diagnostic)


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of a successful ingest, possibly degraded."""

    bookmark: HydratedBookmark
    diagnostics: list[Diagnostic]
    state: IngestionState

    @property
    def degraded(self) -> bool:
        """True when any enrichment or hydration step was degraded."""
        return bool(self.diagnostics)


def normalize_url(url: str | None) -> HttpUrl:
    """
    Parse a submitted URL.

    Raises:
        InvalidInputError: If the URL is empty or not an absolute http(s) URL.
    """
    if url is None or not url.strip():
        raise InvalidInputError("URL is required")
    try:
        return _HTTP_URL.validate_python(url.strip())
    except ValidationError:
        raise InvalidInputError(
            f"Invalid URL: '{url.strip()[:200]}' is not an absolute http(s) URL",
        ) from None


def default_title(url: HttpUrl) -> str:
    """
    Derive a title from a URL's host and path.

    'https://example.com/' -> 'example.com'
    'https://example.com/docs/intro' -> 'example.com/docs/intro'
    """
    path = url.path or ""
    if path == "/":
        path = ""
    return f"{url.host}{path}"


class BookmarkIngestionService:
    """Coordinates validation, summarization, persistence, tagging and hydration."""

    def __init__(
        self,
        store: EntityStore,
        summarizer: Summarizer,
        tag_inferrer: TagInferrer | None = None,
        policy: DanglingReferencePolicy = DanglingReferencePolicy.DROP,
    ) -> None:
        self.store = store
        self.summarizer = summarizer
        self.tag_inferrer = tag_inferrer
        self.policy = policy

    async def ingest(
        self,
        user_id: str,
        url: str,
        title_hint: str | None = None,
        authorization: str | None = None,
    ) -> IngestionResult:
        """
        Turn a raw URL into a persisted, hydrated bookmark.

        Ingesting the same URL twice creates two bookmarks; callers that want
        uniqueness must check beforehand.

        Args:
            user_id: Owner of the new bookmark.
            url: The submitted URL.
            title_hint: Optional title; derived from the URL when absent.
            authorization: Caller's Authorization header, relayed to the agent service.

        Returns:
            IngestionResult with the hydrated bookmark and any diagnostics.

        Raises:
            InvalidInputError: If the URL or title is malformed. Nothing is written.
            PersistenceFailedError: If the store could not create the bookmark.
        """
        run = IngestionRun(user_id=user_id)
        try:
            parsed_url, title = self._validate(url, title_hint)
            hint = (title_hint or "").strip() or None

            run.advance(IngestionState.SUMMARIZING)
            summary = await self._summarize(str(parsed_url), hint, authorization, run)

            run.advance(IngestionState.PERSISTING)
            stored = await self._persist(
                BookmarkDraft(user_id=user_id, url=str(parsed_url), title=title, summary=summary),
            )
            stored = await self._assign_suggestions(stored, authorization, run)

            run.advance(IngestionState.HYDRATING)
            bookmark = await self._hydrate(stored, run)
        except (BookmarkServiceError, asyncio.CancelledError):
            run.advance(IngestionState.ABORTED)
            raise

        run.advance(IngestionState.DONE)
        return IngestionResult(bookmark=bookmark, diagnostics=run.diagnostics, state=run.state)

    def _validate(self, url: str, title_hint: str | None) -> tuple[HttpUrl, str]:
        parsed_url = normalize_url(url)
        title = (title_hint or "").strip() or default_title(parsed_url)
        try:
            validate_title_length(title)
        except ValueError as e:
            raise InvalidInputError(str(e)) from None
        return parsed_url, title

    async def _summarize(
        self,
        url: str,
        title_hint: str | None,
        authorization: str | None,
        run: IngestionRun,
    ) -> str:
        try:
            return await self.summarizer.summarize(url, title_hint, authorization)
        except UpstreamUnavailableError as e:
            logger.warning("Summarization failed for %s, saving without summary: %s", url, e)
            run.record(
                Diagnostic(
                    kind=DiagnosticKind.SUMMARIZATION_FAILED,
                    message=e.message,
                    detail={"status_code": e.status_code},
                ),
            )
            return ""

    async def _persist(self, draft: BookmarkDraft) -> StoredBookmark:
        # Shielded: a cancelled request must not interrupt a write that has started
        try:
            return await asyncio.shield(self.store.create_bookmark(draft))
        except PersistenceFailedError:
            logger.exception("Failed to persist bookmark for user %s", draft.user_id)
            raise

    async def _assign_suggestions(
        self,
        stored: StoredBookmark,
        authorization: str | None,
        run: IngestionRun,
    ) -> StoredBookmark:
        if self.tag_inferrer is None:
            return stored
        try:
            suggestion = await self.tag_inferrer.suggest(
                stored.url, stored.title, stored.summary, authorization,
            )
            update = await self._match_suggestion(stored.user_id, suggestion)
            if update is None:
                return stored
            return await asyncio.shield(self.store.update_bookmark_fields(stored.id, update))
        except (UpstreamUnavailableError, PersistenceFailedError, NotFoundError) as e:
            logger.warning("Tag inference failed for bookmark %s: %s", stored.id, e)
            run.record(
                Diagnostic(
                    kind=DiagnosticKind.TAG_INFERENCE_FAILED,
                    message=str(e),
                    detail={"bookmark_id": stored.id},
                ),
            )
            return stored

    async def _match_suggestion(
        self, user_id: str, suggestion: Suggestion,
    ) -> BookmarkFieldsUpdate | None:
        """
        Map suggested names onto the user's entities.

        Suggested tags are created when missing; collections and categories are
        only matched (case-insensitively) against existing ones.
        """
        changes: dict = {}

        tag_names = list(dict.fromkeys(
            name for name in (slugify_tag(t) for t in suggestion.tags) if TAG_PATTERN.match(name)
        ))
        if tag_names:
            tags = await self.store.get_or_create_tags(user_id, tag_names)
            changes["tag_ids"] = frozenset(t.id for t in tags)

        if suggestion.collection:
            wanted = suggestion.collection.casefold()
            for collection in await self.store.list_user_collections(user_id):
                if collection.name.casefold() == wanted:
                    changes["collection_ids"] = frozenset([collection.id])
                    break

        if suggestion.category:
            wanted = suggestion.category.casefold()
            for category in await self.store.list_user_categories(user_id):
                if category.name.casefold() == wanted:
                    changes["category_id"] = category.id
                    break

        if not changes:
            return None
        return BookmarkFieldsUpdate(**changes)

    async def _hydrate(self, stored: StoredBookmark, run: IngestionRun) -> HydratedBookmark:
        try:
            result = await hydrate_bookmark(stored, self.store, self.policy)
        except (DanglingReferenceError, PersistenceFailedError) as e:
            # The bookmark is durably created; report a degraded view instead of an error
            logger.warning("Hydration degraded for bookmark %s: %s", stored.id, e)
            run.record(
                Diagnostic(
                    kind=DiagnosticKind.HYDRATION_DEGRADED,
                    message=str(e),
                    detail={"bookmark_id": stored.id},
                ),
            )
            try:
                resolved = await resolve_references(stored, self.store)
            except PersistenceFailedError:
                resolved = ResolvedEntities()
            result = hydrate(stored, resolved, DanglingReferencePolicy.DROP)
        run.diagnostics.extend(result.diagnostics)
        return result.bookmark
