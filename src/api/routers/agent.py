"""Standalone summarization endpoint."""
from fastapi import APIRouter, Depends

from api.dependencies import get_authorization, get_current_user_id, get_summarizer
from schemas.bookmark import SummaryRequest, SummaryResponse
from services.ingestion import normalize_url
from services.summarizer import Summarizer

router = APIRouter(prefix="/agent", tags=["agent"])


@router.post("/summarize-url", response_model=SummaryResponse)
async def summarize_url(
    data: SummaryRequest,
    _user_id: str = Depends(get_current_user_id),
    authorization: str | None = Depends(get_authorization),
    summarizer: Summarizer = Depends(get_summarizer),
) -> SummaryResponse:
    """
    Summarize a URL without saving it.

    Returns 400 for a missing or malformed URL and 502 when the summarization
    service fails. The summary is the whole output here, so a failure is not
    absorbed the way it is when saving a bookmark.
    """
    url = normalize_url(data.url)
    summary = await summarizer.summarize(str(url), data.title, authorization)
    return SummaryResponse(summary=summary)
