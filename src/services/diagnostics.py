"""Diagnostics recorded when an enrichment or hydration step degrades instead of failing."""
from dataclasses import dataclass, field
from enum import StrEnum


class DiagnosticKind(StrEnum):
    """Kind of degraded outcome recorded for a request."""

    SUMMARIZATION_FAILED = "summarization_failed"
    TAG_INFERENCE_FAILED = "tag_inference_failed"
    DANGLING_REFERENCE = "dangling_reference"
    HYDRATION_DEGRADED = "hydration_degraded"


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable failure absorbed by the service layer."""

    kind: DiagnosticKind
    message: str
    detail: dict[str, str | int | None] = field(default_factory=dict)


def _header_token(diagnostic: Diagnostic) -> str:
    status_code = diagnostic.detail.get("status_code")
    if status_code is None:
        return diagnostic.kind.value
    return f"{diagnostic.kind.value};status={status_code}"


def diagnostics_header(diagnostics: list[Diagnostic]) -> str:
    """
    Render diagnostics as a header value.

    Entries are de-duplicated and kept in first-seen order. An upstream status
    code, when known, is attached to its kind, e.g.
    ``summarization_failed;status=503,dangling_reference``.
    """
    return ",".join(dict.fromkeys(_header_token(d) for d in diagnostics))
