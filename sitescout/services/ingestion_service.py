# sitescout/services/ingestion_service.py
import logging
import re
from typing import Optional

from pydantic import ValidationError

from sitescout.core.errors import IngestionError
from sitescout.models import AnalysisPayload

logger = logging.getLogger(__name__)

LEADING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
TRAILING_FENCE = re.compile(r"\r?\n?```$")
CITATION_MARKER = re.compile(r"\[\d+\]")


def strip_code_fence(text: str) -> str:
    """Removes a Markdown code fence the model sometimes wraps its JSON in."""
    text = text.strip()
    if text.startswith("```"):
        text = LEADING_FENCE.sub("", text, count=1)
        text = TRAILING_FENCE.sub("", text, count=1)
    return text

def strip_citations(text: str) -> str:
    """
    Drops grounded-generation citation markers such as ``[1]`` or ``[12]``.
    Runs over the whole payload since markers can land inside any string value.
    """
    return CITATION_MARKER.sub("", text)

def sanitize(text: Optional[str]) -> str:
    return strip_citations(strip_code_fence(text or ""))

def ingest_analysis(text: Optional[str]) -> AnalysisPayload:
    """
    Turns the raw analysis reply into a validated payload.

    Args:
        text: Response text of the schema-constrained call. Untrusted.

    Returns:
        The parsed payload, still without grounding sources.

    Raises:
        IngestionError: If the cleaned text is not JSON matching the schema. Empty
            text and ``{}`` are failures, never an empty report.
    """
    cleaned = sanitize(text)
    try:
        return AnalysisPayload.model_validate_json(cleaned)
    except ValidationError as e:
        logger.error(
            "Critical: Failed to parse AI intelligence payload (%d chars): %s",
            len(cleaned), e,
        )
        raise IngestionError() from e
